from __future__ import annotations

import pytest

from bug_nav.boundary import CCW, CW
from bug_nav.navigator import NavigationSession, NavigatorConfig
from bug_nav.policies import (
    ExhaustiveLoopPolicy,
    FollowAction,
    LineReencounterPolicy,
    TangentHeuristicPolicy,
    get_leave_policy,
    list_leave_policies,
    register_leave_policy,
    resolve_policy_name,
)
from bug_nav.world import ObstacleSet

SQUARE = [(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)]


def _session(policy: str, start=(-3.0, 1.0), goal=(5.0, 1.0)) -> NavigationSession:
    return NavigationSession(
        start=start,
        goal=goal,
        obstacles=ObstacleSet([SQUARE], clearance=0.1),
        config=NavigatorConfig(step_size=0.1, tolerance=0.15, policy=policy),
    )


def test_registry_lists_builtin_policies() -> None:
    names = list_leave_policies()
    assert names[:3] == ["exhaustive_loop", "line_reencounter", "tangent_heuristic"]


def test_aliases_resolve_to_policies() -> None:
    assert isinstance(get_leave_policy("A"), ExhaustiveLoopPolicy)
    assert isinstance(get_leave_policy("B"), LineReencounterPolicy)
    assert isinstance(get_leave_policy("C"), TangentHeuristicPolicy)
    assert resolve_policy_name("line_reencounter") == "line_reencounter"


def test_unknown_policy_raises_key_error() -> None:
    with pytest.raises(KeyError):
        get_leave_policy("bug3")


def test_each_lookup_returns_fresh_instance() -> None:
    assert get_leave_policy("A") is not get_leave_policy("A")


def test_only_tangent_heuristic_needs_sensor() -> None:
    assert not get_leave_policy("A").needs_sensor
    assert not get_leave_policy("B").needs_sensor
    assert get_leave_policy("C").needs_sensor


def test_register_custom_policy() -> None:
    class GiveUpPolicy(LineReencounterPolicy):
        name = "give_up"

        def on_following_step(self, session):
            return self.on_loop_closed(session)

    register_leave_policy("give_up", GiveUpPolicy)
    try:
        session = _session("give_up")
        for _ in range(200):
            session.step()
            if session.mode.terminal:
                break
        assert session.mode.value == "failed"
        assert session.episodes == 1
    finally:
        from bug_nav import policies

        policies._POLICY_REGISTRY.pop("give_up", None)


def test_exhaustive_and_line_policies_walk_in_index_order() -> None:
    session = _session("A")
    assert session.policy.on_enter_following(session, 0) == CCW
    session = _session("B")
    assert session.policy.on_enter_following(session, 0) == CCW
    cw_world = ObstacleSet([list(reversed(SQUARE))], clearance=0.1)
    assert ExhaustiveLoopPolicy().on_enter_following(
        NavigationSession((-3.0, 1.0), (5.0, 1.0), cw_world, NavigatorConfig(0.1, 0.15)), 0
    ) == CW


def test_tangent_heuristic_turns_toward_goal_side() -> None:
    # Nearest return straight ahead, goal bearing slightly clockwise of it:
    # negative turn, walk clockwise.
    session = _session("C", start=(-0.3, 0.5), goal=(5.0, 0.0))
    assert session.policy.on_enter_following(session, 0) == CW
    # Mirror image: goal bearing counter-clockwise of the nearest return.
    session = _session("C", start=(-0.3, 1.5), goal=(5.0, 2.0))
    assert session.policy.on_enter_following(session, 0) == CCW
    # Head-on contact has no turn and walks clockwise.
    session = _session("C", start=(-0.3, 1.0), goal=(5.0, 1.0))
    assert session.policy.on_enter_following(session, 0) == CW


def test_line_reencounter_continues_off_the_line() -> None:
    session = _session("B")
    session.hit_point = (-0.1, 1.0)
    session.robot_position = (1.0, -0.1)
    decision = session.policy.on_following_step(session)
    assert decision.action is FollowAction.CONTINUE
    assert session.policy.on_loop_closed(session).action is FollowAction.FAIL


def test_line_reencounter_leaves_on_the_line_closer_to_goal() -> None:
    session = _session("B")
    session.hit_point = (-0.1, 1.0)
    session.robot_position = (2.1, 0.9)
    decision = session.policy.on_following_step(session)
    assert decision.action is FollowAction.LEAVE
    assert decision.position is not None
    assert decision.position[1] == 1.0


def test_line_reencounter_ignores_line_points_farther_than_hit() -> None:
    session = _session("B")
    session.hit_point = (-0.1, 1.0)
    session.robot_position = (-0.1, 0.95)
    assert session.policy.on_following_step(session).action is FollowAction.CONTINUE


def test_tangent_heuristic_loop_closure_without_visible_candidate_fails() -> None:
    session = _session("C")
    session.leave_candidate = (-0.1, 1.0)
    assert session.policy.on_loop_closed(session).action is FollowAction.FAIL


def test_line_reencounter_leaves_in_place_when_line_point_is_blocked() -> None:
    # M-line at y = 1.9 runs through the square; the robot rides the top face.
    session = _session("B", start=(-3.0, 1.9), goal=(5.0, 1.9))
    session.hit_point = (-0.1, 1.9)
    session.robot_position = (0.5, 2.1)
    decision = session.policy.on_following_step(session)
    assert decision.action is FollowAction.LEAVE
    assert decision.position is None

