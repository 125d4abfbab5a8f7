"""
Leave policies for the bug navigator.

One state machine drives every variant; a policy only decides which way to
walk the boundary, how to update the running leave candidate and when
boundary following ends. Three policies are registered:

- ``exhaustive_loop`` (A): walk the whole boundary, then return to the
  point closest to the goal.
- ``line_reencounter`` (B): leave on the start-goal line (M-line) once
  closer to the goal than the hit point.
- ``tangent_heuristic`` (C): sensor-chosen direction, leave as soon as the
  goal is visible.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Type
import math

from .boundary import CCW, CW
from .geometry_utils import (
    Point2,
    cross_2d,
    distance,
    normalize_2d,
    point_to_line_distance,
)

if TYPE_CHECKING:
    from .navigator import NavigationSession


class FollowAction(Enum):
    CONTINUE = "continue"
    LEAVE = "leave"
    FAIL = "fail"


@dataclass(frozen=True)
class FollowDecision:
    """Outcome of one boundary-following step.

    ``position`` overrides the robot position on LEAVE (snap or teleport).
    """

    action: FollowAction
    position: Optional[Point2] = None


CONTINUE = FollowDecision(FollowAction.CONTINUE)
FAIL = FollowDecision(FollowAction.FAIL)


def leave(position: Optional[Point2] = None) -> FollowDecision:
    return FollowDecision(FollowAction.LEAVE, position)


class LeavePolicy(ABC):
    """Interface shared by all leave policies."""

    name: str = "base"
    needs_sensor: bool = False

    def blocking_obstacle(self, session: "NavigationSession", candidate: Point2) -> Optional[int]:
        """Obstacle that stops the next seeking step, or None to keep seeking."""
        return session.obstacles.colliding_obstacle(candidate)

    @abstractmethod
    def on_enter_following(self, session: "NavigationSession", obstacle_index: int) -> int:
        """Reset per-episode state and return the walking sense (CCW or CW)."""

    @abstractmethod
    def on_following_step(self, session: "NavigationSession") -> FollowDecision:
        """Called after every cursor advance."""

    @abstractmethod
    def on_loop_closed(self, session: "NavigationSession") -> FollowDecision:
        """Called when the robot is back at its hit point."""


class ExhaustiveLoopPolicy(LeavePolicy):
    """Full circumnavigation, then return to the closest point to the goal."""

    name = "exhaustive_loop"

    def __init__(self) -> None:
        self.loop_done = False
        self.lap_length = 0.0
        self.return_arc = 0.0

    def on_enter_following(self, session: "NavigationSession", obstacle_index: int) -> int:
        self.loop_done = False
        self.lap_length = 0.0
        self.return_arc = 0.0
        # Increasing edge index on the hit polygon.
        return session.obstacles[obstacle_index].orientation

    def on_following_step(self, session: "NavigationSession") -> FollowDecision:
        pos = session.robot_position
        goal = session.goal
        step = session.config.step_size

        if not self.loop_done:
            if distance(pos, goal) < distance(session.leave_candidate, goal):
                session.leave_candidate = pos
            if self._back_at_hit_state(session):
                self.loop_done = True
                self.lap_length = session.traversed_arc_length
            else:
                return CONTINUE
        else:
            self.return_arc += step

        if distance(pos, session.leave_candidate) < step:
            return leave()
        if self.return_arc > self.lap_length:
            # Quantization kept us off the candidate for a whole lap.
            return leave()
        return CONTINUE

    def on_loop_closed(self, session: "NavigationSession") -> FollowDecision:
        return CONTINUE

    @staticmethod
    def _back_at_hit_state(session: "NavigationSession") -> bool:
        hit = session.hit_state
        perimeter = session.obstacles[hit.obstacle_index].perimeter
        if session.traversed_arc_length < perimeter - 1e-9:
            return False
        state = session.cursor_state()
        if state is None:
            return False
        return (
            state.obstacle_index == hit.obstacle_index
            and state.edge_index == hit.edge_index
            and abs(state.progress - hit.progress) <= session.config.step_size
        )


class LineReencounterPolicy(LeavePolicy):
    """Leave where the M-line is met again closer to the goal."""

    name = "line_reencounter"

    def on_enter_following(self, session: "NavigationSession", obstacle_index: int) -> int:
        return session.obstacles[obstacle_index].orientation

    def on_following_step(self, session: "NavigationSession") -> FollowDecision:
        pos = session.robot_position
        start, goal = session.start, session.goal
        d, t = point_to_line_distance(pos, start, goal)
        if not 0.0 <= t <= 1.0:
            return CONTINUE
        if d - session.obstacles.clearance >= session.config.tolerance:
            return CONTINUE
        if distance(pos, goal) >= distance(session.hit_point, goal):
            return CONTINUE
        snapped = (start[0] + t * (goal[0] - start[0]), start[1] + t * (goal[1] - start[1]))
        if session.obstacles.penetrating(snapped) is None:
            return leave(snapped)
        # The line point is inside the clearance zone: leave from here.
        return leave()

    def on_loop_closed(self, session: "NavigationSession") -> FollowDecision:
        return FAIL


class TangentHeuristicPolicy(LeavePolicy):
    """Range-sensor policy: leave on regained line of sight to the goal."""

    name = "tangent_heuristic"
    needs_sensor = True

    def blocking_obstacle(self, session: "NavigationSession", candidate: Point2) -> Optional[int]:
        hit = super().blocking_obstacle(session, candidate)
        if hit is not None:
            return hit
        pos, goal = session.robot_position, session.goal
        if session.obstacles.line_of_sight(pos, goal):
            return None
        scan = session.scan()
        bearing = math.atan2(goal[1] - pos[1], goal[0] - pos[0])
        within = session.obstacles.clearance + session.config.step_size
        if scan.blocked_toward(bearing, within):
            return session.obstacles.nearest(pos)[0]
        return None

    def on_enter_following(self, session: "NavigationSession", obstacle_index: int) -> int:
        pos, goal = session.robot_position, session.goal
        angle, _ = session.scan().nearest()
        gx, gy = normalize_2d(goal[0] - pos[0], goal[1] - pos[1])
        turn = cross_2d(math.cos(angle), math.sin(angle), gx, gy)
        # Goal bearing counter-clockwise of the nearest return: walk counter-clockwise.
        return CCW if turn > 0.0 else CW

    def on_following_step(self, session: "NavigationSession") -> FollowDecision:
        pos, goal = session.robot_position, session.goal
        visible = session.obstacles.line_of_sight(pos, goal)
        heuristic = session.traversed_arc_length + distance(pos, goal)
        if visible and heuristic < session.best_heuristic:
            session.best_heuristic = heuristic
            session.leave_candidate = pos
        if visible:
            return leave()
        return CONTINUE

    def on_loop_closed(self, session: "NavigationSession") -> FollowDecision:
        candidate = session.leave_candidate
        if candidate is not None and session.obstacles.line_of_sight(candidate, session.goal):
            return leave(candidate)
        return FAIL


# ---------------------------------------------------------------------------
# Policy registry and selector
# ---------------------------------------------------------------------------


_POLICY_REGISTRY: Dict[str, Type[LeavePolicy]] = {
    "exhaustive_loop": ExhaustiveLoopPolicy,
    "line_reencounter": LineReencounterPolicy,
    "tangent_heuristic": TangentHeuristicPolicy,
}

_ALIASES: Dict[str, str] = {
    "A": "exhaustive_loop",
    "B": "line_reencounter",
    "C": "tangent_heuristic",
}


def resolve_policy_name(name: str) -> str:
    key = _ALIASES.get(name, name)
    if key not in _POLICY_REGISTRY:
        raise KeyError(
            f"Unknown leave policy: {name}. Available: {list(_POLICY_REGISTRY.keys())}"
        )
    return key


def get_leave_policy(name: str) -> LeavePolicy:
    """Return a fresh policy instance for the given name or alias (A, B, C)."""
    return _POLICY_REGISTRY[resolve_policy_name(name)]()


def list_leave_policies() -> List[str]:
    """Return list of registered policy names."""
    return list(_POLICY_REGISTRY.keys())


def register_leave_policy(name: str, cls: Type[LeavePolicy]) -> None:
    """Register a custom leave policy."""
    _POLICY_REGISTRY[name] = cls
