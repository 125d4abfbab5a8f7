from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional
import math

from .boundary import BoundaryCursor, CursorState, advance_with_handoff
from .geometry_utils import Point2, distance, normalize_2d
from .policies import FollowAction, LeavePolicy, get_leave_policy, resolve_policy_name
from .sensors import RangeScan, RangeSensor, RangeSensorConfig
from .world import ObstacleSet

# Bisection rounds when closing the last partial step onto an obstacle.
CONTACT_ITERATIONS = 48


class Mode(Enum):
    SEEKING = "seeking"
    FOLLOWING = "following"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (Mode.SUCCEEDED, Mode.FAILED)


class FailureReason(Enum):
    GOAL_UNREACHABLE = "goal_unreachable"
    ITERATION_LIMIT = "iteration_limit"


class StartOrGoalInCollision(ValueError):
    """Raised when the start or goal lies inside an inflated obstacle."""


@dataclass
class NavigatorConfig:
    """Parameters of a navigation session.

    Attributes
    ----------
    step_size : float
        Arc length / straight distance moved per tick (meters). Also the
        tolerance for "reached" and "revisited" tests.
    tolerance : float
        Goal radius; the M-line band for the line re-encounter policy.
    policy : str
        Leave policy name or alias (A, B, C).
    sensing_range : float
        Range sensor reach, tangent heuristic only.
    angular_resolution_deg : float
        Range sensor ray spacing, tangent heuristic only.
    max_handoffs : int
        Wall switches allowed per following step.
    min_loop_steps : int
        Steps of arc before a return to the hit point counts as a closed loop.
    """

    step_size: float
    tolerance: float
    policy: str = "exhaustive_loop"
    sensing_range: float = 3.0
    angular_resolution_deg: float = 5.0
    max_handoffs: int = 4
    min_loop_steps: int = 3

    def __post_init__(self) -> None:
        if not self.step_size > 0.0:
            raise ValueError(f"step_size must be > 0, got {self.step_size}")
        if not self.tolerance > 0.0:
            raise ValueError(f"tolerance must be > 0, got {self.tolerance}")
        self.policy = resolve_policy_name(self.policy)

    @classmethod
    def from_dict(cls, navigator_cfg: Dict[str, Any], sensor_cfg: Optional[Dict[str, Any]] = None) -> "NavigatorConfig":
        sensor_cfg = sensor_cfg or {}
        return cls(
            step_size=float(navigator_cfg["step_size"]),
            tolerance=float(navigator_cfg["tolerance"]),
            policy=str(navigator_cfg.get("policy", "exhaustive_loop")),
            sensing_range=float(sensor_cfg.get("sensing_range", 3.0)),
            angular_resolution_deg=float(sensor_cfg.get("angular_resolution_deg", 5.0)),
            max_handoffs=int(navigator_cfg.get("max_handoffs", 4)),
            min_loop_steps=int(navigator_cfg.get("min_loop_steps", 3)),
        )


class NavigationSession:
    """Bug navigator state machine for one start/goal query.

    Mutated only by :meth:`step`. Obstacles are shared and never modified,
    so independent sessions may run side by side.

    Parameters
    ----------
    start, goal : (x, y)
        Must both lie outside every inflated obstacle.
    obstacles : ObstacleSet
    config : NavigatorConfig
    """

    def __init__(
        self,
        start: Point2,
        goal: Point2,
        obstacles: ObstacleSet,
        config: NavigatorConfig,
    ) -> None:
        self.start: Point2 = (float(start[0]), float(start[1]))
        self.goal: Point2 = (float(goal[0]), float(goal[1]))
        self.obstacles = obstacles
        self.config = config

        for label, p in (("start", self.start), ("goal", self.goal)):
            k = obstacles.colliding_obstacle(p)
            if k is not None:
                raise StartOrGoalInCollision(f"{label} {p} is inside inflated obstacle {k}")

        self.policy: LeavePolicy = get_leave_policy(config.policy)
        self.sensor: Optional[RangeSensor] = None
        if self.policy.needs_sensor:
            self.sensor = RangeSensor(
                RangeSensorConfig(
                    max_range=config.sensing_range,
                    angular_resolution_deg=config.angular_resolution_deg,
                )
            )

        self.mode = Mode.SEEKING
        self.robot_position: Point2 = self.start
        self.hit_point: Optional[Point2] = None
        self.hit_state: Optional[CursorState] = None
        self.entry_point: Optional[Point2] = None
        self.leave_candidate: Optional[Point2] = None
        self.best_heuristic = math.inf
        self.traversed_arc_length = 0.0
        self.following_direction = 0
        self.episodes = 0
        self.failure_reason: Optional[FailureReason] = None
        self.cursor: Optional[BoundaryCursor] = None

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    def distance_to_goal(self) -> float:
        return distance(self.robot_position, self.goal)

    def cursor_state(self) -> Optional[CursorState]:
        return self.cursor.state() if self.cursor is not None else None

    def scan(self) -> RangeScan:
        """Range scan from the current robot position (sensor policies only)."""
        if self.sensor is None:
            raise RuntimeError(f"Policy {self.policy.name} has no range sensor")
        return self.sensor.scan(self.robot_position, self.obstacles)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mode": self.mode.value,
            "x": self.robot_position[0],
            "y": self.robot_position[1],
            "hit_point": list(self.hit_point) if self.hit_point is not None else None,
            "leave_candidate": list(self.leave_candidate) if self.leave_candidate is not None else None,
            "traversed": self.traversed_arc_length,
            "direction": self.following_direction,
            "episodes": self.episodes,
        }

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------
    def step(self) -> Mode:
        """Advance one tick and return the new mode. No-op once terminal."""
        if self.mode.terminal:
            return self.mode

        if self.distance_to_goal() <= self.config.tolerance:
            self.mode = Mode.SUCCEEDED
            return self.mode

        if self.mode is Mode.SEEKING:
            self._seek()
        else:
            self._follow()
        return self.mode

    def _seek(self) -> None:
        pos, goal = self.robot_position, self.goal
        remaining = distance(pos, goal)
        step = min(self.config.step_size, remaining)
        ux, uy = normalize_2d(goal[0] - pos[0], goal[1] - pos[1])
        candidate = (pos[0] + step * ux, pos[1] + step * uy)

        obstacle_index = self.policy.blocking_obstacle(self, candidate)
        if obstacle_index is None:
            self.robot_position = candidate
            return
        if self.obstacles.in_collision(candidate):
            # Stop on the inflated boundary, not up to one step short of it.
            self.robot_position = self._contact_point(pos, (ux, uy), step)
            obstacle_index = self.obstacles.nearest(self.robot_position)[0]
        self._begin_following(obstacle_index)

    def _contact_point(self, pos: Point2, direction: Point2, step: float) -> Point2:
        """Last collision-free point on the way from pos towards a colliding candidate."""
        ux, uy = direction
        lo, hi = 0.0, step
        for _ in range(CONTACT_ITERATIONS):
            mid = 0.5 * (lo + hi)
            if self.obstacles.in_collision((pos[0] + mid * ux, pos[1] + mid * uy)):
                hi = mid
            else:
                lo = mid
        return (pos[0] + lo * ux, pos[1] + lo * uy)

    def _begin_following(self, obstacle_index: int) -> None:
        sense = self.policy.on_enter_following(self, obstacle_index)
        self.cursor = BoundaryCursor.initialize(
            self.obstacles, obstacle_index, self.robot_position, sense
        )
        self.hit_point = self.robot_position
        self.hit_state = self.cursor.state()
        self.entry_point = self.cursor.world_point()
        self.leave_candidate = self.robot_position
        self.best_heuristic = distance(self.robot_position, self.goal)
        self.traversed_arc_length = 0.0
        self.following_direction = sense
        self.episodes += 1
        self.mode = Mode.FOLLOWING

    def _follow(self) -> None:
        if self.cursor is None:
            raise RuntimeError("Following mode without a boundary cursor")
        step = self.config.step_size
        self.cursor, self.robot_position = advance_with_handoff(
            self.cursor, step, self.config.max_handoffs
        )
        self.traversed_arc_length += step

        decision = self.policy.on_following_step(self)
        if decision.action is FollowAction.CONTINUE and self._loop_closed():
            decision = self.policy.on_loop_closed(self)

        if decision.action is FollowAction.LEAVE:
            if decision.position is not None:
                self.robot_position = decision.position
            self.cursor = None
            self.mode = Mode.SEEKING
        elif decision.action is FollowAction.FAIL:
            self.cursor = None
            self.failure_reason = FailureReason.GOAL_UNREACHABLE
            self.mode = Mode.FAILED

    def _loop_closed(self) -> bool:
        if self.hit_point is None:
            return False
        step = self.config.step_size
        if self.traversed_arc_length < self.config.min_loop_steps * step:
            return False
        pos = self.robot_position
        if distance(pos, self.hit_point) < step:
            return True
        return self.entry_point is not None and distance(pos, self.entry_point) < step
