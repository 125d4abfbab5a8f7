"""
Top-level package for reactive bug-family local navigation.

Components:
- geometry_utils: segment/polygon projection, intersection, line of sight
- world: polygon obstacles, obstacle set, inflated collision queries
- sensors: 360 degree range sensor model
- boundary: clearance-offset boundary cursor
- policies: leave policies (exhaustive loop, line re-encounter, tangent heuristic)
- navigator: seek/follow state machine
- driver: step events, path recording, iteration guard
- metrics: run metrics and reports
"""

from .world import InvalidGeometry, ObstacleSet, Polygon
from .sensors import RangeScan, RangeSensor, RangeSensorConfig
from .boundary import BoundaryCursor, CursorState
from .policies import get_leave_policy, list_leave_policies, register_leave_policy
from .navigator import (
    FailureReason,
    Mode,
    NavigationSession,
    NavigatorConfig,
    StartOrGoalInCollision,
)
from .driver import Continuing, Failed, Path, SessionDriver, Succeeded

__all__ = [
    "InvalidGeometry",
    "ObstacleSet",
    "Polygon",
    "RangeScan",
    "RangeSensor",
    "RangeSensorConfig",
    "BoundaryCursor",
    "CursorState",
    "get_leave_policy",
    "list_leave_policies",
    "register_leave_policy",
    "FailureReason",
    "Mode",
    "NavigationSession",
    "NavigatorConfig",
    "StartOrGoalInCollision",
    "Continuing",
    "Failed",
    "Path",
    "SessionDriver",
    "Succeeded",
]
