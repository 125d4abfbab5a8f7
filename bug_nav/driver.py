from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union

from .geometry_utils import Point2, distance
from .navigator import FailureReason, Mode, NavigationSession
from telemetry.logger import TelemetryLogger


@dataclass(frozen=True)
class Continuing:
    position: Point2
    mode: Mode


@dataclass(frozen=True)
class Succeeded:
    position: Point2


@dataclass(frozen=True)
class Failed:
    position: Point2
    reason: FailureReason


Event = Union[Continuing, Succeeded, Failed]


@dataclass
class Path:
    """Append-only record of visited positions. Never read by the navigator."""

    points: List[Point2] = field(default_factory=list)

    def append(self, p: Point2) -> None:
        self.points.append((p[0], p[1]))

    def length(self) -> float:
        """Total polyline length."""
        return sum(distance(a, b) for a, b in zip(self.points, self.points[1:]))

    def __len__(self) -> int:
        return len(self.points)


class SessionDriver:
    """Ticks a :class:`NavigationSession` and turns its state into events.

    The driver owns the path recorder and, optionally, a telemetry logger
    that receives one JSON record per tick.
    """

    def __init__(
        self,
        session: NavigationSession,
        path: Optional[Path] = None,
        telemetry: Optional[TelemetryLogger] = None,
    ) -> None:
        self.session = session
        self.path = path if path is not None else Path()
        self.telemetry = telemetry
        self.ticks = 0
        self.following_episodes = 0
        self.mode_history: List[Mode] = [session.mode]
        self.path.append(session.robot_position)

    def step(self) -> Event:
        """Run one navigator tick and report the outcome."""
        session = self.session
        if session.mode.terminal:
            return self._event()

        prev_mode = session.mode
        mode = session.step()
        self.ticks += 1
        if mode is not prev_mode:
            self.mode_history.append(mode)
            if mode is Mode.FOLLOWING:
                self.following_episodes += 1
        self.path.append(session.robot_position)

        event = self._event()
        if self.telemetry is not None:
            self.telemetry.log_tick(self.ticks, type(event).__name__, session.to_dict())
        return event

    def run(self, max_steps: int) -> Event:
        """Step until a terminal event or ``max_steps`` ticks.

        Hitting the cap reports ``Failed(ITERATION_LIMIT)``; the session
        itself is left as it was.
        """
        event = self._event()
        for _ in range(max_steps):
            event = self.step()
            if not isinstance(event, Continuing):
                return event
        if isinstance(event, Continuing):
            return Failed(self.session.robot_position, FailureReason.ITERATION_LIMIT)
        return event

    def _event(self) -> Event:
        session = self.session
        if session.mode is Mode.SUCCEEDED:
            return Succeeded(session.robot_position)
        if session.mode is Mode.FAILED:
            reason = session.failure_reason or FailureReason.GOAL_UNREACHABLE
            return Failed(session.robot_position, reason)
        return Continuing(session.robot_position, session.mode)
