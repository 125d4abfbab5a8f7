"""
Boundary cursor: a walk around one polygon's clearance-offset boundary.

The cursor sits on an edge of a polygon at some arc ``progress`` from the
edge start (in walking order) and reports a world point pushed out from
the edge by the clearance radius. The offset boundary is closed: convex
corners are rounded by a circular arc of radius ``clearance`` around the
vertex, and at concave corners the two offset edges are trimmed to their
intersection. Advancing wraps from edge to edge in the rotational order
fixed when the cursor was created.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .geometry_utils import (
    Point2,
    clamp,
    cross_2d,
    distance,
    dot_2d,
    normalize_2d,
)
from .world import ObstacleSet

CCW = 1
CW = -1


@dataclass(frozen=True)
class CursorState:
    """Position of a cursor along an obstacle boundary."""

    obstacle_index: int
    edge_index: int
    progress: float


class BoundaryCursor:
    """Walks the offset boundary of one obstacle of an :class:`ObstacleSet`.

    Parameters
    ----------
    obstacles : ObstacleSet
        Shared, read-only obstacle set.
    obstacle_index : int
        Obstacle being followed.
    edge_index : int
        Current edge, in vertex order (edge i = v[i] -> v[i+1]).
    progress : float
        Arc length from the edge's start in walking order. Values past the
        edge length lie on the corner arc at the edge's end.
    sense : int
        ``CCW`` (+1) or ``CW`` (-1), rotational sense around the obstacle.
    side : int
        +1 to offset on the left of the walking direction, -1 on the right.
    """

    def __init__(
        self,
        obstacles: ObstacleSet,
        obstacle_index: int,
        edge_index: int,
        progress: float,
        sense: int,
        side: int,
    ) -> None:
        if sense not in (CCW, CW):
            raise ValueError(f"sense must be +1 or -1, got {sense}")
        self.obstacles = obstacles
        self.obstacle_index = obstacle_index
        self.sense = sense
        self.side = side
        self.handoffs = 0

        poly = obstacles[obstacle_index]
        # Index order that realises the rotational sense on this polygon.
        self.index_step = sense * poly.orientation
        self.edge_index = edge_index % len(poly)
        self.progress = 0.0
        self._load_edge()
        self.progress = float(progress)
        self._wrap()

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------
    @classmethod
    def initialize(
        cls,
        obstacles: ObstacleSet,
        obstacle_index: int,
        contact: Point2,
        sense: int,
        edge_index: Optional[int] = None,
    ) -> "BoundaryCursor":
        """Place a cursor at the offset-boundary point nearest to ``contact``.

        A contact that lies in the wedge outside a convex corner is placed
        on that corner's arc, so a robot touching the inflated obstacle is
        reproduced exactly. The offset side is fixed here from the robot's
        actual contact position relative to the nearest boundary point, so
        a robot beside a thin obstacle stays on its own side.
        """
        poly = obstacles[obstacle_index]
        index_step = sense * poly.orientation
        if edge_index is None:
            _, _, edge_index = poly.closest_point(contact)
            _, _, _, t = _project(poly.edge(edge_index), index_step, contact)
            if t < 0.0:
                # Behind the edge start: the contact belongs to the previous corner.
                edge_index -= index_step
        start, (dx, dy), length, t = _project(poly.edge(edge_index), index_step, contact)

        side = -sense
        if 0.0 < t < length:
            ox = contact[0] - (start[0] + t * dx)
            oy = contact[1] - (start[1] + t * dy)
            if abs(ox) + abs(oy) > 1e-12:
                # Left normal of the walking direction.
                side = 1 if dot_2d(-dy, dx, ox, oy) > 0.0 else -1
        cursor = cls(obstacles, obstacle_index, edge_index, 0.0, sense, side)
        cursor.progress = cursor._progress_for(contact, t)
        cursor._wrap()
        return cursor

    def _progress_for(self, contact: Point2, t: float) -> float:
        if t >= self.exit_length and self.arc_angle > 0.0:
            nx, ny = self.normal
            vx, vy = contact[0] - self.edge_end[0], contact[1] - self.edge_end[1]
            angle = math.atan2(cross_2d(nx, ny, vx, vy), dot_2d(nx, ny, vx, vy)) * self.turn
            return self.exit_length + self.obstacles.clearance * clamp(angle, 0.0, self.arc_angle)
        return clamp(t, self.entry_trim, self.exit_length)

    # ------------------------------------------------------------------
    # Edge cache
    # ------------------------------------------------------------------
    def _corner(self, edge_index: int) -> Tuple[float, float]:
        """(turn, angle) at the vertex ending ``edge_index`` in walking order."""
        poly = self.obstacles[self.obstacle_index]
        a0, a1 = _walk_endpoints(poly.edge(edge_index), self.index_step)
        b0, b1 = _walk_endpoints(poly.edge(edge_index + self.index_step), self.index_step)
        dx, dy = normalize_2d(a1[0] - a0[0], a1[1] - a0[1])
        ex, ey = normalize_2d(b1[0] - b0[0], b1[1] - b0[1])
        turn = cross_2d(dx, dy, ex, ey)
        return turn, math.atan2(abs(turn), dot_2d(dx, dy, ex, ey))

    def _load_edge(self) -> None:
        poly = self.obstacles[self.obstacle_index]
        self.edge_start, self.edge_end = _walk_endpoints(
            poly.edge(self.edge_index), self.index_step
        )
        self.edge_length = distance(self.edge_start, self.edge_end)
        self.edge_dir = normalize_2d(
            self.edge_end[0] - self.edge_start[0], self.edge_end[1] - self.edge_start[1]
        )
        dx, dy = self.edge_dir
        c = self.obstacles.clearance
        self.normal = (-dy * self.side, dx * self.side)
        self.normal_offset = (self.normal[0] * c, self.normal[1] * c)

        # A corner turning towards the offset side is concave.
        turn_in, angle_in = self._corner(self.edge_index - self.index_step)
        turn_out, angle_out = self._corner(self.edge_index)
        self.entry_trim = c * math.tan(angle_in / 2.0) if turn_in * self.side > 0.0 else 0.0
        self.turn = 1 if turn_out > 0.0 else -1
        if turn_out * self.side > 0.0:
            self.arc_angle = 0.0
            trim_out = c * math.tan(angle_out / 2.0)
        else:
            self.arc_angle = angle_out
            trim_out = 0.0
        self.exit_length = max(self.edge_length - trim_out, self.entry_trim)
        self.segment_length = self.exit_length + c * self.arc_angle

    def _wrap(self) -> None:
        n = len(self.obstacles[self.obstacle_index])
        while self.progress >= self.segment_length:
            self.progress -= self.segment_length
            self.edge_index = (self.edge_index + self.index_step) % n
            self._load_edge()
            self.progress += self.entry_trim

    # ------------------------------------------------------------------
    # Walking
    # ------------------------------------------------------------------
    def world_point(self) -> Point2:
        """edge_start + progress * dir + normal * clearance, or a point on the corner arc."""
        if self.progress <= self.exit_length:
            sx, sy = self.edge_start
            dx, dy = self.edge_dir
            nx, ny = self.normal_offset
            return (sx + self.progress * dx + nx, sy + self.progress * dy + ny)
        c = self.obstacles.clearance
        phi = (self.progress - self.exit_length) / c * self.turn
        nx, ny = self.normal
        cos_p, sin_p = math.cos(phi), math.sin(phi)
        ex, ey = self.edge_end
        return (ex + c * (nx * cos_p - ny * sin_p), ey + c * (nx * sin_p + ny * cos_p))

    def boundary_point(self) -> Point2:
        if self.progress > self.exit_length:
            return self.edge_end
        sx, sy = self.edge_start
        dx, dy = self.edge_dir
        return (sx + self.progress * dx, sy + self.progress * dy)

    def advance(self, arc_length: float) -> Point2:
        """Move ``arc_length`` along the offset boundary and return the new world point."""
        self.progress += arc_length
        self._wrap()
        return self.world_point()

    def state(self) -> CursorState:
        return CursorState(self.obstacle_index, self.edge_index, self.progress)

    @property
    def perimeter(self) -> float:
        return self.obstacles[self.obstacle_index].perimeter

    def copy(self) -> "BoundaryCursor":
        other = BoundaryCursor(
            self.obstacles,
            self.obstacle_index,
            self.edge_index,
            self.progress,
            self.sense,
            self.side,
        )
        other.handoffs = self.handoffs
        return other


def advance_with_handoff(
    cursor: BoundaryCursor,
    arc_length: float,
    max_handoffs: int = 4,
) -> Tuple[BoundaryCursor, Point2]:
    """Advance a cursor, switching walls when the offset walk runs into one.

    The offset walk of one polygon cuts into the clearance zone of another
    obstacle where the two touch or overlap, and of non-adjacent walls of
    the same polygon in narrow notches. When the advanced point penetrates
    another inflated edge, a fresh cursor is started on that wall from the
    last valid point, keeping the rotational sense, and the step is retried.

    Returns
    -------
    (cursor, world_point)
        The cursor may be a new object on a different obstacle.
    """
    obstacles = cursor.obstacles
    for _ in range(max_handoffs + 1):
        prev = cursor.world_point()
        trial = cursor.copy()
        point = trial.advance(arc_length)
        hit = obstacles.penetrating(point, ignore=(trial.obstacle_index, trial.edge_index))
        if hit is None:
            return trial, point
        obstacle_index, edge_index = hit
        handed = BoundaryCursor.initialize(
            obstacles, obstacle_index, prev, cursor.sense, edge_index=edge_index
        )
        handed.handoffs = cursor.handoffs + 1
        cursor = handed
    point = cursor.advance(arc_length)
    return cursor, point


def _walk_endpoints(edge: Tuple[Point2, Point2], index_step: int) -> Tuple[Point2, Point2]:
    """Edge endpoints ordered in the walking direction."""
    a, b = edge
    return (a, b) if index_step > 0 else (b, a)


def _project(
    edge: Tuple[Point2, Point2], index_step: int, p: Point2
) -> Tuple[Point2, Tuple[float, float], float, float]:
    """(start, direction, length, t) of ``p`` projected onto an edge in walking order."""
    start, end = _walk_endpoints(edge, index_step)
    dx, dy = normalize_2d(end[0] - start[0], end[1] - start[1])
    t = dot_2d(p[0] - start[0], p[1] - start[1], dx, dy)
    return start, (dx, dy), distance(start, end), t
