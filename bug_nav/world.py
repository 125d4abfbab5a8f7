from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import math

from .geometry_utils import (
    DIST_EPS,
    Point2,
    closest_point_on_polygon,
    closest_point_on_segment,
    distance,
    line_of_sight,
    point_in_polygon,
    polygon_centroid,
    polygon_edges,
    polygon_perimeter,
    polygon_signed_area,
    segments_intersect,
)


class InvalidGeometry(ValueError):
    """Raised when an obstacle or the clearance radius is malformed."""


class Polygon:
    """Immutable closed polygon obstacle.

    Coordinates are defined with origin at bottom-left of the world:
    - x increases to the right
    - y increases upward

    The last vertex connects back to the first. Either winding order is
    accepted; ``orientation`` records it (+1 counter-clockwise, -1 clockwise).

    Parameters
    ----------
    vertices : sequence of (x, y)
        At least three vertices, no two consecutive ones coincident.
    """

    def __init__(self, vertices: Iterable[Sequence[float]]) -> None:
        verts = tuple((float(v[0]), float(v[1])) for v in vertices)
        if len(verts) < 3:
            raise InvalidGeometry(f"Polygon needs at least 3 vertices, got {len(verts)}")
        for i, (a, b) in enumerate(polygon_edges(verts)):
            if distance(a, b) < 1e-12:
                raise InvalidGeometry(f"Polygon edge {i} has zero length at {a}")
        area = polygon_signed_area(verts)
        if abs(area) < 1e-12:
            raise InvalidGeometry("Polygon has zero area")
        self._vertices: Tuple[Point2, ...] = verts
        self._perimeter = polygon_perimeter(verts)
        self._signed_area = area

    @property
    def vertices(self) -> Tuple[Point2, ...]:
        return self._vertices

    @property
    def perimeter(self) -> float:
        """Sum of edge lengths, computed once at construction."""
        return self._perimeter

    @property
    def signed_area(self) -> float:
        return self._signed_area

    @property
    def orientation(self) -> int:
        return 1 if self._signed_area > 0.0 else -1

    @property
    def centroid(self) -> Point2:
        return polygon_centroid(self._vertices)

    def __len__(self) -> int:
        return len(self._vertices)

    def edge(self, index: int) -> Tuple[Point2, Point2]:
        """Return edge ``index`` as (start, end) in vertex order."""
        n = len(self._vertices)
        i = index % n
        return self._vertices[i], self._vertices[(i + 1) % n]

    def edges(self) -> List[Tuple[Point2, Point2]]:
        return polygon_edges(self._vertices)

    def contains(self, p: Point2) -> bool:
        return point_in_polygon(p, self._vertices)

    def closest_point(self, p: Point2) -> Tuple[Point2, float, int]:
        return closest_point_on_polygon(p, self._vertices)

    def __repr__(self) -> str:
        return f"Polygon({list(self._vertices)!r})"


class ObstacleSet:
    """Static set of polygon obstacles plus the robot clearance radius.

    Shared read-only by the navigator, the boundary cursor and the range
    sensor for the lifetime of a session. All inflated queries go through
    the geometry kernel.

    Parameters
    ----------
    polygons : iterable of Polygon or vertex lists
    clearance : float
        Robot radius plus safety margin, >= 0.
    """

    def __init__(
        self,
        polygons: Iterable[Any],
        clearance: float = 0.0,
    ) -> None:
        clearance = float(clearance)
        if clearance < 0.0 or not math.isfinite(clearance):
            raise InvalidGeometry(f"Clearance must be finite and >= 0, got {clearance}")
        self._polygons: Tuple[Polygon, ...] = tuple(
            p if isinstance(p, Polygon) else Polygon(p) for p in polygons
        )
        self._clearance = clearance

    # ------------------------------------------------------------------
    # Construction from plain data
    # ------------------------------------------------------------------
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObstacleSet":
        """Create an obstacle set from ``{"clearance": c, "obstacles": [[[x, y], ...], ...]}``."""
        obstacles_data = data.get("obstacles", [])
        polygons = [Polygon(vertices) for vertices in obstacles_data]
        return cls(polygons, clearance=float(data.get("clearance", 0.0)))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clearance": self._clearance,
            "obstacles": [[list(v) for v in p.vertices] for p in self._polygons],
        }

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def polygons(self) -> Tuple[Polygon, ...]:
        return self._polygons

    @property
    def clearance(self) -> float:
        return self._clearance

    def __len__(self) -> int:
        return len(self._polygons)

    def __getitem__(self, index: int) -> Polygon:
        return self._polygons[index]

    def __iter__(self):
        return iter(self._polygons)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def nearest(self, p: Point2) -> Tuple[int, Point2, float, int]:
        """Nearest polygon boundary point.

        Returns
        -------
        (obstacle_index, point, distance, edge_index)
            ``obstacle_index`` is -1 for an empty set.
        """
        best = (-1, (p[0], p[1]), math.inf, -1)
        for k, poly in enumerate(self._polygons):
            c, d, e = poly.closest_point(p)
            if d < best[2]:
                best = (k, c, d, e)
        return best

    def distance_to_boundary(self, p: Point2) -> float:
        return self.nearest(p)[2]

    def colliding_obstacle(self, p: Point2) -> Optional[int]:
        """Index of the first obstacle whose inflated region contains p, or None.

        Inflated region: inside the polygon or strictly closer than
        ``clearance`` to its boundary.
        """
        for k, poly in enumerate(self._polygons):
            if poly.contains(p):
                return k
            if poly.closest_point(p)[1] < self._clearance:
                return k
        return None

    def in_collision(self, p: Point2) -> bool:
        return self.colliding_obstacle(p) is not None

    def penetrating(
        self,
        p: Point2,
        ignore: Optional[Tuple[int, int]] = None,
    ) -> Optional[Tuple[int, int]]:
        """First (obstacle, edge) whose inflated edge p lies inside, or None.

        Uses ``clearance - eps`` so points riding exactly on an offset
        boundary do not count. ``ignore`` skips one (obstacle, edge) pair,
        normally the edge a cursor is following.
        """
        limit = self._clearance - DIST_EPS * 10.0
        for k, poly in enumerate(self._polygons):
            _, d, e_near = poly.closest_point(p)
            if d > DIST_EPS and poly.contains(p):
                return k, e_near
            for e, (v, w) in enumerate(poly.edges()):
                if ignore is not None and (k, e) == ignore:
                    continue
                if closest_point_on_segment(p, v, w)[1] < limit:
                    return k, e
        return None

    def line_of_sight(self, a: Point2, b: Point2) -> bool:
        """Clearance-aware visibility between a and b."""
        return line_of_sight(a, b, [p.vertices for p in self._polygons], self._clearance)

    def ray_cast(self, origin: Point2, angle: float, max_range: float) -> float:
        """Distance along the ray to the nearest polygon edge, capped at ``max_range``."""
        end = (
            origin[0] + max_range * math.cos(angle),
            origin[1] + max_range * math.sin(angle),
        )
        best = max_range
        for poly in self._polygons:
            for v, w in poly.edges():
                hit, point = segments_intersect(origin, end, v, w)
                if hit and point is not None:
                    d = distance(origin, point)
                    if d < best:
                        best = d
        return best
