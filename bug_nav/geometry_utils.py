"""
Geometry kernel for bug-style local navigation.

Provides point-segment projection, segment intersection, polygon helpers
and the clearance-aware line-of-sight test used by the navigator, the
boundary cursor and the range sensor. Points are plain ``(x, y)`` tuples.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple
import math


Point2 = Tuple[float, float]

# Parallel/coincident threshold for the 2x2 intersection determinant.
DET_EPS = 1e-10
# Slack on the intersection parameters t, u before clamping to [0, 1].
PARAM_EPS = 1e-9
# Distance slack for "touching" comparisons.
DIST_EPS = 1e-9


# ---------------------------------------------------------------------------
# Vector helpers
# ---------------------------------------------------------------------------


def distance(a: Point2, b: Point2) -> float:
    """Euclidean distance between two points."""
    return math.hypot(b[0] - a[0], b[1] - a[1])


def normalize_2d(dx: float, dy: float) -> Tuple[float, float]:
    """Return (dx, dy) normalized; if zero vector, return (0, 0)."""
    length = math.hypot(dx, dy)
    if length < 1e-10:
        return 0.0, 0.0
    return dx / length, dy / length


def dot_2d(ax: float, ay: float, bx: float, by: float) -> float:
    return ax * bx + ay * by


def cross_2d(ax: float, ay: float, bx: float, by: float) -> float:
    """z-component of the cross product; > 0 when b is counter-clockwise of a."""
    return ax * by - ay * bx


def wrap_angle(theta: float) -> float:
    """Wrap angle to [-pi, pi] radians."""
    return (theta + math.pi) % (2.0 * math.pi) - math.pi


def clamp(value: float, vmin: float, vmax: float) -> float:
    """Clamp value to [vmin, vmax]."""
    return max(vmin, min(vmax, value))


# ---------------------------------------------------------------------------
# Point-to-line and point-to-segment
# ---------------------------------------------------------------------------


def point_to_line_distance(p: Point2, a: Point2, b: Point2) -> Tuple[float, float]:
    """
    Perpendicular distance from p to the infinite line through a-b.

    Returns
    -------
    (distance, t)
        ``t`` is the (unclamped) projection parameter along a->b.
    """
    dx = b[0] - a[0]
    dy = b[1] - a[1]
    length_sq = dx * dx + dy * dy
    if length_sq < 1e-12:
        return distance(p, a), 0.0
    t = ((p[0] - a[0]) * dx + (p[1] - a[1]) * dy) / length_sq
    proj = (a[0] + t * dx, a[1] + t * dy)
    return distance(p, proj), t


def closest_point_on_segment(p: Point2, v: Point2, w: Point2) -> Tuple[Point2, float]:
    """
    Closest point to p on segment v-w, and its distance.

    The projection parameter is clamped to [0, 1]; a degenerate segment
    (v == w) returns v.
    """
    dx = w[0] - v[0]
    dy = w[1] - v[1]
    length_sq = dx * dx + dy * dy
    if length_sq < 1e-12:
        return (v[0], v[1]), distance(p, v)
    t = ((p[0] - v[0]) * dx + (p[1] - v[1]) * dy) / length_sq
    t = clamp(t, 0.0, 1.0)
    c = (v[0] + t * dx, v[1] + t * dy)
    return c, distance(p, c)


def closest_point_on_polygon(
    p: Point2, vertices: Sequence[Point2]
) -> Tuple[Point2, float, int]:
    """
    Closest boundary point of a closed polygon.

    Returns
    -------
    (point, distance, edge_index)
        Edge ``i`` runs from ``vertices[i]`` to ``vertices[(i + 1) % n]``.
        Ties are broken by the lowest edge index.
    """
    n = len(vertices)
    best_point = (vertices[0][0], vertices[0][1])
    best_dist = math.inf
    best_edge = 0
    for i in range(n):
        c, d = closest_point_on_segment(p, vertices[i], vertices[(i + 1) % n])
        if d < best_dist:
            best_point, best_dist, best_edge = c, d, i
    return best_point, best_dist, best_edge


# ---------------------------------------------------------------------------
# Segment intersection
# ---------------------------------------------------------------------------


def segments_intersect(
    p1: Point2, p2: Point2, q1: Point2, q2: Point2
) -> Tuple[bool, Optional[Point2]]:
    """
    Intersection of segment p1-p2 with segment q1-q2.

    Solves p1 + t (p2 - p1) = q1 + u (q2 - q1). A near-zero determinant
    (parallel or coincident segments) counts as no intersection.
    """
    dx_p = p2[0] - p1[0]
    dy_p = p2[1] - p1[1]
    dx_q = q2[0] - q1[0]
    dy_q = q2[1] - q1[1]

    det = dx_p * dy_q - dy_p * dx_q
    if abs(det) < DET_EPS:
        return False, None

    ox = q1[0] - p1[0]
    oy = q1[1] - p1[1]
    t = (ox * dy_q - oy * dx_q) / det
    u = (ox * dy_p - oy * dx_p) / det

    if -PARAM_EPS <= t <= 1.0 + PARAM_EPS and -PARAM_EPS <= u <= 1.0 + PARAM_EPS:
        t = clamp(t, 0.0, 1.0)
        return True, (p1[0] + t * dx_p, p1[1] + t * dy_p)
    return False, None


def segment_distance(p1: Point2, p2: Point2, q1: Point2, q2: Point2) -> float:
    """Minimum distance between two segments (0 when they intersect)."""
    hit, _ = segments_intersect(p1, p2, q1, q2)
    if hit:
        return 0.0
    return min(
        closest_point_on_segment(p1, q1, q2)[1],
        closest_point_on_segment(p2, q1, q2)[1],
        closest_point_on_segment(q1, p1, p2)[1],
        closest_point_on_segment(q2, p1, p2)[1],
    )


# ---------------------------------------------------------------------------
# Polygon helpers
# ---------------------------------------------------------------------------


def polygon_edges(vertices: Sequence[Point2]) -> List[Tuple[Point2, Point2]]:
    """Edges of the implicitly closed polygon, edge i = (v[i], v[i+1])."""
    n = len(vertices)
    return [(vertices[i], vertices[(i + 1) % n]) for i in range(n)]


def polygon_perimeter(vertices: Sequence[Point2]) -> float:
    """Sum of edge lengths of the closed polygon."""
    return sum(distance(a, b) for a, b in polygon_edges(vertices))


def polygon_signed_area(vertices: Sequence[Point2]) -> float:
    """Shoelace area; positive for counter-clockwise vertex order."""
    area = 0.0
    for (xi, yi), (xj, yj) in polygon_edges(vertices):
        area += xi * yj - xj * yi
    return 0.5 * area


def polygon_centroid(vertices: Sequence[Point2]) -> Point2:
    """Compute centroid of a simple polygon (list of (x,y) vertices)."""
    n = len(vertices)
    if n == 0:
        return 0.0, 0.0
    if n == 1:
        return vertices[0][0], vertices[0][1]
    ax = 0.0
    ay = 0.0
    signed_area = 0.0
    for (xi, yi), (xj, yj) in polygon_edges(vertices):
        cross = xi * yj - xj * yi
        signed_area += cross
        ax += (xi + xj) * cross
        ay += (yi + yj) * cross
    if abs(signed_area) < 1e-10:
        return vertices[0][0], vertices[0][1]
    signed_area *= 0.5
    ax /= 6.0 * signed_area
    ay /= 6.0 * signed_area
    return ax, ay


def point_in_polygon(p: Point2, vertices: Sequence[Point2]) -> bool:
    """
    Ray-casting test: True if p is inside the polygon or on its boundary.
    """
    n = len(vertices)
    if n < 3:
        return False
    px, py = p
    if closest_point_on_polygon(p, vertices)[1] <= DIST_EPS:
        return True
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = vertices[i]
        xj, yj = vertices[j]
        if ((yi > py) != (yj > py)) and (
            px < (xj - xi) * (py - yi) / (yj - yi) + xi
        ):
            inside = not inside
        j = i
    return inside


# ---------------------------------------------------------------------------
# Line of sight against inflated polygons
# ---------------------------------------------------------------------------


def _departs_from(a: Point2, b: Point2, contact: Point2) -> bool:
    """True if moving from a toward b strictly increases the distance to contact."""
    ux, uy = normalize_2d(b[0] - a[0], b[1] - a[1])
    nx, ny = normalize_2d(a[0] - contact[0], a[1] - contact[1])
    return dot_2d(ux, uy, nx, ny) > 1e-6


def line_of_sight(
    a: Point2,
    b: Point2,
    polygons: Sequence[Sequence[Point2]],
    clearance: float,
) -> bool:
    """
    True iff segment a->b does not cross any polygon inflated by ``clearance``.

    The inflation is the exact Minkowski sum with a disc, tested edge by
    edge. Grazing an inflated edge (distance == clearance) is blocked,
    except where the grazing contact is ``a`` itself and the segment leaves
    it; distance to a convex edge is convex along the segment, so a positive
    departure rate means ``a`` is the only contact.
    """
    for vertices in polygons:
        if point_in_polygon(a, vertices) or point_in_polygon(b, vertices):
            return False
        for v, w in polygon_edges(vertices):
            d = segment_distance(a, b, v, w)
            if d < clearance - DIST_EPS:
                return False
            if d <= clearance + DIST_EPS:
                contact, d_a = closest_point_on_segment(a, v, w)
                if d_a > clearance + DIST_EPS or not _departs_from(a, b, contact):
                    return False
    return True
