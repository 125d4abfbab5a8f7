from __future__ import annotations

import math

import pytest

from bug_nav.world import InvalidGeometry, ObstacleSet, Polygon


def _square() -> Polygon:
    return Polygon([(0.0, 0.0), (2.0, 0.0), (2.0, 2.0), (0.0, 2.0)])


def test_polygon_rejects_degenerate_input() -> None:
    with pytest.raises(InvalidGeometry):
        Polygon([(0.0, 0.0), (1.0, 0.0)])
    with pytest.raises(InvalidGeometry):
        Polygon([(0.0, 0.0), (0.0, 0.0), (1.0, 1.0)])
    with pytest.raises(InvalidGeometry):
        Polygon([(0.0, 0.0), (1.0, 1.0), (2.0, 2.0)])


def test_invalid_geometry_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        Polygon([])


def test_polygon_orientation_and_perimeter() -> None:
    square = _square()
    assert square.orientation == 1
    assert math.isclose(square.perimeter, 8.0)
    cw = Polygon(list(reversed(square.vertices)))
    assert cw.orientation == -1
    assert math.isclose(cw.signed_area, -4.0)
    cx, cy = square.centroid
    assert math.isclose(cx, 1.0) and math.isclose(cy, 1.0)


def test_polygon_edge_wraps_around() -> None:
    square = _square()
    assert square.edge(3) == ((0.0, 2.0), (0.0, 0.0))
    assert square.edge(4) == square.edge(0)
    assert len(square.edges()) == 4


def test_negative_clearance_rejected() -> None:
    with pytest.raises(InvalidGeometry):
        ObstacleSet([_square()], clearance=-0.1)


def test_collision_uses_inflated_region() -> None:
    world = ObstacleSet([_square()], clearance=0.1)
    assert world.in_collision((1.0, 1.0))
    assert world.in_collision((2.05, 1.0))
    assert not world.in_collision((2.2, 1.0))
    # Exactly on the offset boundary is free.
    assert not world.in_collision((1.0, -0.1))
    assert world.colliding_obstacle((1.0, 1.0)) == 0
    assert world.colliding_obstacle((5.0, 5.0)) is None


def test_empty_world_has_no_collisions() -> None:
    world = ObstacleSet([], clearance=0.5)
    assert len(world) == 0
    assert not world.in_collision((0.0, 0.0))
    assert world.nearest((0.0, 0.0))[0] == -1
    assert world.line_of_sight((0.0, 0.0), (10.0, 0.0))


def test_nearest_reports_obstacle_and_edge() -> None:
    world = ObstacleSet(
        [_square(), [(5.0, 0.0), (6.0, 0.0), (6.0, 1.0)]],
        clearance=0.1,
    )
    k, point, dist, edge = world.nearest((4.0, 0.5))
    assert k == 1
    assert math.isclose(dist, math.hypot(1.0, 0.5))
    assert point == (5.0, 0.0)
    assert edge in (0, 2)

    k, _, dist, edge = world.nearest((3.0, 1.0))
    assert (k, edge) == (0, 1)
    assert math.isclose(world.distance_to_boundary((3.0, 1.0)), 1.0)


def test_penetrating_ignores_followed_edge() -> None:
    world = ObstacleSet([_square()], clearance=0.1)
    assert world.penetrating((1.0, 2.1)) is None
    assert world.penetrating((1.0, 2.05)) == (0, 2)
    assert world.penetrating((1.0, 2.05), ignore=(0, 2)) is None
    assert world.penetrating((1.0, 1.0)) is not None


def test_ray_cast_hits_nearest_edge() -> None:
    world = ObstacleSet([_square()], clearance=0.1)
    assert math.isclose(world.ray_cast((-3.0, 1.0), 0.0, 10.0), 3.0)
    assert world.ray_cast((-3.0, 1.0), math.pi, 10.0) == 10.0


def test_from_dict_round_trip() -> None:
    data = {
        "clearance": 0.25,
        "obstacles": [
            [[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]],
            [[3.0, 3.0], [4.0, 3.0], [4.0, 4.0], [3.0, 4.0]],
        ],
    }
    world = ObstacleSet.from_dict(data)
    assert len(world) == 2
    assert world.clearance == 0.25
    assert world[1].vertices[2] == (4.0, 4.0)
    assert world.to_dict() == data


def test_from_dict_rejects_bad_polygon() -> None:
    with pytest.raises(InvalidGeometry):
        ObstacleSet.from_dict({"clearance": 0.1, "obstacles": [[[0.0, 0.0], [1.0, 1.0]]]})
