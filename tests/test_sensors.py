from __future__ import annotations

import math

import numpy as np
import pytest

from bug_nav.sensors import RangeSensor, RangeSensorConfig
from bug_nav.world import ObstacleSet


def _world() -> ObstacleSet:
    return ObstacleSet([[(4.0, -1.0), (5.0, -1.0), (5.0, 1.0), (4.0, 1.0)]], clearance=0.1)


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        RangeSensorConfig(max_range=0.0)
    with pytest.raises(ValueError):
        RangeSensorConfig(max_range=3.0, angular_resolution_deg=0.0)
    assert RangeSensorConfig(max_range=3.0, angular_resolution_deg=5.0).num_rays == 72


def test_scan_shape_and_range() -> None:
    sensor = RangeSensor(RangeSensorConfig(max_range=10.0, angular_resolution_deg=90.0))
    scan = sensor.scan((0.0, 0.0), _world())
    assert scan.ranges.shape == (4,)
    assert scan.angles.shape == (4,)
    assert np.all(scan.ranges <= 10.0)
    assert np.all(scan.ranges >= 0.0)
    assert math.isclose(scan.ranges[0], 4.0)
    assert list(scan.ranges[1:]) == [10.0, 10.0, 10.0]


def test_nearest_and_bearing_queries() -> None:
    sensor = RangeSensor(RangeSensorConfig(max_range=10.0, angular_resolution_deg=90.0))
    scan = sensor.scan((0.0, 0.0), _world())
    angle, rng = scan.nearest()
    assert angle == 0.0
    assert math.isclose(rng, 4.0)
    assert scan.any_obstacle()
    # A bearing slightly off the ray snaps to the closest ray.
    assert math.isclose(scan.range_toward(0.3), 4.0)
    assert scan.blocked_toward(0.0, 5.0)
    assert not scan.blocked_toward(0.0, 3.0)
    assert not scan.blocked_toward(math.pi, 100.0)


def test_out_of_range_obstacle_is_not_reported() -> None:
    sensor = RangeSensor(RangeSensorConfig(max_range=3.0, angular_resolution_deg=5.0))
    scan = sensor.scan((0.0, 0.0), _world())
    assert not scan.any_obstacle()
    assert np.all(scan.ranges == 3.0)


def test_bearing_wraps_around_two_pi() -> None:
    sensor = RangeSensor(RangeSensorConfig(max_range=10.0, angular_resolution_deg=90.0))
    scan = sensor.scan((0.0, 0.0), _world())
    assert math.isclose(scan.range_toward(2.0 * math.pi - 0.1), 4.0)
