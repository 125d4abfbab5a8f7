from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple
import math

import numpy as np

from .geometry_utils import Point2, wrap_angle
from .world import ObstacleSet


@dataclass
class RangeSensorConfig:
    """Configuration for the simulated 360 degree range sensor."""

    max_range: float
    angular_resolution_deg: float = 5.0

    def __post_init__(self) -> None:
        if self.max_range <= 0.0:
            raise ValueError(f"max_range must be > 0, got {self.max_range}")
        if not 0.0 < self.angular_resolution_deg <= 180.0:
            raise ValueError(
                f"angular_resolution_deg must be in (0, 180], got {self.angular_resolution_deg}"
            )

    @property
    def num_rays(self) -> int:
        return max(2, int(round(360.0 / self.angular_resolution_deg)))


@dataclass
class RangeScan:
    """One full-turn scan: world-frame ray angles and measured ranges."""

    angles: np.ndarray
    ranges: np.ndarray
    max_range: float

    def nearest(self) -> Tuple[float, float]:
        """(angle, range) of the shortest return."""
        i = int(np.argmin(self.ranges))
        return float(self.angles[i]), float(self.ranges[i])

    def any_obstacle(self) -> bool:
        return bool(np.any(self.ranges < self.max_range))

    def range_toward(self, bearing: float) -> float:
        """Range reported by the ray whose angle is closest to ``bearing``."""
        diffs = np.abs(np.array([wrap_angle(float(a) - bearing) for a in self.angles]))
        return float(self.ranges[int(np.argmin(diffs))])

    def blocked_toward(self, bearing: float, within: float) -> bool:
        """True if the ray toward ``bearing`` reports an obstacle closer than ``within``."""
        r = self.range_toward(bearing)
        return r < self.max_range and r <= within


class RangeSensor:
    """2D ray caster against polygon edges, full turn at fixed resolution.

    Unlike a forward-facing LiDAR the scan is not tied to a heading: ray k
    points at ``k * resolution`` in the world frame.
    """

    def __init__(self, config: RangeSensorConfig) -> None:
        self.config = config
        n = config.num_rays
        self._angles = np.array([2.0 * math.pi * k / n for k in range(n)], dtype=float)

    def scan(self, position: Point2, obstacles: ObstacleSet) -> RangeScan:
        """Perform a range scan from ``position``.

        Returns
        -------
        RangeScan
            Distances per ray, in meters, capped at ``max_range``.
        """
        max_range = self.config.max_range
        ranges = np.empty_like(self._angles)
        for i, angle in enumerate(self._angles):
            ranges[i] = obstacles.ray_cast(position, float(angle), max_range)
        return RangeScan(angles=self._angles.copy(), ranges=ranges, max_range=max_range)
