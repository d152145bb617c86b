"""
Route finalization.

Recomputes a route's final metrics from its persisted points, independent
of the live accumulators. Soft-deleted points (is_filtered) are ignored.
Speed statistics cover every point after the first, matching how completed
routes are summarized for history.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import numpy as np

from trip_core.proto.fix import FilteredPoint
from trip_core.localization.geodesy import segment_distances_m


@dataclass(frozen=True)
class RouteSummary:
    """
    Final metrics of a recorded route.

    Attributes:
        point_count: Points used (soft-deleted excluded)
        total_distance_m: Sum of consecutive segment lengths
        avg_speed_mps: Mean speed of points 2..n (0 for a single point)
        max_speed_mps: Max speed of points 2..n (0 for a single point)
        start_time_ms: Timestamp of the first point
        end_time_ms: Timestamp of the last point
    """

    point_count: int
    total_distance_m: float
    avg_speed_mps: float
    max_speed_mps: float
    start_time_ms: int
    end_time_ms: int

    @property
    def duration_ms(self) -> int:
        return self.end_time_ms - self.start_time_ms

    def to_dict(self) -> dict:
        return {
            'point_count': self.point_count,
            'total_distance_m': self.total_distance_m,
            'avg_speed_mps': self.avg_speed_mps,
            'max_speed_mps': self.max_speed_mps,
            'start_time_ms': self.start_time_ms,
            'end_time_ms': self.end_time_ms,
            'duration_ms': self.duration_ms,
        }


def summarize_points(points: Iterable[FilteredPoint]) -> Optional[RouteSummary]:
    """
    Summarize a route from its points.

    Args:
        points: Persisted points of one route, any order

    Returns:
        RouteSummary, or None if no usable points
    """
    kept = sorted((p for p in points if not p.is_filtered), key=lambda p: p.time_ms)
    if not kept:
        return None

    lat = np.array([p.latitude for p in kept], dtype=float)
    lon = np.array([p.longitude for p in kept], dtype=float)
    speeds = np.array([p.speed_mps for p in kept[1:]], dtype=float)

    total_distance_m = float(segment_distances_m(lat, lon).sum())

    if speeds.size:
        avg_speed = float(speeds.mean())
        max_speed = float(max(0.0, speeds.max()))
    else:
        avg_speed = 0.0
        max_speed = 0.0

    return RouteSummary(
        point_count=len(kept),
        total_distance_m=total_distance_m,
        avg_speed_mps=avg_speed,
        max_speed_mps=max_speed,
        start_time_ms=kept[0].time_ms,
        end_time_ms=kept[-1].time_ms,
    )
