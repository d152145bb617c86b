"""
Real-time trip metrics snapshot.

Published by the tracking engine after every accepted point. Frozen so a
subscriber can hold on to a snapshot while the engine keeps accumulating.
"""

from dataclasses import dataclass

from .tracking_profile import TrackingState


@dataclass(frozen=True)
class MetricsSnapshot:
    """
    Trip metrics at one point in time.

    Attributes:
        total_distance_m: Accumulated surface distance (m)
        elapsed_ms: Time since session start (ms)
        current_speed_mps: Speed reported by the latest accepted point
        avg_speed_mps: speed_sum / point_count
        max_speed_mps: Highest accepted speed
        current_lat: Latitude of the latest accepted point
        current_lng: Longitude of the latest accepted point
        point_count: Number of accepted points
        state: Engine state when the snapshot was taken
    """

    total_distance_m: float = 0.0
    elapsed_ms: int = 0
    current_speed_mps: float = 0.0
    avg_speed_mps: float = 0.0
    max_speed_mps: float = 0.0
    current_lat: float = 0.0
    current_lng: float = 0.0
    point_count: int = 0
    state: TrackingState = TrackingState.IDLE

    @property
    def distance_km(self) -> float:
        return self.total_distance_m / 1000.0

    @property
    def current_speed_kmh(self) -> float:
        return self.current_speed_mps * 3.6

    @property
    def avg_speed_kmh(self) -> float:
        return self.avg_speed_mps * 3.6

    @property
    def max_speed_kmh(self) -> float:
        return self.max_speed_mps * 3.6

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'total_distance_m': self.total_distance_m,
            'elapsed_ms': self.elapsed_ms,
            'current_speed_mps': self.current_speed_mps,
            'avg_speed_mps': self.avg_speed_mps,
            'max_speed_mps': self.max_speed_mps,
            'current_lat': self.current_lat,
            'current_lng': self.current_lng,
            'point_count': self.point_count,
            'state': self.state.name,
        }
