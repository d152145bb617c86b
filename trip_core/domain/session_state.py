"""
Per-session accumulators.

Owned by the tracking engine, one instance per started session. Mutated
only from the fix-processing path; read for snapshot publication.
"""

from dataclasses import dataclass, replace
from typing import Optional

from trip_core.proto import FilteredPoint, MetricsSnapshot, TrackingProfile, TrackingState
from trip_core.localization.geodesy import distance_between


@dataclass
class SessionState:
    """
    Running trip metrics for one session.

    Attributes:
        route_id: Route being recorded
        profile: Tracking profile of the session
        session_start_ms: Clock time of start()
        total_distance_m: Sum of surface distances between accepted points
        max_speed_mps: Highest accepted speed
        speed_sum_mps: Sum of accepted speeds
        point_count: Accepted points
        last_accepted_point: Most recent accepted point
        still_since_ms: Clock time the current stillness run began
    """

    route_id: int = -1
    profile: TrackingProfile = TrackingProfile.BALANCED
    session_start_ms: int = 0
    total_distance_m: float = 0.0
    max_speed_mps: float = 0.0
    speed_sum_mps: float = 0.0
    point_count: int = 0
    last_accepted_point: Optional[FilteredPoint] = None
    still_since_ms: Optional[int] = None

    @property
    def avg_speed_mps(self) -> float:
        if self.point_count > 0:
            return self.speed_sum_mps / self.point_count
        return 0.0

    def update_stillness(
        self,
        speed_mps: float,
        now_ms: int,
        still_speed_mps: float,
        timeout_ms: int,
    ) -> bool:
        """
        Track a run of low-speed points.

        Args:
            speed_mps: Speed of the accepted point
            now_ms: Current clock time
            still_speed_mps: Speeds below this count as still
            timeout_ms: Stillness duration that triggers auto-pause

        Returns:
            True if the stillness timeout has elapsed (auto-pause now)
        """
        if speed_mps < still_speed_mps:
            if self.still_since_ms is None:
                self.still_since_ms = now_ms
            elif now_ms - self.still_since_ms > timeout_ms:
                return True
        else:
            self.still_since_ms = None
        return False

    def record_point(self, point: FilteredPoint) -> float:
        """
        Fold an accepted point into the accumulators.

        Returns:
            Distance added (m); 0 for the first point of the session
        """
        delta_m = 0.0
        if self.last_accepted_point is not None:
            delta_m = distance_between(self.last_accepted_point, point)
            self.total_distance_m += delta_m

        if point.speed_mps > self.max_speed_mps:
            self.max_speed_mps = point.speed_mps
        self.speed_sum_mps += point.speed_mps
        self.point_count += 1

        self.last_accepted_point = point
        return delta_m

    def snapshot(self, now_ms: int, state: TrackingState) -> MetricsSnapshot:
        """Immutable metrics view of this session."""
        last = self.last_accepted_point
        return MetricsSnapshot(
            total_distance_m=self.total_distance_m,
            elapsed_ms=max(0, now_ms - self.session_start_ms),
            current_speed_mps=last.speed_mps if last else 0.0,
            avg_speed_mps=self.avg_speed_mps,
            max_speed_mps=self.max_speed_mps,
            current_lat=last.latitude if last else 0.0,
            current_lng=last.longitude if last else 0.0,
            point_count=self.point_count,
            state=state,
        )

    def copy(self) -> 'SessionState':
        return replace(self)
