"""
Fix Gates: Quality and Physical Plausibility.

Each gate either passes a fix or rejects it outright. Gates never modify a
fix and never touch smoothing state; a rejection is counted against a drop
reason code in the metrics collector.

- FixQualityGate: finite values, coordinate range, non-negative speed, accuracy
- SpeedPlausibilityGate: implied speed vs last accepted point ("teleport" check)
"""

import logging
from dataclasses import dataclass
from typing import Optional

from trip_core.proto.fix import RawFix, FilteredPoint
from trip_core.metrics import MetricsCollector, get_metrics
from .geodesy import haversine_m

logger = logging.getLogger(__name__)

MS_PER_S = 1000.0
MPS_TO_KMH = 3.6


@dataclass
class FixGateConfig:
    """
    Configuration for the fix gates.

    Attributes:
        max_accuracy_m: Reject fixes whose reported accuracy is worse (m)
        max_speed_kmh: Reject fixes implying a faster move than this (km/h)
    """

    max_accuracy_m: float = 50.0
    max_speed_kmh: float = 150.0


class FixQualityGate:
    """
    Reject fixes that are degenerate or reported as too inaccurate.

    Usage:
        gate = FixQualityGate(max_accuracy_m=50.0)
        if gate.check(fix):
            ...
    """

    def __init__(self, max_accuracy_m: float, metrics: Optional[MetricsCollector] = None):
        self.max_accuracy_m = max_accuracy_m
        self.metrics = metrics or get_metrics()

    def check(self, fix: RawFix) -> bool:
        """
        Check a fix against the quality gate.

        Returns:
            True if the fix passes, False if rejected

        Side Effects:
            - Increments 'non_finite_fix', 'invalid_speed' or 'low_accuracy'
              drop counters
        """
        reason = self.get_rejection_reason(fix)
        if reason is not None:
            self.metrics.increment_drop(reason)
            logger.debug(f"Fix at t={fix.time_ms} rejected: {reason} "
                         f"(accuracy={fix.accuracy_m})")
            return False
        return True

    def get_rejection_reason(self, fix: RawFix) -> Optional[str]:
        """Reason code this fix would be rejected with, None if it passes."""
        if not fix.is_finite:
            return 'non_finite_fix'

        if not (-90.0 <= fix.latitude <= 90.0) or not (-180.0 <= fix.longitude <= 180.0):
            return 'non_finite_fix'

        if fix.accuracy_m < 0:
            return 'non_finite_fix'

        if fix.speed_mps < 0:
            return 'invalid_speed'

        if fix.accuracy_m > self.max_accuracy_m:
            return 'low_accuracy'

        return None


class SpeedPlausibilityGate:
    """
    Reject fixes implying a physically implausible move.

    implied_speed = surface_distance(fix, last_accepted) / dt

    The check is skipped (fix passes) when there is no last accepted point
    or when the fix is not newer than it (dt <= 0).
    """

    def __init__(self, max_speed_kmh: float, metrics: Optional[MetricsCollector] = None):
        self.max_speed_kmh = max_speed_kmh
        self.metrics = metrics or get_metrics()

    def implied_speed_kmh(self, fix: RawFix, last_accepted: FilteredPoint) -> Optional[float]:
        """
        Speed implied by moving from last_accepted to fix.

        Returns:
            km/h, or None when dt <= 0
        """
        dt_s = (fix.time_ms - last_accepted.time_ms) / MS_PER_S
        if dt_s <= 0:
            return None

        distance_m = haversine_m(
            last_accepted.latitude, last_accepted.longitude,
            fix.latitude, fix.longitude,
        )
        return distance_m / dt_s * MPS_TO_KMH

    def check(self, fix: RawFix, last_accepted: Optional[FilteredPoint]) -> bool:
        """
        Check a fix against the plausibility gate.

        Returns:
            True if plausible (or not checkable), False if rejected

        Side Effects:
            - Increments 'implausible_speed' drop counter on rejection
        """
        if last_accepted is None:
            return True

        speed_kmh = self.implied_speed_kmh(fix, last_accepted)
        if speed_kmh is None:
            self.metrics.increment('plausibility_skipped_dt')
            return True

        self.metrics.record_histogram('implied_speed_kmh', speed_kmh)

        if speed_kmh > self.max_speed_kmh:
            self.metrics.increment_drop('implausible_speed')
            logger.debug(f"Fix at t={fix.time_ms} rejected: implied speed "
                         f"{speed_kmh:.1f} km/h > {self.max_speed_kmh:.1f} km/h")
            return False

        return True
