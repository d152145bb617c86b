"""
Accuracy-Weighted Smoothing Filter.

Scalar-variance recursive estimator for GPS position smoothing. The
estimate is a 2-vector [lat, lng] sharing a single variance term; each new
fix is blended in with a gain set by the fix's reported accuracy against the
filter's current variance.

State: [lat, lng] + variance (deg-agnostic, in accuracy units squared)
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from trip_core.proto.fix import RawFix, FilteredPoint
from trip_core.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


@dataclass
class SmoothingFilterConfig:
    """
    Configuration for the smoothing filter.

    Attributes:
        speed_inflation_per_mps: Variance growth per m/s of reported speed,
            applied after every update (variance *= 1 + speed * factor)
    """

    speed_inflation_per_mps: float = 0.1


class SmoothingFilter:
    """
    Accuracy-weighted recursive smoothing of fix coordinates.

    Usage:
        smoother = SmoothingFilter()
        smoother.reset()          # once per session

        point = smoother.filter(fix)

    Behaviour:
    - First fix after reset passes through unchanged and seeds the estimate
    - gain = variance / (variance + accuracy²); precise fixes pull harder
    - Variance shrinks by (1 - gain), then inflates with reported speed so
      the filter does not get sticky for a moving subject
    - Inflation uses instantaneous speed, not elapsed time since the last fix
    - Output depends only on the fixes fed since the last reset
    """

    def __init__(
        self,
        config: Optional[SmoothingFilterConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or SmoothingFilterConfig()
        self.metrics = metrics or get_metrics()

        self._estimate: Optional[np.ndarray] = None
        self._variance: float = float('inf')

    def is_initialized(self) -> bool:
        """Check if filter has been seeded since the last reset."""
        return self._estimate is not None

    @property
    def variance(self) -> float:
        """Current estimate variance (inf when uninitialized)."""
        return self._variance

    @property
    def estimate(self) -> Optional[tuple]:
        """Current (lat, lng) estimate, None when uninitialized."""
        if self._estimate is None:
            return None
        return (float(self._estimate[0]), float(self._estimate[1]))

    def filter(self, fix: RawFix) -> FilteredPoint:
        """
        Blend a fix into the estimate.

        Args:
            fix: Raw fix (already gated)

        Returns:
            FilteredPoint identical to the fix except for smoothed lat/lng
        """
        measurement = np.array([fix.latitude, fix.longitude], dtype=float)
        measurement_variance = float(fix.accuracy_m) ** 2

        if not self.is_initialized():
            self._estimate = measurement
            self._variance = measurement_variance
            self.metrics.increment('smoothing_initialized')
            return FilteredPoint.from_fix(fix)

        denominator = self._variance + measurement_variance
        if denominator > 0:
            gain = self._variance / denominator
        else:
            # Both exact: take the measurement
            gain = 1.0

        self._estimate = self._estimate + gain * (measurement - self._estimate)
        self._variance *= (1.0 - gain)
        self._variance *= 1.0 + fix.speed_mps * self.config.speed_inflation_per_mps

        self.metrics.record_histogram('smoothing_gain', gain)

        return FilteredPoint.from_fix(
            fix,
            latitude=float(self._estimate[0]),
            longitude=float(self._estimate[1]),
        )

    def reset(self):
        """Reset filter to uninitialized state."""
        self._estimate = None
        self._variance = float('inf')
        self.metrics.increment('smoothing_resets')
