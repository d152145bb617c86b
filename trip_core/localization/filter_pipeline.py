"""
Fix Filter Pipeline.

Ordered composition of the fix gates terminating in the smoothing filter.

Usage:
    pipeline = FilterPipeline.for_profile(TrackingProfile.BALANCED)
    pipeline.reset()                       # once per session

    point = pipeline.process(fix)
    if point is None:
        pass  # rejected (reason counted in metrics)

Pipeline stages:
1. Quality gate (finite values, coordinate range, speed sign, accuracy)
2. Plausibility gate (implied speed vs last accepted point)
3. Smoothing filter; its output becomes the new last accepted point
"""

import logging
from dataclasses import dataclass
from typing import Optional

from trip_core.proto.fix import RawFix, FilteredPoint
from trip_core.proto.tracking_profile import TrackingProfile
from trip_core.metrics import MetricsCollector, get_metrics
from .fix_gates import FixGateConfig, FixQualityGate, SpeedPlausibilityGate
from .smoothing_filter import SmoothingFilter, SmoothingFilterConfig

logger = logging.getLogger(__name__)


@dataclass
class FilterPipelineConfig:
    """
    Configuration for the filter pipeline.

    Attributes:
        gate_config: Quality/plausibility thresholds (FixGateConfig defaults if None)
        smoothing_config: Smoothing filter configuration (defaults if None)
    """

    gate_config: Optional[FixGateConfig] = None
    smoothing_config: Optional[SmoothingFilterConfig] = None


class FilterPipeline:
    """
    Gate-then-smooth pipeline for raw fixes.

    process() returns None for any rejection. Rejection reasons are only
    visible through the metrics collector (see get_statistics()).
    """

    def __init__(
        self,
        config: Optional[FilterPipelineConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """
        Initialize filter pipeline.

        Args:
            config: Pipeline configuration (uses defaults if None)
            metrics: Metrics collector (global collector if None)
        """
        self.config = config or FilterPipelineConfig()
        self.metrics = metrics or get_metrics()

        gate_config = self.config.gate_config or FixGateConfig()
        self.quality_gate = FixQualityGate(gate_config.max_accuracy_m, self.metrics)
        self.plausibility_gate = SpeedPlausibilityGate(gate_config.max_speed_kmh, self.metrics)
        self.smoother = SmoothingFilter(
            self.config.smoothing_config or SmoothingFilterConfig(),
            self.metrics,
        )

        self._last_accepted: Optional[FilteredPoint] = None

    @classmethod
    def for_profile(
        cls,
        profile: TrackingProfile,
        smoothing_config: Optional[SmoothingFilterConfig] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> 'FilterPipeline':
        """Build a pipeline with the profile's accuracy and speed thresholds."""
        config = FilterPipelineConfig(
            gate_config=FixGateConfig(
                max_accuracy_m=profile.max_accuracy_m,
                max_speed_kmh=profile.max_speed_kmh,
            ),
            smoothing_config=smoothing_config,
        )
        return cls(config, metrics)

    @property
    def last_accepted(self) -> Optional[FilteredPoint]:
        """Smoothed output of the last accepted fix, None after reset."""
        return self._last_accepted

    @property
    def max_accuracy_m(self) -> float:
        return self.quality_gate.max_accuracy_m

    @property
    def max_speed_kmh(self) -> float:
        return self.plausibility_gate.max_speed_kmh

    def process(self, fix: RawFix) -> Optional[FilteredPoint]:
        """
        Run a raw fix through all stages.

        Args:
            fix: Raw fix from the source

        Returns:
            Smoothed FilteredPoint, or None if a gate rejected the fix
        """
        self.metrics.increment('pipeline_fixes_in')

        # Stage 1: Quality gate
        if not self.quality_gate.check(fix):
            self.metrics.increment('pipeline_rejected')
            return None

        # Stage 2: Plausibility gate
        if not self.plausibility_gate.check(fix, self._last_accepted):
            self.metrics.increment('pipeline_rejected')
            return None

        # Stage 3: Smoothing
        smoothed = self.smoother.filter(fix)

        self._last_accepted = smoothed
        self.metrics.increment('pipeline_accepted')

        return smoothed

    def reset(self):
        """Reset pipeline state (smoother, last accepted point)."""
        self.smoother.reset()
        self._last_accepted = None
        self.metrics.increment('pipeline_resets')

    def get_statistics(self) -> dict:
        """Get pipeline statistics."""
        return {
            'fixes_in': self.metrics.get_counter('pipeline_fixes_in'),
            'accepted': self.metrics.get_counter('pipeline_accepted'),
            'rejected': self.metrics.get_counter('pipeline_rejected'),
            'resets': self.metrics.get_counter('pipeline_resets'),
            'non_finite_fix': self.metrics.get_drop_count('non_finite_fix'),
            'invalid_speed': self.metrics.get_drop_count('invalid_speed'),
            'low_accuracy': self.metrics.get_drop_count('low_accuracy'),
            'implausible_speed': self.metrics.get_drop_count('implausible_speed'),
        }


def create_default_pipeline() -> FilterPipeline:
    """
    Create a pipeline with BALANCED thresholds.

    Returns:
        Configured FilterPipeline instance
    """
    return FilterPipeline.for_profile(TrackingProfile.BALANCED)
