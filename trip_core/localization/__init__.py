"""
Localization Module: Fix gating, smoothing and geodesy.

Key classes:
- FixQualityGate: Finite-value and accuracy gate
- SpeedPlausibilityGate: Implied-speed ("teleport") gate
- SmoothingFilter: Accuracy-weighted recursive position smoothing
- FilterPipeline: Quality gate -> plausibility gate -> smoothing
"""

from .geodesy import (
    EARTH_RADIUS_M,
    haversine_m,
    distance_between,
    destination_point,
    segment_distances_m,
)
from .smoothing_filter import (
    SmoothingFilter,
    SmoothingFilterConfig,
)
from .fix_gates import (
    FixGateConfig,
    FixQualityGate,
    SpeedPlausibilityGate,
)
from .filter_pipeline import (
    FilterPipeline,
    FilterPipelineConfig,
    create_default_pipeline,
)

__all__ = [
    # Geodesy
    'EARTH_RADIUS_M',
    'haversine_m',
    'distance_between',
    'destination_point',
    'segment_distances_m',
    # Smoothing
    'SmoothingFilter',
    'SmoothingFilterConfig',
    # Gates
    'FixGateConfig',
    'FixQualityGate',
    'SpeedPlausibilityGate',
    # Pipeline
    'FilterPipeline',
    'FilterPipelineConfig',
    'create_default_pipeline',
]
