"""
Protocol Module: Data model shared by all components.

- RawFix / FilteredPoint: fix as delivered vs. point as accepted
- TrackingProfile: fixed, versioned profile table
- TrackingState: engine states
- MetricsSnapshot: immutable trip metrics
"""

from .fix import (
    RawFix,
    FilteredPoint,
)
from .tracking_profile import (
    TrackingProfile,
    TrackingState,
)
from .tracking_metrics import (
    MetricsSnapshot,
)

__all__ = [
    'RawFix',
    'FilteredPoint',
    'TrackingProfile',
    'TrackingState',
    'MetricsSnapshot',
]
