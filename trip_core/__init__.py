"""
Route Recorder Tracking Core Package.

Live GPS fix ingestion: gating, smoothing, trip metrics and the recording
session state machine with auto-pause.

Package structure:
- io: Fix sources, persistence sinks, ordered batch writer
- proto: Data model (fixes, points, profiles, metrics snapshots)
- localization: Fix gates, smoothing filter, filter pipeline, geodesy
- domain: Session state machine, tracking engine, route summary
- metrics: Diagnostics, counters, histograms
"""

__version__ = "0.1.0"
__author__ = "Route Recorder Team"

from .errors import (
    TripCoreError,
    ConfigurationError,
    InvalidTransitionError,
    FixSourceUnavailableError,
    PersistenceError,
)

__all__ = [
    'TripCoreError',
    'ConfigurationError',
    'InvalidTransitionError',
    'FixSourceUnavailableError',
    'PersistenceError',
]
