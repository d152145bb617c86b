"""
Domain Module: Recording session logic.

Implements:
- Session state machine (explicit transition table)
- Tracking engine (gating, accumulation, auto-pause, buffering)
- Route finalization summary
- Metric display formatting
"""

from .session_state_machine import (
    SessionEvent,
    Effect,
    Transition,
    transition,
)
from .session_state import SessionState
from .observable import Observable
from .tracking_engine import (
    TrackingEngine,
    EngineConfig,
)
from .route_summary import (
    RouteSummary,
    summarize_points,
)
from .formatting import (
    format_distance,
    format_speed,
    format_duration,
)

__all__ = [
    'SessionEvent',
    'Effect',
    'Transition',
    'transition',
    'SessionState',
    'Observable',
    'TrackingEngine',
    'EngineConfig',
    'RouteSummary',
    'summarize_points',
    'format_distance',
    'format_speed',
    'format_duration',
]
