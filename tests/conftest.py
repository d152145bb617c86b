"""
Pytest configuration and shared fixtures for the tracking core tests.

This module provides fix factories, a controllable clock, a manual fix
source, a recording writer and engine factories used across the suites.
"""

import sys
from pathlib import Path
from typing import Callable, List

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from trip_core.clock import ReplayClock
from trip_core.domain import TrackingEngine, EngineConfig
from trip_core.io import ManualFixSource
from trip_core.localization import destination_point
from trip_core.metrics import get_metrics, reset_metrics
from trip_core.proto import RawFix, FilteredPoint


# Start position used by most tests (Hong Kong area)
BASE_LAT = 22.2900
BASE_LON = 114.1700


# =============================================================================
# Metrics Isolation
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Give every test a clean global metrics collector."""
    reset_metrics()
    yield get_metrics()


# =============================================================================
# Fix Factories
# =============================================================================


@pytest.fixture
def make_fix() -> Callable[..., RawFix]:
    """
    Factory for RawFix with sensible defaults.

    Returns:
        Callable accepting RawFix keyword overrides.
    """
    def _make(**overrides) -> RawFix:
        fields = {
            "latitude": BASE_LAT,
            "longitude": BASE_LON,
            "accuracy_m": 5.0,
            "speed_mps": 0.0,
            "bearing_deg": 0.0,
            "time_ms": 0,
            "altitude": None,
        }
        fields.update(overrides)
        return RawFix(**fields)

    return _make


@pytest.fixture
def make_point() -> Callable[..., FilteredPoint]:
    """
    Factory for FilteredPoint with sensible defaults.

    Returns:
        Callable accepting FilteredPoint keyword overrides.
    """
    def _make(**overrides) -> FilteredPoint:
        fields = {
            "latitude": BASE_LAT,
            "longitude": BASE_LON,
            "accuracy_m": 5.0,
            "speed_mps": 0.0,
            "time_ms": 0,
        }
        fields.update(overrides)
        return FilteredPoint(**fields)

    return _make


@pytest.fixture
def walk_fixes() -> Callable[..., List[RawFix]]:
    """
    Factory for a straight walk heading north.

    Returns:
        Callable(count, step_m, step_ms, speed_mps, accuracy_m, start_ms)
        returning RawFix list.
    """
    def _walk(count: int, step_m: float = 10.0, step_ms: int = 5000,
              speed_mps: float = 2.0, accuracy_m: float = 5.0,
              start_ms: int = 0) -> List[RawFix]:
        fixes = []
        lat, lon = BASE_LAT, BASE_LON
        for i in range(count):
            fixes.append(RawFix(
                latitude=lat,
                longitude=lon,
                accuracy_m=accuracy_m,
                speed_mps=speed_mps,
                time_ms=start_ms + i * step_ms,
            ))
            lat, lon = destination_point(lat, lon, 0.0, step_m)
        return fixes

    return _walk


# =============================================================================
# Engine Collaborators
# =============================================================================


class RecordingWriter:
    """Writer stand-in that records submitted batches synchronously."""

    def __init__(self):
        self.batches: List[List[FilteredPoint]] = []
        self.closed = False

    def submit(self, batch) -> bool:
        self.batches.append(list(batch))
        return True

    def close(self, timeout=None):
        self.closed = True

    @property
    def points(self) -> List[FilteredPoint]:
        return [p for batch in self.batches for p in batch]


@pytest.fixture
def replay_clock() -> ReplayClock:
    """Clock starting at epoch 0, driven by the test."""
    return ReplayClock(0)


@pytest.fixture
def manual_source() -> ManualFixSource:
    """Fix source driven by push()."""
    return ManualFixSource()


@pytest.fixture
def recording_writer() -> RecordingWriter:
    """Synchronous writer that records batches."""
    return RecordingWriter()


@pytest.fixture
def make_engine(manual_source, recording_writer, replay_clock) -> Callable[..., TrackingEngine]:
    """
    Factory for a TrackingEngine wired to the manual source, recording
    writer and replay clock.

    Returns:
        Callable accepting EngineConfig keyword overrides.
    """
    def _make(**config_overrides) -> TrackingEngine:
        return TrackingEngine(
            manual_source,
            recording_writer,
            config=EngineConfig(**config_overrides),
            clock=replay_clock,
        )

    return _make


@pytest.fixture
def engine(make_engine) -> TrackingEngine:
    """TrackingEngine with default configuration."""
    return make_engine()
