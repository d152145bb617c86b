"""
GPS Tracking Engine.

Session controller: owns the state machine, the filter pipeline, the trip
accumulators, stillness/auto-pause detection and the pending point buffer.
It is the only consumer of raw fixes and the only producer of the metrics
and state streams.

Usage:
    source = ManualFixSource()
    engine = TrackingEngine.with_sink(source, JsonlPointSink("points.jsonl"))

    engine.state_stream.subscribe(on_state)
    engine.metrics.subscribe(on_metrics)

    engine.start(route_id=7, profile=TrackingProfile.BALANCED)
    ...                                 # source pushes fixes into engine.on_fix
    engine.pause(); engine.resume()
    final = engine.stop()               # accumulators kept for finalization
    engine.close()

Fix processing (TRACKING only):
1. Filter pipeline (quality gate, plausibility gate, smoothing)
2. Stillness: after stillness_timeout_ms of speeds below the still speed,
   auto-pause; the triggering point is not counted or buffered
3. Accumulate distance and speed, update the last accepted point
4. Buffer the point; flush at buffer_flush_size
5. Publish an immutable MetricsSnapshot

While AUTO_PAUSED the source stays subscribed at low-power hints. A fix
that passes the quality gate and reports a moving speed resumes tracking and
is then processed normally; any other fix is discarded untouched.

Threading:
- Fix delivery and control calls may come from different threads. An RLock
  serializes state changes and whole fix-processing steps.
- The pending buffer has its own lock, held only to append or swap. Batches
  are handed to the writer outside it, in the order they were swapped out.
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from trip_core.clock import system_clock_ms
from trip_core.errors import ConfigurationError, FixSourceUnavailableError, InvalidTransitionError
from trip_core.io.batch_writer import BatchWriter, BatchWriterConfig
from trip_core.io.fix_source import FixSource
from trip_core.io.point_sink import PointSink
from trip_core.localization.filter_pipeline import FilterPipeline
from trip_core.localization.smoothing_filter import SmoothingFilterConfig
from trip_core.metrics import MetricsCollector, get_metrics
from trip_core.proto import (
    FilteredPoint,
    MetricsSnapshot,
    RawFix,
    TrackingProfile,
    TrackingState,
)
from .observable import Observable
from .session_state import SessionState
from .session_state_machine import Effect, SessionEvent, Transition, transition

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """
    Configuration for the tracking engine.

    Attributes:
        buffer_flush_size: Pending points that trigger a flush
        stillness_speed_mps: Speeds below this count as standing still
        watch_profile: Subscription hints used while auto-paused
        smoothing_config: Passed to each session's smoothing filter
    """

    buffer_flush_size: int = 50
    stillness_speed_mps: float = 0.5
    watch_profile: TrackingProfile = TrackingProfile.LOW_POWER
    smoothing_config: Optional[SmoothingFilterConfig] = None

    def __post_init__(self):
        if self.buffer_flush_size < 1:
            raise ConfigurationError(
                f"buffer_flush_size must be >= 1: {self.buffer_flush_size}"
            )
        if self.stillness_speed_mps < 0:
            raise ConfigurationError(
                f"stillness_speed_mps cannot be negative: {self.stillness_speed_mps}"
            )


class TrackingEngine:
    """
    Recording session controller.

    Args:
        fix_source: Positioning source; the engine subscribes on_fix to it
        writer: Anything with submit(batch) (normally a BatchWriter)
        config: Engine configuration (defaults if None)
        clock: Callable returning epoch milliseconds (wall clock if None)
        metrics: Counter collector (global collector if None)
    """

    def __init__(
        self,
        fix_source: FixSource,
        writer,
        config: Optional[EngineConfig] = None,
        clock=None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.fix_source = fix_source
        self.writer = writer
        self.config = config or EngineConfig()
        self.clock = clock or system_clock_ms
        self.counters = metrics or get_metrics()

        self._lock = threading.RLock()
        self._state = TrackingState.IDLE
        self._session = SessionState()
        self._pipeline = self._new_pipeline(self._session.profile)

        self._buffer_lock = threading.Lock()
        self._submit_lock = threading.Lock()
        self._buffer: List[FilteredPoint] = []

        self.metrics: Observable[MetricsSnapshot] = Observable(MetricsSnapshot())
        self.state_stream: Observable[TrackingState] = Observable(TrackingState.IDLE)

    @classmethod
    def with_sink(
        cls,
        fix_source: FixSource,
        sink: PointSink,
        config: Optional[EngineConfig] = None,
        writer_config: Optional[BatchWriterConfig] = None,
        clock=None,
        metrics: Optional[MetricsCollector] = None,
        on_persist_failure=None,
    ) -> 'TrackingEngine':
        """Build an engine that persists through a BatchWriter in front of sink."""
        writer = BatchWriter(sink, writer_config, metrics, on_failure=on_persist_failure)
        return cls(fix_source, writer, config, clock, metrics)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> TrackingState:
        with self._lock:
            return self._state

    @property
    def route_id(self) -> int:
        with self._lock:
            return self._session.route_id

    @property
    def profile(self) -> TrackingProfile:
        with self._lock:
            return self._session.profile

    @property
    def session(self) -> SessionState:
        """Copy of the current session accumulators."""
        with self._lock:
            return self._session.copy()

    @property
    def pipeline(self) -> FilterPipeline:
        return self._pipeline

    @property
    def pending_count(self) -> int:
        with self._buffer_lock:
            return len(self._buffer)

    def current_snapshot(self) -> MetricsSnapshot:
        """Metrics of the current session as of now."""
        with self._lock:
            return self._session.snapshot(self.clock(), self._state)

    # ------------------------------------------------------------------
    # Control operations
    # ------------------------------------------------------------------

    def start(self, route_id: int, profile: TrackingProfile):
        """
        Start a new session.

        Raises:
            InvalidTransitionError: If a session is already running
            FixSourceUnavailableError: If the source refuses the subscription;
                the engine stays IDLE and the emptied session is published
        """
        with self._lock:
            try:
                self._fire(SessionEvent.START_REQUESTED, route_id=route_id, profile=profile)
            except FixSourceUnavailableError:
                self._publish_metrics()
                raise
            logger.info(f"Tracking started: route={route_id}, profile={profile.name}")
            self._publish_metrics()

    def pause(self) -> bool:
        """
        User pause: TRACKING -> PAUSED.

        Returns:
            True if paused, False if ignored (not tracking)
        """
        with self._lock:
            try:
                self._fire(SessionEvent.PAUSE_REQUESTED)
            except InvalidTransitionError as e:
                logger.warning(f"pause() ignored: {e}")
                return False
            logger.info(f"Tracking paused: route={self._session.route_id}")
            self._publish_metrics()
            return True

    def resume(self) -> bool:
        """
        Resume from PAUSED or AUTO_PAUSED.

        Returns:
            True if resumed, False if ignored (not paused)

        Raises:
            FixSourceUnavailableError: If re-subscribing fails; state unchanged
        """
        with self._lock:
            try:
                self._fire(SessionEvent.RESUME_REQUESTED)
            except InvalidTransitionError as e:
                logger.warning(f"resume() ignored: {e}")
                return False
            self._session.still_since_ms = None
            logger.info(f"Tracking resumed: route={self._session.route_id}")
            self._publish_metrics()
            return True

    def stop(self) -> MetricsSnapshot:
        """
        End the session (any state -> IDLE).

        Accumulators are left in place for finalization; they are cleared by
        the next start().

        Returns:
            Final metrics snapshot of the session
        """
        with self._lock:
            was = self._state
            self._fire(SessionEvent.STOP_REQUESTED)
            final = self._publish_metrics()
            if was is not TrackingState.IDLE:
                logger.info(f"Tracking stopped: route={self._session.route_id}, "
                            f"points={final.point_count}, "
                            f"distance={final.total_distance_m:.1f}m")
            return final

    def close(self, timeout: Optional[float] = 5.0):
        """Stop any running session and shut the writer down."""
        self.stop()
        close = getattr(self.writer, 'close', None)
        if close is not None:
            close(timeout)

    # ------------------------------------------------------------------
    # Fix ingestion
    # ------------------------------------------------------------------

    def on_fix(self, fix: RawFix):
        """Fix callback registered with the source. Never raises on fix content."""
        self.counters.increment('fixes_in')

        with self._lock:
            if self._state is TrackingState.AUTO_PAUSED:
                if not self._is_motion(fix):
                    self.counters.increment_drop('not_tracking')
                    return
                if not self._auto_resume():
                    return
            elif self._state is not TrackingState.TRACKING:
                self.counters.increment_drop('not_tracking')
                return

            self._process_tracking_fix(fix)

    def _process_tracking_fix(self, fix: RawFix):
        accepted = self._pipeline.process(fix)
        if accepted is None:
            self._fire(SessionEvent.FIX_REJECTED)
            return

        session = self._session
        now_ms = self.clock()

        if session.update_stillness(
            accepted.speed_mps,
            now_ms,
            self.config.stillness_speed_mps,
            session.profile.stillness_timeout_ms,
        ):
            # Triggering point is consumed by the pause, not counted
            logger.info(f"Auto-pause after {now_ms - session.still_since_ms} ms still: "
                        f"route={session.route_id}")
            self.counters.increment('auto_pauses')
            self._fire(SessionEvent.STILLNESS_TIMEOUT_ELAPSED)
            self._publish_metrics(now_ms)
            return

        self._fire(SessionEvent.FIX_ACCEPTED)

        point = accepted.with_route(session.route_id)
        delta_m = session.record_point(point)
        self.counters.increment('fixes_accepted')

        logger.debug(f"Point t={point.time_ms} speed={point.speed_mps:.2f} "
                     f"+{delta_m:.1f}m total={session.total_distance_m:.1f}m")

        self._append(point)
        self._publish_metrics(now_ms)

    def _is_motion(self, fix: RawFix) -> bool:
        """Whether a fix delivered while auto-paused shows the subject moving."""
        if self._pipeline.quality_gate.get_rejection_reason(fix) is not None:
            return False
        return fix.speed_mps >= self.config.stillness_speed_mps

    def _auto_resume(self) -> bool:
        try:
            self._fire(SessionEvent.FIX_ACCEPTED)
        except FixSourceUnavailableError as e:
            # Stay auto-paused; the caller is the source's delivery thread
            logger.error(f"Auto-resume failed, staying auto-paused: {e}")
            return False
        self._session.still_since_ms = None
        self.counters.increment('auto_resumes')
        logger.info(f"Auto-resume on motion: route={self._session.route_id}")
        return True

    # ------------------------------------------------------------------
    # Buffer
    # ------------------------------------------------------------------

    def _append(self, point: FilteredPoint):
        batch = None
        with self._submit_lock:
            with self._buffer_lock:
                self._buffer.append(point)
                if len(self._buffer) >= self.config.buffer_flush_size:
                    batch = self._buffer
                    self._buffer = []
            self.counters.increment('points_buffered')
            if batch:
                self._submit(batch)

    def flush(self) -> int:
        """
        Hand pending points to the writer without waiting for persistence.

        Returns:
            Number of points handed off (0 if the buffer was empty)
        """
        with self._submit_lock:
            with self._buffer_lock:
                batch = self._buffer
                self._buffer = []
            if batch:
                self._submit(batch)
            return len(batch)

    def _submit(self, batch: List[FilteredPoint]):
        self.counters.increment('flushes')
        logger.debug(f"Flushing {len(batch)} points")
        self.writer.submit(batch)

    def _clear_buffer(self):
        with self._submit_lock:
            with self._buffer_lock:
                self._buffer = []

    # ------------------------------------------------------------------
    # State machine plumbing
    # ------------------------------------------------------------------

    def _fire(
        self,
        event: SessionEvent,
        route_id: Optional[int] = None,
        profile: Optional[TrackingProfile] = None,
    ) -> Transition:
        result = transition(self._state, event)
        if not result.changed and not result.effects:
            return result

        self._state = result.state
        try:
            for effect in result.effects:
                self._apply(effect, route_id, profile)
        except FixSourceUnavailableError:
            self._state = result.previous
            self.state_stream.set(result.previous)
            raise

        self.state_stream.set(result.state)
        return result

    def _apply(self, effect: Effect, route_id, profile):
        if effect is Effect.RESET_SESSION:
            self._reset_session(route_id, profile)
        elif effect is Effect.SUBSCRIBE:
            self._subscribe(self._session.profile, self._session.profile.want_accurate)
        elif effect is Effect.UNSUBSCRIBE:
            self._unsubscribe()
        elif effect is Effect.FLUSH:
            self.flush()
        elif effect is Effect.WATCH_MOTION:
            self._watch_motion()
        elif effect is Effect.RESET_PIPELINE:
            self._pipeline.reset()

    def _reset_session(self, route_id: int, profile: TrackingProfile):
        self._session = SessionState(
            route_id=route_id,
            profile=profile,
            session_start_ms=self.clock(),
        )
        self._pipeline = self._new_pipeline(profile)
        self._pipeline.reset()
        self._clear_buffer()

    def _new_pipeline(self, profile: TrackingProfile) -> FilterPipeline:
        return FilterPipeline.for_profile(
            profile,
            smoothing_config=self.config.smoothing_config,
            metrics=self.counters,
        )

    def _subscribe(self, hints: TrackingProfile, want_accurate: bool):
        try:
            self.fix_source.subscribe(
                hints.interval_ms,
                hints.fastest_interval_ms,
                hints.min_displacement_m,
                want_accurate,
                self.on_fix,
            )
        except Exception as e:
            raise FixSourceUnavailableError(f"Fix source subscription failed: {e}") from e

    def _unsubscribe(self):
        try:
            self.fix_source.unsubscribe()
        except Exception as e:
            logger.warning(f"Fix source unsubscribe failed: {e}")

    def _watch_motion(self):
        try:
            self._subscribe(self.config.watch_profile, False)
        except FixSourceUnavailableError as e:
            logger.warning(f"Motion watch unavailable, manual resume required: {e}")

    def _publish_metrics(self, now_ms: Optional[int] = None) -> MetricsSnapshot:
        if now_ms is None:
            now_ms = self.clock()
        snapshot = self._session.snapshot(now_ms, self._state)
        self.metrics.set(snapshot)
        return snapshot
