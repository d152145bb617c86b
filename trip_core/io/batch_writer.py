"""
Ordered asynchronous batch writer.

Hands flushed point batches to a PointSink without blocking ingestion:
submit() enqueues onto a bounded FIFO queue and returns immediately, and a
single daemon worker thread writes batches one at a time, so the sink sees
them in submission order.

Failure handling:
- Each batch is retried up to max_attempts with a fixed backoff
- A batch that still fails is dropped: logged at ERROR, counted under
  'persist_failed' (points) and reported to the on_failure callback
- A full queue drops the submitted batch under 'queue_full'

There is no cancellation of a batch in flight.
"""

import logging
import threading
import time
from dataclasses import dataclass
from queue import Queue, Empty, Full
from typing import Callable, Optional, Sequence

from trip_core.errors import ConfigurationError
from trip_core.proto.fix import FilteredPoint
from trip_core.metrics import MetricsCollector, get_metrics
from .point_sink import PointSink

logger = logging.getLogger(__name__)

FailureCallback = Callable[[Sequence[FilteredPoint], Exception], None]


@dataclass
class BatchWriterConfig:
    """
    Configuration for the batch writer.

    Attributes:
        max_attempts: Write attempts per batch before it is dropped
        retry_backoff_s: Sleep between attempts (s)
        max_queue_batches: Bound on batches waiting for the worker
    """

    max_attempts: int = 3
    retry_backoff_s: float = 0.5
    max_queue_batches: int = 1000

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ConfigurationError(f"max_attempts must be >= 1: {self.max_attempts}")
        if self.retry_backoff_s < 0:
            raise ConfigurationError(f"retry_backoff_s cannot be negative: {self.retry_backoff_s}")
        if self.max_queue_batches < 1:
            raise ConfigurationError(f"max_queue_batches must be >= 1: {self.max_queue_batches}")


class BatchWriter:
    """
    Single-worker FIFO writer in front of a PointSink.

    Usage:
        writer = BatchWriter(JsonlPointSink("points.jsonl"))
        writer.submit(batch)        # returns immediately
        ...
        writer.close()              # drain and stop the worker
    """

    _STOP = object()

    def __init__(
        self,
        sink: PointSink,
        config: Optional[BatchWriterConfig] = None,
        metrics: Optional[MetricsCollector] = None,
        on_failure: Optional[FailureCallback] = None,
    ):
        self.sink = sink
        self.config = config or BatchWriterConfig()
        self.metrics = metrics or get_metrics()
        self.on_failure = on_failure

        self._queue: Queue = Queue(maxsize=self.config.max_queue_batches)
        self._cond = threading.Condition()
        self._pending = 0
        self._thread: Optional[threading.Thread] = None
        self._start_lock = threading.Lock()
        self.running = False

    def start(self):
        """Start the worker thread (idempotent)."""
        with self._start_lock:
            if self.running:
                return
            self.running = True
            self._thread = threading.Thread(
                target=self._run, name="batch-writer", daemon=True
            )
            self._thread.start()
        logger.info("Batch writer started")

    @property
    def pending(self) -> int:
        """Batches submitted but not yet written or dropped."""
        with self._cond:
            return self._pending

    def submit(self, batch: Sequence[FilteredPoint]) -> bool:
        """
        Queue a batch for writing.

        Args:
            batch: Points in persistence order

        Returns:
            True if queued, False if dropped because the queue is full
        """
        if not batch:
            return True

        if not self.running:
            self.start()

        batch = tuple(batch)
        with self._cond:
            self._pending += 1
        try:
            self._queue.put_nowait(batch)
        except Full:
            self._finish_one()
            self.metrics.increment_drop('queue_full', len(batch))
            logger.error(f"Batch writer queue full, dropped {len(batch)} points")
            self._report_failure(batch, Full())
            return False

        self.metrics.record_histogram('flush_batch_size', len(batch))
        return True

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until every submitted batch has been written or dropped.

        Returns:
            True if drained, False on timeout
        """
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout=timeout)

    def close(self, timeout: Optional[float] = 5.0) -> bool:
        """Drain outstanding batches and stop the worker."""
        drained = self.drain(timeout)
        if not drained:
            logger.warning(f"Batch writer closed with {self.pending} batches pending")

        if self.running:
            self.running = False
            try:
                self._queue.put(self._STOP, timeout=timeout)
            except Full:
                logger.warning("Batch writer queue still full at close; worker exits on idle")
            if self._thread is not None:
                self._thread.join(timeout)
            logger.info("Batch writer stopped")
        return drained

    def _run(self):
        """Worker loop."""
        while True:
            try:
                item = self._queue.get(timeout=1.0)
            except Empty:
                if not self.running:
                    break
                continue

            if item is self._STOP:
                break

            try:
                self._write_with_retry(item)
            finally:
                self._finish_one()

    def _write_with_retry(self, batch):
        last_error: Optional[Exception] = None

        for attempt in range(1, self.config.max_attempts + 1):
            try:
                self.sink.insert_batch(batch)
            except Exception as e:
                last_error = e
                logger.warning(f"Persisting {len(batch)} points failed "
                               f"(attempt {attempt}/{self.config.max_attempts}): {e}")
                if attempt < self.config.max_attempts and self.config.retry_backoff_s > 0:
                    time.sleep(self.config.retry_backoff_s)
                continue

            self.metrics.increment('points_persisted', len(batch))
            self.metrics.increment('batches_persisted')
            return

        logger.error(f"Dropping batch of {len(batch)} points after "
                     f"{self.config.max_attempts} attempts: {last_error}")
        self.metrics.increment_drop('persist_failed', len(batch))
        self._report_failure(batch, last_error)

    def _report_failure(self, batch, error):
        if self.on_failure is None:
            return
        try:
            self.on_failure(batch, error)
        except Exception as e:
            logger.error(f"on_failure callback raised: {e}")

    def _finish_one(self):
        with self._cond:
            self._pending -= 1
            if self._pending == 0:
                self._cond.notify_all()
