"""
Unit tests for the ordered batch writer and point sinks.

Tests cover:
- FIFO batch order through the worker thread
- Retry with backoff, final failure reporting
- Queue overflow
- JSONL sink append and reload
"""

import threading

import pytest

from trip_core.errors import ConfigurationError, PersistenceError
from trip_core.io import (
    BatchWriter,
    BatchWriterConfig,
    InMemoryPointSink,
    JsonlPointSink,
    PointSink,
    load_points,
)
from trip_core.metrics import MetricsCollector


NO_BACKOFF = BatchWriterConfig(max_attempts=3, retry_backoff_s=0.0)


class FlakySink(InMemoryPointSink):
    """Fails the first `failures` insert attempts, then succeeds."""

    def __init__(self, failures: int):
        super().__init__()
        self.failures = failures
        self.attempts = 0

    def insert_batch(self, points):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise IOError(f"disk busy (attempt {self.attempts})")
        super().insert_batch(points)


class PoisonSink(InMemoryPointSink):
    """Always fails batches containing a point with time_ms == poison_time."""

    def __init__(self, poison_time: int):
        super().__init__()
        self.poison_time = poison_time

    def insert_batch(self, points):
        if any(p.time_ms == self.poison_time for p in points):
            raise IOError("constraint violation")
        super().insert_batch(points)


class BlockingSink(PointSink):
    """Blocks inside insert_batch until released."""

    def __init__(self):
        self.entered = threading.Event()
        self.release = threading.Event()
        self.batches = []

    def insert_batch(self, points):
        self.entered.set()
        self.release.wait(5.0)
        self.batches.append(list(points))


def _batch(make_point, start: int, size: int):
    return [make_point(time_ms=start + i) for i in range(size)]


class TestBatchWriterConfig:
    """Tests for configuration validation."""

    @pytest.mark.parametrize("kwargs", [
        {"max_attempts": 0},
        {"retry_backoff_s": -1.0},
        {"max_queue_batches": 0},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            BatchWriterConfig(**kwargs)


class TestBatchWriterOrdering:
    """Tests for ordered delivery."""

    def test_batches_written_in_submission_order(self, make_point):
        sink = InMemoryPointSink()
        writer = BatchWriter(sink, NO_BACKOFF, MetricsCollector())

        for i in range(20):
            assert writer.submit(_batch(make_point, i * 10, 3))
        assert writer.close()

        starts = [batch[0].time_ms for batch in sink.batches]
        assert starts == [i * 10 for i in range(20)]
        assert len(sink.points) == 60

    def test_empty_batch_is_noop(self):
        writer = BatchWriter(InMemoryPointSink(), NO_BACKOFF, MetricsCollector())

        assert writer.submit([]) is True
        assert not writer.running
        assert writer.pending == 0

    def test_persisted_counters(self, make_point):
        metrics = MetricsCollector()
        writer = BatchWriter(InMemoryPointSink(), NO_BACKOFF, metrics)

        writer.submit(_batch(make_point, 0, 4))
        writer.submit(_batch(make_point, 10, 2))
        writer.close()

        assert metrics.get_counter('points_persisted') == 6
        assert metrics.get_counter('batches_persisted') == 2
        batch_sizes = metrics.snapshot().histogram_stats('flush_batch_size')
        assert batch_sizes['count'] == 2
        assert batch_sizes['max'] == 4.0

    def test_submitted_batch_is_a_copy(self, make_point):
        """Test that mutating the caller's list after submit has no effect."""
        sink = InMemoryPointSink()
        writer = BatchWriter(sink, NO_BACKOFF, MetricsCollector())

        batch = _batch(make_point, 0, 2)
        writer.submit(batch)
        batch.clear()
        writer.close()

        assert len(sink.points) == 2


class TestBatchWriterFailures:
    """Tests for retries and failure reporting."""

    def test_retry_then_success(self, make_point):
        sink = FlakySink(failures=2)
        metrics = MetricsCollector()
        writer = BatchWriter(sink, NO_BACKOFF, metrics)

        writer.submit(_batch(make_point, 0, 3))
        writer.close()

        assert sink.attempts == 3
        assert len(sink.points) == 3
        assert metrics.get_drop_count('persist_failed') == 0

    def test_final_failure_reported(self, make_point):
        sink = FlakySink(failures=10)
        metrics = MetricsCollector()
        failures = []
        writer = BatchWriter(sink, NO_BACKOFF, metrics,
                             on_failure=lambda batch, exc: failures.append((batch, exc)))

        writer.submit(_batch(make_point, 0, 3))
        writer.close()

        assert sink.attempts == 3
        assert sink.points == []
        assert metrics.get_drop_count('persist_failed') == 3
        assert len(failures) == 1
        batch, exc = failures[0]
        assert [p.time_ms for p in batch] == [0, 1, 2]
        assert isinstance(exc, IOError)

    def test_failed_batch_does_not_block_later_batches(self, make_point):
        sink = PoisonSink(poison_time=10)
        writer = BatchWriter(sink, NO_BACKOFF, MetricsCollector())

        writer.submit(_batch(make_point, 0, 2))
        writer.submit(_batch(make_point, 10, 2))
        writer.submit(_batch(make_point, 20, 2))
        writer.close()

        assert [p.time_ms for p in sink.points] == [0, 1, 20, 21]

    def test_raising_failure_callback_is_contained(self, make_point):
        def on_failure(batch, exc):
            raise RuntimeError("callback bug")

        sink = PoisonSink(poison_time=0)
        writer = BatchWriter(sink, NO_BACKOFF, MetricsCollector(), on_failure=on_failure)

        writer.submit(_batch(make_point, 0, 1))
        writer.submit(_batch(make_point, 5, 1))
        writer.close()

        assert [p.time_ms for p in sink.points] == [5]

    def test_queue_full_drops_batch(self, make_point):
        sink = BlockingSink()
        metrics = MetricsCollector()
        writer = BatchWriter(sink, BatchWriterConfig(retry_backoff_s=0.0, max_queue_batches=1), metrics)

        assert writer.submit(_batch(make_point, 0, 1))
        assert sink.entered.wait(5.0)          # worker holds batch 0
        assert writer.submit(_batch(make_point, 10, 1))     # fills the queue
        assert writer.submit(_batch(make_point, 20, 4)) is False

        assert metrics.get_drop_count('queue_full') == 4

        sink.release.set()
        writer.close()
        assert [b[0].time_ms for b in sink.batches] == [0, 10]

    def test_drain_times_out_while_blocked(self, make_point):
        sink = BlockingSink()
        writer = BatchWriter(sink, NO_BACKOFF, MetricsCollector())

        writer.submit(_batch(make_point, 0, 1))
        assert sink.entered.wait(5.0)
        assert writer.drain(timeout=0.05) is False

        sink.release.set()
        assert writer.drain(timeout=5.0) is True
        writer.close()


class TestJsonlPointSink:
    """Tests for the JSON-lines sink."""

    def test_append_and_load(self, tmp_path, make_point):
        path = tmp_path / "out" / "points.jsonl"
        sink = JsonlPointSink(path)

        sink.insert_batch([make_point(time_ms=1, route_id=4, altitude=12.5)])
        sink.insert_batch([make_point(time_ms=2, route_id=4), make_point(time_ms=3, route_id=4)])

        points = load_points(path)
        assert [p.time_ms for p in points] == [1, 2, 3]
        assert all(p.route_id == 4 for p in points)
        assert points[0].altitude == 12.5
        assert points[1].altitude is None

    def test_unwritable_path_raises_persistence_error(self, tmp_path, make_point):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        sink = JsonlPointSink(blocker / "points.jsonl")

        with pytest.raises(PersistenceError) as exc_info:
            sink.insert_batch([make_point()])
        assert exc_info.value.batch_size == 1
