"""
Fix accounting counters.

Every fix that reaches the engine is either accepted or rejected against a
reason code, and every accepted point is either persisted or lost against a
reason code. The collector keeps those tallies thread-safe so that
rejections, which are silent at the pipeline interface, stay observable.

Reports are built from a CounterSnapshot. `since()` narrows a snapshot to
what happened after a baseline, which is how the replay tool reports a
single session while the process-wide collector keeps running.
"""

import logging
import threading
import time
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from collections import defaultdict

import numpy as np

logger = logging.getLogger(__name__)

# Fix-level rejections: the fix never became a point
FIX_REJECTIONS = {
    'non_finite_fix': 'NaN/infinite or out-of-range coordinates',
    'invalid_speed': 'Negative reported speed',
    'low_accuracy': 'Reported accuracy above profile threshold',
    'implausible_speed': 'Implied speed above profile threshold',
    'not_tracking': 'Fix delivered while engine not tracking',
}

# Point-level losses: the point was accepted but never reached the sink
POINT_LOSSES = {
    'persist_failed': 'Sink failed after all retry attempts',
    'queue_full': 'Batch writer queue overflow',
}

SESSION_EVENTS = ('auto_pauses', 'auto_resumes', 'flushes')
PERSISTENCE = ('points_buffered', 'points_persisted', 'batches_persisted')


@dataclass
class CounterSnapshot:
    """Counter state at a point in time."""

    timestamp: float
    counters: Dict[str, int]
    drop_reasons: Dict[str, int]
    histograms: Dict[str, List[float]]
    histogram_totals: Dict[str, int] = field(default_factory=dict)

    def since(self, baseline: 'CounterSnapshot') -> 'CounterSnapshot':
        """
        Counts accumulated between baseline and this snapshot.

        Histograms keep only the samples recorded after the baseline that
        are still held (older samples may have been trimmed).
        """
        histograms = {}
        totals = {}
        for name, samples in self.histograms.items():
            recorded = self.histogram_totals.get(name, 0) - baseline.histogram_totals.get(name, 0)
            totals[name] = recorded
            histograms[name] = samples[-recorded:] if recorded > 0 else []

        return CounterSnapshot(
            timestamp=self.timestamp,
            counters={k: v - baseline.counters.get(k, 0) for k, v in self.counters.items()},
            drop_reasons={k: v - baseline.drop_reasons.get(k, 0)
                          for k, v in self.drop_reasons.items()},
            histograms=histograms,
            histogram_totals=totals,
        )

    @property
    def fixes_rejected(self) -> int:
        return sum(count for _, count, _ in self.rejections())

    @property
    def points_lost(self) -> int:
        return sum(self.drop_reasons.get(reason, 0) for reason in POINT_LOSSES)

    def acceptance_rate(self) -> float:
        """Accepted fixes as a percentage of fixes delivered (0.0 when none)."""
        fixes_in = self.counters.get('fixes_in', 0)
        if fixes_in == 0:
            return 0.0
        return self.counters.get('fixes_accepted', 0) / fixes_in * 100.0

    def rejections(self) -> List[Tuple[str, int, str]]:
        """
        Non-zero fix rejections, most frequent first.

        Returns:
            (reason, count, description) tuples; reasons outside the known
            tables are included with an empty description
        """
        rows = []
        for reason, count in self.drop_reasons.items():
            if count <= 0 or reason in POINT_LOSSES:
                continue
            rows.append((reason, count, FIX_REJECTIONS.get(reason, '')))
        return sorted(rows, key=lambda row: (-row[1], row[0]))

    def losses(self) -> List[Tuple[str, int, str]]:
        """Non-zero point losses, most frequent first."""
        rows = [(reason, self.drop_reasons.get(reason, 0), description)
                for reason, description in POINT_LOSSES.items()
                if self.drop_reasons.get(reason, 0) > 0]
        return sorted(rows, key=lambda row: (-row[1], row[0]))

    def histogram_stats(self, name: str) -> Optional[Dict[str, float]]:
        """
        Summary of one histogram.

        Returns:
            Dict with count, mean, p50, p95, max; None if no samples
        """
        samples = self.histograms.get(name)
        if not samples:
            return None

        values = np.asarray(samples, dtype=float)
        p50, p95 = np.percentile(values, [50, 95])
        return {
            'count': int(values.size),
            'mean': float(values.mean()),
            'p50': float(p50),
            'p95': float(p95),
            'max': float(values.max()),
        }


class MetricsCollector:
    """
    Thread-safe fix accounting.

    Usage:
        collector = MetricsCollector()
        baseline = collector.snapshot()

        collector.increment('fixes_in')
        collector.increment_drop('low_accuracy')
        collector.record_histogram('implied_speed_kmh', 42.0)

        session = collector.snapshot().since(baseline)
        for reason, count, description in session.rejections():
            ...
    """

    DROP_REASONS = {**FIX_REJECTIONS, **POINT_LOSSES}

    STANDARD_COUNTERS = ('fixes_in', 'fixes_accepted') + SESSION_EVENTS + PERSISTENCE

    def __init__(self):
        self._lock = threading.Lock()
        self._counters: Dict[str, int] = defaultdict(int)
        self._drop_reasons: Dict[str, int] = defaultdict(int)
        self._histograms: Dict[str, List[float]] = defaultdict(list)
        self._histogram_totals: Dict[str, int] = defaultdict(int)
        self._seed()

    def _seed(self):
        # Zero entries so reports list every standard row
        with self._lock:
            for counter in self.STANDARD_COUNTERS:
                self._counters.setdefault(counter, 0)
            for reason in self.DROP_REASONS:
                self._drop_reasons.setdefault(reason, 0)

    def increment(self, counter_name: str, value: int = 1):
        """
        Increment a counter by value.

        Args:
            counter_name: Name of counter to increment
            value: Amount to increment (default 1)
        """
        with self._lock:
            self._counters[counter_name] += value

    def increment_drop(self, reason: str, value: int = 1):
        """
        Count dropped fixes or points against a reason code.

        Args:
            reason: Code from FIX_REJECTIONS or POINT_LOSSES
            value: Number of fixes/points dropped (default 1)

        Side Effects:
            - Also increments the 'dropped' counter
            - Logs a warning for an unknown code, which is still counted
        """
        if reason not in self.DROP_REASONS:
            logger.warning(f"Unknown drop reason '{reason}'")

        with self._lock:
            self._drop_reasons[reason] += value
            self._counters['dropped'] += value

    def get_counter(self, counter_name: str) -> int:
        """Current value of a counter (0 if never incremented)."""
        with self._lock:
            return self._counters.get(counter_name, 0)

    def get_drop_count(self, reason: str) -> int:
        with self._lock:
            return self._drop_reasons.get(reason, 0)

    def record_histogram(self, histogram_name: str, value: float, max_samples: int = 10000):
        """
        Record a value in a histogram.

        Args:
            histogram_name: Name of histogram
            value: Value to record
            max_samples: Samples held before the oldest half is dropped
        """
        with self._lock:
            samples = self._histograms[histogram_name]
            samples.append(value)
            self._histogram_totals[histogram_name] += 1

            if len(samples) > max_samples:
                self._histograms[histogram_name] = samples[-max_samples//2:]

    def snapshot(self) -> CounterSnapshot:
        """Copy of the current state."""
        with self._lock:
            return CounterSnapshot(
                timestamp=time.time(),
                counters=dict(self._counters),
                drop_reasons=dict(self._drop_reasons),
                histograms={k: list(v) for k, v in self._histograms.items()},
                histogram_totals=dict(self._histogram_totals),
            )

    def reset(self):
        """Clear every counter, drop reason and histogram."""
        with self._lock:
            self._counters.clear()
            self._drop_reasons.clear()
            self._histograms.clear()
            self._histogram_totals.clear()
        self._seed()

    def format_summary(self, since: Optional[CounterSnapshot] = None) -> List[str]:
        """
        Fix accounting report as text lines.

        Args:
            since: Baseline snapshot; only activity after it is reported

        Returns:
            Report lines (fix flow, rejections, session events,
            persistence, histograms)
        """
        snapshot = self.snapshot()
        if since is not None:
            snapshot = snapshot.since(since)
        counters = snapshot.counters

        lines = ["=" * 70, "  METRICS SUMMARY", "=" * 70, "", "FIX FLOW:"]
        lines.append(f"  {'fixes_in':30s}: {counters.get('fixes_in', 0):8d}")
        lines.append(f"  {'fixes_accepted':30s}: {counters.get('fixes_accepted', 0):8d} "
                     f"({snapshot.acceptance_rate():5.1f}%)")
        lines.append(f"  {'fixes_rejected':30s}: {snapshot.fixes_rejected:8d}")

        rejections = snapshot.rejections()
        if rejections:
            lines.extend(["", "REJECTIONS:"])
            for reason, count, description in rejections:
                lines.append(f"  {reason:30s}: {count:8d}  {description}")

        lines.extend(["", "SESSION EVENTS:"])
        for name in SESSION_EVENTS:
            lines.append(f"  {name:30s}: {counters.get(name, 0):8d}")

        lines.extend(["", "PERSISTENCE:"])
        for name in PERSISTENCE:
            lines.append(f"  {name:30s}: {counters.get(name, 0):8d}")
        lines.append(f"  {'points_lost':30s}: {snapshot.points_lost:8d}")
        for reason, count, description in snapshot.losses():
            lines.append(f"  {reason:30s}: {count:8d}  {description}")

        histogram_lines = []
        for name in sorted(snapshot.histograms):
            stats = snapshot.histogram_stats(name)
            if stats:
                histogram_lines.append(
                    f"  {name:30s}: count={stats['count']}, mean={stats['mean']:.3f}, "
                    f"p95={stats['p95']:.3f}, max={stats['max']:.3f}")
        if histogram_lines:
            lines.extend(["", "HISTOGRAMS:"] + histogram_lines)

        lines.append("=" * 70)
        return lines

    def print_summary(self, since: Optional[CounterSnapshot] = None):
        """Print format_summary() to stdout."""
        print("\n" + "\n".join(self.format_summary(since)) + "\n")
