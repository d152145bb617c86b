"""
Fix sources.

A fix source pushes RawFix objects into a callback registered by
subscribe(). Interval and displacement arguments are hints: a source may
deliver at a different cadence and the engine must not rely on them.

Implementations:
- ManualFixSource: fixes pushed by hand (embedding hosts, tests)
- ReplayFixSource: fixes read from a CSV/JSONL recording
"""

import csv
import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Union

from trip_core.proto.fix import RawFix

logger = logging.getLogger(__name__)

FixCallback = Callable[[RawFix], None]

CSV_FIELDS = [
    'time_ms', 'latitude', 'longitude', 'altitude',
    'accuracy_m', 'speed_mps', 'bearing_deg',
]


@dataclass(frozen=True)
class SubscriptionRequest:
    """Delivery hints passed to FixSource.subscribe()."""

    interval_ms: int
    fastest_interval_ms: int
    min_displacement_m: float
    want_accurate: bool


class FixSource(ABC):
    """
    Abstract positioning source.

    subscribe() may raise if the provider is unavailable or permission is
    denied; the engine turns that into FixSourceUnavailableError.
    """

    @abstractmethod
    def subscribe(
        self,
        interval_ms: int,
        fastest_interval_ms: int,
        min_displacement_m: float,
        want_accurate: bool,
        callback: FixCallback,
    ):
        """Start delivering fixes to callback (replaces any previous subscription)."""
        pass

    @abstractmethod
    def unsubscribe(self):
        """Stop delivering fixes. Must be safe to call when not subscribed."""
        pass


class ManualFixSource(FixSource):
    """
    Fix source driven by explicit push() calls.

    Usage:
        source = ManualFixSource()
        engine = TrackingEngine(source, writer)
        engine.start(1, TrackingProfile.BALANCED)
        source.push(fix)          # delivered to engine.on_fix

    Attributes:
        subscriptions: Every SubscriptionRequest received, in order
        unsubscribe_count: Number of unsubscribe() calls
        fail_with: If set, subscribe() raises this exception
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._callback: Optional[FixCallback] = None
        self.subscriptions: List[SubscriptionRequest] = []
        self.unsubscribe_count = 0
        self.fail_with: Optional[Exception] = None

    def subscribe(self, interval_ms, fastest_interval_ms, min_displacement_m,
                  want_accurate, callback):
        if self.fail_with is not None:
            raise self.fail_with

        request = SubscriptionRequest(
            interval_ms=interval_ms,
            fastest_interval_ms=fastest_interval_ms,
            min_displacement_m=min_displacement_m,
            want_accurate=want_accurate,
        )
        with self._lock:
            self._callback = callback
            self.subscriptions.append(request)
        logger.debug(f"Subscribed: {request}")

    def unsubscribe(self):
        with self._lock:
            self._callback = None
            self.unsubscribe_count += 1

    @property
    def is_subscribed(self) -> bool:
        with self._lock:
            return self._callback is not None

    @property
    def last_subscription(self) -> Optional[SubscriptionRequest]:
        with self._lock:
            return self.subscriptions[-1] if self.subscriptions else None

    def push(self, fix: RawFix) -> bool:
        """
        Deliver a fix to the current subscriber.

        Returns:
            True if delivered, False if nobody is subscribed
        """
        with self._lock:
            callback = self._callback
        if callback is None:
            return False
        callback(fix)
        return True

    def push_all(self, fixes: Iterable[RawFix]) -> int:
        """Push fixes in order; returns how many were delivered."""
        return sum(1 for fix in fixes if self.push(fix))


def load_fixes(path: Union[str, Path]) -> List[RawFix]:
    """
    Load a fix recording.

    Supports CSV (header with CSV_FIELDS, extra columns ignored) and JSONL
    (one RawFix.to_dict() object per line), chosen by file suffix.
    Malformed rows are skipped and counted in a warning.

    Raises:
        OSError: If the file cannot be read
        ValueError: If required columns are missing
    """
    p = Path(path)
    fixes: List[RawFix] = []
    skipped = 0

    with p.open('r', encoding='utf-8', newline='') as f:
        if p.suffix.lower() in ('.jsonl', '.json'):
            rows = (json.loads(line) for line in f if line.strip())
        else:
            reader = csv.DictReader(f)
            if reader.fieldnames is None:
                return fixes
            missing = {'latitude', 'longitude', 'accuracy_m'} - set(reader.fieldnames)
            if missing:
                raise ValueError(
                    f"{p.name}: missing columns {sorted(missing)}; got {reader.fieldnames}"
                )
            rows = reader

        try:
            for row in rows:
                try:
                    fixes.append(RawFix.from_dict(row))
                except (KeyError, ValueError, TypeError):
                    skipped += 1
        except json.JSONDecodeError as e:
            raise ValueError(f"{p.name}: invalid JSON line ({e})") from e

    if skipped:
        logger.warning(f"{p.name}: skipped {skipped} malformed rows")

    logger.info(f"Loaded {len(fixes)} fixes from {p}")
    return fixes


def write_fixes_csv(path: Union[str, Path], fixes: Iterable[RawFix]) -> int:
    """Write fixes as a CSV recording readable by load_fixes(). Returns row count."""
    count = 0
    with Path(path).open('w', encoding='utf-8', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for fix in fixes:
            row = fix.to_dict()
            if row['altitude'] is None:
                row['altitude'] = ''
            writer.writerow({k: row[k] for k in CSV_FIELDS})
            count += 1
    return count


class ReplayFixSource(FixSource):
    """
    Replays a recorded list of fixes into the subscribed callback.

    Fixes that come up while nothing is subscribed (user pause) are skipped,
    as a live source would not have delivered them. If a clock is given it is
    set to each fix's timestamp before delivery.
    """

    def __init__(self, fixes: List[RawFix]):
        self._fixes = list(fixes)
        self._callback: Optional[FixCallback] = None
        self.delivered = 0
        self.skipped = 0
        self.subscriptions: List[SubscriptionRequest] = []

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'ReplayFixSource':
        return cls(load_fixes(path))

    def __len__(self) -> int:
        return len(self._fixes)

    @property
    def fixes(self) -> List[RawFix]:
        return list(self._fixes)

    def subscribe(self, interval_ms, fastest_interval_ms, min_displacement_m,
                  want_accurate, callback):
        self.subscriptions.append(SubscriptionRequest(
            interval_ms, fastest_interval_ms, min_displacement_m, want_accurate,
        ))
        self._callback = callback

    def unsubscribe(self):
        self._callback = None

    def replay(self, clock=None) -> int:
        """
        Deliver every fix in order.

        Args:
            clock: Optional ReplayClock to set to each fix's time_ms

        Returns:
            Number of fixes delivered
        """
        for fix in self._fixes:
            if clock is not None:
                clock.set(fix.time_ms)

            # Read the callback per fix: the subscriber may change it mid-replay
            callback = self._callback
            if callback is None:
                self.skipped += 1
                continue

            callback(fix)
            self.delivered += 1

        logger.info(f"Replay finished: {self.delivered} delivered, {self.skipped} skipped")
        return self.delivered
