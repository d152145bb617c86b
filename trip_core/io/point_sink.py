"""
Persistence sinks for accepted track points.

insert_batch() is called from the batch writer thread, one batch at a time,
in the order batches were produced. Sinks signal failure by raising; the
writer retries and reports.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Sequence, Union

from trip_core.errors import PersistenceError
from trip_core.proto.fix import FilteredPoint

logger = logging.getLogger(__name__)


class PointSink(ABC):
    """Abstract persistence sink."""

    @abstractmethod
    def insert_batch(self, points: Sequence[FilteredPoint]):
        """
        Persist a batch of points in the given order.

        Raises:
            Exception: Any failure; the caller decides whether to retry
        """
        pass


class InMemoryPointSink(PointSink):
    """Keeps every batch in memory (tests, short replays)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._batches: List[List[FilteredPoint]] = []

    def insert_batch(self, points: Sequence[FilteredPoint]):
        with self._lock:
            self._batches.append(list(points))

    @property
    def batches(self) -> List[List[FilteredPoint]]:
        with self._lock:
            return [list(b) for b in self._batches]

    @property
    def points(self) -> List[FilteredPoint]:
        with self._lock:
            return [p for batch in self._batches for p in batch]


class JsonlPointSink(PointSink):
    """
    Appends points to a JSON-lines file, one FilteredPoint.to_dict() per line.

    The parent directory is created on first write.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def insert_batch(self, points: Sequence[FilteredPoint]):
        lines = ''.join(json.dumps(p.to_dict()) + '\n' for p in points)
        try:
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open('a', encoding='utf-8') as f:
                    f.write(lines)
        except OSError as e:
            raise PersistenceError(
                f"Failed to append {len(points)} points to {self.path}: {e}",
                batch_size=len(points),
            ) from e

        logger.debug(f"Appended {len(points)} points to {self.path}")


def load_points(path: Union[str, Path]) -> List[FilteredPoint]:
    """Read points written by JsonlPointSink, in file order."""
    points = []
    with Path(path).open('r', encoding='utf-8') as f:
        for line in f:
            if line.strip():
                points.append(FilteredPoint.from_dict(json.loads(line)))
    return points
