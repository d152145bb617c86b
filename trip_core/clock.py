"""
Clocks for the tracking engine.

The engine reads "now" through an injected callable returning epoch
milliseconds, so tests and replays can drive stillness timing and elapsed
time deterministically.
"""

import threading
import time


def system_clock_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


class ReplayClock:
    """Manually driven clock; replays set it to each fix's timestamp."""

    def __init__(self, start_ms: int = 0):
        self._lock = threading.Lock()
        self._value = int(start_ms)

    def set(self, value_ms: int):
        with self._lock:
            self._value = int(value_ms)

    def advance(self, delta_ms: int):
        with self._lock:
            self._value += int(delta_ms)

    def now(self) -> int:
        with self._lock:
            return self._value

    def __call__(self) -> int:
        return self.now()
