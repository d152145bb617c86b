"""
Latest-value observable.

Holds one current value. New subscribers get it immediately; later values
are pushed to every subscriber. Consecutive equal values are conflated, and
nothing is buffered beyond the most recent value.
"""

import logging
import threading
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Observable(Generic[T]):
    """
    Thread-safe latest-value holder with push subscriptions.

    Usage:
        state = Observable(TrackingState.IDLE)
        unsubscribe = state.subscribe(lambda s: print(s))   # prints IDLE
        state.set(TrackingState.TRACKING)                   # prints TRACKING
        unsubscribe()

    Values should be immutable; subscribers receive the stored object.
    A subscriber that raises is logged and skipped, never propagated.
    """

    def __init__(self, initial: T):
        self._lock = threading.Lock()
        self._value = initial
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        with self._lock:
            return self._value

    def set(self, value: T) -> bool:
        """
        Publish a new value.

        Returns:
            True if subscribers were notified, False if conflated
        """
        with self._lock:
            if value == self._value:
                return False
            self._value = value
            subscribers = list(self._subscribers)

        for callback in subscribers:
            self._deliver(callback, value)
        return True

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a subscriber and deliver the current value to it.

        Returns:
            Function that removes the subscription
        """
        with self._lock:
            self._subscribers.append(callback)
            current = self._value

        self._deliver(callback, current)

        def unsubscribe():
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def _deliver(self, callback, value):
        try:
            callback(value)
        except Exception as e:
            logger.error(f"Observable subscriber {callback!r} raised: {e}")
