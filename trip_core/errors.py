"""Exception classes for the tracking core."""

from typing import Optional


class TripCoreError(Exception):
    """Base exception for all tracking core errors."""

    pass


class ConfigurationError(TripCoreError):
    """Raised when a profile name or config value is invalid."""

    pass


class InvalidTransitionError(TripCoreError):
    """Raised when a control event is not valid in the current state."""

    def __init__(self, state, event):
        self.state = state
        self.event = event
        super().__init__(f"Event {event.name} is not valid in state {state.name}")


class FixSourceUnavailableError(TripCoreError):
    """Raised when the fix source refuses a subscription (no provider, no permission)."""

    pass


class PersistenceError(TripCoreError):
    """Raised by sinks when a batch cannot be written."""

    def __init__(self, message: str, batch_size: Optional[int] = None):
        self.batch_size = batch_size
        super().__init__(message)
