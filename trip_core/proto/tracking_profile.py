"""
Tracking profiles and tracking states.

Profile values are a versioned contract: persisted routes record only the
profile name, so changing a number here changes the meaning of old sessions.
"""

from enum import Enum

from trip_core.errors import ConfigurationError


class TrackingState(Enum):
    """State of the tracking engine."""

    IDLE = 0
    TRACKING = 1
    PAUSED = 2
    AUTO_PAUSED = 3


class TrackingProfile(Enum):
    """
    GPS tracking power/accuracy profile.

    Attributes:
        interval_ms: Requested fix interval (hint)
        fastest_interval_ms: Fastest accepted fix interval (hint)
        min_displacement_m: Minimum displacement between fixes (hint)
        stillness_timeout_ms: Sustained stillness before auto-pause
        max_accuracy_m: Quality gate threshold
        max_speed_kmh: Plausibility gate threshold
    """

    HIGH_ACCURACY = (2_000, 1_000, 2.0, 60_000, 30.0, 60.0)
    BALANCED = (5_000, 3_000, 5.0, 120_000, 50.0, 150.0)
    LOW_POWER = (15_000, 10_000, 20.0, 300_000, 100.0, 300.0)

    def __init__(
        self,
        interval_ms: int,
        fastest_interval_ms: int,
        min_displacement_m: float,
        stillness_timeout_ms: int,
        max_accuracy_m: float,
        max_speed_kmh: float,
    ):
        self.interval_ms = interval_ms
        self.fastest_interval_ms = fastest_interval_ms
        self.min_displacement_m = min_displacement_m
        self.stillness_timeout_ms = stillness_timeout_ms
        self.max_accuracy_m = max_accuracy_m
        self.max_speed_kmh = max_speed_kmh

    @property
    def want_accurate(self) -> bool:
        """Only HIGH_ACCURACY asks the source to wait for an accurate first fix."""
        return self is TrackingProfile.HIGH_ACCURACY

    @classmethod
    def from_name(cls, name: str) -> 'TrackingProfile':
        """
        Parse a profile name ("balanced", "HIGH_ACCURACY", "low-power").

        Raises:
            ConfigurationError: If the name matches no profile
        """
        key = name.strip().upper().replace('-', '_')
        try:
            return cls[key]
        except KeyError:
            valid = ', '.join(p.name for p in cls)
            raise ConfigurationError(
                f"Unknown tracking profile '{name}' (expected one of: {valid})"
            ) from None
