"""
Position Fix Schemas.

RawFix is one sample as delivered by the positioning source. FilteredPoint is
a fix that survived the filter pipeline (coordinates possibly smoothed) and is
what gets buffered and handed to the persistence sink.

Both are frozen: once a point is handed to the sink nobody else can mutate it.
"""

import math
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class RawFix:
    """
    Raw position fix from the positioning source.

    Attributes:
        latitude: Latitude in decimal degrees
        longitude: Longitude in decimal degrees
        accuracy_m: Reported horizontal accuracy (1-sigma radius, meters)
        speed_mps: Reported ground speed (m/s)
        bearing_deg: Reported bearing (degrees)
        time_ms: Fix time (epoch milliseconds)
        altitude: Altitude in meters, None if the source has none
    """

    latitude: float
    longitude: float
    accuracy_m: float
    speed_mps: float = 0.0
    bearing_deg: float = 0.0
    time_ms: int = 0
    altitude: Optional[float] = None

    @property
    def is_finite(self) -> bool:
        """True if every numeric field the pipeline reads is a finite number."""
        values = (self.latitude, self.longitude, self.accuracy_m, self.speed_mps)
        try:
            return all(math.isfinite(v) for v in values)
        except TypeError:
            return False

    @property
    def position(self):
        """(latitude, longitude) tuple."""
        return (self.latitude, self.longitude)

    def to_dict(self) -> dict:
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'altitude': self.altitude,
            'accuracy_m': self.accuracy_m,
            'speed_mps': self.speed_mps,
            'bearing_deg': self.bearing_deg,
            'time_ms': self.time_ms,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'RawFix':
        """
        Build a RawFix from a dict (JSONL/CSV row).

        Raises:
            KeyError: If latitude/longitude/accuracy_m are missing
            ValueError: If a field cannot be converted
        """
        altitude = data.get('altitude')
        return cls(
            latitude=float(data['latitude']),
            longitude=float(data['longitude']),
            accuracy_m=float(data['accuracy_m']),
            speed_mps=float(data.get('speed_mps') or 0.0),
            bearing_deg=float(data.get('bearing_deg') or 0.0),
            time_ms=int(float(data.get('time_ms') or 0)),
            altitude=float(altitude) if altitude not in (None, '') else None,
        )


@dataclass(frozen=True)
class FilteredPoint:
    """
    Accepted (gated and smoothed) track point.

    Same shape as RawFix plus:
        is_filtered: Reserved for downstream soft-deletion; always False here
        route_id: Route the point belongs to (-1 until stamped by the engine)
    """

    latitude: float
    longitude: float
    accuracy_m: float
    speed_mps: float = 0.0
    bearing_deg: float = 0.0
    time_ms: int = 0
    altitude: Optional[float] = None
    is_filtered: bool = False
    route_id: int = -1

    @classmethod
    def from_fix(
        cls,
        fix: RawFix,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> 'FilteredPoint':
        """Copy a raw fix, optionally replacing its coordinates."""
        return cls(
            latitude=fix.latitude if latitude is None else latitude,
            longitude=fix.longitude if longitude is None else longitude,
            accuracy_m=fix.accuracy_m,
            speed_mps=fix.speed_mps,
            bearing_deg=fix.bearing_deg,
            time_ms=fix.time_ms,
            altitude=fix.altitude,
        )

    def with_route(self, route_id: int) -> 'FilteredPoint':
        return replace(self, route_id=route_id)

    @property
    def position(self):
        """(latitude, longitude) tuple."""
        return (self.latitude, self.longitude)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'route_id': self.route_id,
            'latitude': self.latitude,
            'longitude': self.longitude,
            'altitude': self.altitude,
            'accuracy_m': self.accuracy_m,
            'speed_mps': self.speed_mps,
            'bearing_deg': self.bearing_deg,
            'time_ms': self.time_ms,
            'is_filtered': self.is_filtered,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'FilteredPoint':
        fix = RawFix.from_dict(data)
        point = cls.from_fix(fix)
        return replace(
            point,
            is_filtered=bool(data.get('is_filtered', False)),
            route_id=int(data.get('route_id', -1)),
        )
