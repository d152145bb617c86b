"""
Great-circle geodesy helpers.

Surface distance between fixes uses the haversine formula on a spherical
Earth. Over the distances between consecutive fixes (meters to a few km) the
error against the WGS84 ellipsoid is well below GPS noise.
"""

import math
from typing import Sequence, Tuple

import numpy as np

# Mean Earth radius (IUGG), meters
EARTH_RADIUS_M = 6371008.8


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle surface distance between two points.

    Args:
        lat1, lon1: First point (decimal degrees)
        lat2, lon2: Second point (decimal degrees)

    Returns:
        Distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    # Clamp against rounding just above 1.0 for antipodal points
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def distance_between(p1, p2) -> float:
    """Surface distance between two objects exposing latitude/longitude."""
    return haversine_m(p1.latitude, p1.longitude, p2.latitude, p2.longitude)


def destination_point(
    lat: float,
    lon: float,
    bearing_deg: float,
    distance_m: float
) -> Tuple[float, float]:
    """
    Point reached by travelling distance_m along bearing_deg from (lat, lon).

    Inverse of haversine_m on the same sphere, used to synthesize tracks.

    Returns:
        (latitude, longitude) in decimal degrees
    """
    phi1 = math.radians(lat)
    lmb1 = math.radians(lon)
    theta = math.radians(bearing_deg)
    delta = distance_m / EARTH_RADIUS_M

    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta)
        + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lmb2 = lmb1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )

    # Normalize longitude to [-180, 180)
    lon2 = (math.degrees(lmb2) + 540.0) % 360.0 - 180.0
    return (math.degrees(phi2), lon2)


def segment_distances_m(latitudes: Sequence[float], longitudes: Sequence[float]) -> np.ndarray:
    """
    Vectorized haversine over consecutive points of a track.

    Args:
        latitudes: Track latitudes (decimal degrees)
        longitudes: Track longitudes (decimal degrees)

    Returns:
        Array of n-1 segment lengths in meters (empty for n < 2)
    """
    lat = np.radians(np.asarray(latitudes, dtype=float))
    lon = np.radians(np.asarray(longitudes, dtype=float))

    if lat.size < 2:
        return np.zeros(0)

    dphi = np.diff(lat)
    dlmb = np.diff(lon)

    a = np.sin(dphi / 2) ** 2 + np.cos(lat[:-1]) * np.cos(lat[1:]) * np.sin(dlmb / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    return 2 * EARTH_RADIUS_M * np.arcsin(np.sqrt(a))
