"""
Unit tests for great-circle geodesy helpers.

Reference distances are checked against the haversine formula on the mean
Earth radius, not against ellipsoidal values.
"""

import math

import numpy as np
import pytest

from trip_core.localization import (
    EARTH_RADIUS_M,
    haversine_m,
    distance_between,
    destination_point,
    segment_distances_m,
)
from trip_core.proto import RawFix


class TestHaversine:
    """Tests for point-to-point distance."""

    def test_zero_distance(self):
        assert haversine_m(22.29, 114.17, 22.29, 114.17) == 0.0

    def test_one_degree_of_latitude(self):
        expected = EARTH_RADIUS_M * math.radians(1.0)
        assert haversine_m(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected, rel=1e-12)

    def test_symmetric(self):
        d1 = haversine_m(22.29, 114.17, 22.30, 114.19)
        d2 = haversine_m(22.30, 114.19, 22.29, 114.17)
        assert d1 == pytest.approx(d2)

    def test_antipodal_points(self):
        d = haversine_m(0.0, 0.0, 0.0, 180.0)
        assert d == pytest.approx(math.pi * EARTH_RADIUS_M)

    def test_distance_between_objects(self):
        a = RawFix(22.29, 114.17, 5.0)
        b = RawFix(22.30, 114.17, 5.0)
        assert distance_between(a, b) == pytest.approx(haversine_m(22.29, 114.17, 22.30, 114.17))


class TestDestinationPoint:
    """Tests for the forward problem."""

    @pytest.mark.parametrize("bearing", [0.0, 45.0, 90.0, 200.0, 315.0])
    def test_inverse_of_haversine(self, bearing):
        lat, lon = destination_point(22.29, 114.17, bearing, 250.0)
        assert haversine_m(22.29, 114.17, lat, lon) == pytest.approx(250.0, abs=1e-6)

    def test_north_keeps_longitude(self):
        lat, lon = destination_point(22.29, 114.17, 0.0, 1000.0)
        assert lat > 22.29
        assert lon == pytest.approx(114.17, abs=1e-12)

    def test_longitude_normalized(self):
        _, lon = destination_point(0.0, 179.9999, 90.0, 1000.0)
        assert -180.0 <= lon < -179.99


class TestSegmentDistances:
    """Tests for the vectorized track distance."""

    def test_matches_scalar(self):
        lats = [22.29, 22.291, 22.293, 22.2935]
        lons = [114.17, 114.171, 114.1705, 114.172]

        segments = segment_distances_m(lats, lons)
        expected = [haversine_m(lats[i], lons[i], lats[i + 1], lons[i + 1]) for i in range(3)]

        assert isinstance(segments, np.ndarray)
        assert segments.shape == (3,)
        np.testing.assert_allclose(segments, expected, rtol=1e-12)

    @pytest.mark.parametrize("n", [0, 1])
    def test_short_tracks(self, n):
        segments = segment_distances_m([22.29] * n, [114.17] * n)
        assert segments.size == 0
