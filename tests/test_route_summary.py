"""
Unit tests for route finalization and metric formatting.
"""

import pytest

from trip_core.domain import (
    summarize_points,
    format_distance,
    format_speed,
    format_duration,
)
from trip_core.localization import destination_point

from conftest import BASE_LAT, BASE_LON


class TestSummarizePoints:
    """Tests for summarize_points()."""

    def test_empty(self):
        assert summarize_points([]) is None

    def test_single_point(self, make_point):
        summary = summarize_points([make_point(time_ms=1000, speed_mps=4.0)])

        assert summary.point_count == 1
        assert summary.total_distance_m == 0.0
        assert summary.avg_speed_mps == 0.0
        assert summary.max_speed_mps == 0.0
        assert summary.start_time_ms == 1000
        assert summary.end_time_ms == 1000
        assert summary.duration_ms == 0

    def test_three_points(self, make_point):
        lat1, lon1 = destination_point(BASE_LAT, BASE_LON, 0.0, 100.0)
        lat2, lon2 = destination_point(lat1, lon1, 0.0, 150.0)
        points = [
            make_point(time_ms=0, speed_mps=9.0),
            make_point(latitude=lat1, longitude=lon1, time_ms=20_000, speed_mps=5.0),
            make_point(latitude=lat2, longitude=lon2, time_ms=40_000, speed_mps=7.0),
        ]

        summary = summarize_points(points)

        assert summary.point_count == 3
        assert summary.total_distance_m == pytest.approx(250.0, abs=1e-3)
        # First point's speed is excluded from the speed statistics
        assert summary.avg_speed_mps == pytest.approx(6.0)
        assert summary.max_speed_mps == pytest.approx(7.0)
        assert summary.duration_ms == 40_000

    def test_sorted_by_time(self, make_point):
        lat1, lon1 = destination_point(BASE_LAT, BASE_LON, 0.0, 100.0)
        points = [
            make_point(latitude=lat1, longitude=lon1, time_ms=5000),
            make_point(time_ms=0),
        ]

        summary = summarize_points(points)

        assert summary.start_time_ms == 0
        assert summary.end_time_ms == 5000
        assert summary.total_distance_m == pytest.approx(100.0, abs=1e-3)

    def test_soft_deleted_points_ignored(self, make_point):
        lat1, lon1 = destination_point(BASE_LAT, BASE_LON, 90.0, 500.0)
        points = [
            make_point(time_ms=0),
            make_point(latitude=lat1, longitude=lon1, time_ms=1000, is_filtered=True),
            make_point(time_ms=2000, speed_mps=1.0),
        ]

        summary = summarize_points(points)

        assert summary.point_count == 2
        assert summary.total_distance_m == 0.0

    def test_to_dict(self, make_point):
        summary = summarize_points([make_point(time_ms=0), make_point(time_ms=3000)])
        data = summary.to_dict()

        assert data['point_count'] == 2
        assert data['duration_ms'] == 3000


class TestFormatting:
    """Tests for display formatting."""

    @pytest.mark.parametrize("meters, text", [
        (0.0, "0 m"),
        (850.4, "850 m"),
        (999.0, "999 m"),
        (1000.0, "1.00 km"),
        (1250.0, "1.25 km"),
        (42000.0, "42.00 km"),
    ])
    def test_format_distance(self, meters, text):
        assert format_distance(meters) == text

    @pytest.mark.parametrize("mps, text", [
        (0.0, "0.0 km/h"),
        (5.0, "18.0 km/h"),
        (1.4, "5.0 km/h"),
    ])
    def test_format_speed(self, mps, text):
        assert format_speed(mps) == text

    @pytest.mark.parametrize("ms, text", [
        (0, "00:00"),
        (59_999, "00:59"),
        (61_000, "01:01"),
        (3_599_000, "59:59"),
        (3_600_000, "1:00:00"),
        (3_725_000, "1:02:05"),
        (-5000, "00:00"),
    ])
    def test_format_duration(self, ms, text):
        assert format_duration(ms) == text
