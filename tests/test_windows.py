"""Tests for clock-time windows and window extraction."""

from __future__ import annotations

from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from conftest import make_point
from katabatic.common.errors import DataGapError
from katabatic.forecasting.windows import TimeWindow, extract_window, window_values


class TestTimeWindow:
    def test_hours(self):
        window = TimeWindow("06:30", "08:15")
        assert window.start_hour == 6
        assert window.end_hour == 8
        assert window.start_time == (6, 30)
        assert not window.wraps_midnight

    def test_inclusive_bounds(self):
        window = TimeWindow("06:00", "08:00")
        assert window.contains_hour(6)
        assert window.contains_hour(8)
        assert not window.contains_hour(5)
        assert not window.contains_hour(9)

    def test_minutes_ignored(self):
        window = TimeWindow("06:45", "08:10")
        assert window.contains_hour(6)
        assert window.contains_hour(8)

    def test_wraps_midnight(self):
        window = TimeWindow("22:00", "05:00")
        assert window.wraps_midnight
        assert window.contains_hour(23)
        assert window.contains_hour(0)
        assert window.contains_hour(2)
        assert not window.contains_hour(12)
        assert not window.contains_hour(21)

    @pytest.mark.parametrize("value", ["6", "25:00", "06:60", "noon", ""])
    def test_malformed(self, value):
        with pytest.raises(ValueError):
            TimeWindow(value, "08:00")

    def test_bounds_on(self):
        start, end = TimeWindow("06:00", "08:00").bounds_on(date(2025, 6, 14), timezone.utc)
        assert start == datetime(2025, 6, 14, 6, tzinfo=timezone.utc)
        assert end == datetime(2025, 6, 14, 8, tzinfo=timezone.utc)

    def test_bounds_on_wrapping(self):
        start, end = TimeWindow("22:00", "05:00").bounds_on(date(2025, 6, 14), timezone.utc)
        assert start == datetime(2025, 6, 14, 22, tzinfo=timezone.utc)
        assert end == datetime(2025, 6, 15, 5, tzinfo=timezone.utc)


class TestExtractWindow:
    def test_selects_matching_hours(self, utc):
        points = [make_point(h) for h in range(24)]
        selected = extract_window(points, TimeWindow("02:00", "05:00"), utc)
        assert len(selected) == 4
        assert selected[0] is points[2]
        assert selected[-1] is points[5]

    def test_wrapping_window(self, utc):
        points = [make_point(h) for h in range(24)]
        selected = extract_window(points, TimeWindow("22:00", "01:00"), utc)
        assert [points.index(p) for p in selected] == [0, 1, 22, 23]

    def test_empty_input(self, utc):
        assert extract_window([], TimeWindow("06:00", "08:00"), utc) == []

    def test_uses_reference_zone(self):
        # 12:00 UTC in June is 06:00 in Denver (MDT, UTC-6)
        points = [make_point(12)]
        denver = ZoneInfo("America/Denver")
        assert extract_window(points, TimeWindow("06:00", "08:00"), denver) == points
        assert extract_window(points, TimeWindow("06:00", "08:00"), timezone.utc) == []


class TestWindowValues:
    def test_projects_field(self):
        points = [make_point(0, temperature=3.0), make_point(1, temperature=5.0)]
        assert window_values(points, lambda p: p.temperature) == [3.0, 5.0]

    def test_empty_raises_data_gap(self):
        with pytest.raises(DataGapError):
            window_values([], lambda p: p.temperature)
