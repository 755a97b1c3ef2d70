"""Tests for nearest-sample correlation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fuel_monitor.analytics.correlator import find_closest
from fuel_monitor.analytics.samples import FUEL_VOLUME, SensorSample

T0 = datetime(2025, 6, 10, 8, 0, tzinfo=timezone.utc)


def _vol(minutes: float, value: float) -> SensorSample:
    return SensorSample("dev-1", FUEL_VOLUME, T0 + timedelta(minutes=minutes), value)


class TestFindClosest:
    def test_empty_timeline(self) -> None:
        assert find_closest([], T0) is None

    def test_exact_match(self) -> None:
        timeline = [_vol(-10, 1.0), _vol(0, 2.0), _vol(10, 3.0)]
        assert find_closest(timeline, T0).value == 2.0

    def test_nearest_within_tolerance(self) -> None:
        timeline = [_vol(-4, 1.0), _vol(2, 2.0), _vol(30, 3.0)]
        assert find_closest(timeline, T0, tolerance_minutes=5).value == 2.0

    def test_difference_equal_to_tolerance_is_rejected(self) -> None:
        timeline = [_vol(5, 1.0), _vol(-5, 2.0)]
        assert find_closest(timeline, T0, tolerance_minutes=5) is None

    def test_just_inside_tolerance_accepted(self) -> None:
        timeline = [_vol(4.99, 7.0)]
        assert find_closest(timeline, T0, tolerance_minutes=5).value == 7.0

    def test_nothing_within_tolerance(self) -> None:
        timeline = [_vol(-20, 1.0), _vol(20, 2.0)]
        assert find_closest(timeline, T0) is None

    def test_tie_keeps_first_scanned(self) -> None:
        timeline = [_vol(-2, 1.0), _vol(2, 2.0)]
        assert find_closest(timeline, T0).value == 1.0

    def test_custom_tolerance(self) -> None:
        timeline = [_vol(8, 1.0)]
        assert find_closest(timeline, T0, tolerance_minutes=5) is None
        assert find_closest(timeline, T0, tolerance_minutes=10).value == 1.0
