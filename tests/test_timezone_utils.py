"""Tests for timezone and calendar-day helpers."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfoNotFoundError

import pytest

from fuel_monitor import timezone_utils
from fuel_monitor.timezone_utils import (
    day_window,
    is_known_timezone,
    local_date,
    parse_date,
    parse_hhmm,
    parse_iso,
    resolve_timezone,
    to_utc_iso,
)


class TestResolveTimezone:
    def test_known_zone(self) -> None:
        tz = resolve_timezone("Africa/Harare")
        assert datetime(2025, 6, 10, tzinfo=tz).utcoffset() == timedelta(hours=2)

    def test_unknown_falls_back_to_utc_with_warning(self, caplog) -> None:
        with caplog.at_level(logging.WARNING, logger="fuel_monitor.timezone_utils"):
            assert resolve_timezone("Not/AZone") is timezone.utc
        assert "Unknown timezone" in caplog.text

    def test_fixed_offset_fallback_logs_warning(self, monkeypatch, caplog) -> None:
        def missing(name):
            raise ZoneInfoNotFoundError(name)

        monkeypatch.setattr(timezone_utils, "ZoneInfo", missing)
        with caplog.at_level(logging.WARNING, logger="fuel_monitor.timezone_utils"):
            tz = resolve_timezone("Africa/Harare")
        assert tz.utcoffset(None) == timedelta(hours=2)
        assert "fixed offset" in caplog.text

    def test_is_known_timezone(self) -> None:
        assert is_known_timezone("Africa/Harare") is True
        assert is_known_timezone("Not/AZone") is False


class TestDayWindow:
    def test_local_midnight_in_utc(self) -> None:
        window = day_window(date(2025, 6, 10), resolve_timezone("Africa/Harare"))
        assert window.start == datetime(2025, 6, 9, 22, 0, tzinfo=timezone.utc)
        assert window.end - window.start == timedelta(days=1)
        assert window.contains(window.start)
        assert window.contains(window.last_instant)
        assert not window.contains(window.end)

    def test_local_date(self) -> None:
        tz = resolve_timezone("Africa/Harare")
        assert local_date(datetime(2025, 6, 9, 23, 0, tzinfo=timezone.utc), tz) == date(2025, 6, 10)


class TestParsing:
    def test_iso_round_trip_sorts_lexicographically(self) -> None:
        a = datetime(2025, 6, 10, 8, 0, tzinfo=timezone.utc)
        b = a + timedelta(microseconds=1)
        assert to_utc_iso(a) < to_utc_iso(b)
        assert parse_iso(to_utc_iso(b)) == b

    def test_parse_hhmm(self) -> None:
        assert parse_hhmm("23:55") == time(23, 55)

    def test_parse_date_formats(self) -> None:
        assert parse_date("2025-06-10") == date(2025, 6, 10)
        assert parse_date("10/06/2025") == date(2025, 6, 10)

    def test_parse_date_invalid(self) -> None:
        with pytest.raises(ValueError):
            parse_date("June 10")
        with pytest.raises(ValueError):
            parse_date("31/02/2025")
