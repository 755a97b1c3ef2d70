"""Timezone resolution and site-local calendar-day helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

# Common deployment fallback when IANA tzdata is unavailable (Windows hosts).
# Both zones have been a fixed UTC+2 without DST for decades.
_FIXED_FALLBACKS: dict[str, tzinfo] = {
    "Africa/Harare": timezone(timedelta(hours=2)),
    "Africa/Johannesburg": timezone(timedelta(hours=2)),
}


def _zoneinfo(tz_name: str) -> ZoneInfo | None:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def is_known_timezone(tz_name: str) -> bool:
    """True when the name resolves through tzdata or the fixed-offset map."""
    return _zoneinfo(tz_name) is not None or tz_name in _FIXED_FALLBACKS


def resolve_timezone(tz_name: str) -> tzinfo:
    """Resolve an IANA timezone name with safe fallbacks.

    Order:
    1. IANA database via ZoneInfo.
    2. Known fixed-offset fallback map.
    3. UTC.

    Steps 2 and 3 log a warning.
    """
    zone = _zoneinfo(tz_name)
    if zone is not None:
        return zone

    if tz_name in _FIXED_FALLBACKS:
        fallback = _FIXED_FALLBACKS[tz_name]
        logger.warning("tzdata has no %s, using fixed offset %s", tz_name, fallback)
        return fallback
    logger.warning("Unknown timezone %r, calendar days will follow UTC", tz_name)
    return timezone.utc


def to_utc(dt: datetime) -> datetime:
    """Normalise a datetime to aware UTC (naive values are taken as UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_utc_iso(dt: datetime) -> str:
    """Storage format: UTC ISO-8601 with fixed microsecond precision.

    Fixed width keeps lexicographic order equal to chronological order in SQLite.
    """
    return to_utc(dt).isoformat(timespec="microseconds")


def parse_iso(value: str) -> datetime:
    """Parse a stored ISO timestamp back into an aware UTC datetime."""
    return to_utc(datetime.fromisoformat(value))


@dataclass(frozen=True)
class DayWindow:
    """A site-local calendar day expressed as UTC instants."""

    day: date
    start: datetime  # local midnight, UTC
    end: datetime  # next local midnight, UTC

    @property
    def last_instant(self) -> datetime:
        """Final instant that still belongs to this day."""
        return self.end - timedelta(microseconds=1)

    def contains(self, dt: datetime) -> bool:
        return self.start <= to_utc(dt) < self.end


def day_window(day: date, tz: tzinfo) -> DayWindow:
    """Build the UTC window for a local calendar day."""
    start_local = datetime.combine(day, time.min, tzinfo=tz)
    end_local = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return DayWindow(day=day, start=to_utc(start_local), end=to_utc(end_local))


def local_date(dt: datetime, tz: tzinfo) -> date:
    """Calendar day of an instant in the given timezone."""
    return to_utc(dt).astimezone(tz).date()


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string into a time."""
    hours, minutes = value.split(":", 1)
    return time(int(hours), int(minutes))


def parse_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` or ``DD/MM/YYYY``. Raises ValueError otherwise."""
    value = value.strip()
    if "/" in value:
        return datetime.strptime(value, "%d/%m/%Y").date()
    return date.fromisoformat(value)
