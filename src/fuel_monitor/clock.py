"""Injectable wall clock.

Services take a ``Clock`` instead of calling ``datetime.now`` so the
"today vs. historical day" branch can be driven deterministically in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

from fuel_monitor.timezone_utils import to_utc


class Clock(ABC):
    """Source of the current instant (always aware UTC)."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Clock frozen at a settable instant."""

    def __init__(self, instant: datetime) -> None:
        self._instant = to_utc(instant)

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        self._instant = to_utc(instant)

    def advance(self, delta: timedelta) -> None:
        self._instant += delta
