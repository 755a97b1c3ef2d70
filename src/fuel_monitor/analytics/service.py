"""Per-device daily metrics computed against the sample store.

Ties the fuel aggregator and the power timeline together for one site-local
calendar day, resolving the "day still in progress" boundary from the clock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from fuel_monitor.analytics.fuel import FuelDeltaResult, compute_fuel_deltas
from fuel_monitor.analytics.power import (
    PowerRuntimeResult,
    accumulate_runtime,
    build_timeline,
    get_precedence_policy,
)
from fuel_monitor.analytics.samples import FUEL_LEVEL, FUEL_VOLUME, GENERATOR_STATE, GRID_STATE
from fuel_monitor.clock import Clock
from fuel_monitor.config.schema import AppConfig
from fuel_monitor.db.base import SampleStore
from fuel_monitor.timezone_utils import DayWindow, day_window, local_date, resolve_timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DailyMetrics:
    """Fuel and power totals for one device on one calendar day."""

    device_id: str
    day: date
    fuel: FuelDeltaResult
    power: PowerRuntimeResult
    is_partial: bool = False  # True while the day is still in progress

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "date": self.day.isoformat(),
            "is_partial": self.is_partial,
            **self.fuel.to_dict(),
            **self.power.to_dict(),
        }


class DailyMetricsService:
    """Computes daily fuel deltas and power runtime for a device."""

    def __init__(self, store: SampleStore, clock: Clock, config: AppConfig) -> None:
        self._store = store
        self._clock = clock
        self._config = config
        self._tz = resolve_timezone(config.capture.timezone)
        self._policy = get_precedence_policy(config.analytics.power_precedence)

    @property
    def tz(self):
        return self._tz

    def today(self) -> date:
        return local_date(self._clock.now(), self._tz)

    def day_window_for(self, day: date) -> DayWindow:
        try:
            return day_window(day, self._tz)
        except OverflowError as e:
            raise ValueError(f"{day.isoformat()} is outside the supported date range") from e

    def evaluation_end(self, window: DayWindow, until: datetime | None = None) -> datetime:
        """End of the accounted period: now for today, next midnight otherwise.

        ``until`` caps the period further (a capture boundary), never before
        the start of the day. Raises ValueError for a day that has not started yet.
        """
        now = self._clock.now()
        if now < window.start:
            raise ValueError(f"{window.day.isoformat()} is in the future")
        end = now if window.contains(now) else window.end
        if until is not None:
            end = max(window.start, min(end, until))
        return end

    async def compute_fuel_for_day(
        self,
        device_id: str,
        day: date,
        until: datetime | None = None,
    ) -> FuelDeltaResult:
        window = self.day_window_for(day)
        end = min(window.last_instant, self.evaluation_end(window, until))
        levels = await self._store.query(device_id, FUEL_LEVEL, window.start, end)
        volumes = await self._store.query(device_id, FUEL_VOLUME, window.start, end)
        return compute_fuel_deltas(
            levels, volumes, self._config.analytics.correlation_tolerance_minutes,
        )

    async def compute_power_for_day(
        self,
        device_id: str,
        day: date,
        until: datetime | None = None,
    ) -> PowerRuntimeResult:
        window = self.day_window_for(day)
        end = self.evaluation_end(window, until)

        generator_seed = await self._store.query_before(device_id, GENERATOR_STATE, window.start)
        grid_seed = await self._store.query_before(device_id, GRID_STATE, window.start)
        generator = await self._store.query(device_id, GENERATOR_STATE, window.start, end)
        grid = await self._store.query(device_id, GRID_STATE, window.start, end)

        timeline = build_timeline(
            generator, grid, window.start, end,
            generator_seed=generator_seed, grid_seed=grid_seed,
        )
        if not timeline.has_reports and generator_seed is None and grid_seed is None:
            logger.debug("No power-state reports for %s on %s", device_id, day)
        return accumulate_runtime(
            timeline, self._policy, self._config.analytics.closure_tolerance_hours,
        )

    async def compute_day(
        self,
        device_id: str,
        day: date,
        until: datetime | None = None,
    ) -> DailyMetrics:
        """Fuel and power totals for ``day``, optionally cut off at ``until``."""
        fuel = await self.compute_fuel_for_day(device_id, day, until)
        power = await self.compute_power_for_day(device_id, day, until)
        return DailyMetrics(
            device_id=device_id,
            day=day,
            fuel=fuel,
            power=power,
            is_partial=day == self.today(),
        )

    def check_range(self, start_date: date, end_date: date) -> None:
        """Raise ValueError for a reversed range or one longer than ``max_range_days``."""
        if start_date > end_date:
            raise ValueError("start_date must not be after end_date")
        limit = self._config.analytics.max_range_days
        if (end_date - start_date).days + 1 > limit:
            raise ValueError(f"Date range longer than {limit} days")

    async def compute_fuel_and_power_for_range(
        self,
        device_id: str,
        start_date: date,
        end_date: date,
    ) -> list[DailyMetrics]:
        """Compute each day in ``[start_date, end_date]``; days after today are omitted."""
        self.check_range(start_date, end_date)

        last = min(end_date, self.today())
        results: list[DailyMetrics] = []
        day = start_date
        while day <= last:
            results.append(await self.compute_day(device_id, day))
            day += timedelta(days=1)
        return results
