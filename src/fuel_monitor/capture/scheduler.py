"""Fires the daily capture at the configured site-local time."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from fuel_monitor.capture.orchestrator import (
    CaptureAbortedError,
    CaptureReport,
    DailyCaptureOrchestrator,
)
from fuel_monitor.clock import Clock
from fuel_monitor.config.schema import CaptureConfig
from fuel_monitor.timezone_utils import parse_hhmm, resolve_timezone, to_utc

logger = logging.getLogger(__name__)


@dataclass
class SchedulerState:
    is_running: bool = False
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None
    last_report: CaptureReport | None = None
    last_error: str = ""


class CaptureScheduler:
    """Start/stop service running the orchestrator once per local day."""

    def __init__(
        self,
        orchestrator: DailyCaptureOrchestrator,
        clock: Clock,
        config: CaptureConfig,
    ) -> None:
        self._orchestrator = orchestrator
        self._clock = clock
        self._config = config
        self._tz = resolve_timezone(config.timezone)
        self._capture_time = parse_hhmm(config.capture_time)
        self._state = SchedulerState()
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def state(self) -> SchedulerState:
        return self._state

    def next_run_at(self, now: datetime) -> datetime:
        """Next capture instant strictly after ``now`` (aware UTC)."""
        local_now = to_utc(now).astimezone(self._tz)
        candidate = datetime.combine(local_now.date(), self._capture_time, tzinfo=self._tz)
        if candidate <= local_now:
            candidate = datetime.combine(
                local_now.date() + timedelta(days=1), self._capture_time, tzinfo=self._tz,
            )
        return to_utc(candidate)

    async def start(self) -> None:
        if self._task is not None and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def run(self) -> None:
        """Run until stopped."""
        self._state.is_running = True
        logger.info(
            "Capture scheduler starting (daily at %s %s)",
            self._config.capture_time, self._config.timezone,
        )
        try:
            if self._config.run_on_startup:
                await self._guarded_capture(None, "startup")

            while not self._stop_event.is_set():
                run_at = self.next_run_at(self._clock.now())
                self._state.next_run_at = run_at
                delay = max((run_at - self._clock.now()).total_seconds(), 0.0)
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
                    break  # stop_event was set
                except asyncio.TimeoutError:
                    pass

                await self._guarded_capture(run_at.astimezone(self._tz).date(), "scheduled")
        finally:
            self._state.is_running = False
            self._state.next_run_at = None
            logger.info("Capture scheduler stopped")

    async def _guarded_capture(self, target_date: date | None, trigger: str) -> None:
        """One loop iteration; unexpected errors are logged and the loop keeps going."""
        try:
            await self.trigger_now(target_date, trigger=trigger)
        except Exception as e:
            self._state.last_error = f"{type(e).__name__}: {e}"
            logger.exception("Capture (%s) failed", trigger)

    async def trigger_now(
        self,
        target_date: date | None = None,
        trigger: str = "manual",
    ) -> CaptureReport | None:
        """Run one capture; an aborted run is logged and reported as None."""
        self._state.last_run_at = self._clock.now()
        try:
            report = await self._orchestrator.run_daily_capture(target_date, trigger=trigger)
        except CaptureAbortedError as e:
            self._state.last_error = str(e)
            logger.error("Scheduled capture aborted: %s", e)
            return None
        self._state.last_report = report
        self._state.last_error = ""
        return report
