"""Daily closing-snapshot capture across all reporting devices.

Each (device, calendar day) moves from not-captured to captured exactly once.
Re-running a day is a no-op for devices already captured, so scheduled and
manual triggers may overlap freely.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from fuel_monitor.analytics.samples import CHANNEL_SENSORS, SensorSample, format_state
from fuel_monitor.analytics.service import DailyMetricsService
from fuel_monitor.clock import Clock
from fuel_monitor.config.schema import AppConfig
from fuel_monitor.db.base import DailySnapshot, SampleStore, SnapshotStore
from fuel_monitor.logging.context import log_context
from fuel_monitor.resilience.health_check import SAMPLE_STORE, HealthChecker, device_component
from fuel_monitor.timezone_utils import parse_hhmm, to_utc

logger = logging.getLogger(__name__)


class CaptureAbortedError(Exception):
    """The device list could not be obtained, so no device was attempted."""


class NoSampleDataError(Exception):
    """A device has no samples on any channel as of the snapshot boundary."""


class CaptureStatus(str, Enum):
    PROCESSED = "processed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass
class DeviceOutcome:
    device_id: str
    status: CaptureStatus
    reason: str = ""
    snapshot: DailySnapshot | None = None

    def to_dict(self) -> dict:
        return {"device_id": self.device_id, "status": self.status.value, "reason": self.reason}


@dataclass
class CaptureReport:
    """Result of one orchestrator run."""

    run_id: str
    target_day: date
    trigger: str
    captured_at: datetime
    outcomes: list[DeviceOutcome] = field(default_factory=list)

    def _count(self, status: CaptureStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def processed(self) -> int:
        return self._count(CaptureStatus.PROCESSED)

    @property
    def skipped(self) -> int:
        return self._count(CaptureStatus.SKIPPED)

    @property
    def failed(self) -> int:
        return self._count(CaptureStatus.FAILED)

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "target_day": self.target_day.isoformat(),
            "trigger": self.trigger,
            "captured_at": self.captured_at.isoformat(),
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "devices": [o.to_dict() for o in self.outcomes],
        }


class DailyCaptureOrchestrator:
    """Captures one immutable snapshot per device per day."""

    def __init__(
        self,
        sample_store: SampleStore,
        snapshot_store: SnapshotStore,
        metrics: DailyMetricsService,
        clock: Clock,
        config: AppConfig,
        health: HealthChecker | None = None,
    ) -> None:
        self._samples = sample_store
        self._snapshots = snapshot_store
        self._metrics = metrics
        self._clock = clock
        self._config = config
        self._health = health or HealthChecker(config.resilience.max_consecutive_failures)
        self._capture_time = parse_hhmm(config.capture.capture_time)

    @property
    def health(self) -> HealthChecker:
        return self._health

    def snapshot_boundary(self, target_day: date) -> datetime:
        """Configured capture time on ``target_day``, or now if that is earlier."""
        scheduled = to_utc(datetime.combine(target_day, self._capture_time, tzinfo=self._metrics.tz))
        return min(scheduled, self._clock.now())

    async def run_daily_capture(
        self,
        target_date: date | None = None,
        trigger: str = "scheduled",
    ) -> CaptureReport:
        """Capture ``target_date`` (default: today) for every known device.

        Raises CaptureAbortedError only when the device list is unavailable.
        Per-device errors are logged and counted as failed.
        """
        target_day = target_date or self._metrics.today()
        if target_day > self._metrics.today():
            raise ValueError(f"Cannot capture future date {target_day.isoformat()}")

        run_id = uuid.uuid4().hex[:12]
        boundary = self.snapshot_boundary(target_day)
        report = CaptureReport(
            run_id=run_id, target_day=target_day, trigger=trigger, captured_at=boundary,
        )

        with log_context(run_id=run_id, target_day=target_day.isoformat()):
            try:
                devices = await self._samples.list_devices()
            except Exception as e:
                self._health.record_failure(SAMPLE_STORE, str(e))
                logger.error("Capture aborted, device list unavailable: %s", e)
                raise CaptureAbortedError(str(e)) from e
            self._health.record_success(SAMPLE_STORE)

            prefix = self._config.sites.device_prefix
            if prefix:
                devices = [d for d in devices if d.startswith(prefix)]

            logger.info(
                "Capture run starting: %d devices for %s (%s)",
                len(devices), target_day, trigger,
            )
            semaphore = asyncio.Semaphore(self._config.capture.max_concurrency)
            report.outcomes = list(await asyncio.gather(*(
                self._capture_device(device_id, target_day, boundary, semaphore)
                for device_id in devices
            )))

            logger.info(
                "Capture run complete: processed=%d skipped=%d failed=%d",
                report.processed, report.skipped, report.failed,
            )
            await self._snapshots.log_capture_run(
                run_id, target_day, trigger,
                report.processed, report.skipped, report.failed,
                [o.to_dict() for o in report.outcomes],
            )
        return report

    async def _capture_device(
        self,
        device_id: str,
        target_day: date,
        boundary: datetime,
        semaphore: asyncio.Semaphore,
    ) -> DeviceOutcome:
        async with semaphore:
            with log_context(device_id=device_id):
                try:
                    outcome = await self._capture_one(device_id, target_day, boundary)
                except Exception as e:
                    logger.exception("Capture failed for %s", device_id)
                    self._health.record_failure(device_component(device_id), str(e))
                    return DeviceOutcome(device_id, CaptureStatus.FAILED, reason=str(e))
                self._health.record_success(device_component(device_id))
                return outcome

    async def _capture_one(
        self,
        device_id: str,
        target_day: date,
        boundary: datetime,
    ) -> DeviceOutcome:
        site = await self._snapshots.ensure_site(
            device_id,
            self._config.sites.default_fuel_capacity_l,
            self._config.sites.default_low_fuel_threshold_pct,
        )
        if not site.is_active:
            return DeviceOutcome(device_id, CaptureStatus.SKIPPED, reason="site inactive")

        if await self._snapshots.snapshot_exists(device_id, target_day):
            logger.debug("Snapshot already exists for %s", device_id)
            return DeviceOutcome(device_id, CaptureStatus.SKIPPED, reason="already captured")

        readings = await self._read_channels(device_id, boundary)
        if all(sample is None for sample in readings.values()):
            raise NoSampleDataError(f"No sample data for {device_id}")

        metrics = await self._metrics.compute_day(device_id, target_day, until=boundary)
        snapshot = DailySnapshot(
            site_id=site.id,
            device_id=device_id,
            capture_day=target_day,
            captured_at=boundary,
            fuel_level=_value(readings["fuel_level"]),
            fuel_volume=_value(readings["fuel_volume"]),
            temperature=_value(readings["temperature"]),
            generator_state=format_state(_value(readings["generator_state"])),
            zesa_state=format_state(_value(readings["zesa_state"])),
            fuel_consumed_l=metrics.fuel.consumed_volume,
            fuel_topped_l=metrics.fuel.topped_volume,
            fuel_consumed_pct=metrics.fuel.consumed_percent,
            fuel_topped_pct=metrics.fuel.topped_percent,
            generator_hours=metrics.power.generator_hours,
            grid_hours=metrics.power.grid_hours,
            offline_hours=metrics.power.offline_hours,
        )

        if not await self._snapshots.insert_snapshot_if_absent(snapshot):
            # A concurrent run got there first
            return DeviceOutcome(device_id, CaptureStatus.SKIPPED, reason="already captured")

        logger.info(
            "Captured %s: level=%s volume=%s generator=%.2fh grid=%.2fh offline=%.2fh",
            device_id, snapshot.fuel_level, snapshot.fuel_volume,
            snapshot.generator_hours, snapshot.grid_hours, snapshot.offline_hours,
        )
        return DeviceOutcome(device_id, CaptureStatus.PROCESSED, snapshot=snapshot)

    async def _read_channels(
        self,
        device_id: str,
        as_of: datetime,
    ) -> dict[str, SensorSample | None]:
        """Latest sample per channel at the boundary; each channel may be absent."""
        readings: dict[str, SensorSample | None] = {}
        for channel, sensor_names in CHANNEL_SENSORS.items():
            sample = None
            for name in sensor_names:
                sample = await self._samples.latest(device_id, name, as_of)
                if sample is not None:
                    break
            readings[channel] = sample
        return readings


def _value(sample: SensorSample | None) -> float | None:
    return sample.value if sample is not None else None
