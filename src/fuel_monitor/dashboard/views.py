"""Dashboard view assembly: latest readings per site and derived status."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from fuel_monitor.analytics.samples import (
    CHANNEL_SENSORS,
    FUEL_LEVEL,
    FUEL_TEMPERATURE,
    FUEL_TEMPERATURE_ALIAS,
    FUEL_VOLUME,
    SensorSample,
    format_state,
    is_online,
)
from fuel_monitor.clock import Clock
from fuel_monitor.db.base import DailySnapshot, Site
from fuel_monitor.db.repository import Repository

logger = logging.getLogger(__name__)

VIEW_CLOSING = "closing"
VIEW_REALTIME = "realtime"
VIEW_MODES = (VIEW_CLOSING, VIEW_REALTIME)

_FUEL_SENSORS = (FUEL_LEVEL, FUEL_VOLUME, FUEL_TEMPERATURE, FUEL_TEMPERATURE_ALIAS)


class AlertStatus(str, Enum):
    NORMAL = "normal"
    LOW_FUEL = "low_fuel"
    GENERATOR_OFF = "generator_off"


_EVENT_LABELS = {
    AlertStatus.LOW_FUEL: ("Low Fuel Alert", "Low Fuel"),
    AlertStatus.GENERATOR_OFF: ("Generator Offline", "Offline"),
    AlertStatus.NORMAL: ("Normal Reading", "Normal"),
}


@dataclass(frozen=True)
class SiteReading:
    """The reading a site is displayed with, from a snapshot or live samples."""

    captured_at: datetime
    fuel_level: float | None
    fuel_volume: float | None
    temperature: float | None
    generator_state: str
    zesa_state: str
    source: str = VIEW_CLOSING

    @classmethod
    def from_snapshot(cls, snapshot: DailySnapshot) -> SiteReading:
        return cls(
            captured_at=snapshot.captured_at,
            fuel_level=snapshot.fuel_level,
            fuel_volume=snapshot.fuel_volume,
            temperature=snapshot.temperature,
            generator_state=snapshot.generator_state,
            zesa_state=snapshot.zesa_state,
            source=VIEW_CLOSING,
        )

    def to_dict(self) -> dict:
        return {
            "captured_at": self.captured_at.isoformat(),
            "fuel_level": self.fuel_level,
            "fuel_volume": self.fuel_volume,
            "temperature": self.temperature,
            "generator_state": self.generator_state,
            "zesa_state": self.zesa_state,
            "source": self.source,
        }


@dataclass(frozen=True)
class SiteStatus:
    site: Site
    reading: SiteReading
    fuel_level_percentage: float
    generator_online: bool
    zesa_online: bool
    alert_status: AlertStatus

    @property
    def reports_fuel(self) -> bool:
        """False for a site reading an empty tank with no volume, which is treated as offline."""
        volume = self.reading.fuel_volume or 0.0
        return not (self.fuel_level_percentage == 0 and volume <= 0)

    def to_dict(self) -> dict:
        return {
            "id": self.site.id,
            "name": self.site.name,
            "location": self.site.location,
            "device_id": self.site.device_id,
            "fuel_capacity_l": self.site.fuel_capacity_l,
            "low_fuel_threshold_pct": self.site.low_fuel_threshold_pct,
            "latest_reading": self.reading.to_dict(),
            "fuel_level_percentage": self.fuel_level_percentage,
            "generator_online": self.generator_online,
            "zesa_online": self.zesa_online,
            "alert_status": self.alert_status.value,
        }


def fuel_level_percentage(level: float | None) -> float:
    if level is None:
        return 0.0
    return max(0.0, min(100.0, float(level)))


def alert_status(percentage: float, threshold: float, generator_online: bool) -> AlertStatus:
    if percentage < threshold:
        return AlertStatus.LOW_FUEL
    if not generator_online and percentage > 0:
        return AlertStatus.GENERATOR_OFF
    return AlertStatus.NORMAL


def derive_status(site: Site, reading: SiteReading) -> SiteStatus:
    percentage = fuel_level_percentage(reading.fuel_level)
    generator_online = is_online(reading.generator_state)
    return SiteStatus(
        site=site,
        reading=reading,
        fuel_level_percentage=percentage,
        generator_online=generator_online,
        zesa_online=is_online(reading.zesa_state),
        alert_status=alert_status(percentage, site.low_fuel_threshold_pct, generator_online),
    )


def build_system_status(statuses: list[SiteStatus], total_sites: int) -> dict[str, int]:
    sites_online = sum(1 for s in statuses if s.reports_fuel)
    return {
        "sites_online": sites_online,
        "total_sites": total_sites,
        "low_fuel_alerts": sum(1 for s in statuses if s.alert_status is AlertStatus.LOW_FUEL),
        "generators_running": sum(1 for s in statuses if s.generator_online),
        "zesa_running": sum(1 for s in statuses if s.zesa_online),
        "offline_sites": total_sites - sites_online,
    }


def build_recent_activity(statuses: list[SiteStatus], limit: int = 10) -> list[dict]:
    """Activity feed entries, newest reading first."""
    newest = sorted(statuses, key=lambda s: s.reading.captured_at, reverse=True)[:limit]
    activity = []
    for index, status in enumerate(newest, start=1):
        event, label = _EVENT_LABELS[status.alert_status]
        volume = status.reading.fuel_volume or 0.0
        activity.append({
            "id": index,
            "site_id": status.site.id,
            "site_name": status.site.name,
            "event": event,
            "value": f"{status.fuel_level_percentage:.1f}% ({volume:g}L)",
            "timestamp": status.reading.captured_at.isoformat(),
            "status": label,
        })
    return activity


class DashboardViewAssembler:
    """Reads the latest reading for each site in closing or realtime mode."""

    def __init__(self, repo: Repository, clock: Clock, recent_activity_limit: int = 10) -> None:
        self._repo = repo
        self._clock = clock
        self._activity_limit = recent_activity_limit

    async def latest_by_closing(self, site: Site) -> SiteReading | None:
        snapshot = await self._repo.get_latest_snapshot_for_site(site.id)
        return SiteReading.from_snapshot(snapshot) if snapshot else None

    async def latest_by_realtime(self, site: Site) -> SiteReading | None:
        """Latest sample on every channel, stamped with the newest fuel-sensor report."""
        readings: dict[str, SensorSample | None] = {}
        for channel, sensor_names in CHANNEL_SENSORS.items():
            sample = None
            for name in sensor_names:
                sample = await self._repo.latest(site.device_id, name)
                if sample is not None:
                    break
            readings[channel] = sample

        present = [s for s in readings.values() if s is not None]
        if not present:
            return None

        fuel_times = [s.timestamp for s in present if s.sensor_name in _FUEL_SENSORS]
        captured_at = max(fuel_times) if fuel_times else self._clock.now()

        def value(channel: str) -> float | None:
            sample = readings[channel]
            return sample.value if sample is not None else None

        return SiteReading(
            captured_at=captured_at,
            fuel_level=value("fuel_level") or 0.0,
            fuel_volume=value("fuel_volume") or 0.0,
            temperature=value("temperature"),
            generator_state=format_state(value("generator_state")),
            zesa_state=format_state(value("zesa_state")),
            source=VIEW_REALTIME,
        )

    async def build_dashboard(self, view_mode: str = VIEW_CLOSING, privileged: bool = False) -> dict:
        """Assemble sites, system status and recent activity.

        Realtime mode is honoured only for privileged callers; everyone else
        sees closing snapshots.
        """
        effective = VIEW_REALTIME if view_mode == VIEW_REALTIME and privileged else VIEW_CLOSING
        sites = await self._repo.list_sites(active_only=True)

        statuses: list[SiteStatus] = []
        for site in sites:
            if effective == VIEW_REALTIME:
                reading = await self.latest_by_realtime(site)
            else:
                reading = await self.latest_by_closing(site)
            if reading is None:
                logger.debug("No %s reading for site %s", effective, site.device_id)
                continue
            statuses.append(derive_status(site, reading))

        statuses.sort(key=lambda s: s.fuel_level_percentage, reverse=True)
        return {
            "view_mode": effective,
            "sites": [s.to_dict() for s in statuses],
            "system_status": build_system_status(statuses, len(sites)),
            "recent_activity": build_recent_activity(statuses, self._activity_limit),
        }
