"""Domain records and the storage interfaces the engine depends on.

The analytics and capture code only see these abstract stores; the SQLite
``Repository`` is one implementation and tests may supply in-memory ones.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from fuel_monitor.analytics.samples import SensorSample


class SampleStoreError(Exception):
    """The sample store could not be queried."""


@dataclass
class Site:
    """A monitored site; one-to-one with a sensor device."""

    id: int
    name: str
    device_id: str
    location: str = ""
    fuel_capacity_l: float = 2000.0
    low_fuel_threshold_pct: float = 25.0
    is_active: bool = True
    created_at: datetime | None = None


@dataclass
class DailySnapshot:
    """The closing record for one device on one calendar day. Never updated."""

    site_id: int
    device_id: str
    capture_day: date
    captured_at: datetime
    fuel_level: float | None = None
    fuel_volume: float | None = None
    temperature: float | None = None
    generator_state: str = "unknown"
    zesa_state: str = "unknown"
    # Day totals folded in at capture time
    fuel_consumed_l: float = 0.0
    fuel_topped_l: float = 0.0
    fuel_consumed_pct: float = 0.0
    fuel_topped_pct: float = 0.0
    generator_hours: float = 0.0
    grid_hours: float = 0.0
    offline_hours: float = 0.0
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: int | None = None


class SampleStore(ABC):
    """Read-only access to the raw sensor-sample log."""

    @abstractmethod
    async def list_devices(self) -> list[str]:
        """Distinct device ids that have reported at least one sample."""

    @abstractmethod
    async def query(
        self,
        device_id: str,
        sensor_name: str,
        from_time: datetime,
        to_time: datetime,
    ) -> list[SensorSample]:
        """Samples with ``from_time <= t <= to_time``, ascending by time."""

    @abstractmethod
    async def query_before(
        self,
        device_id: str,
        sensor_name: str,
        before_time: datetime,
    ) -> SensorSample | None:
        """Most recent sample strictly before ``before_time``."""

    @abstractmethod
    async def latest(
        self,
        device_id: str,
        sensor_name: str,
        as_of: datetime | None = None,
    ) -> SensorSample | None:
        """Most recent sample at or before ``as_of`` (or overall when None)."""


class SnapshotStore(ABC):
    """Persistence for sites and immutable daily snapshots."""

    @abstractmethod
    async def get_site_by_device(self, device_id: str) -> Site | None:
        ...

    @abstractmethod
    async def ensure_site(
        self,
        device_id: str,
        fuel_capacity_l: float,
        low_fuel_threshold_pct: float,
    ) -> Site:
        """Return the device's site, registering it with defaults if absent."""

    @abstractmethod
    async def snapshot_exists(self, device_id: str, day: date) -> bool:
        ...

    @abstractmethod
    async def insert_snapshot_if_absent(self, snapshot: DailySnapshot) -> bool:
        """Atomic create-if-absent on (device_id, capture_day). True if inserted."""

    async def log_capture_run(
        self,
        run_id: str,
        target_day: date,
        trigger: str,
        processed: int,
        skipped: int,
        failed: int,
        details: list[dict],
    ) -> int | None:
        """Record an orchestrator run. Stores without a run log ignore it."""
        return None
