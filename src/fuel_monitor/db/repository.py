"""Data access layer for all database operations."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import date, datetime, timezone
from typing import Any

import aiosqlite

from fuel_monitor.analytics.samples import SensorSample
from fuel_monitor.db.base import DailySnapshot, SampleStore, SampleStoreError, Site, SnapshotStore
from fuel_monitor.timezone_utils import parse_iso, to_utc_iso

logger = logging.getLogger(__name__)


def _now() -> str:
    return to_utc_iso(datetime.now(timezone.utc))


def _sample_from_row(row: aiosqlite.Row) -> SensorSample:
    return SensorSample(
        device_id=row["device_id"],
        sensor_name=row["sensor_name"],
        timestamp=parse_iso(row["time"]),
        value=float(row["value"]),
        unit=row["unit"],
    )


def _site_from_row(row: aiosqlite.Row) -> Site:
    return Site(
        id=row["id"],
        name=row["name"],
        device_id=row["device_id"],
        location=row["location"],
        fuel_capacity_l=row["fuel_capacity_l"],
        low_fuel_threshold_pct=row["low_fuel_threshold_pct"],
        is_active=bool(row["is_active"]),
        created_at=parse_iso(row["created_at"]),
    )


def _snapshot_from_row(row: aiosqlite.Row) -> DailySnapshot:
    return DailySnapshot(
        id=row["id"],
        site_id=row["site_id"],
        device_id=row["device_id"],
        capture_day=date.fromisoformat(row["capture_day"]),
        captured_at=parse_iso(row["captured_at"]),
        created_at=parse_iso(row["created_at"]),
        fuel_level=row["fuel_level"],
        fuel_volume=row["fuel_volume"],
        temperature=row["temperature"],
        generator_state=row["generator_state"],
        zesa_state=row["zesa_state"],
        fuel_consumed_l=row["fuel_consumed_l"],
        fuel_topped_l=row["fuel_topped_l"],
        fuel_consumed_pct=row["fuel_consumed_pct"],
        fuel_topped_pct=row["fuel_topped_pct"],
        generator_hours=row["generator_hours"],
        grid_hours=row["grid_hours"],
        offline_hours=row["offline_hours"],
    )


def site_name_for_device(device_id: str) -> str:
    """Display name for an auto-registered site, e.g. ``simbisa-abc`` -> ``ABC Site``."""
    short = device_id.split("-", 1)[1] if "-" in device_id else device_id
    return f"{short.upper()} Site"


class Repository(SampleStore, SnapshotStore):
    """Centralised data access for all tables."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self.db = db

    # ── Sensor samples ──────────────────────────────────────

    async def store_sample(
        self,
        device_id: str,
        sensor_name: str,
        value: float,
        recorded_at: datetime,
        unit: str = "",
    ) -> int:
        async with self.db.execute(
            """INSERT INTO sensor_readings (time, device_id, sensor_name, value, unit)
               VALUES (?, ?, ?, ?, ?)""",
            (to_utc_iso(recorded_at), device_id, sensor_name, value, unit),
        ) as cursor:
            row_id = cursor.lastrowid
        await self.db.commit()
        return row_id  # type: ignore[return-value]

    async def store_samples(self, samples: Iterable[SensorSample]) -> int:
        rows = [
            (to_utc_iso(s.timestamp), s.device_id, s.sensor_name, s.value, s.unit)
            for s in samples
        ]
        await self.db.executemany(
            """INSERT INTO sensor_readings (time, device_id, sensor_name, value, unit)
               VALUES (?, ?, ?, ?, ?)""",
            rows,
        )
        await self.db.commit()
        return len(rows)

    async def list_devices(self) -> list[str]:
        try:
            async with self.db.execute(
                "SELECT DISTINCT device_id FROM sensor_readings ORDER BY device_id"
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise SampleStoreError(f"Listing devices failed: {e}") from e
        return [r["device_id"] for r in rows]

    async def query(
        self,
        device_id: str,
        sensor_name: str,
        from_time: datetime,
        to_time: datetime,
    ) -> list[SensorSample]:
        try:
            async with self.db.execute(
                """SELECT * FROM sensor_readings
                   WHERE device_id = ? AND sensor_name = ? AND time >= ? AND time <= ?
                   ORDER BY time ASC, id ASC""",
                (device_id, sensor_name, to_utc_iso(from_time), to_utc_iso(to_time)),
            ) as cursor:
                rows = await cursor.fetchall()
        except aiosqlite.Error as e:
            raise SampleStoreError(f"Query {device_id}/{sensor_name} failed: {e}") from e
        return [_sample_from_row(r) for r in rows]

    async def query_before(
        self,
        device_id: str,
        sensor_name: str,
        before_time: datetime,
    ) -> SensorSample | None:
        return await self._latest_where(
            device_id, sensor_name, "time < ?", (to_utc_iso(before_time),),
        )

    async def latest(
        self,
        device_id: str,
        sensor_name: str,
        as_of: datetime | None = None,
    ) -> SensorSample | None:
        if as_of is None:
            return await self._latest_where(device_id, sensor_name, "1 = 1", ())
        return await self._latest_where(
            device_id, sensor_name, "time <= ?", (to_utc_iso(as_of),),
        )

    async def _latest_where(
        self,
        device_id: str,
        sensor_name: str,
        clause: str,
        params: tuple[Any, ...],
    ) -> SensorSample | None:
        try:
            async with self.db.execute(
                f"""SELECT * FROM sensor_readings
                    WHERE device_id = ? AND sensor_name = ? AND {clause}
                    ORDER BY time DESC, id DESC LIMIT 1""",
                (device_id, sensor_name, *params),
            ) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise SampleStoreError(f"Lookup {device_id}/{sensor_name} failed: {e}") from e
        return _sample_from_row(row) if row else None

    # ── Sites ───────────────────────────────────────────────

    async def get_site(self, site_id: int) -> Site | None:
        async with self.db.execute("SELECT * FROM sites WHERE id = ?", (site_id,)) as cursor:
            row = await cursor.fetchone()
            return _site_from_row(row) if row else None

    async def get_site_by_device(self, device_id: str) -> Site | None:
        async with self.db.execute(
            "SELECT * FROM sites WHERE device_id = ?", (device_id,)
        ) as cursor:
            row = await cursor.fetchone()
            return _site_from_row(row) if row else None

    async def ensure_site(
        self,
        device_id: str,
        fuel_capacity_l: float,
        low_fuel_threshold_pct: float,
    ) -> Site:
        short = site_name_for_device(device_id).removesuffix(" Site")
        async with self.db.execute(
            """INSERT OR IGNORE INTO sites
               (name, location, device_id, fuel_capacity_l, low_fuel_threshold_pct,
                is_active, created_at)
               VALUES (?, ?, ?, ?, ?, 1, ?)""",
            (
                site_name_for_device(device_id), f"{short} Location", device_id,
                fuel_capacity_l, low_fuel_threshold_pct, _now(),
            ),
        ) as cursor:
            created = cursor.rowcount == 1
        await self.db.commit()
        if created:
            logger.info("Registered new site for device %s", device_id)
        site = await self.get_site_by_device(device_id)
        assert site is not None
        return site

    async def list_sites(self, active_only: bool = True) -> list[Site]:
        sql = "SELECT * FROM sites"
        if active_only:
            sql += " WHERE is_active = 1"
        sql += " ORDER BY name"
        async with self.db.execute(sql) as cursor:
            rows = await cursor.fetchall()
            return [_site_from_row(r) for r in rows]

    async def set_site_active(self, site_id: int, is_active: bool) -> None:
        await self.db.execute(
            "UPDATE sites SET is_active = ? WHERE id = ?", (1 if is_active else 0, site_id)
        )
        await self.db.commit()

    # ── Daily snapshots ─────────────────────────────────────

    async def snapshot_exists(self, device_id: str, day: date) -> bool:
        async with self.db.execute(
            "SELECT 1 FROM daily_snapshots WHERE device_id = ? AND capture_day = ? LIMIT 1",
            (device_id, day.isoformat()),
        ) as cursor:
            return await cursor.fetchone() is not None

    async def insert_snapshot_if_absent(self, snapshot: DailySnapshot) -> bool:
        async with self.db.execute(
            """INSERT OR IGNORE INTO daily_snapshots
               (site_id, device_id, capture_day, fuel_level, fuel_volume, temperature,
                generator_state, zesa_state, fuel_consumed_l, fuel_topped_l,
                fuel_consumed_pct, fuel_topped_pct, generator_hours, grid_hours,
                offline_hours, captured_at, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                snapshot.site_id, snapshot.device_id, snapshot.capture_day.isoformat(),
                snapshot.fuel_level, snapshot.fuel_volume, snapshot.temperature,
                snapshot.generator_state, snapshot.zesa_state,
                snapshot.fuel_consumed_l, snapshot.fuel_topped_l,
                snapshot.fuel_consumed_pct, snapshot.fuel_topped_pct,
                snapshot.generator_hours, snapshot.grid_hours, snapshot.offline_hours,
                to_utc_iso(snapshot.captured_at), to_utc_iso(snapshot.created_at),
            ),
        ) as cursor:
            inserted = cursor.rowcount == 1
            if inserted:
                snapshot.id = cursor.lastrowid
        await self.db.commit()
        return inserted

    async def get_snapshot(self, device_id: str, day: date) -> DailySnapshot | None:
        async with self.db.execute(
            "SELECT * FROM daily_snapshots WHERE device_id = ? AND capture_day = ?",
            (device_id, day.isoformat()),
        ) as cursor:
            row = await cursor.fetchone()
            return _snapshot_from_row(row) if row else None

    async def get_latest_snapshot_for_site(self, site_id: int) -> DailySnapshot | None:
        async with self.db.execute(
            """SELECT * FROM daily_snapshots WHERE site_id = ?
               ORDER BY captured_at DESC LIMIT 1""",
            (site_id,),
        ) as cursor:
            row = await cursor.fetchone()
            return _snapshot_from_row(row) if row else None

    async def get_snapshots_for_day(self, day: date) -> list[DailySnapshot]:
        async with self.db.execute(
            "SELECT * FROM daily_snapshots WHERE capture_day = ? ORDER BY device_id",
            (day.isoformat(),),
        ) as cursor:
            rows = await cursor.fetchall()
            return [_snapshot_from_row(r) for r in rows]

    async def count_snapshots(self, device_id: str | None = None) -> int:
        sql = "SELECT COUNT(*) FROM daily_snapshots"
        params: tuple[Any, ...] = ()
        if device_id is not None:
            sql += " WHERE device_id = ?"
            params = (device_id,)
        async with self.db.execute(sql, params) as cursor:
            row = await cursor.fetchone()
            return row[0]  # type: ignore[index]

    # ── Capture runs ────────────────────────────────────────

    async def log_capture_run(
        self,
        run_id: str,
        target_day: date,
        trigger: str,
        processed: int,
        skipped: int,
        failed: int,
        details: list[dict[str, Any]],
    ) -> int:
        async with self.db.execute(
            """INSERT INTO capture_runs
               (run_id, run_at, target_day, trigger, processed, skipped, failed, details_json)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                run_id, _now(), target_day.isoformat(), trigger,
                processed, skipped, failed, json.dumps(details),
            ),
        ) as cursor:
            row_id = cursor.lastrowid
        await self.db.commit()
        return row_id  # type: ignore[return-value]

    async def get_recent_capture_runs(self, limit: int = 20) -> list[dict[str, Any]]:
        async with self.db.execute(
            "SELECT * FROM capture_runs ORDER BY id DESC LIMIT ?", (limit,)
        ) as cursor:
            rows = await cursor.fetchall()
        runs = []
        for r in rows:
            run = dict(r)
            run["details"] = json.loads(run.pop("details_json"))
            runs.append(run)
        return runs

    # ── Admin preferences ───────────────────────────────────

    async def get_view_mode(self, username: str) -> str | None:
        async with self.db.execute(
            "SELECT view_mode FROM admin_preferences WHERE username = ?", (username,)
        ) as cursor:
            row = await cursor.fetchone()
            return row["view_mode"] if row else None

    async def set_view_mode(self, username: str, view_mode: str) -> None:
        await self.db.execute(
            """INSERT INTO admin_preferences (username, view_mode, updated_at)
               VALUES (?, ?, ?)
               ON CONFLICT(username) DO UPDATE
               SET view_mode = excluded.view_mode, updated_at = excluded.updated_at""",
            (username, view_mode, _now()),
        )
        await self.db.commit()
