"""Load raw sensor readings from a CSV export into the local database.

Expected columns: ``time`` (ISO-8601), ``device_id``, ``sensor_name``,
``value`` and optionally ``unit``. Naive timestamps are read in the site
timezone.
"""

from __future__ import annotations

import argparse
import asyncio
import csv
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from fuel_monitor.analytics.samples import SensorSample
from fuel_monitor.db.engine import close_db, init_db
from fuel_monitor.db.repository import Repository
from fuel_monitor.timezone_utils import resolve_timezone, to_utc


@dataclass
class ImportStats:
    rows: int = 0
    inserted: int = 0
    skipped: int = 0


def _parse_rows(path: Path, timezone_name: str, stats: ImportStats) -> list[SensorSample]:
    tz = resolve_timezone(timezone_name)
    samples: list[SensorSample] = []
    with path.open("r", newline="", encoding="utf-8-sig") as f:
        for row in csv.DictReader(f):
            stats.rows += 1
            try:
                ts = datetime.fromisoformat(row["time"])
                value = float(row["value"])
            except (KeyError, ValueError):
                stats.skipped += 1
                continue
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=tz)
            samples.append(SensorSample(
                device_id=row["device_id"],
                sensor_name=row["sensor_name"],
                timestamp=to_utc(ts),
                value=value,
                unit=row.get("unit") or "",
            ))
    return samples


async def main_async(args: argparse.Namespace) -> None:
    stats = ImportStats()
    samples = _parse_rows(Path(args.csv), args.timezone, stats)
    db = await init_db(args.db_path)
    try:
        stats.inserted = await Repository(db).store_samples(samples)
    finally:
        await close_db()
    print(f"rows={stats.rows} inserted={stats.inserted} skipped={stats.skipped}")


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Import sensor readings from CSV")
    p.add_argument("csv")
    p.add_argument("--db-path", default="fuel_monitor.db")
    p.add_argument("--timezone", default="Africa/Harare")
    return p.parse_args()


def main() -> None:
    asyncio.run(main_async(parse_args()))


if __name__ == "__main__":
    main()
