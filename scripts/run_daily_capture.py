"""Capture daily closing snapshots for one date or a backfill range."""

from __future__ import annotations

import argparse
import asyncio
from datetime import timedelta
from pathlib import Path

from fuel_monitor.analytics.service import DailyMetricsService
from fuel_monitor.capture.orchestrator import CaptureAbortedError, DailyCaptureOrchestrator
from fuel_monitor.clock import SystemClock
from fuel_monitor.config.manager import ConfigManager
from fuel_monitor.db.engine import close_db, init_db
from fuel_monitor.db.repository import Repository
from fuel_monitor.logging.structured import setup_logging
from fuel_monitor.timezone_utils import parse_date


def parse_args() -> argparse.Namespace:
    p = argparse.ArgumentParser(description=__doc__)
    p.add_argument("--config-defaults", default="config.defaults.yaml")
    p.add_argument("--config", default="config.yaml")
    p.add_argument("--db-path", default="", help="Override db.path from config")
    p.add_argument("--date", default="", help="YYYY-MM-DD or DD/MM/YYYY (default: today)")
    p.add_argument("--until", default="", help="Last date of a backfill range (inclusive)")
    return p.parse_args()


async def main_async(args: argparse.Namespace) -> int:
    mgr = ConfigManager(Path(args.config_defaults), Path(args.config))
    config = mgr.load()
    setup_logging(level=config.logging.level, fmt="console")

    db = await init_db(args.db_path or config.db.path)
    try:
        repo = Repository(db)
        clock = SystemClock()
        metrics = DailyMetricsService(repo, clock, config)
        orchestrator = DailyCaptureOrchestrator(repo, repo, metrics, clock, config)

        first = parse_date(args.date) if args.date else metrics.today()
        last = parse_date(args.until) if args.until else first
        if first > last:
            raise SystemExit("--date must not be after --until")

        failed = 0
        day = first
        while day <= last:
            try:
                report = await orchestrator.run_daily_capture(day, trigger="manual")
            except CaptureAbortedError as e:
                print(f"{day}: aborted ({e})")
                return 2
            failed += report.failed
            print(
                f"{day}: processed={report.processed} "
                f"skipped={report.skipped} failed={report.failed}"
            )
            day += timedelta(days=1)
        return 1 if failed else 0
    finally:
        await close_db()


def main() -> None:
    raise SystemExit(asyncio.run(main_async(parse_args())))


if __name__ == "__main__":
    main()
