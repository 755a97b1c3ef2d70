"""Shared test fixtures for Fuel Monitor."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import AsyncGenerator

import aiosqlite
import pytest
import pytest_asyncio

from fuel_monitor.clock import FixedClock
from fuel_monitor.config.manager import ConfigManager
from fuel_monitor.config.schema import AppConfig
from fuel_monitor.db.engine import close_db, init_db
from fuel_monitor.db.repository import Repository
from fuel_monitor.timezone_utils import resolve_timezone, to_utc

SITE_TZ = resolve_timezone("Africa/Harare")
DAY = date(2025, 6, 10)


def local_time(day: date, hour: int, minute: int = 0) -> datetime:
    """UTC instant for a wall-clock time on ``day`` in the site timezone."""
    return to_utc(datetime.combine(day, time(hour, minute), tzinfo=SITE_TZ))


@pytest.fixture
def config() -> AppConfig:
    """Provide a default test configuration."""
    return AppConfig()


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    """Provide a config manager with test paths."""
    defaults = tmp_path / "config.defaults.yaml"
    defaults.write_text("db:\n  path: ':memory:'\n")
    user = tmp_path / "config.yaml"
    mgr = ConfigManager(defaults_path=defaults, user_path=user)
    mgr.load()
    return mgr


@pytest.fixture
def clock() -> FixedClock:
    """Clock frozen on the day after DAY, so DAY is a completed historical day."""
    return FixedClock(local_time(DAY + timedelta(days=1), 12))


@pytest_asyncio.fixture
async def db(tmp_path: Path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """Provide a fresh on-disk database for each test."""
    conn = await init_db(tmp_path / "test.db")
    yield conn
    await close_db()


@pytest_asyncio.fixture
async def repo(db: aiosqlite.Connection) -> Repository:
    """Provide a repository with a fresh database."""
    return Repository(db)


@pytest.fixture
def add_sample(repo: Repository) -> Callable[..., Awaitable[int]]:
    """Insert one raw reading at a local wall-clock time on a given day."""

    async def _add(
        device_id: str,
        sensor_name: str,
        value: float,
        hour: int,
        minute: int = 0,
        day: date = DAY,
    ) -> int:
        return await repo.store_sample(device_id, sensor_name, value, local_time(day, hour, minute))

    return _add


@pytest.fixture
def at() -> Callable[..., datetime]:
    """``at(hour, minute=0, day=DAY)`` -> UTC instant in the site timezone."""

    def _at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
        return local_time(day, hour, minute)

    return _at
