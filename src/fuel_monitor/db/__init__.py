"""Database engine and repository for Fuel Monitor."""

from fuel_monitor.db.base import DailySnapshot, SampleStore, SampleStoreError, Site, SnapshotStore
from fuel_monitor.db.engine import close_db, get_db, init_db
from fuel_monitor.db.repository import Repository

__all__ = [
    "DailySnapshot",
    "Repository",
    "SampleStore",
    "SampleStoreError",
    "Site",
    "SnapshotStore",
    "close_db",
    "get_db",
    "init_db",
]
