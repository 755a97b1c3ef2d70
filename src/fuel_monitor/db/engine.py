"""SQLite database engine with WAL mode for concurrent reads."""

from __future__ import annotations

import logging
from pathlib import Path

import aiosqlite

from fuel_monitor.db.migrations import run_migrations

logger = logging.getLogger(__name__)

_db: aiosqlite.Connection | None = None


async def _check_integrity(db: aiosqlite.Connection) -> bool:
    """Run PRAGMA quick_check and return True if the database is healthy."""
    async with db.execute("PRAGMA quick_check") as cursor:
        rows = await cursor.fetchall()
    if len(rows) == 1 and str(rows[0][0]).lower() == "ok":
        return True
    problems = [str(r[0]) for r in rows[:10]]
    logger.error("Database integrity check failed: %s", "; ".join(problems))
    return False


async def init_db(db_path: str | Path) -> aiosqlite.Connection:
    """Open the database with WAL mode and run migrations.

    Refuses to start on a database that fails its integrity check; snapshots are
    the official daily record and are never silently rebuilt.
    """
    global _db
    memory = str(db_path) == ":memory:"
    if not memory:
        db_path = Path(db_path)
        db_path.parent.mkdir(parents=True, exist_ok=True)

    db = await aiosqlite.connect(str(db_path))
    if not memory and not await _check_integrity(db):
        await db.close()
        raise RuntimeError(f"Database at {db_path} failed integrity check")

    await db.execute("PRAGMA journal_mode=WAL")
    await db.execute("PRAGMA synchronous=FULL")
    await db.execute("PRAGMA foreign_keys=ON")
    await db.execute("PRAGMA busy_timeout=5000")
    db.row_factory = aiosqlite.Row

    await run_migrations(db)
    _db = db
    logger.info("Database initialised at %s (WAL mode)", db_path)
    return db


async def get_db() -> aiosqlite.Connection:
    """Get the active database connection."""
    if _db is None:
        raise RuntimeError("Database not initialised. Call init_db() first.")
    return _db


async def checkpoint_wal() -> None:
    """Checkpoint the WAL file to keep it from growing unbounded."""
    if _db is not None:
        try:
            await _db.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            logger.debug("WAL checkpoint completed")
        except aiosqlite.Error:
            logger.warning("WAL checkpoint failed", exc_info=True)


async def close_db() -> None:
    """Close the database connection."""
    global _db
    if _db is not None:
        await checkpoint_wal()
        await _db.close()
        _db = None
        logger.info("Database connection closed")
