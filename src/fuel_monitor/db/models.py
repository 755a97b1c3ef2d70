"""SQL table definitions."""

SCHEMA_VERSION = 1

TABLES = [
    # ── Config ──────────────────────────────────────────────
    """
    CREATE TABLE IF NOT EXISTS config_versions (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        config_json     TEXT NOT NULL,
        changed_keys    TEXT,
        created_at      TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ', 'now')),
        source          TEXT NOT NULL DEFAULT 'user'
    )
    """,

    # ── Sites ───────────────────────────────────────────────
    """
    CREATE TABLE IF NOT EXISTS sites (
        id                      INTEGER PRIMARY KEY AUTOINCREMENT,
        name                    TEXT NOT NULL,
        location                TEXT NOT NULL DEFAULT '',
        device_id               TEXT NOT NULL UNIQUE,
        fuel_capacity_l         REAL NOT NULL,
        low_fuel_threshold_pct  REAL NOT NULL DEFAULT 25.0,
        is_active               INTEGER NOT NULL DEFAULT 1,
        created_at              TEXT NOT NULL
    )
    """,

    # ── Raw sensor samples (written by upstream ingestion) ──
    """
    CREATE TABLE IF NOT EXISTS sensor_readings (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        time            TEXT NOT NULL,
        device_id       TEXT NOT NULL,
        sensor_name     TEXT NOT NULL,
        value           REAL NOT NULL,
        unit            TEXT NOT NULL DEFAULT ''
    )
    """,
    """CREATE INDEX IF NOT EXISTS idx_readings_device_sensor_time
       ON sensor_readings(device_id, sensor_name, time)""",

    # ── Daily closing snapshots ─────────────────────────────
    """
    CREATE TABLE IF NOT EXISTS daily_snapshots (
        id                  INTEGER PRIMARY KEY AUTOINCREMENT,
        site_id             INTEGER NOT NULL,
        device_id           TEXT NOT NULL,
        capture_day         TEXT NOT NULL,
        fuel_level          REAL,
        fuel_volume         REAL,
        temperature         REAL,
        generator_state     TEXT NOT NULL DEFAULT 'unknown',
        zesa_state          TEXT NOT NULL DEFAULT 'unknown',
        fuel_consumed_l     REAL NOT NULL DEFAULT 0,
        fuel_topped_l       REAL NOT NULL DEFAULT 0,
        fuel_consumed_pct   REAL NOT NULL DEFAULT 0,
        fuel_topped_pct     REAL NOT NULL DEFAULT 0,
        generator_hours     REAL NOT NULL DEFAULT 0,
        grid_hours          REAL NOT NULL DEFAULT 0,
        offline_hours       REAL NOT NULL DEFAULT 0,
        captured_at         TEXT NOT NULL,
        created_at          TEXT NOT NULL,
        FOREIGN KEY (site_id) REFERENCES sites(id)
    )
    """,
    # One snapshot per device per calendar day; inserts rely on this.
    """CREATE UNIQUE INDEX IF NOT EXISTS idx_snapshots_device_day
       ON daily_snapshots(device_id, capture_day)""",
    "CREATE INDEX IF NOT EXISTS idx_snapshots_site_captured ON daily_snapshots(site_id, captured_at)",

    # ── Capture run log ─────────────────────────────────────
    """
    CREATE TABLE IF NOT EXISTS capture_runs (
        id              INTEGER PRIMARY KEY AUTOINCREMENT,
        run_id          TEXT NOT NULL,
        run_at          TEXT NOT NULL,
        target_day      TEXT NOT NULL,
        trigger         TEXT NOT NULL,
        processed       INTEGER NOT NULL,
        skipped         INTEGER NOT NULL,
        failed          INTEGER NOT NULL,
        details_json    TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_capture_runs_day ON capture_runs(target_day)",

    # ── Admin preferences ───────────────────────────────────
    """
    CREATE TABLE IF NOT EXISTS admin_preferences (
        username    TEXT PRIMARY KEY,
        view_mode   TEXT NOT NULL DEFAULT 'closing',
        updated_at  TEXT NOT NULL
    )
    """,

    # ── Schema version tracking ─────────────────────────────
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        id      INTEGER PRIMARY KEY CHECK (id = 1),
        version INTEGER NOT NULL
    )
    """,
]
