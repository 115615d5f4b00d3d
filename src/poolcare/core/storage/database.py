"""SQLite database management for the PoolCare history store.

Handles connection lifecycle, schema creation, and migrations.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 2

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
CREATE TABLE IF NOT EXISTS pools (
    id             TEXT PRIMARY KEY,
    name           TEXT NOT NULL,
    pool_type      TEXT NOT NULL,
    volume_gallons REAL,
    created_at     TEXT NOT NULL DEFAULT (datetime('now'))
);

-- One row per water test; readings are immutable once recorded
CREATE TABLE IF NOT EXISTS chemistry_readings (
    id                TEXT PRIMARY KEY,
    pool_id           TEXT NOT NULL REFERENCES pools(id),
    taken_at          TEXT NOT NULL,
    ph                REAL NOT NULL,
    chlorine_ppm      REAL NOT NULL,
    alkalinity_ppm    REAL NOT NULL,
    hardness_ppm      REAL NOT NULL,
    cyanuric_acid_ppm REAL NOT NULL DEFAULT 0,
    temperature_f     REAL NOT NULL,
    notes             TEXT,
    created_at        TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Tasks and issues are stored as JSON; scores are derived on read, never stored
CREATE TABLE IF NOT EXISTS maintenance_visits (
    id              TEXT PRIMARY KEY,
    pool_id         TEXT NOT NULL REFERENCES pools(id),
    scheduled_at    TEXT,
    status          TEXT NOT NULL,
    visit_type      TEXT NOT NULL,
    tasks_json      TEXT NOT NULL,
    issues_json     TEXT NOT NULL,
    customer_rating INTEGER,
    started_at      TEXT,
    ended_at        TEXT,
    notes           TEXT,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_readings_pool_ts ON chemistry_readings(pool_id, taken_at);
CREATE INDEX IF NOT EXISTS idx_visits_pool      ON maintenance_visits(pool_id, scheduled_at);
CREATE INDEX IF NOT EXISTS idx_visits_status    ON maintenance_visits(status);
"""

# ---------------------------------------------------------------------------
# V2: Audit log table
# ---------------------------------------------------------------------------

_SCHEMA_V2 = """
CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    timestamp       TEXT NOT NULL DEFAULT (datetime('now')),
    action          TEXT NOT NULL,
    tool_name       TEXT,
    tool_input_hash TEXT,
    pool_id         TEXT,
    duration_ms     REAL,
    status          TEXT NOT NULL DEFAULT 'success',
    error_type      TEXT,
    metadata_json   TEXT
);

CREATE INDEX IF NOT EXISTS idx_audit_timestamp ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action    ON audit_log(action);
CREATE INDEX IF NOT EXISTS idx_audit_tool      ON audit_log(tool_name);
"""


class DatabaseError(Exception):
    """Raised when database operations fail."""


class PoolDatabase:
    """SQLite database manager for pool readings and maintenance visits.

    Supports both file-based and in-memory (`:memory:`) databases.
    In-memory mode is used for testing.

    Usage::

        db = PoolDatabase(":memory:")
        db.initialize()
        conn = db.connection
        # ... use connection ...
        db.close()
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        """Initialize database manager.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory DB.
        """
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active database connection.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Create the database connection and ensure schema exists.

        For file-based databases, creates parent directories if needed.
        Idempotent: safe to call multiple times.
        """
        if self._conn is not None:
            return

        if self._db_path != ":memory:":
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_file))
        else:
            self._conn = sqlite3.connect(":memory:")

        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        self._ensure_schema()
        logger.info("Pool database initialized: %s", self._db_path)

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and apply migrations."""
        conn = self.connection

        conn.executescript(_SCHEMA_V1)

        cursor = conn.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        current_version = row[0] if row[0] is not None else 0

        if current_version < 2:
            conn.executescript(_SCHEMA_V2)
            logger.info("Applied schema migration V2: audit_log table")

        if current_version < SCHEMA_VERSION:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info(
                "Schema updated from version %d to %d", current_version, SCHEMA_VERSION
            )

    def get_schema_version(self) -> int:
        """Return the current schema version."""
        cursor = self.connection.execute("SELECT MAX(version) FROM schema_version")
        row = cursor.fetchone()
        return row[0] if row[0] is not None else 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Pool database closed")

    def __enter__(self) -> PoolDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
