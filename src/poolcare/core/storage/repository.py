"""Pool repository: CRUD over pools, water tests and maintenance visits.

The repository mediates between domain objects (WaterChemistryReading,
MaintenanceEvent) and the SQLite database. Derived values such as
quality scores and evaluations are never written back.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from poolcare.core.storage.database import PoolDatabase
from poolcare.core.storage.models import (
    POOL_TYPES,
    PoolRecord,
    StoredReading,
    StoredVisit,
)
from poolcare.domains.pool.domain_logic.chemistry_models import (
    MaintenanceEvent,
    MaintenanceIssue,
    MaintenanceTask,
    WaterChemistryReading,
)

logger = logging.getLogger(__name__)

# Parameter name -> column, for per-parameter history queries
PARAMETER_COLUMNS = {
    "ph": "ph",
    "chlorine": "chlorine_ppm",
    "alkalinity": "alkalinity_ppm",
    "hardness": "hardness_ppm",
    "cyanuric_acid": "cyanuric_acid_ppm",
    "temperature": "temperature_f",
}


class RepositoryError(Exception):
    """Raised when repository operations fail."""


def to_iso(value: datetime | None) -> str | None:
    """Normalize a datetime to a UTC ISO 8601 string (naive values are taken as UTC)."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def from_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


class PoolRepository:
    """CRUD repository for pool history.

    Usage::

        db = PoolDatabase(":memory:")
        db.initialize()
        repo = PoolRepository(db)

        pool_id = repo.save_pool(PoolRecord(id="", name="Backyard", pool_type="inground"))
        repo.save_reading(pool_id, reading)
        latest = repo.get_latest_reading(pool_id)
    """

    def __init__(self, database: PoolDatabase) -> None:
        self._db = database

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Pools
    # ------------------------------------------------------------------

    def save_pool(self, pool: PoolRecord) -> str:
        """Persist a pool. If ``pool.id`` is empty, a UUID is generated.

        Raises:
            RepositoryError: If the pool type is unknown.
        """
        if pool.pool_type not in POOL_TYPES:
            raise RepositoryError(
                f"Invalid pool type: {pool.pool_type!r}. Valid: {sorted(POOL_TYPES)}"
            )
        pid = pool.id or self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO pools (id, name, pool_type, volume_gallons, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (pid, pool.name, pool.pool_type, pool.volume_gallons,
             pool.created_at or self._now_iso()),
        )
        conn.commit()
        logger.info("Saved pool %s (type=%s)", pid, pool.pool_type)
        return pid

    def get_pool(self, pool_id: str) -> PoolRecord | None:
        row = self._db.connection.execute(
            "SELECT * FROM pools WHERE id = ?", (pool_id,)
        ).fetchone()
        if row is None:
            return None
        return PoolRecord(
            id=row["id"],
            name=row["name"],
            pool_type=row["pool_type"],
            volume_gallons=row["volume_gallons"],
            created_at=row["created_at"],
        )

    def list_pools(self, *, limit: int = 100) -> list[PoolRecord]:
        rows = self._db.connection.execute(
            "SELECT id FROM pools ORDER BY created_at DESC LIMIT ?", (limit,)
        ).fetchall()
        return [p for p in (self.get_pool(row["id"]) for row in rows) if p is not None]

    def _require_pool(self, pool_id: str) -> None:
        if self.get_pool(pool_id) is None:
            raise RepositoryError(f"Unknown pool: {pool_id!r}")

    # ------------------------------------------------------------------
    # Water tests
    # ------------------------------------------------------------------

    def save_reading(self, pool_id: str, reading: WaterChemistryReading) -> str:
        """Persist a water test for a pool and return its ID."""
        self._require_pool(pool_id)
        rid = self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO chemistry_readings (
                id, pool_id, taken_at, ph, chlorine_ppm, alkalinity_ppm,
                hardness_ppm, cyanuric_acid_ppm, temperature_f, notes, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                rid,
                pool_id,
                to_iso(reading.taken_at),
                reading.ph,
                reading.chlorine_ppm,
                reading.alkalinity_ppm,
                reading.hardness_ppm,
                reading.cyanuric_acid_ppm,
                reading.temperature_f,
                reading.notes,
                self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved reading %s for pool %s", rid, pool_id)
        return rid

    def get_readings(
        self,
        pool_id: str,
        *,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[StoredReading]:
        """Water tests for a pool, newest ``taken_at`` first."""
        conditions = ["pool_id = ?"]
        params: list[Any] = [pool_id]
        if since is not None:
            conditions.append("taken_at >= ?")
            params.append(to_iso(since))

        query = (
            "SELECT * FROM chemistry_readings WHERE "
            + " AND ".join(conditions)
            + " ORDER BY taken_at DESC LIMIT ?"
        )
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_reading(row) for row in rows]

    def get_latest_reading(self, pool_id: str) -> WaterChemistryReading | None:
        """The pool's most recent water test, or None if it has never been tested."""
        results = self.get_readings(pool_id, limit=1)
        return results[0].reading if results else None

    def count_readings(self, pool_id: str | None = None, *, since: datetime | None = None) -> int:
        """Count water tests, optionally for one pool and from a lower bound."""
        conditions: list[str] = []
        params: list[Any] = []
        if pool_id is not None:
            conditions.append("pool_id = ?")
            params.append(pool_id)
        if since is not None:
            conditions.append("taken_at >= ?")
            params.append(to_iso(since))

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        row = self._db.connection.execute(
            f"SELECT COUNT(*) FROM chemistry_readings{where}", params
        ).fetchone()
        return row[0]

    def get_parameter_history(
        self,
        pool_id: str,
        parameter: str,
        *,
        since: datetime | None = None,
        limit: int = 10,
    ) -> list[tuple[str, float]]:
        """Time series of one chemistry parameter.

        Returns:
            List of (taken_at, value) tuples, newest first.
        """
        column = PARAMETER_COLUMNS.get(parameter)
        if column is None:
            raise RepositoryError(
                f"Invalid parameter: {parameter!r}. Valid: {sorted(PARAMETER_COLUMNS)}"
            )

        conditions = ["pool_id = ?"]
        params: list[Any] = [pool_id]
        if since is not None:
            conditions.append("taken_at >= ?")
            params.append(to_iso(since))

        # Column name is safe: looked up from a fixed mapping above
        query = (
            f"SELECT taken_at, {column} FROM chemistry_readings WHERE "
            + " AND ".join(conditions)
            + " ORDER BY taken_at DESC LIMIT ?"
        )
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [(row[0], row[1]) for row in rows]

    @staticmethod
    def _row_to_reading(row) -> StoredReading:
        return StoredReading(
            id=row["id"],
            pool_id=row["pool_id"],
            reading=WaterChemistryReading(
                ph=row["ph"],
                chlorine_ppm=row["chlorine_ppm"],
                alkalinity_ppm=row["alkalinity_ppm"],
                hardness_ppm=row["hardness_ppm"],
                cyanuric_acid_ppm=row["cyanuric_acid_ppm"],
                temperature_f=row["temperature_f"],
                taken_at=from_iso(row["taken_at"]),
                notes=row["notes"],
            ),
            created_at=row["created_at"],
        )

    # ------------------------------------------------------------------
    # Maintenance visits
    # ------------------------------------------------------------------

    def save_visit(self, pool_id: str, event: MaintenanceEvent) -> str:
        """Persist a maintenance visit for a pool and return its ID."""
        self._require_pool(pool_id)
        vid = self._new_id()
        tasks = [
            {"name": t.name, "status": t.status, "category": t.category}
            for t in event.tasks
        ]
        issues = [
            {"severity": i.severity, "issue_type": i.issue_type, "description": i.description}
            for i in event.issues
        ]

        conn = self._db.connection
        conn.execute(
            """INSERT INTO maintenance_visits (
                id, pool_id, scheduled_at, status, visit_type, tasks_json,
                issues_json, customer_rating, started_at, ended_at, notes, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                vid,
                pool_id,
                to_iso(event.scheduled_at),
                event.status,
                event.visit_type,
                json.dumps(tasks, separators=(",", ":")),
                json.dumps(issues, separators=(",", ":")),
                event.customer_rating,
                to_iso(event.started_at),
                to_iso(event.ended_at),
                event.notes,
                self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved visit %s for pool %s (status=%s)", vid, pool_id, event.status)
        return vid

    def get_visits(
        self,
        pool_id: str,
        *,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[StoredVisit]:
        """Maintenance visits for a pool, latest scheduled date first."""
        conditions = ["pool_id = ?"]
        params: list[Any] = [pool_id]
        if since is not None:
            conditions.append("scheduled_at >= ?")
            params.append(to_iso(since))

        query = (
            "SELECT * FROM maintenance_visits WHERE "
            + " AND ".join(conditions)
            + " ORDER BY scheduled_at DESC, created_at DESC LIMIT ?"
        )
        params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_visit(row) for row in rows]

    @staticmethod
    def _row_to_visit(row) -> StoredVisit:
        tasks = tuple(MaintenanceTask(**t) for t in json.loads(row["tasks_json"]))
        issues = tuple(MaintenanceIssue(**i) for i in json.loads(row["issues_json"]))
        return StoredVisit(
            id=row["id"],
            pool_id=row["pool_id"],
            event=MaintenanceEvent(
                tasks=tasks,
                issues=issues,
                customer_rating=row["customer_rating"],
                status=row["status"],
                scheduled_at=from_iso(row["scheduled_at"]),
                started_at=from_iso(row["started_at"]),
                ended_at=from_iso(row["ended_at"]),
                visit_type=row["visit_type"],
                notes=row["notes"] or "",
            ),
            created_at=row["created_at"],
        )
