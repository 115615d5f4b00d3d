"""Shared test fixtures for PoolCare tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Never touch the real history store from a test run
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("STORAGE_ENABLED", "false")
    monkeypatch.delenv("POOL_ALLOW_INSECURE_BIND", raising=False)

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from poolcare.domains.pool.domain_logic.chemistry_models import (  # noqa: E402
    MaintenanceEvent,
    MaintenanceIssue,
    MaintenanceTask,
    WaterChemistryReading,
)


@pytest.fixture
def now() -> datetime:
    """Fixed clock for anything that depends on "now"."""
    return datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_reading(now):
    """Factory for readings that are in band and fresh unless told otherwise."""

    def _make(
        ph: float = 7.4,
        chlorine_ppm: float = 2.0,
        alkalinity_ppm: float = 100.0,
        hardness_ppm: float = 250.0,
        temperature_f: float = 80.0,
        taken_at: datetime | None = None,
        **kwargs,
    ) -> WaterChemistryReading:
        return WaterChemistryReading(
            ph=ph,
            chlorine_ppm=chlorine_ppm,
            alkalinity_ppm=alkalinity_ppm,
            hardness_ppm=hardness_ppm,
            temperature_f=temperature_f,
            taken_at=taken_at or now,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_event():
    """Factory for visits built from bare task statuses and issue severities."""

    def _make(
        task_statuses: tuple[str, ...] = (),
        severities: tuple[str, ...] = (),
        customer_rating: int | None = None,
        **kwargs,
    ) -> MaintenanceEvent:
        return MaintenanceEvent(
            tasks=tuple(
                MaintenanceTask(name=f"task-{i}", status=status)
                for i, status in enumerate(task_statuses)
            ),
            issues=tuple(MaintenanceIssue(severity=s) for s in severities),
            customer_rating=customer_rating,
            **kwargs,
        )

    return _make


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def pool_db():
    """Create an in-memory PoolDatabase for testing."""
    from poolcare.core.storage.database import PoolDatabase

    db = PoolDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def pool_repository(pool_db):
    """Create a PoolRepository backed by in-memory SQLite."""
    from poolcare.core.storage.repository import PoolRepository

    return PoolRepository(pool_db)


@pytest.fixture
def pool_id(pool_repository) -> str:
    """A registered in-ground pool."""
    from poolcare.core.storage.models import PoolRecord

    return pool_repository.save_pool(
        PoolRecord(id="", name="Backyard", pool_type="inground", volume_gallons=15000)
    )


@pytest.fixture
def audit_logger(pool_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from poolcare.core.audit.logger import AuditLogger

    return AuditLogger(pool_db)
