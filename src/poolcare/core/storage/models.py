"""Data models for the pool persistence layer."""

from __future__ import annotations

from dataclasses import dataclass

from poolcare.domains.pool.domain_logic.chemistry_models import (
    MaintenanceEvent,
    WaterChemistryReading,
)

POOL_TYPES = frozenset({"inground", "above_ground", "spa", "hot_tub", "commercial"})


@dataclass
class PoolRecord:
    """A registered pool. Readings and visits reference it by ``id``."""

    id: str
    name: str
    pool_type: str  # one of POOL_TYPES
    volume_gallons: float | None = None
    created_at: str = ""


@dataclass
class StoredReading:
    """A water test as persisted for one pool."""

    id: str
    pool_id: str
    reading: WaterChemistryReading
    created_at: str = ""


@dataclass
class StoredVisit:
    """A maintenance visit as persisted for one pool.

    Only the raw visit is stored; its quality score is recomputed on read.
    """

    id: str
    pool_id: str
    event: MaintenanceEvent
    created_at: str = ""
