"""Tests for PoolRepository: pools, water tests and maintenance visits."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from poolcare.core.storage.models import PoolRecord
from poolcare.core.storage.repository import RepositoryError, from_iso, to_iso
from poolcare.domains.pool.domain_logic.chemistry_models import (
    MaintenanceEvent,
    MaintenanceIssue,
    MaintenanceTask,
)


class TestIsoHelpers:
    def test_naive_datetime_taken_as_utc(self):
        assert to_iso(datetime(2026, 6, 15, 12, 0)) == "2026-06-15T12:00:00+00:00"

    def test_offset_normalized_to_utc(self):
        eastern = timezone(timedelta(hours=-4))
        assert to_iso(datetime(2026, 6, 15, 8, 0, tzinfo=eastern)) == "2026-06-15T12:00:00+00:00"

    def test_none_passthrough(self):
        assert to_iso(None) is None
        assert from_iso(None) is None
        assert from_iso("") is None

    def test_round_trip_is_aware(self, now):
        assert from_iso(to_iso(now)) == now


class TestPools:
    def test_save_and_get(self, pool_repository):
        pid = pool_repository.save_pool(
            PoolRecord(id="", name="Spa", pool_type="spa", volume_gallons=400)
        )
        pool = pool_repository.get_pool(pid)
        assert pool is not None
        assert pool.name == "Spa"
        assert pool.pool_type == "spa"
        assert pool.volume_gallons == 400
        assert pool.created_at

    def test_explicit_id_kept(self, pool_repository):
        pid = pool_repository.save_pool(PoolRecord(id="pool-1", name="A", pool_type="inground"))
        assert pid == "pool-1"

    def test_invalid_type_rejected(self, pool_repository):
        with pytest.raises(RepositoryError, match="Invalid pool type"):
            pool_repository.save_pool(PoolRecord(id="", name="Pond", pool_type="pond"))

    def test_get_missing(self, pool_repository):
        assert pool_repository.get_pool("nope") is None

    def test_list_pools(self, pool_repository):
        pool_repository.save_pool(PoolRecord(id="", name="A", pool_type="inground"))
        pool_repository.save_pool(PoolRecord(id="", name="B", pool_type="hot_tub"))
        assert {p.name for p in pool_repository.list_pools()} == {"A", "B"}


class TestReadings:
    def test_save_for_unknown_pool_raises(self, pool_repository, make_reading):
        with pytest.raises(RepositoryError, match="Unknown pool"):
            pool_repository.save_reading("missing", make_reading())

    def test_round_trip(self, pool_repository, pool_id, make_reading):
        reading = make_reading(ph=7.3, cyanuric_acid_ppm=40.0, notes="after rain")
        pool_repository.save_reading(pool_id, reading)
        stored = pool_repository.get_readings(pool_id)
        assert len(stored) == 1
        assert stored[0].pool_id == pool_id
        assert stored[0].reading == reading

    def test_newest_first(self, pool_repository, pool_id, now, make_reading):
        for days_ago, ph in ((3, 7.3), (0, 7.0), (7, 7.7)):
            pool_repository.save_reading(
                pool_id, make_reading(ph=ph, taken_at=now - timedelta(days=days_ago))
            )
        stored = pool_repository.get_readings(pool_id)
        assert [s.reading.ph for s in stored] == [7.0, 7.3, 7.7]

    def test_latest_reading(self, pool_repository, pool_id, now, make_reading):
        assert pool_repository.get_latest_reading(pool_id) is None
        pool_repository.save_reading(pool_id, make_reading(ph=7.1, taken_at=now - timedelta(days=1)))
        pool_repository.save_reading(pool_id, make_reading(ph=7.5, taken_at=now))
        assert pool_repository.get_latest_reading(pool_id).ph == 7.5

    def test_since_and_limit(self, pool_repository, pool_id, now, make_reading):
        for days_ago in range(5):
            pool_repository.save_reading(pool_id, make_reading(taken_at=now - timedelta(days=days_ago)))
        assert len(pool_repository.get_readings(pool_id, since=now - timedelta(days=2))) == 3
        assert len(pool_repository.get_readings(pool_id, limit=2)) == 2

    def test_count_readings(self, pool_repository, pool_id, now, make_reading):
        other = pool_repository.save_pool(PoolRecord(id="", name="Other", pool_type="spa"))
        pool_repository.save_reading(pool_id, make_reading(taken_at=now - timedelta(days=40)))
        pool_repository.save_reading(pool_id, make_reading())
        pool_repository.save_reading(other, make_reading())
        assert pool_repository.count_readings() == 3
        assert pool_repository.count_readings(pool_id) == 2
        assert pool_repository.count_readings(pool_id, since=now - timedelta(days=30)) == 1

    def test_parameter_history(self, pool_repository, pool_id, now, make_reading):
        pool_repository.save_reading(pool_id, make_reading(chlorine_ppm=1.5, taken_at=now - timedelta(days=1)))
        pool_repository.save_reading(pool_id, make_reading(chlorine_ppm=2.5, taken_at=now))
        history = pool_repository.get_parameter_history(pool_id, "chlorine")
        assert [value for _, value in history] == [2.5, 1.5]
        assert history[0][0] == to_iso(now)

    def test_parameter_history_invalid_parameter(self, pool_repository, pool_id):
        with pytest.raises(RepositoryError, match="Invalid parameter"):
            pool_repository.get_parameter_history(pool_id, "ph; DROP TABLE pools")


class TestVisits:
    def test_save_for_unknown_pool_raises(self, pool_repository, make_event):
        with pytest.raises(RepositoryError):
            pool_repository.save_visit("missing", make_event())

    def test_round_trip(self, pool_repository, pool_id, now):
        event = MaintenanceEvent(
            tasks=(
                MaintenanceTask("Skim surface", "completed", "cleaning"),
                MaintenanceTask("Clean filter", "skipped", "equipment"),
            ),
            issues=(MaintenanceIssue("major", "equipment_malfunction", "Pump noisy"),),
            customer_rating=4,
            status="completed",
            scheduled_at=now - timedelta(days=1),
            started_at=now - timedelta(days=1),
            ended_at=now - timedelta(days=1) + timedelta(minutes=50),
            visit_type="routine",
            notes="Left a note for the owner",
        )
        pool_repository.save_visit(pool_id, event)
        stored = pool_repository.get_visits(pool_id)
        assert len(stored) == 1
        assert stored[0].event == event

    def test_latest_scheduled_first_and_windowed(self, pool_repository, pool_id, now, make_event):
        for days_ago in (10, 2, 40):
            pool_repository.save_visit(
                pool_id, make_event(status="completed", scheduled_at=now - timedelta(days=days_ago))
            )
        visits = pool_repository.get_visits(pool_id, since=now - timedelta(days=30))
        assert [v.event.scheduled_at for v in visits] == [
            now - timedelta(days=2),
            now - timedelta(days=10),
        ]
