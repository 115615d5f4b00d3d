"""Tests for the AuditLogger and related utilities."""

from __future__ import annotations

import json
import time

import pytest

from poolcare.core.audit.logger import AuditEvent, AuditLogger, _hash_input
from poolcare.core.storage.database import PoolDatabase


# ---------------------------------------------------------------------------
# _hash_input tests
# ---------------------------------------------------------------------------

class TestHashInput:
    def test_hashes_dict(self):
        h = _hash_input({"pool_id": "p1", "ph": 7.4})
        assert isinstance(h, str)
        assert len(h) == 64  # SHA-256 hex

    def test_deterministic(self):
        data = {"a": 1, "b": 2}
        assert _hash_input(data) == _hash_input(data)

    def test_order_independent(self):
        assert _hash_input({"z": 1, "a": 2}) == _hash_input({"a": 2, "z": 1})

    def test_different_inputs_differ(self):
        assert _hash_input({"ph": 7.4}) != _hash_input({"ph": 7.5})

    def test_non_serializable_returns_empty(self):
        assert _hash_input(object()) == ""


# ---------------------------------------------------------------------------
# AuditLogger.log_event / log_tool_call
# ---------------------------------------------------------------------------

class TestLogEvent:
    def test_log_event_returns_uuid(self, audit_logger):
        eid = audit_logger.log_event(AuditEvent(action="tool_invocation", tool_name="test_tool"))
        assert isinstance(eid, str)
        assert len(eid) == 36  # UUID format

    def test_logged_tool_call_retrievable(self, audit_logger):
        audit_logger.log_tool_call(
            tool_name="record_water_test",
            tool_input={"pool_id": "p1", "ph": 7.4},
            pool_id="p1",
            duration_ms=12.5,
        )
        events = audit_logger.get_events()
        assert len(events) == 1
        assert events[0]["tool_name"] == "record_water_test"
        assert events[0]["action"] == "tool_invocation"
        assert events[0]["pool_id"] == "p1"
        assert events[0]["duration_ms"] == 12.5
        assert events[0]["status"] == "success"

    def test_raw_input_never_stored(self, audit_logger):
        audit_logger.log_tool_call("log_maintenance_visit", {"notes": "gate code 4512"})
        row = audit_logger.get_events()[0]
        assert "4512" not in json.dumps(row)
        assert len(row["tool_input_hash"]) == 64

    def test_failure_recorded(self, audit_logger):
        audit_logger.log_tool_call(
            "record_water_test", {"ph": 20}, status="failure", error_type="InvalidInputError",
        )
        row = audit_logger.get_events()[0]
        assert row["status"] == "failure"
        assert row["error_type"] == "InvalidInputError"

    def test_metadata_json_stored(self, audit_logger):
        audit_logger.log_tool_call("test", metadata={"extra_key": "extra_val"})
        meta = json.loads(audit_logger.get_events()[0]["metadata_json"])
        assert meta["extra_key"] == "extra_val"

    def test_log_data_write(self, audit_logger):
        eid = audit_logger.log_data_write(
            "record_water_test", pool_id="p1", record_type="reading", record_id="r1",
        )
        assert len(eid) == 36
        row = audit_logger.get_events(action="data_write")[0]
        assert row["pool_id"] == "p1"
        assert row["tool_input_hash"] is None
        assert json.loads(row["metadata_json"]) == {"record_type": "reading", "record_id": "r1"}

    def test_write_failure_does_not_raise(self):
        # Never initialized: the connection property raises DatabaseError
        logger = AuditLogger(PoolDatabase(":memory:"))
        assert logger.log_tool_call("record_water_test", {"ph": 7.4}) == ""


# ---------------------------------------------------------------------------
# AuditLogger.get_events (filtering)
# ---------------------------------------------------------------------------

class TestGetEvents:
    def test_filter_by_tool_name(self, audit_logger):
        audit_logger.log_tool_call("alpha")
        audit_logger.log_tool_call("beta")
        audit_logger.log_tool_call("alpha")
        assert len(audit_logger.get_events(tool_name="alpha")) == 2

    def test_filter_by_pool(self, audit_logger):
        audit_logger.log_tool_call("pool_report", pool_id="p1")
        audit_logger.log_tool_call("pool_report", pool_id="p2")
        events = audit_logger.get_events(pool_id="p2")
        assert [e["pool_id"] for e in events] == ["p2"]

    def test_filter_by_action(self, audit_logger):
        audit_logger.log_tool_call("a")
        audit_logger.log_event(AuditEvent(action="data_write", tool_name="b"))
        assert len(audit_logger.get_events(action="data_write")) == 1

    def test_limit_respected(self, audit_logger):
        for i in range(10):
            audit_logger.log_tool_call(f"tool_{i}")
        assert len(audit_logger.get_events(limit=3)) == 3

    def test_newest_first(self, audit_logger):
        audit_logger.log_tool_call("first")
        time.sleep(0.01)
        audit_logger.log_tool_call("second")
        events = audit_logger.get_events()
        assert [e["tool_name"] for e in events] == ["second", "first"]


class TestCounts:
    def test_count_events_empty(self, audit_logger):
        assert audit_logger.count_events() == 0

    def test_count_by_status(self, audit_logger):
        audit_logger.log_tool_call("a")
        audit_logger.log_tool_call("b", status="failure", error_type="RepositoryError")
        audit_logger.log_tool_call("c")
        assert audit_logger.count_events() == 3
        assert audit_logger.count_events(status="failure") == 1


class TestSchemaV2:
    def test_schema_version_is_2(self, pool_db):
        assert pool_db.get_schema_version() == 2

    def test_audit_log_indexes_exist(self, pool_db):
        cursor = pool_db.connection.execute(
            "SELECT name FROM sqlite_master WHERE type='index' AND name LIKE 'idx_audit_%'"
        )
        indexes = {row[0] for row in cursor.fetchall()}
        assert {"idx_audit_timestamp", "idx_audit_action", "idx_audit_tool"} <= indexes


@pytest.mark.parametrize("tool_input", [None, {}])
def test_empty_input_has_no_hash(audit_logger, tool_input):
    audit_logger.log_tool_call("health_check", tool_input)
    assert audit_logger.get_events()[0]["tool_input_hash"] is None
