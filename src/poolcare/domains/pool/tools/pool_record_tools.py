"""MCP tools backed by the pool history store.

Register pools, record water tests and maintenance visits, and build
reports and trends from the stored history.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from poolcare.core.storage.models import PoolRecord
from poolcare.core.storage.repository import RepositoryError
from poolcare.domains.pool.domain_logic import quality_scorer
from poolcare.domains.pool.domain_logic.chemistry_evaluator import evaluate
from poolcare.domains.pool.domain_logic.chemistry_models import (
    InvalidInputError,
    validate_event,
    validate_reading,
)
from poolcare.domains.pool.domain_logic.recommendations import recommend
from poolcare.domains.pool.tools.chemistry_tools import (
    build_event,
    build_reading,
    error_payload,
)

if TYPE_CHECKING:
    from poolcare.core.audit.logger import AuditLogger
    from poolcare.core.storage.repository import PoolRepository
    from poolcare.domains.pool.domain_logic.trend_analyzer import TrendAnalyzer

logger = logging.getLogger(__name__)


def register_pool_record_tools(
    mcp: FastMCP,
    repository: PoolRepository,
    trend_analyzer: TrendAnalyzer,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register storage-backed pool tools on the MCP server."""

    def _audit(
        tool_name: str,
        tool_input: dict,
        start: float,
        *,
        pool_id: str | None = None,
        exc: Exception | None = None,
    ) -> None:
        if audit_logger is None:
            return
        audit_logger.log_tool_call(
            tool_name=tool_name,
            tool_input=tool_input,
            pool_id=pool_id,
            duration_ms=(time.monotonic() - start) * 1000,
            status="failure" if exc else "success",
            error_type=type(exc).__name__ if exc else None,
        )

    def _record_write(tool_name: str, pool_id: str, record_type: str, record_id: str) -> None:
        if audit_logger is not None:
            audit_logger.log_data_write(
                tool_name, pool_id=pool_id, record_type=record_type, record_id=record_id
            )

    @mcp.tool
    async def register_pool(
        ctx: Context,
        name: str,
        pool_type: str,
        volume_gallons: float | None = None,
    ) -> str:
        """Register a pool so water tests and visits can be recorded against it.

        Args:
            name: Display name (e.g., 'Backyard pool').
            pool_type: inground, above_ground, spa, hot_tub or commercial.
            volume_gallons: Approximate volume in gallons.
        """
        start = time.monotonic()
        tool_input = {"name": name, "pool_type": pool_type}
        try:
            pool_id = repository.save_pool(PoolRecord(
                id="", name=name, pool_type=pool_type, volume_gallons=volume_gallons,
            ))
        except RepositoryError as exc:
            _audit("register_pool", tool_input, start, exc=exc)
            return error_payload(exc)

        _record_write("register_pool", pool_id, "pool", pool_id)
        _audit("register_pool", tool_input, start, pool_id=pool_id)
        return json.dumps({"status": "saved", "pool_id": pool_id, "name": name})

    @mcp.tool
    async def record_water_test(
        ctx: Context,
        pool_id: str,
        ph: float,
        chlorine_ppm: float,
        alkalinity_ppm: float,
        hardness_ppm: float,
        temperature_f: float,
        cyanuric_acid_ppm: float = 0.0,
        taken_at: str = "",
        notes: str = "",
    ) -> str:
        """Record a water test for a pool and return its evaluation.

        Args:
            pool_id: Pool the test belongs to.
            ph: pH value (0-14).
            chlorine_ppm: Free chlorine in ppm.
            alkalinity_ppm: Total alkalinity in ppm.
            hardness_ppm: Calcium hardness in ppm.
            temperature_f: Water temperature in Fahrenheit.
            cyanuric_acid_ppm: Stabilizer in ppm.
            taken_at: When the test was taken (ISO 8601). Defaults to now.
            notes: Optional notes.
        """
        start = time.monotonic()
        tool_input = {"pool_id": pool_id, "ph": ph, "chlorine_ppm": chlorine_ppm,
                      "alkalinity_ppm": alkalinity_ppm}
        try:
            reading = build_reading(
                ph=ph,
                chlorine_ppm=chlorine_ppm,
                alkalinity_ppm=alkalinity_ppm,
                hardness_ppm=hardness_ppm,
                temperature_f=temperature_f,
                cyanuric_acid_ppm=cyanuric_acid_ppm,
                taken_at=taken_at,
                notes=notes,
            )
            validate_reading(reading)
            reading_id = repository.save_reading(pool_id, reading)
        except (InvalidInputError, RepositoryError) as exc:
            _audit("record_water_test", tool_input, start, pool_id=pool_id, exc=exc)
            return error_payload(exc)

        _record_write("record_water_test", pool_id, "reading", reading_id)
        now = datetime.now(timezone.utc)
        _audit("record_water_test", tool_input, start, pool_id=pool_id)
        return json.dumps({
            "status": "saved",
            "reading_id": reading_id,
            "evaluation": evaluate(reading, now).as_dict(),
            "recommendations": [r.as_dict() for r in recommend(reading)],
        })

    @mcp.tool
    async def log_maintenance_visit(
        ctx: Context,
        pool_id: str,
        scheduled_at: str,
        tasks: list[dict[str, Any]],
        issues: list[dict[str, Any]] | None = None,
        customer_rating: int | None = None,
        status: str = "completed",
        visit_type: str = "routine",
        started_at: str = "",
        ended_at: str = "",
        notes: str = "",
    ) -> str:
        """Log a maintenance visit and return its summary and quality score.

        Args:
            pool_id: Pool that was serviced.
            scheduled_at: Scheduled date of the visit (ISO 8601).
            tasks: Task entries with 'name' and 'status'.
            issues: Issue entries with 'severity' and optional 'type', 'description'.
            customer_rating: Optional 1-5 customer rating.
            status: scheduled, in_progress, completed, cancelled or no_show.
            visit_type: routine, emergency, seasonal, repair, inspection or custom.
            started_at: Actual start time (ISO 8601).
            ended_at: Actual end time (ISO 8601).
            notes: Technician notes.
        """
        start = time.monotonic()
        tool_input = {"pool_id": pool_id, "scheduled_at": scheduled_at, "tasks": tasks,
                      "issues": issues, "customer_rating": customer_rating}
        try:
            event = build_event(
                tasks=tasks,
                issues=issues,
                customer_rating=customer_rating,
                status=status,
                scheduled_at=scheduled_at,
                started_at=started_at,
                ended_at=ended_at,
                visit_type=visit_type,
                notes=notes,
            )
            validate_event(event)
            visit_id = repository.save_visit(pool_id, event)
        except (InvalidInputError, RepositoryError) as exc:
            _audit("log_maintenance_visit", tool_input, start, pool_id=pool_id, exc=exc)
            return error_payload(exc)

        _record_write("log_maintenance_visit", pool_id, "visit", visit_id)
        _audit("log_maintenance_visit", tool_input, start, pool_id=pool_id)
        return json.dumps({
            "status": "saved",
            "visit_id": visit_id,
            "summary": quality_scorer.summarize(event),
        })

    @mcp.tool
    async def pool_report(
        ctx: Context,
        pool_id: str,
        days: int = 30,
    ) -> str:
        """Full status report for a pool: attention flag, actions, history and trends.

        Args:
            pool_id: Pool to report on.
            days: Number of days of history to include (default: 30).
        """
        start = time.monotonic()
        tool_input = {"pool_id": pool_id, "days": days}
        try:
            report = trend_analyzer.pool_report(
                pool_id, days=days, now=datetime.now(timezone.utc)
            )
        except RepositoryError as exc:
            _audit("pool_report", tool_input, start, pool_id=pool_id, exc=exc)
            return error_payload(exc)

        _audit("pool_report", tool_input, start, pool_id=pool_id)
        return json.dumps(report, indent=2)

    @mcp.tool
    async def chemistry_trend(
        ctx: Context,
        pool_id: str,
        parameter: str,
        days: int = 30,
    ) -> str:
        """Show how one chemistry parameter has moved over recent tests.

        Args:
            pool_id: Pool to analyze.
            parameter: ph, chlorine, alkalinity, hardness, cyanuric_acid or temperature.
            days: Number of days to look back.
        """
        start = time.monotonic()
        tool_input = {"pool_id": pool_id, "parameter": parameter, "days": days}
        try:
            trend = trend_analyzer.parameter_trend(
                pool_id, parameter, days=days, now=datetime.now(timezone.utc)
            )
        except RepositoryError as exc:
            _audit("chemistry_trend", tool_input, start, pool_id=pool_id, exc=exc)
            return error_payload(exc)

        _audit("chemistry_trend", tool_input, start, pool_id=pool_id)
        return json.dumps(trend, indent=2)
