"""MCP tools for water-chemistry evaluation, visit scoring and grading.

These tools are stateless: they score what the caller sends and persist
nothing. Storage-backed tools live in ``pool_record_tools``.
"""

from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from poolcare.domains.pool.domain_logic import grade_scorer, quality_scorer
from poolcare.domains.pool.domain_logic.assessment_scorer import analyze_assessment
from poolcare.domains.pool.domain_logic.chemistry_evaluator import evaluate
from poolcare.domains.pool.domain_logic.chemistry_models import (
    InvalidInputError,
    MaintenanceEvent,
    MaintenanceIssue,
    MaintenanceTask,
    WaterChemistryReading,
)
from poolcare.domains.pool.domain_logic.recommendations import (
    by_priority,
    recommend,
    render_analysis,
)

if TYPE_CHECKING:
    from poolcare.core.audit.logger import AuditLogger

logger = logging.getLogger(__name__)


def parse_timestamp(value: str | None) -> datetime:
    """Parse an ISO 8601 timestamp; empty means now. Naive values are taken as UTC."""
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidInputError(f"Invalid ISO 8601 timestamp: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_reading(
    *,
    ph: float,
    chlorine_ppm: float,
    alkalinity_ppm: float,
    hardness_ppm: float,
    temperature_f: float,
    cyanuric_acid_ppm: float = 0.0,
    taken_at: str = "",
    notes: str = "",
) -> WaterChemistryReading:
    return WaterChemistryReading(
        ph=ph,
        chlorine_ppm=chlorine_ppm,
        alkalinity_ppm=alkalinity_ppm,
        hardness_ppm=hardness_ppm,
        temperature_f=temperature_f,
        cyanuric_acid_ppm=cyanuric_acid_ppm,
        taken_at=parse_timestamp(taken_at),
        notes=notes or None,
    )


def build_event(
    *,
    tasks: list[dict[str, Any]] | None = None,
    issues: list[dict[str, Any]] | None = None,
    customer_rating: int | None = None,
    status: str = "scheduled",
    scheduled_at: str = "",
    started_at: str = "",
    ended_at: str = "",
    visit_type: str = "routine",
    notes: str = "",
) -> MaintenanceEvent:
    """Build a MaintenanceEvent from JSON-shaped task and issue lists."""
    try:
        task_objs = tuple(
            MaintenanceTask(
                name=t.get("name", ""),
                status=t.get("status", "pending"),
                category=t.get("category", "other"),
            )
            for t in (tasks or [])
        )
        issue_objs = tuple(
            MaintenanceIssue(
                severity=i["severity"],
                issue_type=i.get("type", i.get("issue_type", "other")),
                description=i.get("description", ""),
            )
            for i in (issues or [])
        )
    except (AttributeError, KeyError) as exc:
        raise InvalidInputError(f"Malformed task or issue entry: {exc}") from exc

    return MaintenanceEvent(
        tasks=task_objs,
        issues=issue_objs,
        customer_rating=customer_rating,
        status=status,
        scheduled_at=parse_timestamp(scheduled_at) if scheduled_at else None,
        started_at=parse_timestamp(started_at) if started_at else None,
        ended_at=parse_timestamp(ended_at) if ended_at else None,
        visit_type=visit_type,
        notes=notes,
    )


def error_payload(exc: Exception) -> str:
    return json.dumps({
        "status": "error",
        "error_type": type(exc).__name__,
        "error": str(exc),
    })


def register_chemistry_tools(
    mcp: FastMCP,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register stateless chemistry, scoring and grading tools on the MCP server."""

    def _audit(tool_name: str, tool_input: dict, start: float, exc: Exception | None = None) -> None:
        if audit_logger is None:
            return
        audit_logger.log_tool_call(
            tool_name=tool_name,
            tool_input=tool_input,
            duration_ms=(time.monotonic() - start) * 1000,
            status="failure" if exc else "success",
            error_type=type(exc).__name__ if exc else None,
        )

    @mcp.tool
    async def evaluate_water_chemistry(
        ctx: Context,
        ph: float,
        chlorine_ppm: float,
        alkalinity_ppm: float,
        hardness_ppm: float,
        temperature_f: float,
        cyanuric_acid_ppm: float = 0.0,
        taken_at: str = "",
    ) -> str:
        """Classify a water test against the target bands.

        Reports 'below', 'within' or 'above' for pH (7.2-7.6), free chlorine
        (1.0-3.0 ppm) and total alkalinity (80-120 ppm), whether the test is
        more than 7 days old, and whether the pool needs attention.

        Args:
            ph: pH value (0-14).
            chlorine_ppm: Free chlorine in ppm.
            alkalinity_ppm: Total alkalinity in ppm.
            hardness_ppm: Calcium hardness in ppm (recorded, not banded).
            temperature_f: Water temperature in Fahrenheit.
            cyanuric_acid_ppm: Stabilizer in ppm (recorded, not banded).
            taken_at: When the test was taken (ISO 8601). Defaults to now.
        """
        start = time.monotonic()
        tool_input = {"ph": ph, "chlorine_ppm": chlorine_ppm, "alkalinity_ppm": alkalinity_ppm}
        try:
            reading = build_reading(
                ph=ph,
                chlorine_ppm=chlorine_ppm,
                alkalinity_ppm=alkalinity_ppm,
                hardness_ppm=hardness_ppm,
                temperature_f=temperature_f,
                cyanuric_acid_ppm=cyanuric_acid_ppm,
                taken_at=taken_at,
            )
            result = evaluate(reading, datetime.now(timezone.utc))
        except InvalidInputError as exc:
            _audit("evaluate_water_chemistry", tool_input, start, exc)
            return error_payload(exc)

        _audit("evaluate_water_chemistry", tool_input, start)
        return json.dumps({"status": "ok", **result.as_dict()})

    @mcp.tool
    async def recommend_pool_actions(
        ctx: Context,
        ph: float | None = None,
        chlorine_ppm: float | None = None,
        alkalinity_ppm: float | None = None,
        hardness_ppm: float = 0.0,
        temperature_f: float = 78.0,
        symptoms: list[str] | None = None,
        sort_by_priority: bool = False,
    ) -> str:
        """Recommend corrective actions for a water test and reported symptoms.

        Omit the chemistry values entirely when no test is available: the
        answer is then a single urgent request to test the water.

        Args:
            ph: pH value, or omit when untested.
            chlorine_ppm: Free chlorine in ppm.
            alkalinity_ppm: Total alkalinity in ppm.
            hardness_ppm: Calcium hardness in ppm.
            temperature_f: Water temperature in Fahrenheit.
            symptoms: Free-text symptoms (e.g., 'cloudy water', 'green algae').
            sort_by_priority: Return the most urgent actions first.
        """
        start = time.monotonic()
        tool_input = {"ph": ph, "chlorine_ppm": chlorine_ppm,
                      "alkalinity_ppm": alkalinity_ppm, "symptoms": symptoms}
        measured = [ph, chlorine_ppm, alkalinity_ppm]
        try:
            if all(v is None for v in measured):
                reading = None
            elif any(v is None for v in measured):
                raise InvalidInputError(
                    "ph, chlorine_ppm and alkalinity_ppm must be given together"
                )
            else:
                reading = build_reading(
                    ph=ph,
                    chlorine_ppm=chlorine_ppm,
                    alkalinity_ppm=alkalinity_ppm,
                    hardness_ppm=hardness_ppm,
                    temperature_f=temperature_f,
                )
            recommendations = recommend(reading, symptoms or [])
        except InvalidInputError as exc:
            _audit("recommend_pool_actions", tool_input, start, exc)
            return error_payload(exc)

        if sort_by_priority:
            recommendations = by_priority(recommendations)

        _audit("recommend_pool_actions", tool_input, start)
        return json.dumps({
            "status": "ok",
            "recommendations": [r.as_dict() for r in recommendations],
        })

    @mcp.tool
    async def pool_chemistry_analysis(
        ctx: Context,
        ph: float,
        chlorine_ppm: float,
        alkalinity_ppm: float,
        hardness_ppm: float = 0.0,
        temperature_f: float = 78.0,
        symptoms: list[str] | None = None,
    ) -> str:
        """Plain-text rule-based analysis of a water test and symptoms.

        Args:
            ph: pH value.
            chlorine_ppm: Free chlorine in ppm.
            alkalinity_ppm: Total alkalinity in ppm.
            hardness_ppm: Calcium hardness in ppm.
            temperature_f: Water temperature in Fahrenheit.
            symptoms: Free-text symptoms reported by the owner.
        """
        start = time.monotonic()
        tool_input = {"ph": ph, "chlorine_ppm": chlorine_ppm, "alkalinity_ppm": alkalinity_ppm}
        try:
            reading = build_reading(
                ph=ph,
                chlorine_ppm=chlorine_ppm,
                alkalinity_ppm=alkalinity_ppm,
                hardness_ppm=hardness_ppm,
                temperature_f=temperature_f,
            )
            text = render_analysis(reading, symptoms or [])
        except InvalidInputError as exc:
            _audit("pool_chemistry_analysis", tool_input, start, exc)
            return error_payload(exc)

        _audit("pool_chemistry_analysis", tool_input, start)
        return text

    @mcp.tool
    async def maintenance_quality_score(
        ctx: Context,
        tasks: list[dict[str, Any]],
        issues: list[dict[str, Any]] | None = None,
        customer_rating: int | None = None,
        status: str = "completed",
    ) -> str:
        """Score a maintenance visit from 0 to 100.

        -10 per failed or skipped task, -20 per critical issue, -10 per major
        issue, and (rating - 3) * 5 for the customer's 1-5 rating.

        Args:
            tasks: Task entries, each with a 'status'
                (pending, in_progress, completed, skipped, failed).
            issues: Issue entries, each with a 'severity'
                (minor, moderate, major, critical).
            customer_rating: Optional 1-5 customer rating.
            status: Visit status.
        """
        start = time.monotonic()
        tool_input = {"tasks": tasks, "issues": issues, "customer_rating": customer_rating}
        try:
            event = build_event(
                tasks=tasks, issues=issues, customer_rating=customer_rating, status=status
            )
            summary = quality_scorer.summarize(event)
        except InvalidInputError as exc:
            _audit("maintenance_quality_score", tool_input, start, exc)
            return error_payload(exc)

        _audit("maintenance_quality_score", tool_input, start)
        return json.dumps({"status": "ok", **summary})

    @mcp.tool
    async def weekly_pool_grade(
        ctx: Context,
        test_results: dict[str, float | None] | None = None,
        water_clarity: str | None = None,
        equipment_status: list[dict[str, Any]] | None = None,
    ) -> str:
        """Grade a weekly pool assessment from A+ to F.

        Args:
            test_results: Measured values keyed ph (or pH), chlorine, alkalinity,
                hardness, cyanuric_acid, temperature, turbidity, phosphates.
            water_clarity: crystal_clear, slightly_cloudy, cloudy, very_cloudy or murky.
            equipment_status: Entries with 'equipment' and 'status' ('working' counts).
        """
        start = time.monotonic()
        tool_input = {"test_results": test_results, "water_clarity": water_clarity,
                      "equipment_status": equipment_status}
        try:
            analysis = grade_scorer.analyze_weekly(test_results, water_clarity, equipment_status)
        except InvalidInputError as exc:
            _audit("weekly_pool_grade", tool_input, start, exc)
            return error_payload(exc)

        now = datetime.now(timezone.utc)
        _audit("weekly_pool_grade", tool_input, start)
        return json.dumps({
            "status": "ok",
            **analysis.as_dict(),
            "follow_up_actions": grade_scorer.follow_up_actions(analysis.alerts, now),
        })

    @mcp.tool
    async def client_assessment(
        ctx: Context,
        responses: dict[str, Any],
    ) -> str:
        """Score a new client's intake questionnaire.

        Args:
            responses: Answers keyed by question id: current_issues,
                equipment_condition (1-5), maintenance_frequency, pool_type,
                experience_level, budget_range, primary_goals.
        """
        start = time.monotonic()
        try:
            analysis = analyze_assessment(responses)
        except InvalidInputError as exc:
            _audit("client_assessment", responses, start, exc)
            return error_payload(exc)

        _audit("client_assessment", responses, start)
        logger.info(
            "Client assessment scored %s (risk=%s)",
            analysis["overall_score"], analysis["risk_level"],
        )
        return json.dumps({"status": "ok", **analysis}, indent=2)
