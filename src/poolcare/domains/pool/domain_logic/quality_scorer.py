"""Service-visit quality score and maintenance-visit helpers.

The quality score starts at 100, loses points for incomplete tasks and
serious issues, moves with the customer rating, and is clamped to
[0, 100] once at the very end. It is recomputed on demand and never
stored on its own.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from poolcare.domains.pool.domain_logic.chemistry_models import (
    INCOMPLETE_TASK_PENALTY,
    INCOMPLETE_TASK_STATUSES,
    NEUTRAL_RATING,
    QUALITY_SCORE_START,
    RATING_STEP,
    SEVERITY_PENALTIES,
    MaintenanceEvent,
    as_utc,
    validate_event,
)


def _clamp(value: int, lo: int = 0, hi: int = 100) -> int:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def score(event: MaintenanceEvent) -> int:
    """Compute the 0-100 quality score of a maintenance visit.

    Deductions:
        -10 per task that was failed or skipped
        -20 per critical issue, -10 per major issue
    Adjustment:
        (rating - 3) * 5 when the customer left a rating

    Raises:
        InvalidInputError: For unknown task statuses, severities or ratings.
    """
    validate_event(event)

    total = QUALITY_SCORE_START

    incomplete = sum(1 for task in event.tasks if task.status in INCOMPLETE_TASK_STATUSES)
    total -= incomplete * INCOMPLETE_TASK_PENALTY

    total -= sum(SEVERITY_PENALTIES.get(issue.severity, 0) for issue in event.issues)

    if event.customer_rating is not None:
        total += (event.customer_rating - NEUTRAL_RATING) * RATING_STEP

    return _clamp(total)


def completion_percentage(event: MaintenanceEvent) -> int:
    """Rounded percentage of completed tasks; 0 for a visit with no tasks."""
    if not event.tasks:
        return 0
    completed = sum(1 for task in event.tasks if task.status == "completed")
    return round(completed / len(event.tasks) * 100)


def total_duration_minutes(event: MaintenanceEvent) -> int | None:
    """On-site duration from start/end times, or None if either is missing."""
    if event.started_at is None or event.ended_at is None:
        return None
    return round((as_utc(event.ended_at) - as_utc(event.started_at)).total_seconds() / 60)


def is_overdue(event: MaintenanceEvent, now: datetime) -> bool:
    """A visit is overdue when it was due before ``now`` and is still only scheduled."""
    if event.scheduled_at is None:
        return False
    return as_utc(event.scheduled_at) < as_utc(now) and event.status == "scheduled"


def summarize(event: MaintenanceEvent) -> dict[str, Any]:
    """Summary block shown alongside a visit."""
    return {
        "completion_status": event.status,
        "completion_percentage": completion_percentage(event),
        "quality_score": score(event),
        "total_tasks": len(event.tasks),
        "completed_tasks": sum(1 for t in event.tasks if t.status == "completed"),
        "issues_found": len(event.issues),
        "time_spent_minutes": total_duration_minutes(event) or 0,
    }


def average_score(events: list[MaintenanceEvent]) -> float:
    """Mean quality score across visits; 0.0 when there are none."""
    if not events:
        return 0.0
    return sum(score(e) for e in events) / len(events)
