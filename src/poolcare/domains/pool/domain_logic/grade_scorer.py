"""Weekly composite grade: chemistry, clarity and equipment sub-scores.

The chemistry sub-score here uses its own deduction weights and is not
the visit quality score from ``quality_scorer``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from poolcare.domains.pool.domain_logic.chemistry_models import (
    CHEMISTRY_DEDUCTIONS,
    CLARITY_SCORES,
    EVALUATED_BANDS,
    FAILING_GRADE,
    FALLBACK_CLARITY,
    FALLBACK_EQUIPMENT,
    FALLBACK_NO_TEST_RESULTS,
    GRADE_CUTOFFS,
    InvalidInputError,
    validate_test_results,
)

# Below this chemistry sub-score the weekly analysis raises an alert
CHEMISTRY_ALERT_THRESHOLD = 70
FOLLOW_UP_DUE = timedelta(hours=24)


def _check_score(name: str, value: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{name} must be numeric, got {value!r}")
    if not 0 <= value <= 100:
        raise InvalidInputError(f"{name} must be within [0, 100], got {value}")
    return value


def chemistry_score(test_results: dict[str, Any] | None) -> int:
    """Score a weekly water sample: 100 minus deductions, floored at 0.

    Out-of-band pH costs 20, chlorine 20, alkalinity 15. A parameter that
    was not measured is not deducted; no sample at all scores 50.

    Raises:
        InvalidInputError: If the sample fails ``validate_test_results``.
    """
    if not test_results:
        return FALLBACK_NO_TEST_RESULTS

    checked = validate_test_results(test_results)
    total = 100
    for band in EVALUATED_BANDS:
        value = checked.get(band.parameter)
        if value is None:
            continue
        if not band.contains(value):
            total -= CHEMISTRY_DEDUCTIONS[band.parameter]
    return max(0, total)


def clarity_score(water_clarity: str | None) -> int:
    """Fixed lookup; unknown or missing clarity scores 70."""
    if water_clarity is not None and not isinstance(water_clarity, str):
        raise InvalidInputError(f"water_clarity must be a string, got {water_clarity!r}")
    return CLARITY_SCORES.get(water_clarity or "", FALLBACK_CLARITY)


def equipment_score(equipment_status: list[dict[str, Any]] | None) -> float:
    """Share of equipment entries reported as 'working', times 100."""
    if equipment_status is not None and not isinstance(equipment_status, list):
        raise InvalidInputError(f"equipment_status must be a list, got {equipment_status!r}")
    if not equipment_status:
        return FALLBACK_EQUIPMENT
    for eq in equipment_status:
        if not isinstance(eq, dict):
            raise InvalidInputError(
                f"equipment_status entries must be objects with a 'status', got {eq!r}"
            )
    working = sum(1 for eq in equipment_status if eq.get("status") == "working")
    return working / len(equipment_status) * 100


def overall_score(chemistry: float, clarity: float, equipment: float) -> float:
    """Unweighted mean of the three sub-scores."""
    return (
        _check_score("chemistry_score", chemistry)
        + _check_score("clarity_score", clarity)
        + _check_score("equipment_score", equipment)
    ) / 3


def letter_for(value: float) -> str:
    for cutoff, letter in GRADE_CUTOFFS:
        if value >= cutoff:
            return letter
    return FAILING_GRADE


def grade(chemistry: float, clarity: float, equipment: float) -> str:
    """Map three 0-100 sub-scores to a letter grade A+ through F."""
    return letter_for(overall_score(chemistry, clarity, equipment))


# ---------------------------------------------------------------------------
# Weekly analysis
# ---------------------------------------------------------------------------

@dataclass
class WeeklyAnalysis:
    """Result of grading one weekly pool assessment."""

    overall_grade: str
    overall_score: float
    chemistry_score: int
    clarity_score: int
    equipment_score: float
    recommendations: list[dict[str, Any]] = field(default_factory=list)
    alerts: list[dict[str, Any]] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "overall_grade": self.overall_grade,
            "overall_score": round(self.overall_score, 2),
            "chemistry_score": self.chemistry_score,
            "clarity_score": self.clarity_score,
            "equipment_score": round(self.equipment_score, 2),
            "recommendations": self.recommendations,
            "alerts": self.alerts,
        }


def analyze_weekly(
    test_results: dict[str, Any] | None,
    water_clarity: str | None,
    equipment_status: list[dict[str, Any]] | None,
) -> WeeklyAnalysis:
    """Grade a weekly assessment and derive its recommendations and alerts."""
    chem = chemistry_score(test_results)
    clarity = clarity_score(water_clarity)
    equipment = equipment_score(equipment_status)
    mean = overall_score(chem, clarity, equipment)

    analysis = WeeklyAnalysis(
        overall_grade=letter_for(mean),
        overall_score=mean,
        chemistry_score=chem,
        clarity_score=clarity,
        equipment_score=equipment,
    )

    if chem < CHEMISTRY_ALERT_THRESHOLD:
        analysis.recommendations.append({
            "priority": "high",
            "action": "Adjust water chemistry",
            "reason": "Chemical levels are outside optimal range",
            "estimated_cost": 50,
            "timeframe": "24 hours",
            "difficulty": "easy",
        })
        analysis.alerts.append({
            "type": "chemistry",
            "severity": "warning",
            "message": "Water chemistry requires immediate attention",
            "action_required": True,
        })

    return analysis


def follow_up_actions(alerts: list[dict[str, Any]], now: datetime) -> list[dict[str, Any]]:
    """Pending follow-ups for every alert that requires action, due in 24 hours."""
    return [
        {
            "action": f"Address {alert['type']} issue",
            "assigned_to": "system",
            "due_date": (now + FOLLOW_UP_DUE).isoformat(),
            "status": "pending",
            "notes": alert.get("message", ""),
        }
        for alert in alerts
        if alert.get("action_required")
    ]
