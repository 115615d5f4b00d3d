"""Client intake assessment scoring from questionnaire responses.

Responses are keyed by question id (``current_issues``,
``equipment_condition``, ``maintenance_frequency``, ``pool_type``,
``experience_level``, ``budget_range``, ``primary_goals``). Multiple
choice answers may arrive as a single string or a list of strings.
"""

from __future__ import annotations

from typing import Any

from poolcare.domains.pool.domain_logic.chemistry_models import InvalidInputError

NO_ISSUES = "No current issues"
ALGAE = "Green/algae"
FREQUENT_MAINTENANCE = {"Daily", "2-3 times per week"}
RARE_MAINTENANCE = {"Rarely", "Never"}

BASE_SCORE = 70
NEUTRAL_EQUIPMENT = 3

SINGLE_CHOICE_FIELDS = ("maintenance_frequency", "pool_type", "experience_level")
MULTI_CHOICE_FIELDS = ("current_issues", "primary_goals", "budget_range")


def _clamp(value: float, lo: float = 0, hi: float = 100) -> float:
    """Clamp a value to [lo, hi]."""
    return max(lo, min(hi, value))


def _has(answer: Any, option: str) -> bool:
    """True if ``option`` is the answer, one of the answers, or a substring of it."""
    if not answer:
        return False
    if isinstance(answer, str):
        return option in answer
    return any(option in str(a) for a in answer)


def _has_issues(responses: dict[str, Any]) -> bool:
    issues = responses.get("current_issues")
    if not issues:
        return False
    if isinstance(issues, str):
        return issues != NO_ISSUES
    return any(i != NO_ISSUES for i in issues)


def validate_responses(responses: dict[str, Any]) -> None:
    """Raise InvalidInputError if an answer has the wrong shape for its question.

    Unknown question ids are ignored.
    """
    if not isinstance(responses, dict):
        raise InvalidInputError(f"responses must be a mapping, got {responses!r}")

    for name in SINGLE_CHOICE_FIELDS:
        answer = responses.get(name)
        if answer is not None and not isinstance(answer, str):
            raise InvalidInputError(f"{name} must be a string, got {answer!r}")

    for name in MULTI_CHOICE_FIELDS:
        answer = responses.get(name)
        if answer is None or isinstance(answer, str):
            continue
        if not isinstance(answer, list) or not all(isinstance(a, str) for a in answer):
            raise InvalidInputError(f"{name} must be a string or a list of strings, got {answer!r}")

    condition = responses.get("equipment_condition")
    if isinstance(condition, bool) or not isinstance(condition, (int, float, str, type(None))):
        raise InvalidInputError(f"equipment_condition must be a rating, got {condition!r}")


def _equipment_condition(responses: dict[str, Any]) -> int | None:
    raw = responses.get("equipment_condition")
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        return None


def overall_score(responses: dict[str, Any]) -> float:
    """Base 70, adjusted for issues, equipment condition and upkeep; clamped to [0, 100]."""
    total = BASE_SCORE

    if _has_issues(responses):
        total -= 20

    condition = _equipment_condition(responses)
    if condition is not None:
        total += (condition - NEUTRAL_EQUIPMENT) * 10

    frequency = responses.get("maintenance_frequency")
    if frequency in FREQUENT_MAINTENANCE:
        total += 15
    elif frequency in RARE_MAINTENANCE:
        total -= 25

    return _clamp(total)


def risk_level(responses: dict[str, Any]) -> str:
    """'high', 'medium' or 'low' risk classification."""
    condition = _equipment_condition(responses)
    if condition is None:
        condition = NEUTRAL_EQUIPMENT

    if _has(responses.get("current_issues"), ALGAE) or condition <= 2:
        return "high"
    if _has_issues(responses):
        return "medium"
    if responses.get("maintenance_frequency") in RARE_MAINTENANCE:
        return "medium"
    return "low"


def complexity_level(responses: dict[str, Any]) -> str:
    pool_type = responses.get("pool_type") or ""
    experience = responses.get("experience_level")

    if "Infinity" in pool_type or "Natural" in pool_type:
        return "expert"
    if experience == "Professional level":
        return "basic"
    return "standard"


def service_level(responses: dict[str, Any]) -> str:
    budget = responses.get("budget_range")
    if _has(budget, "Over $750"):
        return "platinum"
    if _has(responses.get("primary_goals"), "Full-service management"):
        return "premium"
    if _has(budget, "Under $100"):
        return "basic"
    return "premium"


def specialist_recommendations(responses: dict[str, Any]) -> list[dict[str, Any]]:
    recommendations = []

    if _has_issues(responses):
        recommendations.append({
            "specialist_type": "water_chemist",
            "priority": "high",
            "reasoning": "Water quality issues detected requiring immediate attention",
            "estimated_hours": 2,
        })

    condition = _equipment_condition(responses)
    if condition is not None and condition <= NEUTRAL_EQUIPMENT:
        recommendations.append({
            "specialist_type": "equipment_specialist",
            "priority": "medium",
            "reasoning": "Equipment condition needs assessment and potential repairs",
            "estimated_hours": 3,
        })

    if responses.get("experience_level") == "Complete beginner":
        recommendations.append({
            "specialist_type": "maintenance_expert",
            "priority": "medium",
            "reasoning": "Client needs education and guidance on pool maintenance",
            "estimated_hours": 1,
        })

    return recommendations


def immediate_actions(responses: dict[str, Any]) -> list[str]:
    actions = []
    if _has(responses.get("current_issues"), ALGAE):
        actions.append("Shock treatment required immediately")
        actions.append("Test and balance water chemistry")
    if responses.get("maintenance_frequency") in RARE_MAINTENANCE:
        actions.append("Establish regular maintenance schedule")
        actions.append("Inspect all equipment for safety")
    return actions


def long_term_recommendations(responses: dict[str, Any]) -> list[str]:
    recommendations = [
        "Implement weekly water testing routine",
        "Schedule quarterly professional inspection",
    ]
    budget = responses.get("budget_range")
    if budget and not _has(budget, "Under $100"):
        recommendations.append("Consider upgrading to automated chemical system")
    return recommendations


def cost_estimate(responses: dict[str, Any]) -> dict[str, int]:
    budget = responses.get("budget_range")
    monthly = 200
    if _has(budget, "Under $100"):
        monthly = 75
    elif _has(budget, "Over $750"):
        monthly = 500
    return {
        "monthly": monthly,
        "quarterly": monthly * 3,
        "annual": monthly * 12,
        "one_time": 150,
    }


def analyze_assessment(responses: dict[str, Any]) -> dict[str, Any]:
    """Full rule-based analysis of an intake questionnaire.

    Raises:
        InvalidInputError: If the responses fail :func:`validate_responses`.
    """
    validate_responses(responses)
    return {
        "overall_score": overall_score(responses),
        "risk_level": risk_level(responses),
        "complexity_level": complexity_level(responses),
        "recommended_service_level": service_level(responses),
        "specialist_recommendations": specialist_recommendations(responses),
        "immediate_actions": immediate_actions(responses),
        "long_term_recommendations": long_term_recommendations(responses),
        "cost_estimate": cost_estimate(responses),
    }
