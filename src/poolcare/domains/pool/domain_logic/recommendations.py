"""Rule-based recommendations from a water test and reported symptoms.

Chemistry checks run in a fixed order (pH, chlorine, alkalinity) and each
out-of-band parameter appends exactly one recommendation. Symptom rules
follow, in the order the symptoms were supplied. Out-of-band values are
expected outcomes, never errors.
"""

from __future__ import annotations

from collections.abc import Iterable

from poolcare.domains.pool.domain_logic.chemistry_evaluator import classify
from poolcare.domains.pool.domain_logic.chemistry_models import (
    ABOVE,
    ALKALINITY_BAND,
    BELOW,
    CHLORINE_BAND,
    KIND_CHEMICAL,
    KIND_MAINTENANCE,
    KIND_SAFETY,
    KIND_URGENT,
    PH_BAND,
    PRIORITY_HIGH,
    PRIORITY_MEDIUM,
    PRIORITY_ORDER,
    PRIORITY_URGENT,
    WITHIN,
    Recommendation,
    WaterChemistryReading,
    validate_reading,
)

NO_READING = Recommendation(
    kind=KIND_URGENT,
    message="Water chemistry test needed immediately",
    priority=PRIORITY_URGENT,
)

# (parameter, verdict) -> recommendation
CHEMISTRY_RULES: dict[tuple[str, str], Recommendation] = {
    ("ph", BELOW): Recommendation(
        KIND_CHEMICAL,
        "pH is too low. Add sodium carbonate (soda ash) to raise pH.",
        PRIORITY_HIGH,
    ),
    ("ph", ABOVE): Recommendation(
        KIND_CHEMICAL,
        "pH is too high. Add muriatic acid or sodium bisulfate to lower pH.",
        PRIORITY_HIGH,
    ),
    ("chlorine", BELOW): Recommendation(
        KIND_CHEMICAL,
        "Chlorine level is too low. Add chlorine shock or liquid chlorine.",
        PRIORITY_URGENT,
    ),
    ("chlorine", ABOVE): Recommendation(
        KIND_SAFETY,
        "Chlorine level is too high. Allow levels to decrease before swimming.",
        PRIORITY_MEDIUM,
    ),
    ("alkalinity", BELOW): Recommendation(
        KIND_CHEMICAL,
        "Total alkalinity is low. Add sodium bicarbonate to increase alkalinity.",
        PRIORITY_MEDIUM,
    ),
    ("alkalinity", ABOVE): Recommendation(
        KIND_CHEMICAL,
        "Total alkalinity is high. Add muriatic acid to decrease alkalinity.",
        PRIORITY_MEDIUM,
    ),
}

# Matched case-insensitively as substrings, checked in this order per symptom
SYMPTOM_RULES: tuple[tuple[str, Recommendation], ...] = (
    ("algae", Recommendation(
        KIND_CHEMICAL,
        "Shock treatment with chlorine, brush walls, and run filtration 24/7 until clear.",
        PRIORITY_HIGH,
    )),
    ("cloudy", Recommendation(
        KIND_MAINTENANCE,
        "Check and clean filter, test water chemistry, consider clarifier treatment.",
        PRIORITY_MEDIUM,
    )),
    ("smell", Recommendation(
        KIND_CHEMICAL,
        "Test chlorine levels, shock if needed, check pH balance.",
        PRIORITY_MEDIUM,
    )),
)

_CHECK_LABELS = {
    "ph": "pH level is within optimal range (7.2-7.6)",
    "chlorine": "Free chlorine level is adequate (1.0-3.0 ppm)",
    "alkalinity": "Total alkalinity is within range (80-120 ppm)",
}

_ISSUE_LABELS = {
    ("ph", BELOW): "pH is too low (acidic)",
    ("ph", ABOVE): "pH is too high (basic)",
    ("chlorine", BELOW): "Free chlorine is too low",
    ("chlorine", ABOVE): "Free chlorine is too high",
    ("alkalinity", BELOW): "Total alkalinity is low",
    ("alkalinity", ABOVE): "Total alkalinity is high",
}

GENERAL_TIPS = (
    "Test water chemistry 2-3 times per week",
    "Clean skimmer and pump baskets weekly",
    "Brush walls and vacuum weekly",
    "Maintain proper water level",
    "Run filtration system 8-12 hours daily",
)


def _verdicts(reading: WaterChemistryReading) -> list[tuple[str, str]]:
    return [
        ("ph", classify(reading.ph, PH_BAND)),
        ("chlorine", classify(reading.chlorine_ppm, CHLORINE_BAND)),
        ("alkalinity", classify(reading.alkalinity_ppm, ALKALINITY_BAND)),
    ]


def chemistry_recommendations(reading: WaterChemistryReading) -> list[Recommendation]:
    """Recommendations for out-of-band parameters, in pH, chlorine, alkalinity order."""
    validate_reading(reading)
    return [
        CHEMISTRY_RULES[(parameter, verdict)]
        for parameter, verdict in _verdicts(reading)
        if verdict != WITHIN
    ]


def symptom_recommendations(symptoms: Iterable[str]) -> list[Recommendation]:
    """Recommendations triggered by free-text symptom descriptions."""
    recommendations: list[Recommendation] = []
    for symptom in symptoms:
        lowered = symptom.lower()
        for keyword, recommendation in SYMPTOM_RULES:
            if keyword in lowered:
                recommendations.append(recommendation)
    return recommendations


def recommend(
    reading: WaterChemistryReading | None,
    symptoms: Iterable[str] = (),
) -> list[Recommendation]:
    """Build the ordered recommendation list for a pool.

    With no reading the result is exactly one urgent "test now"
    recommendation and the symptoms are not examined.
    """
    if reading is None:
        return [NO_READING]

    recommendations = chemistry_recommendations(reading)
    recommendations.extend(symptom_recommendations(symptoms))
    return recommendations


def by_priority(recommendations: Iterable[Recommendation]) -> list[Recommendation]:
    """Stable sort for display: most urgent first, ties keep check order."""
    return sorted(
        recommendations,
        key=lambda r: PRIORITY_ORDER.index(r.priority),
        reverse=True,
    )


def render_analysis(
    reading: WaterChemistryReading | None,
    symptoms: Iterable[str] = (),
) -> str:
    """Plain-text rule-based analysis of a water test and reported symptoms."""
    symptoms = list(symptoms)
    lines = ["Pool Analysis (Rule-Based System)", ""]
    issues: list[str] = []
    actions: list[Recommendation] = []

    # Without a test the report covers symptoms only
    if reading is not None:
        actions = chemistry_recommendations(reading)
        for parameter, verdict in _verdicts(reading):
            if verdict == WITHIN:
                lines.append(f"[ok] {_CHECK_LABELS[parameter]}")
            else:
                issues.append(_ISSUE_LABELS[(parameter, verdict)])

    if symptoms:
        lines += ["", "Reported Issues:"]
        lines += [f"- {symptom}" for symptom in symptoms]
        actions.extend(symptom_recommendations(symptoms))

    if issues:
        lines += ["", "Issues Found:"]
        lines += [f"- {issue}" for issue in issues]

    if actions:
        lines += ["", "Recommended Actions:"]
        lines += [f"{i}. {rec.message}" for i, rec in enumerate(actions, start=1)]

    lines += ["", "General Maintenance Tips:"]
    lines += [f"- {tip}" for tip in GENERAL_TIPS]
    return "\n".join(lines) + "\n"
