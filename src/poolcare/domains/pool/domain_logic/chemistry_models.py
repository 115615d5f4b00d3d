"""Pool water-chemistry models and domain constants.

Every band, freshness window and grade cutoff used by the evaluator,
recommendation generator and scorers lives here so that all of them
agree on the same numbers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class InvalidInputError(ValueError):
    """Raised when a reading or event violates its declared invariants."""


# ---------------------------------------------------------------------------
# Chemistry bands (inclusive on both ends)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChemistryTargetBand:
    """Acceptable range for a single water-chemistry parameter."""

    parameter: str
    low: float
    high: float

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high


PH_BAND = ChemistryTargetBand("ph", 7.2, 7.6)
CHLORINE_BAND = ChemistryTargetBand("chlorine", 1.0, 3.0)
ALKALINITY_BAND = ChemistryTargetBand("alkalinity", 80.0, 120.0)

# Check order matters: recommendations are appended in this order
EVALUATED_BANDS = (PH_BAND, CHLORINE_BAND, ALKALINITY_BAND)

PH_MIN = 0.0
PH_MAX = 14.0

# A reading older than this no longer describes the water
STALE_AFTER = timedelta(days=7)

# Verdicts
BELOW = "below"
WITHIN = "within"
ABOVE = "above"

# Recommendation kinds
KIND_CHEMICAL = "chemical"
KIND_SAFETY = "safety"
KIND_URGENT = "urgent"
KIND_MAINTENANCE = "maintenance"

# Recommendation priorities, lowest first
PRIORITY_LOW = "low"
PRIORITY_MEDIUM = "medium"
PRIORITY_HIGH = "high"
PRIORITY_URGENT = "urgent"
PRIORITY_ORDER = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH, PRIORITY_URGENT)


# ---------------------------------------------------------------------------
# Maintenance visit vocabulary
# ---------------------------------------------------------------------------

TASK_STATUSES = frozenset({"pending", "in_progress", "completed", "skipped", "failed"})
INCOMPLETE_TASK_STATUSES = frozenset({"failed", "skipped"})

ISSUE_SEVERITIES = frozenset({"minor", "moderate", "major", "critical"})

VISIT_STATUSES = frozenset({"scheduled", "in_progress", "completed", "cancelled", "no_show"})

QUALITY_SCORE_START = 100
INCOMPLETE_TASK_PENALTY = 10
SEVERITY_PENALTIES = {"critical": 20, "major": 10}
NEUTRAL_RATING = 3
RATING_STEP = 5


# ---------------------------------------------------------------------------
# Weekly grade
# ---------------------------------------------------------------------------

# Highest cutoff first; first match wins, anything lower is an F
GRADE_CUTOFFS = (
    (97, "A+"),
    (93, "A"),
    (87, "B+"),
    (83, "B"),
    (77, "C+"),
    (73, "C"),
    (67, "D"),
)
FAILING_GRADE = "F"

CLARITY_SCORES = {
    "crystal_clear": 100,
    "slightly_cloudy": 80,
    "cloudy": 60,
    "very_cloudy": 40,
    "murky": 20,
}
FALLBACK_CLARITY = 70
FALLBACK_EQUIPMENT = 70
FALLBACK_NO_TEST_RESULTS = 50

# Weekly chemistry sub-score deductions (distinct from the visit quality score)
CHEMISTRY_DEDUCTIONS = {"ph": 20, "chlorine": 20, "alkalinity": 15}

# Weekly water-sample keys. Only the banded three are scored; the rest
# are recorded by the sampling kit and checked but not deducted.
TEST_RESULT_KEYS = frozenset({
    "ph", "chlorine", "alkalinity", "hardness", "cyanuric_acid",
    "temperature", "turbidity", "phosphates",
})
TEST_RESULT_ALIASES = {"pH": "ph", "stabilizer": "cyanuric_acid"}

# Trend classification
TREND_STABLE_PCT = 5.0
TREND_STABLE = "stable"
TREND_INCREASING = "increasing"
TREND_DECREASING = "decreasing"
TREND_INSUFFICIENT = "insufficient_data"


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WaterChemistryReading:
    """A single recorded water test. Immutable once recorded."""

    ph: float
    chlorine_ppm: float
    alkalinity_ppm: float
    hardness_ppm: float
    temperature_f: float
    taken_at: datetime
    cyanuric_acid_ppm: float = 0.0
    notes: str | None = None

    def value_of(self, parameter: str) -> float:
        """Return the value for a band parameter name ('ph', 'chlorine', 'alkalinity')."""
        if parameter == "ph":
            return self.ph
        if parameter == "chlorine":
            return self.chlorine_ppm
        if parameter == "alkalinity":
            return self.alkalinity_ppm
        raise InvalidInputError(f"Unknown chemistry parameter: {parameter!r}")

    def as_dict(self) -> dict:
        return {
            "ph": self.ph,
            "chlorine_ppm": self.chlorine_ppm,
            "alkalinity_ppm": self.alkalinity_ppm,
            "hardness_ppm": self.hardness_ppm,
            "cyanuric_acid_ppm": self.cyanuric_acid_ppm,
            "temperature_f": self.temperature_f,
            "taken_at": self.taken_at.isoformat(),
            "notes": self.notes,
        }


@dataclass(frozen=True)
class EvaluationResult:
    """Per-parameter verdicts for one reading. Derived, never persisted."""

    ph: str
    chlorine: str
    alkalinity: str
    stale: bool

    @property
    def needs_attention(self) -> bool:
        return self.stale or any(v != WITHIN for v in self.verdicts().values())

    def verdicts(self) -> dict[str, str]:
        return {"ph": self.ph, "chlorine": self.chlorine, "alkalinity": self.alkalinity}

    def as_dict(self) -> dict:
        return {
            **self.verdicts(),
            "stale": self.stale,
            "needs_attention": self.needs_attention,
        }


@dataclass(frozen=True)
class Recommendation:
    """A typed, prioritized suggested action."""

    kind: str
    message: str
    priority: str

    def as_dict(self) -> dict[str, str]:
        return {"kind": self.kind, "message": self.message, "priority": self.priority}


@dataclass(frozen=True)
class MaintenanceTask:
    name: str
    status: str = "pending"
    category: str = "other"


@dataclass(frozen=True)
class MaintenanceIssue:
    severity: str
    issue_type: str = "other"
    description: str = ""


@dataclass(frozen=True)
class MaintenanceEvent:
    """The scoring-relevant snapshot of a logged service visit."""

    tasks: tuple[MaintenanceTask, ...] = ()
    issues: tuple[MaintenanceIssue, ...] = ()
    customer_rating: int | None = None
    status: str = "scheduled"
    scheduled_at: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    visit_type: str = "routine"
    notes: str = ""


# ---------------------------------------------------------------------------
# Invariant checks
# ---------------------------------------------------------------------------

def _require_number(name: str, value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(f"{name} must be numeric, got {value!r}")
    if math.isnan(value):
        raise InvalidInputError(f"{name} must not be NaN")
    return float(value)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC, matching how readings are stored."""
    if not isinstance(value, datetime):
        raise InvalidInputError(f"Expected a datetime, got {value!r}")
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def validate_test_results(test_results: dict[str, Any]) -> dict[str, float]:
    """Check a weekly water sample and return it keyed by canonical names.

    ``pH`` and ``stabilizer`` are accepted as aliases of ``ph`` and
    ``cyanuric_acid``. Parameters given as None were not measured and are
    dropped.

    Raises:
        InvalidInputError: For unknown keys, non-numeric values, a pH
            outside [0, 14] or a negative concentration.
    """
    if not isinstance(test_results, dict):
        raise InvalidInputError(f"test_results must be a mapping, got {test_results!r}")

    checked: dict[str, float] = {}
    seen: set[str] = set()
    for key, value in test_results.items():
        name = TEST_RESULT_ALIASES.get(key, key)
        if name not in TEST_RESULT_KEYS:
            raise InvalidInputError(
                f"Unknown test result {key!r}. Valid: {sorted(TEST_RESULT_KEYS)}"
            )
        if name in seen:
            raise InvalidInputError(f"Test result {name!r} given more than once")
        seen.add(name)
        if value is None:
            continue
        number = _require_number(name, value)
        if name == "ph" and not PH_MIN <= number <= PH_MAX:
            raise InvalidInputError(f"ph must be within [{PH_MIN}, {PH_MAX}], got {number}")
        if name != "temperature" and number < 0:
            raise InvalidInputError(f"{name} must be >= 0, got {number}")
        checked[name] = number
    return checked


def validate_reading(reading: WaterChemistryReading) -> None:
    """Raise InvalidInputError if the reading violates its invariants."""
    ph = _require_number("ph", reading.ph)
    if not PH_MIN <= ph <= PH_MAX:
        raise InvalidInputError(f"ph must be within [{PH_MIN}, {PH_MAX}], got {ph}")

    for name in ("chlorine_ppm", "alkalinity_ppm", "hardness_ppm", "cyanuric_acid_ppm"):
        value = _require_number(name, getattr(reading, name))
        if value < 0:
            raise InvalidInputError(f"{name} must be >= 0, got {value}")

    _require_number("temperature_f", reading.temperature_f)
    if not isinstance(reading.taken_at, datetime):
        raise InvalidInputError(f"taken_at must be a datetime, got {reading.taken_at!r}")


def validate_event(event: MaintenanceEvent) -> None:
    """Raise InvalidInputError for unknown statuses/severities or a bad rating."""
    for task in event.tasks:
        if task.status not in TASK_STATUSES:
            raise InvalidInputError(f"Unknown task status: {task.status!r}")
    for issue in event.issues:
        if issue.severity not in ISSUE_SEVERITIES:
            raise InvalidInputError(f"Unknown issue severity: {issue.severity!r}")
    rating = event.customer_rating
    if rating is not None:
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidInputError(f"customer_rating must be an integer 1-5, got {rating!r}")
