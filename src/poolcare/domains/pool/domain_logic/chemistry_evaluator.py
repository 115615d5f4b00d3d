"""Deterministic water-chemistry evaluation against the target bands.

pH, chlorine and alkalinity are banded. Hardness and cyanuric acid are
recorded on the reading but have no band, so they never affect a verdict.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from poolcare.domains.pool.domain_logic.chemistry_models import (
    ABOVE,
    ALKALINITY_BAND,
    BELOW,
    CHLORINE_BAND,
    PH_BAND,
    STALE_AFTER,
    WITHIN,
    ChemistryTargetBand,
    EvaluationResult,
    InvalidInputError,
    WaterChemistryReading,
    as_utc,
    validate_reading,
)


def classify(value: float, band: ChemistryTargetBand) -> str:
    """Return 'below', 'within' or 'above' for a value against an inclusive band."""
    if value < band.low:
        return BELOW
    if value > band.high:
        return ABOVE
    return WITHIN


def is_stale(reading: WaterChemistryReading, now: datetime) -> bool:
    """True when the reading is more than seven days older than ``now``.

    Naive datetimes on either side are read as UTC.
    """
    return as_utc(now) - as_utc(reading.taken_at) > STALE_AFTER


def evaluate(reading: WaterChemistryReading, now: datetime) -> EvaluationResult:
    """Classify a single reading.

    The reading is required. "No reading at all" is a separate state that
    callers express through :func:`needs_attention` with ``None``.

    Raises:
        InvalidInputError: If ``reading`` is missing or violates its invariants.
    """
    if reading is None:
        raise InvalidInputError("evaluate() requires a reading; use needs_attention(None, now)")
    validate_reading(reading)
    now = as_utc(now)

    return EvaluationResult(
        ph=classify(reading.ph, PH_BAND),
        chlorine=classify(reading.chlorine_ppm, CHLORINE_BAND),
        alkalinity=classify(reading.alkalinity_ppm, ALKALINITY_BAND),
        stale=is_stale(reading, now),
    )


def needs_attention(reading: WaterChemistryReading | None, now: datetime) -> bool:
    """Aggregate attention flag for a pool's latest reading.

    A pool with no reading at all needs attention.
    """
    if reading is None:
        return True
    return evaluate(reading, now).needs_attention


def latest_reading(
    readings: Iterable[WaterChemistryReading],
) -> WaterChemistryReading | None:
    """Return the most recent reading by ``taken_at``, or None for an empty history."""
    return max(readings, key=lambda r: as_utc(r.taken_at), default=None)
