"""Trend classification over a single chemistry parameter's history."""

from __future__ import annotations

import math
import statistics
from collections.abc import Sequence

from poolcare.domains.pool.domain_logic.chemistry_models import (
    TREND_DECREASING,
    TREND_INCREASING,
    TREND_INSUFFICIENT,
    TREND_STABLE,
    TREND_STABLE_PCT,
)


def percent_change(values: Sequence[float]) -> float | None:
    """Percent change of the recent half's mean over the older half's mean.

    ``values`` is ordered most recent first. The recent half takes the
    extra element when the count is odd. Returns None with fewer than two
    values.
    """
    if len(values) < 2:
        return None

    split = math.ceil(len(values) / 2)
    recent_mean = statistics.mean(values[:split])
    older_mean = statistics.mean(values[split:])

    if older_mean == 0:
        if recent_mean == 0:
            return 0.0
        return math.copysign(math.inf, recent_mean)
    return (recent_mean - older_mean) / older_mean * 100


def classify_trend(values: Sequence[float | None]) -> str:
    """Classify a most-recent-first series as stable, increasing or decreasing.

    Missing values are dropped first; fewer than two remaining values is
    'insufficient_data'. A change under 5% either way is 'stable'.
    """
    present = [v for v in values if v is not None]
    change = percent_change(present)
    if change is None:
        return TREND_INSUFFICIENT
    if abs(change) < TREND_STABLE_PCT:
        return TREND_STABLE
    return TREND_INCREASING if change > 0 else TREND_DECREASING
