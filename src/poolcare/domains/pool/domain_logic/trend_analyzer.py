"""Chemistry trend classification and per-pool history reports.

``TrendAnalyzer`` reads history from the repository and assembles the
report the reporting layer displays. Every score in it is recomputed from
the stored visits and readings.
"""

from __future__ import annotations

import logging
import math
import statistics
from datetime import datetime, timedelta
from typing import Any

from poolcare.core.storage.repository import PoolRepository, RepositoryError
from poolcare.domains.pool.domain_logic import quality_scorer
from poolcare.domains.pool.domain_logic.chemistry_evaluator import evaluate, needs_attention
from poolcare.domains.pool.domain_logic.chemistry_models import TREND_INSUFFICIENT
from poolcare.domains.pool.domain_logic.recommendations import recommend
from poolcare.domains.pool.domain_logic.trends import classify_trend, percent_change

logger = logging.getLogger(__name__)

TREND_PARAMETERS = ("ph", "chlorine", "alkalinity")

# Trends look at this many of the most recent readings in the window
TREND_WINDOW = 10


class TrendAnalyzer:
    """Builds chemistry trends and pool reports from stored history.

    Usage::

        analyzer = TrendAnalyzer(repository)
        trend = analyzer.parameter_trend(pool_id, "ph", days=30, now=now)
        report = analyzer.pool_report(pool_id, days=30, now=now)
    """

    def __init__(self, repository: PoolRepository) -> None:
        self._repo = repository

    def parameter_trend(
        self,
        pool_id: str,
        parameter: str,
        *,
        days: int = 30,
        now: datetime,
        limit: int = TREND_WINDOW,
    ) -> dict[str, Any]:
        """Trend statistics for one chemistry parameter.

        Returns:
            Dict with: parameter, direction, current, mean, min, max,
            percent_change, data_points.
        """
        since = now - timedelta(days=days)
        history = self._repo.get_parameter_history(pool_id, parameter, since=since, limit=limit)

        if not history:
            return {
                "parameter": parameter,
                "data_points": 0,
                "direction": TREND_INSUFFICIENT,
            }

        values = [v for _, v in history]
        change = percent_change(values)
        return {
            "parameter": parameter,
            "direction": classify_trend(values),
            "current": values[0],
            "mean": round(statistics.mean(values), 4),
            "min": min(values),
            "max": max(values),
            "percent_change": round(change, 2) if change is not None and math.isfinite(change) else None,
            "data_points": len(values),
        }

    def pool_report(self, pool_id: str, *, days: int = 30, now: datetime) -> dict[str, Any]:
        """Status, statistics, history and trends for one pool over ``days``.

        Raises:
            RepositoryError: If the pool does not exist.
        """
        pool = self._repo.get_pool(pool_id)
        if pool is None:
            raise RepositoryError(f"Unknown pool: {pool_id!r}")

        since = now - timedelta(days=days)
        visits = self._repo.get_visits(pool_id, since=since)
        recent = self._repo.get_readings(pool_id, since=since, limit=TREND_WINDOW)
        latest = self._repo.get_latest_reading(pool_id)
        events = [v.event for v in visits]

        current_status: dict[str, Any] = {
            "needs_attention": needs_attention(latest, now),
            "recommendations": [r.as_dict() for r in recommend(latest)],
            "latest_reading": latest.as_dict() if latest else None,
            "evaluation": evaluate(latest, now).as_dict() if latest else None,
        }

        report = {
            "pool": {
                "id": pool.id,
                "name": pool.name,
                "pool_type": pool.pool_type,
                "volume_gallons": pool.volume_gallons,
            },
            "period": {
                "days": days,
                "start": since.isoformat(),
                "end": now.isoformat(),
            },
            "statistics": {
                "total_visits": len(visits),
                "completed_visits": sum(1 for e in events if e.status == "completed"),
                "avg_quality_score": round(quality_scorer.average_score(events), 2),
                "issues_found": sum(len(e.issues) for e in events),
                "readings_in_period": self._repo.count_readings(pool_id, since=since),
            },
            "current_status": current_status,
            "history": {
                "visits": [
                    {
                        "id": v.id,
                        "scheduled_at": v.event.scheduled_at.isoformat() if v.event.scheduled_at else None,
                        "visit_type": v.event.visit_type,
                        "status": v.event.status,
                        "quality_score": quality_scorer.score(v.event),
                        "issues_found": len(v.event.issues),
                        "summary": quality_scorer.summarize(v.event),
                    }
                    for v in visits
                ],
                "readings": [r.reading.as_dict() for r in recent],
            },
            "trends": {
                parameter: classify_trend([r.reading.value_of(parameter) for r in recent])
                for parameter in TREND_PARAMETERS
            },
        }
        logger.info(
            "Built report for pool %s: %d visits, %d readings",
            pool_id, len(visits), len(recent),
        )
        return report
