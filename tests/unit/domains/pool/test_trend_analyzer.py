"""Tests for TrendAnalyzer over an in-memory pool history."""

from __future__ import annotations

from datetime import timedelta

import pytest

from poolcare.core.storage.repository import RepositoryError
from poolcare.domains.pool.domain_logic.recommendations import NO_READING
from poolcare.domains.pool.domain_logic.trend_analyzer import TrendAnalyzer


@pytest.fixture
def analyzer(pool_repository) -> TrendAnalyzer:
    return TrendAnalyzer(pool_repository)


@pytest.fixture
def record_ph_series(pool_repository, pool_id, make_reading, now):
    """Save readings one day apart, the first value being the most recent."""

    def _record(values):
        for days_ago, ph in enumerate(values):
            pool_repository.save_reading(
                pool_id, make_reading(ph=ph, taken_at=now - timedelta(days=days_ago))
            )

    return _record


class TestParameterTrend:
    def test_no_history(self, analyzer, pool_id, now):
        trend = analyzer.parameter_trend(pool_id, "ph", now=now)
        assert trend == {"parameter": "ph", "data_points": 0, "direction": "insufficient_data"}

    def test_decreasing_ph(self, analyzer, pool_id, now, record_ph_series):
        record_ph_series([7.0, 7.1, 7.5, 7.6])
        trend = analyzer.parameter_trend(pool_id, "ph", now=now)
        assert trend["direction"] == "decreasing"
        assert trend["current"] == 7.0
        assert trend["min"] == 7.0
        assert trend["max"] == 7.6
        assert trend["data_points"] == 4
        assert trend["percent_change"] == pytest.approx(-6.62)

    def test_window_excludes_old_readings(
        self, analyzer, pool_repository, pool_id, now, make_reading, record_ph_series,
    ):
        record_ph_series([7.4, 7.4])
        pool_repository.save_reading(
            pool_id, make_reading(ph=6.0, taken_at=now - timedelta(days=60))
        )
        trend = analyzer.parameter_trend(pool_id, "ph", days=30, now=now)
        assert trend["data_points"] == 2
        assert trend["direction"] == "stable"

    def test_limit_keeps_most_recent(self, analyzer, pool_id, now, record_ph_series):
        record_ph_series([7.4] * 12)
        trend = analyzer.parameter_trend(pool_id, "ph", now=now)
        assert trend["data_points"] == 10

    def test_rise_from_zero_reports_no_percentage(
        self, analyzer, pool_repository, pool_id, now, make_reading,
    ):
        for days_ago, chlorine in enumerate([2.0, 0.0]):
            pool_repository.save_reading(
                pool_id, make_reading(chlorine_ppm=chlorine, taken_at=now - timedelta(days=days_ago))
            )
        trend = analyzer.parameter_trend(pool_id, "chlorine", now=now)
        assert trend["direction"] == "increasing"
        assert trend["percent_change"] is None

    def test_unknown_parameter_raises(self, analyzer, pool_id, now):
        with pytest.raises(RepositoryError):
            analyzer.parameter_trend(pool_id, "salinity", now=now)


class TestPoolReport:
    def test_unknown_pool_raises(self, analyzer, now):
        with pytest.raises(RepositoryError):
            analyzer.pool_report("no-such-pool", now=now)

    def test_untested_pool_needs_attention(self, analyzer, pool_id, now):
        report = analyzer.pool_report(pool_id, now=now)
        status = report["current_status"]
        assert status["needs_attention"] is True
        assert status["recommendations"] == [NO_READING.as_dict()]
        assert status["latest_reading"] is None
        assert status["evaluation"] is None
        assert report["statistics"]["total_visits"] == 0
        assert report["statistics"]["avg_quality_score"] == 0.0
        assert report["trends"] == {
            "ph": "insufficient_data",
            "chlorine": "insufficient_data",
            "alkalinity": "insufficient_data",
        }

    def test_full_report(
        self, analyzer, pool_repository, pool_id, now, make_event, record_ph_series,
    ):
        record_ph_series([7.8, 7.8, 7.3, 7.3])
        pool_repository.save_visit(pool_id, make_event(
            task_statuses=("completed", "failed", "completed"),
            severities=("critical",),
            customer_rating=5,
            status="completed",
            scheduled_at=now - timedelta(days=2),
        ))
        pool_repository.save_visit(pool_id, make_event(
            status="completed",
            scheduled_at=now - timedelta(days=9),
        ))
        # Outside the 30-day window
        pool_repository.save_visit(pool_id, make_event(
            severities=("critical",) * 3,
            status="completed",
            scheduled_at=now - timedelta(days=45),
        ))

        report = analyzer.pool_report(pool_id, days=30, now=now)

        assert report["pool"]["name"] == "Backyard"
        assert report["pool"]["pool_type"] == "inground"

        stats = report["statistics"]
        assert stats["total_visits"] == 2
        assert stats["completed_visits"] == 2
        assert stats["avg_quality_score"] == 90.0
        assert stats["issues_found"] == 1
        assert stats["readings_in_period"] == 4

        status = report["current_status"]
        assert status["needs_attention"] is True
        assert status["evaluation"]["ph"] == "above"
        assert status["latest_reading"]["ph"] == 7.8
        assert [r["priority"] for r in status["recommendations"]] == ["high"]

        visits = report["history"]["visits"]
        assert [v["quality_score"] for v in visits] == [80, 100]
        assert visits[0]["summary"]["completion_percentage"] == 67
        assert len(report["history"]["readings"]) == 4

        assert report["trends"]["ph"] == "increasing"
        assert report["trends"]["chlorine"] == "stable"

    def test_scores_recomputed_from_stored_visits(self, analyzer, pool_repository, pool_id, now, make_event):
        pool_repository.save_visit(pool_id, make_event(
            severities=("major",), status="completed", scheduled_at=now - timedelta(days=1),
        ))
        first = analyzer.pool_report(pool_id, now=now)
        second = analyzer.pool_report(pool_id, now=now)
        assert first["history"]["visits"][0]["quality_score"] == 90
        assert first["statistics"] == second["statistics"]
