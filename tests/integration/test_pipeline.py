"""
End-to-end tests: fact rows through reports and series insights.

Exercises the InsightEngine facade with explicit settings, covering the
report row limit, default granularity, and the full series analysis bundle.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from bizmetrics.config import Settings
from bizmetrics.engine import InsightEngine, build_lookups
from bizmetrics.models import AnomalyMethod, ReportQuery, TrendDirection
from tests.conftest import make_fact_row, make_series


def _daily_rows(days: int, start: date = date(2025, 1, 1)) -> list[dict]:
    """Two stores, one sale each per day, revenue growing 2% a day."""
    rows = []
    for offset in range(days):
        day = (start + timedelta(days=offset)).isoformat()
        revenue = 100 * (1.02 ** offset)
        rows.append(make_fact_row(sale_date=day, store_id="s1", total_revenue=revenue, total_cogs=revenue * 0.4))
        rows.append(make_fact_row(sale_date=day, store_id="s2", total_revenue=revenue / 2, total_cogs=revenue * 0.3))
    return rows


class TestReportPipeline:
    """Fact rows to pivot reports."""

    def test_pipeline_report_with_resolver(self):
        rows = _daily_rows(10)
        names = {"s1": "Downtown", "s2": "Airport"}
        query = ReportQuery(dimensions=["store"], metrics=["orders", "revenue", "margin"])

        lookups = build_lookups(rows, query.dimensions, lambda kind, ids: {i: names[i] for i in ids})
        result = InsightEngine(Settings(_env_file=None)).report(rows, query, lookups)

        assert [r.dimensions["store"] for r in result.rows] == ["Airport", "Downtown"]
        assert result.rows[1].metrics["orders"] == 10
        assert result.rows[1].metrics["margin"] == pytest.approx(60.0)
        assert result.totals["orders"] == 20

    def test_pipeline_report_truncates_to_row_limit(self):
        rows = _daily_rows(10)
        query = ReportQuery(dimensions=["store"], metrics=["orders"])
        result = InsightEngine(Settings(_env_file=None, report_row_limit=5)).report(rows, query)
        assert result.totals["orders"] == 5

    def test_pipeline_report_uses_default_granularity(self):
        rows = _daily_rows(40)
        query = ReportQuery(dimensions=["date"], metrics=["orders"])
        result = InsightEngine(Settings(_env_file=None, default_granularity="month")).report(rows, query)
        assert [r.dimensions["date"] for r in result.rows] == ["February 2025", "January 2025"]

    def test_pipeline_report_explicit_granularity_wins(self):
        rows = _daily_rows(40)
        query = ReportQuery(dimensions=["date"], metrics=["orders"], date_granularity="year")
        result = InsightEngine(Settings(_env_file=None, default_granularity="month")).report(rows, query)
        assert [r.dimensions["date"] for r in result.rows] == ["2025"]


class TestInsightPipeline:
    """Daily series to bundled insights."""

    def test_pipeline_analyze_growing_series(self):
        rows = _daily_rows(60)
        engine = InsightEngine(Settings(_env_file=None))
        series = engine.pivot.time_series(rows, "revenue")

        insights = engine.analyze(series, now=datetime(2025, 3, 2))

        assert insights.point_count == 60
        assert insights.trend.direction == TrendDirection.UP
        assert len(insights.forecast) == 30
        assert insights.forecast[0].date == "2025-03-02"
        assert insights.comparisons.wow is not None
        assert insights.comparisons.wow.direction == TrendDirection.UP
        assert insights.comparisons.dod is not None
        assert insights.comparisons.yoy is None

    def test_pipeline_analyze_respects_settings(self):
        engine = InsightEngine(
            Settings(_env_file=None, anomaly_method="zscore", forecast_periods=7)
        )
        points = make_series([10, 11, 9, 10, 200, 10, 11, 9])

        insights = engine.analyze(points, now=datetime(2025, 1, 9))

        assert [a.method for a in insights.anomalies.anomalies] == [AnomalyMethod.ZSCORE]
        assert len(insights.forecast) == 7

    def test_pipeline_analyze_short_series_degrades(self):
        insights = InsightEngine(Settings(_env_file=None)).analyze(make_series([5, 6]))

        assert insights.trend.direction == TrendDirection.FLAT
        assert insights.anomalies.summary == "Insufficient data for anomaly detection"
        assert insights.forecast == []

    def test_pipeline_insights_serialize(self):
        engine = InsightEngine(Settings(_env_file=None))
        insights = engine.analyze(make_series([100 + 5 * i for i in range(14)]), now=datetime(2025, 1, 15))
        payload = insights.model_dump(mode="json")
        assert payload["trend"]["direction"] == "up"
        assert set(payload["comparisons"]) == {"yoy", "mom", "wow", "dod"}

    def test_pipeline_rolling_anomalies_window(self):
        engine = InsightEngine(Settings(_env_file=None, anomaly_rolling_window=5))
        result = engine.rolling_anomalies(make_series([10] * 5 + [50]))
        assert [a.index for a in result.anomalies] == [5]
        assert result.summary == "Rolling window anomaly detection (5-day window)"

    def test_pipeline_rolling_anomalies_thresholds(self):
        settings = Settings(
            _env_file=None,
            anomaly_rolling_threshold=20.0,
            anomaly_rolling_warning_threshold=25.0,
            anomaly_rolling_critical_threshold=30.0,
        )
        points = make_series([10, 12, 10, 12, 10, 12, 10, 30])

        assert InsightEngine(settings).rolling_anomalies(points).anomalies == []
        assert len(InsightEngine(Settings(_env_file=None)).rolling_anomalies(points).anomalies) == 1

    def test_pipeline_analyze_accepts_aware_now(self):
        rows = _daily_rows(20)
        engine = InsightEngine(Settings(_env_file=None))
        series = engine.pivot.time_series(rows, "revenue")

        insights = engine.analyze(series, now=datetime(2025, 1, 21, tzinfo=timezone.utc))

        assert insights.comparisons.wow is not None
        assert insights.comparisons.wow.direction == TrendDirection.UP
