"""
Insight Engine - one-call analytics for dashboards.

Wires the pivot engine and the series analytics to the engine settings:

    report():   pivot table over at most ``report_row_limit`` fact rows,
                falling back to ``default_granularity`` when the query does
                not set one
    analyze():  trend, anomalies, confidence forecast and period comparisons
                of one daily series, bundled as SeriesInsights

The individual analyses are independent; a failure in one (for example a
malformed date) propagates to the caller rather than yielding a partial
result.
"""

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Optional

import structlog

from bizmetrics.config import Settings, get_settings
from bizmetrics.engine.aggregation import PivotEngine
from bizmetrics.engine.comparisons import PeriodComparator
from bizmetrics.engine.detection import EnsembleDetector, RollingWindowDetector, StatisticalDetector
from bizmetrics.engine.forecasting import Forecaster
from bizmetrics.engine.trend import TrendAnalyzer
from bizmetrics.models.analytics import AnomalyResult, SeriesInsights, TimeSeriesPoint
from bizmetrics.models.reports import ReferenceLookup, ReportQuery, ReportResult
from bizmetrics.utils.logging import analysis_context, log_event

logger = structlog.get_logger()


class InsightEngine:
    """
    Settings-driven facade over the analytics components.

    Attributes:
        settings: Engine settings
        pivot: Pivot engine for reports
        trend_analyzer: Trend classifier
        detector: Ensemble anomaly detector
        rolling_detector: Trailing-window anomaly detector
        forecaster: Holt/seasonal forecaster
        comparator: Period comparator

    Example:
        >>> engine = InsightEngine()
        >>> insights = engine.analyze(points)
        >>> insights.trend.direction, len(insights.forecast)
        (<TrendDirection.UP: 'up'>, 30)
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        statistical = StatisticalDetector(
            zscore_threshold=self.settings.anomaly_zscore_threshold,
            mad_threshold=self.settings.anomaly_mad_threshold,
        )
        self.pivot = PivotEngine()
        self.trend_analyzer = TrendAnalyzer()
        self.detector = EnsembleDetector(statistical_detector=statistical)
        self.rolling_detector = RollingWindowDetector(
            threshold=self.settings.anomaly_rolling_threshold,
            warning_threshold=self.settings.anomaly_rolling_warning_threshold,
            critical_threshold=self.settings.anomaly_rolling_critical_threshold,
            fallback=self.detector,
        )
        self.forecaster = Forecaster(
            alpha=self.settings.forecast_alpha,
            beta=self.settings.forecast_beta,
        )
        self.comparator = PeriodComparator()
        self.logger = structlog.get_logger()

    def report(
        self,
        rows: Sequence[Mapping[str, Any]],
        query: ReportQuery,
        lookups: Optional[ReferenceLookup] = None,
    ) -> ReportResult:
        """
        Run a pivot report within the configured row limit.

        Args:
            rows: Fact rows, already filtered and authorized
            query: Validated report query
            lookups: Store/location display names

        Returns:
            ReportResult
        """
        limit = self.settings.report_row_limit
        if len(rows) > limit:
            log_event(
                self.logger,
                "warning",
                "report_rows_truncated",
                received=len(rows),
                limit=limit,
            )
            rows = rows[:limit]

        granularity = (
            query.date_granularity
            if "date_granularity" in query.model_fields_set
            else self.settings.default_granularity
        )
        with analysis_context(data_source=query.data_source.value):
            return self.pivot.aggregate(
                rows,
                query.dimensions,
                query.metrics,
                granularity=granularity,
                lookups=lookups,
            )

    def analyze(
        self, points: Sequence[TimeSeriesPoint], now: Optional[datetime] = None
    ) -> SeriesInsights:
        """
        Run every series analysis over a daily series.

        Args:
            points: Daily observations ordered oldest to newest
            now: Reference time for period comparisons (default: current UTC)

        Returns:
            SeriesInsights bundle
        """
        values = [p.value for p in points]
        series_range = (points[0].date, points[-1].date) if points else None

        with analysis_context(series_range=series_range):
            trend = self.trend_analyzer.analyze(values)
            anomalies = self.detector.detect(values, method=self.settings.anomaly_method)
            forecast = self.forecaster.forecast_with_confidence(
                points,
                forecast_days=self.settings.forecast_periods,
                confidence_level=self.settings.forecast_confidence_level,
            )
            comparisons = self.comparator.all_comparisons(points, now=now)

        log_event(
            self.logger,
            "info",
            "series_insights_built",
            points=len(points),
            trend=trend.direction.value,
            anomalies=len(anomalies.anomalies),
            forecast_days=len(forecast),
        )

        return SeriesInsights(
            point_count=len(points),
            trend=trend,
            anomalies=anomalies,
            forecast=forecast,
            comparisons=comparisons,
        )

    def rolling_anomalies(self, points: Sequence[TimeSeriesPoint]) -> AnomalyResult:
        """Rolling-window detection using the configured window and thresholds."""
        return self.rolling_detector.detect(points, window_size=self.settings.anomaly_rolling_window)
