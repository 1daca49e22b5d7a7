"""
Pydantic v2 data models for the business metrics analytics engine.

Model Organization:
    - enums: Closed vocabularies (dimensions, metrics, granularity, severities)
    - reports: Report query, reference lookups and pivot results
    - analytics: Trend, anomaly, forecast and comparison results

Usage:
    >>> from bizmetrics.models import ReportQuery, Dimension, Metric
    >>> query = ReportQuery(dimensions=[Dimension.STORE], metrics=[Metric.REVENUE])
"""

from .analytics import (
    Anomaly,
    AnomalyResult,
    ComparisonResult,
    ComparisonSet,
    ForecastAccuracy,
    ForecastPoint,
    GrowthRates,
    MovingAveragePoint,
    PeriodComparison,
    PeriodValue,
    SeasonalPattern,
    SeriesInsights,
    TimeSeriesPoint,
    TrendResult,
)
from .enums import (
    AnomalyMethod,
    AnomalySeverity,
    DataSource,
    DetectionMode,
    Dimension,
    ForecastMethod,
    Granularity,
    Metric,
    TrendDirection,
    TrendStrength,
)
from .reports import AggregatedRow, FactRow, ReferenceLookup, ReportQuery, ReportResult

__all__ = [
    # Enums
    "AnomalyMethod",
    "AnomalySeverity",
    "DataSource",
    "DetectionMode",
    "Dimension",
    "ForecastMethod",
    "Granularity",
    "Metric",
    "TrendDirection",
    "TrendStrength",
    # Reports
    "AggregatedRow",
    "FactRow",
    "ReferenceLookup",
    "ReportQuery",
    "ReportResult",
    # Analytics
    "Anomaly",
    "AnomalyResult",
    "ComparisonResult",
    "ComparisonSet",
    "ForecastAccuracy",
    "ForecastPoint",
    "GrowthRates",
    "MovingAveragePoint",
    "PeriodComparison",
    "PeriodValue",
    "SeasonalPattern",
    "SeriesInsights",
    "TimeSeriesPoint",
    "TrendResult",
]
