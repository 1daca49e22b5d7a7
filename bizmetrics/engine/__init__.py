"""
Business metrics analytics engine.

This package contains the computational core behind reporting and analytics
dashboards:

- Metric formulas: synonym-aware field resolution and derived metrics
- Pivot aggregation: dimension resolution, grouping, totals and ordering
- Trend analysis: regression direction, strength, momentum, moving averages
- Anomaly detection: z-score, IQR, MAD, ensemble and rolling window
- Forecasting: exponential, Holt, linear and seasonal confidence forecasts
- Period comparison: DoD, WoW, MoM, YoY and growth rates

All engine components are pure and synchronous: callers supply fully
fetched fact rows and reference lookups, and get pydantic models back.
"""

__all__ = [
    "MetricFormulaRegistry",
    "PivotEngine",
    "TrendAnalyzer",
    "Forecaster",
    "PeriodComparator",
    "InsightEngine",
    "build_lookups",
]

from bizmetrics.engine.aggregation import PivotEngine
from bizmetrics.engine.comparisons import PeriodComparator
from bizmetrics.engine.dimensions import build_lookups
from bizmetrics.engine.forecasting import Forecaster
from bizmetrics.engine.formulas import MetricFormulaRegistry
from bizmetrics.engine.insights import InsightEngine
from bizmetrics.engine.trend import TrendAnalyzer
