"""
Analytics result models.

Plain, serializable structures produced by the trend analyzer, anomaly
detectors, forecaster and period comparator. None of them carry behavior
beyond convenience accessors, so they can cross a process boundary unchanged.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .enums import (
    AnomalyMethod,
    AnomalySeverity,
    ForecastMethod,
    TrendDirection,
    TrendStrength,
)


class TimeSeriesPoint(BaseModel):
    """A single dated observation, ``date`` as an ISO string."""

    date: str = Field(description="ISO date (YYYY-MM-DD) or datetime string")
    value: float = Field(description="Observed value")


class TrendResult(BaseModel):
    """
    Linear-regression trend summary of an ordered series.

    Attributes:
        direction: up / down / flat
        strength: weak / moderate / strong
        slope: Regression slope as a percentage of the series mean
        momentum: Mean of the latest third minus mean of the earliest third
        confidence: R-squared scaled to 0-100
    """

    direction: TrendDirection = TrendDirection.FLAT
    strength: TrendStrength = TrendStrength.WEAK
    slope: float = 0.0
    momentum: float = 0.0
    confidence: float = Field(default=0.0, ge=0.0, le=100.0)


class MovingAveragePoint(BaseModel):
    """Observation with its simple and exponential moving averages."""

    date: str
    value: float
    sma: float
    ema: float


class Anomaly(BaseModel):
    """
    A flagged outlier in a series.

    ``deviation_score`` is method specific: absolute z-score, distance from
    the median in IQR units, or absolute modified z-score. It is infinite when
    the reference spread is zero.
    """

    index: int = Field(ge=0, description="Position in the analysed series")
    value: float = Field(description="Observed value")
    expected: float = Field(description="Reference value (mean or median)")
    deviation_score: float = Field(ge=0.0, description="Method-specific deviation")
    severity: AnomalySeverity
    method: AnomalyMethod


class AnomalyResult(BaseModel):
    """Anomalies found in a series plus the human-readable summary."""

    anomalies: list[Anomaly] = Field(default_factory=list)
    total_points: int = Field(default=0, ge=0)
    anomaly_rate: float = Field(default=0.0, ge=0.0)
    summary: str = ""


class SeasonalPattern(BaseModel):
    """Day-of-week multiplier (0 = Sunday ... 6 = Saturday)."""

    day_of_week: int = Field(ge=0, le=6)
    multiplier: float


class ForecastPoint(BaseModel):
    """One future period with its confidence band (lower bound floored at 0)."""

    date: str
    forecast: float
    confidence_lower: float = Field(ge=0.0)
    confidence_upper: float
    method: ForecastMethod


class ForecastAccuracy(BaseModel):
    """Offline accuracy of predictions against actuals."""

    mae: float = 0.0
    mape: float = 0.0
    rmse: float = 0.0


class ComparisonResult(BaseModel):
    """Change between two values with direction and significance."""

    current: float
    previous: float
    change: float
    change_percent: float
    direction: TrendDirection
    is_significant: bool


class PeriodValue(BaseModel):
    """Value aggregated over a labelled period."""

    value: float
    period_label: str


class PeriodComparison(BaseModel):
    """Calendar-window comparison (DoD, WoW, MoM or YoY)."""

    metric_label: str
    current: PeriodValue
    previous: PeriodValue
    change: float
    change_percent: float
    direction: TrendDirection
    is_significant: bool


class ComparisonSet(BaseModel):
    """All fixed-window comparisons for one series."""

    yoy: Optional[PeriodComparison] = None
    mom: Optional[PeriodComparison] = None
    wow: Optional[PeriodComparison] = None
    dod: Optional[PeriodComparison] = None


class GrowthRates(BaseModel):
    """Compound growth rates (percent) between the first and last point."""

    daily_growth_rate: float = 0.0
    weekly_growth_rate: float = 0.0
    monthly_growth_rate: float = 0.0


class SeriesInsights(BaseModel):
    """Bundle of every series analysis for a single metric series."""

    point_count: int = Field(ge=0)
    trend: TrendResult
    anomalies: AnomalyResult
    forecast: list[ForecastPoint] = Field(default_factory=list)
    comparisons: ComparisonSet
