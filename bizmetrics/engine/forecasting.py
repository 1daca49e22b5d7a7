"""
Forecaster - short-horizon projections for daily business metrics.

Methods:
    - Exponential smoothing: flat-line baseline at the last smoothed level
    - Holt's double exponential smoothing: level plus trend, the production
      path used by the confidence forecast
    - Linear regression: least-squares line extended past the series
    - Day-of-week seasonality: mean value per weekday relative to the overall
      mean, applied as a multiplier to the Holt forecast

Confidence bands use the population standard deviation of the last seven
observations as standard error and widen by 10% per step ahead. Lower bounds
never drop below zero.
"""

import math
from collections.abc import Sequence
from datetime import date, timedelta

import numpy as np
import structlog

from bizmetrics.engine.dimensions import parse_fact_date
from bizmetrics.models.analytics import (
    ForecastAccuracy,
    ForecastPoint,
    SeasonalPattern,
    TimeSeriesPoint,
)
from bizmetrics.models.enums import ForecastMethod

logger = structlog.get_logger()

MIN_CONFIDENCE_POINTS = 7
STD_ERROR_WINDOW = 7
BAND_WIDENING = 0.1
Z_95 = 1.96
Z_99 = 2.58


def day_of_week(d: date) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday."""
    return (d.weekday() + 1) % 7


def _flat(values: Sequence[float], periods: int) -> list[float]:
    first = float(values[0]) if len(values) > 0 else 0.0
    return [first] * periods


class Forecaster:
    """
    Forecasts future values of a daily series.

    Attributes:
        alpha: Level smoothing factor in (0, 1]
        beta: Trend smoothing factor in [0, 1]

    Example:
        >>> forecaster = Forecaster()
        >>> forecaster.double_exponential_smoothing([10, 20, 30], periods=2)
        [40.0, 50.0]
    """

    def __init__(self, alpha: float = 0.3, beta: float = 0.1):
        if not 0 < alpha <= 1:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")
        if not 0 <= beta <= 1:
            raise ValueError(f"beta must be in [0, 1], got {beta}")
        self.alpha = alpha
        self.beta = beta
        self.logger = structlog.get_logger()

    def exponential_smoothing(
        self,
        values: Sequence[float],
        alpha: float | None = None,
        periods: int = 30,
    ) -> list[float]:
        """Repeat the last exponentially smoothed value ``periods`` times."""
        if len(values) == 0:
            return []

        alpha = self.alpha if alpha is None else alpha
        smoothed = float(values[0])
        for value in values[1:]:
            smoothed = alpha * float(value) + (1 - alpha) * smoothed
        return [smoothed] * periods

    def double_exponential_smoothing(
        self,
        values: Sequence[float],
        alpha: float | None = None,
        beta: float | None = None,
        periods: int = 30,
    ) -> list[float]:
        """
        Holt's linear method.

        Level starts at the first value and trend at the first difference;
        step k ahead is ``level + k * trend``.
        """
        if len(values) < 2:
            return _flat(values, periods)

        alpha = self.alpha if alpha is None else alpha
        beta = self.beta if beta is None else beta

        level = float(values[0])
        trend = float(values[1]) - float(values[0])
        for value in values[1:]:
            previous_level = level
            level = alpha * float(value) + (1 - alpha) * (level + trend)
            trend = beta * (level - previous_level) + (1 - beta) * trend

        return [level + step * trend for step in range(1, periods + 1)]

    def linear_forecast(self, values: Sequence[float], periods: int = 30) -> list[float]:
        """Extend the least-squares line through (index, value) past the series."""
        n = len(values)
        if n < 2:
            return _flat(values, periods)

        x = np.arange(n, dtype=float)
        slope, intercept = np.polyfit(x, np.asarray(values, dtype=float), 1)
        return [float(slope * (n + i) + intercept) for i in range(periods)]

    def detect_seasonality(self, points: Sequence[TimeSeriesPoint]) -> list[SeasonalPattern]:
        """
        Day-of-week multipliers relative to the overall mean.

        Only weekdays present in the data get a pattern. A zero overall mean
        yields zero multipliers.
        """
        if not points:
            return []

        by_day: dict[int, list[float]] = {}
        for point in points:
            by_day.setdefault(day_of_week(parse_fact_date(point.date)), []).append(point.value)

        overall_mean = float(np.mean([p.value for p in points]))
        return [
            SeasonalPattern(
                day_of_week=day,
                multiplier=float(np.mean(by_day[day])) / overall_mean if overall_mean != 0 else 0.0,
            )
            for day in sorted(by_day)
        ]

    def forecast_with_confidence(
        self,
        points: Sequence[TimeSeriesPoint],
        forecast_days: int = 30,
        confidence_level: float = 0.95,
    ) -> list[ForecastPoint]:
        """
        Seasonally adjusted Holt forecast with widening confidence bands.

        Args:
            points: Daily observations ordered oldest to newest
            forecast_days: Days to forecast past the last observation
            confidence_level: 0.95 for z = 1.96, anything else uses z = 2.58

        Returns:
            Forecast points, empty when fewer than seven observations exist

        Raises:
            ValueError: If the last point's date is malformed
        """
        if len(points) < MIN_CONFIDENCE_POINTS:
            self.logger.debug("forecast_insufficient_data", points=len(points))
            return []

        values = [p.value for p in points]
        last_date = parse_fact_date(points[-1].date)
        base = self.double_exponential_smoothing(values, periods=forecast_days)

        std_error = float(np.std(values[-STD_ERROR_WINDOW:]))
        z = Z_95 if confidence_level == 0.95 else Z_99

        patterns = self.detect_seasonality(points)
        multipliers = {p.day_of_week: p.multiplier for p in patterns}
        method = ForecastMethod.SEASONAL if patterns else ForecastMethod.EXPONENTIAL

        forecast = []
        for i, value in enumerate(base):
            forecast_date = last_date + timedelta(days=i + 1)
            # Missing or zero multipliers leave the forecast unadjusted
            multiplier = multipliers.get(day_of_week(forecast_date)) or 1.0
            adjusted = value * multiplier
            margin = z * std_error * (1 + BAND_WIDENING * i)

            forecast.append(
                ForecastPoint(
                    date=forecast_date.isoformat(),
                    forecast=adjusted,
                    confidence_lower=max(0.0, adjusted - margin),
                    confidence_upper=adjusted + margin,
                    method=method,
                )
            )

        self.logger.info(
            "forecast_generated",
            history_points=len(points),
            forecast_days=forecast_days,
            method=method.value,
            std_error=round(std_error, 4),
        )
        return forecast

    @staticmethod
    def forecast_accuracy(actual: Sequence[float], predicted: Sequence[float]) -> ForecastAccuracy:
        """
        MAE, MAPE (percent) and RMSE of predictions against actuals.

        Mismatched or empty inputs score zero; zero actuals add nothing to MAPE.
        """
        if len(actual) != len(predicted) or len(actual) == 0:
            return ForecastAccuracy()

        n = len(actual)
        abs_error = 0.0
        abs_percent_error = 0.0
        squared_error = 0.0
        for a, p in zip(actual, predicted):
            error = float(a) - float(p)
            abs_error += abs(error)
            if a != 0:
                abs_percent_error += abs(error / float(a)) * 100
            squared_error += error * error

        return ForecastAccuracy(
            mae=abs_error / n,
            mape=abs_percent_error / n,
            rmse=math.sqrt(squared_error / n),
        )
