"""
Trend Analyzer - linear regression direction, strength and momentum.

Fits an ordinary least squares line of value against position and turns the
fit into a dashboard-friendly classification:

    - slope: regression slope as a percentage of the series mean
    - direction: flat when |slope| < 1%, otherwise up/down by sign
    - strength: strong when |slope| > 5% and the coefficient of variation is
      below 20%, moderate when |slope| > 2%, weak otherwise
    - momentum: mean of the latest third minus mean of the earliest third
    - confidence: R-squared of the fit scaled to 0-100

Standard deviations are population (ddof=0). Fewer than three points yield a
neutral flat/weak result with zero confidence.

Also provides moving averages, rate of change and reversal detection used by
sparklines and trend indicators.
"""

from collections.abc import Sequence

import numpy as np
import structlog
from scipy import stats

from bizmetrics.models.analytics import MovingAveragePoint, TimeSeriesPoint, TrendResult
from bizmetrics.models.enums import TrendDirection, TrendStrength

logger = structlog.get_logger()


class TrendAnalyzer:
    """
    Classifies the trend of an ordered numeric series.

    Attributes:
        min_points: Minimum series length for a regression
        flat_threshold: |normalized slope| below which the trend is flat
        strong_threshold: |normalized slope| above which a trend may be strong
        moderate_threshold: |normalized slope| above which a trend is moderate
        max_strong_cv: Coefficient of variation ceiling for a strong trend

    Example:
        >>> TrendAnalyzer().analyze([100, 110, 120, 130, 140]).direction
        <TrendDirection.UP: 'up'>
    """

    def __init__(
        self,
        min_points: int = 3,
        flat_threshold: float = 1.0,
        strong_threshold: float = 5.0,
        moderate_threshold: float = 2.0,
        max_strong_cv: float = 20.0,
    ):
        if min_points < 3:
            raise ValueError("min_points must be at least 3 for a regression")
        self.min_points = min_points
        self.flat_threshold = flat_threshold
        self.strong_threshold = strong_threshold
        self.moderate_threshold = moderate_threshold
        self.max_strong_cv = max_strong_cv
        self.logger = structlog.get_logger()

    def analyze(self, series: Sequence[float]) -> TrendResult:
        """
        Analyze the trend of a series ordered oldest to newest.

        Args:
            series: Numeric observations

        Returns:
            TrendResult (neutral when the series is too short)
        """
        n = len(series)
        if n < self.min_points:
            self.logger.debug("trend_insufficient_data", points=n)
            return TrendResult(
                direction=TrendDirection.FLAT,
                strength=TrendStrength.WEAK,
                slope=0.0,
                momentum=0.0,
                confidence=0.0,
            )

        values = np.asarray(series, dtype=float)
        x = np.arange(n, dtype=float)
        fit = stats.linregress(x, values)
        slope = float(fit.slope)
        intercept = float(fit.intercept)

        mean = float(np.mean(values))
        std = float(np.std(values))

        # A zero mean leaves the relative measures undefined; treat as no trend
        normalized_slope = slope / mean * 100 if mean != 0 else 0.0
        cv = std / mean * 100 if mean != 0 else 0.0

        if abs(normalized_slope) < self.flat_threshold:
            direction = TrendDirection.FLAT
        elif normalized_slope > 0:
            direction = TrendDirection.UP
        else:
            direction = TrendDirection.DOWN

        if abs(normalized_slope) > self.strong_threshold and cv < self.max_strong_cv:
            strength = TrendStrength.STRONG
        elif abs(normalized_slope) > self.moderate_threshold:
            strength = TrendStrength.MODERATE
        else:
            strength = TrendStrength.WEAK

        third = n // 3
        momentum = float(np.mean(values[-third:]) - np.mean(values[:third]))

        predicted = slope * x + intercept
        ss_res = float(np.sum((values - predicted) ** 2))
        ss_tot = float(np.sum((values - mean) ** 2))
        r_squared = 1 - ss_res / ss_tot if ss_tot > 0 else 0.0
        confidence = max(0.0, min(100.0, r_squared * 100))

        result = TrendResult(
            direction=direction,
            strength=strength,
            slope=normalized_slope,
            momentum=momentum,
            confidence=confidence,
        )

        self.logger.debug(
            "trend_analyzed",
            points=n,
            direction=direction.value,
            strength=strength.value,
            slope=round(normalized_slope, 4),
            confidence=round(confidence, 2),
        )
        return result

    @staticmethod
    def simple_moving_average(values: Sequence[float], window: int = 7) -> list[float]:
        """
        Trailing simple moving average.

        Series shorter than the window are returned unchanged; the first
        ``window - 1`` points echo the raw value.
        """
        data = [float(v) for v in values]
        if len(data) < window:
            return data

        sma = []
        for i, value in enumerate(data):
            if i < window - 1:
                sma.append(value)
            else:
                sma.append(float(np.mean(data[i - window + 1 : i + 1])))
        return sma

    @staticmethod
    def exponential_moving_average(values: Sequence[float], window: int = 7) -> list[float]:
        """Exponential moving average with alpha = 2 / (window + 1), seeded with the first value."""
        if len(values) == 0:
            return []

        alpha = 2 / (window + 1)
        ema = [float(values[0])]
        for value in values[1:]:
            ema.append(alpha * float(value) + (1 - alpha) * ema[-1])
        return ema

    @staticmethod
    def rate_of_change(values: Sequence[float], period: int = 7) -> list[float]:
        """
        Percent change against the value ``period`` points earlier.

        The first ``period`` points and points whose base is zero report 0.
        """
        roc = []
        for i, value in enumerate(values):
            if i < period or values[i - period] == 0:
                roc.append(0.0)
            else:
                base = float(values[i - period])
                roc.append((float(value) - base) / base * 100)
        return roc

    @staticmethod
    def detect_trend_changes(values: Sequence[float], sensitivity: float = 0.05) -> list[int]:
        """
        Indices where the series reverses (peaks and troughs).

        A reversal needs consecutive relative changes of opposite sign whose
        difference exceeds ``sensitivity``. Windows with a zero base are skipped.
        """
        changes = []
        for i in range(2, len(values)):
            prev2, prev1, current = values[i - 2], values[i - 1], values[i]
            if prev2 == 0 or prev1 == 0:
                continue

            change1 = (prev1 - prev2) / prev2
            change2 = (current - prev1) / prev1

            if abs(change1 - change2) > sensitivity:
                if change1 > 0 and change2 < 0:
                    changes.append(i)  # peak
                elif change1 < 0 and change2 > 0:
                    changes.append(i)  # trough
        return changes

    def moving_averages(
        self, points: Sequence[TimeSeriesPoint], window: int = 7
    ) -> list[MovingAveragePoint]:
        """Pair each point with its SMA and EMA."""
        values = [p.value for p in points]
        sma = self.simple_moving_average(values, window)
        ema = self.exponential_moving_average(values, window)
        return [
            MovingAveragePoint(date=p.date, value=p.value, sma=s, ema=e)
            for p, s, e in zip(points, sma, ema)
        ]
