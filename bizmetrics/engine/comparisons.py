"""
Period Comparison Engine - DoD, WoW, MoM and YoY.

Compares a metric's total over the latest period with the period before it:

    current  = points dated in [now - P, now + inf)
    previous = points dated in [now - 2P, now - P)

for P of 7 days (WoW), one calendar month (MoM) or one calendar year (YoY).
Calendar shifts clamp the day to the end of the target month, so Mar 31 minus
one month is Feb 28 (or 29). Day-over-day compares the two most recent points
regardless of ``now``.

Change rules:
    - percent change is relative to |previous|; a zero previous reads as
      100% when the current value is positive, else 0%
    - direction is flat below 1% either way
    - a change of 5% or more is significant

Also provides CAGR and compound daily/weekly/monthly growth rates.
"""

import calendar
from collections.abc import Sequence
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import structlog

from bizmetrics.engine.dimensions import parse_fact_date
from bizmetrics.models.analytics import (
    ComparisonResult,
    ComparisonSet,
    GrowthRates,
    PeriodComparison,
    PeriodValue,
    TimeSeriesPoint,
)
from bizmetrics.models.enums import TrendDirection

logger = structlog.get_logger()

SIGNIFICANCE_THRESHOLD = 5.0
FLAT_THRESHOLD = 1.0

DOD_LABEL = "Day-over-Day"
WOW_LABEL = "Week-over-Week"
MOM_LABEL = "Month-over-Month"
YOY_LABEL = "Year-over-Year"


def shift_months(moment: datetime, months: int) -> datetime:
    """
    Shift a datetime by whole calendar months, clamping to the month's end.

    Example:
        >>> shift_months(datetime(2025, 3, 31), -1)
        datetime.datetime(2025, 2, 28, 0, 0)
    """
    month_index = moment.year * 12 + moment.month - 1 + months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _reference_time(now: Optional[datetime]) -> datetime:
    """Naive UTC reference time; aware values are converted to UTC."""
    if now is None:
        return _utc_now()
    if now.tzinfo is not None:
        return now.astimezone(timezone.utc).replace(tzinfo=None)
    return now


def _point_moment(point: TimeSeriesPoint) -> datetime:
    d = parse_fact_date(point.date)
    return datetime(d.year, d.month, d.day)


def _day_label(d: date) -> str:
    return f"{d.strftime('%b')} {d.day}, {d.year}"


def _short_day_label(d: date) -> str:
    return f"{d.strftime('%b')} {d.day}"


class PeriodComparator:
    """
    Period-over-period comparisons for a daily metric series.

    Attributes:
        significance_threshold: |percent change| at or above which a change
            is significant
        flat_threshold: |percent change| below which direction is flat

    Example:
        >>> comparator = PeriodComparator()
        >>> comparator.create_comparison(110, 100).direction
        <TrendDirection.UP: 'up'>
    """

    def __init__(
        self,
        significance_threshold: float = SIGNIFICANCE_THRESHOLD,
        flat_threshold: float = FLAT_THRESHOLD,
    ):
        self.significance_threshold = significance_threshold
        self.flat_threshold = flat_threshold
        self.logger = structlog.get_logger()

    @staticmethod
    def percentage_change(current: float, previous: float) -> float:
        """Percent change relative to |previous| (100 or 0 when previous is 0)."""
        if previous == 0:
            return 100.0 if current > 0 else 0.0
        return (current - previous) / abs(previous) * 100

    def is_significant_change(self, change_percent: float, threshold: Optional[float] = None) -> bool:
        threshold = self.significance_threshold if threshold is None else threshold
        return abs(change_percent) >= threshold

    def create_comparison(self, current: float, previous: float) -> ComparisonResult:
        """Compare two values."""
        change_percent = self.percentage_change(current, previous)

        if abs(change_percent) < self.flat_threshold:
            direction = TrendDirection.FLAT
        elif change_percent > 0:
            direction = TrendDirection.UP
        else:
            direction = TrendDirection.DOWN

        return ComparisonResult(
            current=current,
            previous=previous,
            change=current - previous,
            change_percent=change_percent,
            direction=direction,
            is_significant=self.is_significant_change(change_percent),
        )

    def compare_dod(self, points: Sequence[TimeSeriesPoint]) -> Optional[PeriodComparison]:
        """Compare the two most recent points (by date string)."""
        if len(points) < 2:
            return None

        latest, prior = sorted(points, key=lambda p: p.date, reverse=True)[:2]
        return self._period_comparison(
            DOD_LABEL,
            latest.value,
            _day_label(parse_fact_date(latest.date)),
            prior.value,
            _day_label(parse_fact_date(prior.date)),
        )

    def compare_wow(
        self, points: Sequence[TimeSeriesPoint], now: Optional[datetime] = None
    ) -> Optional[PeriodComparison]:
        """Last 7 days against the 7 days before."""
        now = _reference_time(now)
        one_week_ago = now - timedelta(days=7)
        two_weeks_ago = now - timedelta(days=14)
        return self._windowed(
            points,
            WOW_LABEL,
            now,
            one_week_ago,
            two_weeks_ago,
            current_label=f"{_short_day_label(one_week_ago)} - {_day_label(now)}",
            previous_label=f"{_short_day_label(two_weeks_ago)} - {_day_label(one_week_ago)}",
        )

    def compare_mom(
        self, points: Sequence[TimeSeriesPoint], now: Optional[datetime] = None
    ) -> Optional[PeriodComparison]:
        """Last calendar month against the month before."""
        now = _reference_time(now)
        one_month_ago = shift_months(now, -1)
        two_months_ago = shift_months(now, -2)
        return self._windowed(
            points,
            MOM_LABEL,
            now,
            one_month_ago,
            two_months_ago,
            current_label=one_month_ago.strftime("%B %Y"),
            previous_label=two_months_ago.strftime("%B %Y"),
        )

    def compare_yoy(
        self, points: Sequence[TimeSeriesPoint], now: Optional[datetime] = None
    ) -> Optional[PeriodComparison]:
        """Last year against the year before."""
        now = _reference_time(now)
        one_year_ago = shift_months(now, -12)
        two_years_ago = shift_months(now, -24)
        return self._windowed(
            points,
            YOY_LABEL,
            now,
            one_year_ago,
            two_years_ago,
            current_label=f"{one_year_ago.strftime('%b %Y')} - {now.strftime('%b %Y')}",
            previous_label=f"{two_years_ago.strftime('%b %Y')} - {one_year_ago.strftime('%b %Y')}",
        )

    def all_comparisons(
        self, points: Sequence[TimeSeriesPoint], now: Optional[datetime] = None
    ) -> ComparisonSet:
        """Every fixed-window comparison evaluated at the same ``now``."""
        now = _reference_time(now)
        comparisons = ComparisonSet(
            yoy=self.compare_yoy(points, now),
            mom=self.compare_mom(points, now),
            wow=self.compare_wow(points, now),
            dod=self.compare_dod(points),
        )
        self.logger.debug(
            "period_comparisons_built",
            points=len(points),
            available=[name for name, value in comparisons if value is not None],
        )
        return comparisons

    @staticmethod
    def cagr(start_value: float, end_value: float, years: float) -> float:
        """
        Compound annual growth rate in percent.

        Non-positive start values or spans, and sign flips between start and
        end, yield 0.
        """
        if start_value <= 0 or years <= 0:
            return 0.0
        ratio = end_value / start_value
        if ratio < 0:
            return 0.0
        return (ratio ** (1 / years) - 1) * 100

    @staticmethod
    def growth_rates(points: Sequence[TimeSeriesPoint]) -> GrowthRates:
        """
        Compound daily, weekly (7 day) and monthly (30 day) growth rates
        between the first and last point by date.
        """
        if len(points) < 2:
            return GrowthRates()

        ordered = sorted(points, key=lambda p: p.date)
        start_value = ordered[0].value
        end_value = ordered[-1].value
        days = (parse_fact_date(ordered[-1].date) - parse_fact_date(ordered[0].date)).days

        if days == 0 or start_value == 0:
            return GrowthRates()

        growth_factor = 1 + (end_value - start_value) / start_value
        if growth_factor < 0:
            return GrowthRates()

        return GrowthRates(
            daily_growth_rate=(growth_factor ** (1 / days) - 1) * 100,
            weekly_growth_rate=(growth_factor ** (7 / days) - 1) * 100,
            monthly_growth_rate=(growth_factor ** (30 / days) - 1) * 100,
        )

    def _windowed(
        self,
        points: Sequence[TimeSeriesPoint],
        metric_label: str,
        now: datetime,
        current_start: datetime,
        previous_start: datetime,
        current_label: str,
        previous_label: str,
    ) -> Optional[PeriodComparison]:
        if not points:
            return None

        current_total = 0.0
        previous_total = 0.0
        previous_count = 0
        for point in points:
            moment = _point_moment(point)
            if moment >= current_start:
                current_total += point.value
            elif moment >= previous_start:
                previous_total += point.value
                previous_count += 1

        if previous_count == 0:
            self.logger.debug("comparison_no_previous_period", metric_label=metric_label, now=now.isoformat())
            return None

        return self._period_comparison(
            metric_label, current_total, current_label, previous_total, previous_label
        )

    def _period_comparison(
        self,
        metric_label: str,
        current: float,
        current_label: str,
        previous: float,
        previous_label: str,
    ) -> PeriodComparison:
        result = self.create_comparison(current, previous)
        return PeriodComparison(
            metric_label=metric_label,
            current=PeriodValue(value=current, period_label=current_label),
            previous=PeriodValue(value=previous, period_label=previous_label),
            change=result.change,
            change_percent=result.change_percent,
            direction=result.direction,
            is_significant=result.is_significant,
        )
