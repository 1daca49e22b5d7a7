"""
Aggregation / Pivot Engine - fact rows to report tables.

Turns a caller-supplied, already-authorized collection of fact rows into a
dimension/metric pivot table:

    1. Resolve every requested dimension of every row (DimensionResolver)
    2. Group rows by the tuple of resolved display values, first-seen order
    3. Evaluate every requested metric per group (MetricFormulaRegistry)
       and accumulate report totals
    4. Sort rows: date buckets newest first when the first dimension is
       date, otherwise ascending by the first dimension's display value

Totals are the sum of per-row metric values. For additive metrics this equals
the grand total; for ratio metrics (margin, avg_order_value) it is a sum of
per-group ratios, kept as-is for parity with existing dashboards.

The engine performs no I/O: reference lookups must be fully populated before
aggregation starts (see ``build_lookups``).
"""

import time
from collections.abc import Iterable, Mapping, Sequence
from datetime import date
from typing import Any, Optional

import structlog

from bizmetrics.engine.dimensions import (
    DimensionResolver,
    Resolution,
    dimension_name,
    parse_fact_date,
    row_date,
)
from bizmetrics.engine.formulas import MetricFormulaRegistry
from bizmetrics.models.analytics import TimeSeriesPoint
from bizmetrics.models.enums import Dimension, Granularity, Metric
from bizmetrics.models.reports import AggregatedRow, ReferenceLookup, ReportQuery, ReportResult

logger = structlog.get_logger()


class PivotEngine:
    """
    Groups fact rows by dimensions and evaluates metrics per group.

    Attributes:
        registry: Metric formula registry used for every group

    Example:
        >>> engine = PivotEngine()
        >>> result = engine.aggregate(rows, ["store"], ["revenue", "margin"])
        >>> result.rows[0].to_flat()
        {'store': 'Downtown', 'revenue': 1200.0, 'margin': 35.0}
    """

    def __init__(self, registry: Optional[MetricFormulaRegistry] = None):
        self.registry = registry or MetricFormulaRegistry()
        self.logger = structlog.get_logger()

    def run(
        self,
        rows: Sequence[Mapping[str, Any]],
        query: ReportQuery,
        lookups: Optional[ReferenceLookup] = None,
    ) -> ReportResult:
        """Aggregate rows for a validated report query."""
        return self.aggregate(
            rows,
            query.dimensions,
            query.metrics,
            granularity=query.date_granularity,
            lookups=lookups,
        )

    def aggregate(
        self,
        rows: Sequence[Mapping[str, Any]],
        dimensions: Sequence[str | Dimension],
        metrics: Sequence[str | Metric],
        granularity: str | Granularity | None = None,
        lookups: Optional[ReferenceLookup] = None,
    ) -> ReportResult:
        """
        Build a pivot table from fact rows.

        Args:
            rows: Fact rows (never mutated)
            dimensions: Grouping dimensions, in key order
            metrics: Metrics evaluated per group, in column order
            granularity: Date bucketing for the date dimension (default: day)
            lookups: Store/location id to name maps

        Returns:
            ReportResult with sorted rows, totals and timing metadata

        Raises:
            ValueError: If a row carries a malformed date
        """
        started = time.perf_counter()
        dim_names = [dimension_name(d) for d in dimensions]
        metric_names = [m.value if isinstance(m, Metric) else str(m) for m in metrics]

        if not rows:
            return ReportResult(
                rows=[],
                totals={},
                row_count=0,
                execution_time_ms=_elapsed_ms(started),
            )

        resolver = DimensionResolver(granularity, lookups)

        grouped: dict[tuple[str, ...], list[Mapping[str, Any]]] = {}
        bucket_starts: dict[tuple[str, ...], Optional[date]] = {}
        for row in rows:
            resolutions = resolver.resolve_key(row, dim_names)
            key = tuple(r.display for r in resolutions)
            if key not in grouped:
                grouped[key] = []
                bucket_starts[key] = _first_bucket_start(resolutions)
            grouped[key].append(row)

        totals = {metric: 0.0 for metric in metric_names}
        output: list[tuple[tuple[str, ...], AggregatedRow]] = []
        for key, group_rows in grouped.items():
            values = self.registry.evaluate_many(metric_names, group_rows)
            for metric, value in values.items():
                totals[metric] += value
            output.append(
                (key, AggregatedRow(dimensions=dict(zip(dim_names, key)), metrics=values))
            )

        if dim_names and dim_names[0] == "date":
            output.sort(key=lambda item: _date_sort_key(bucket_starts[item[0]]), reverse=True)
        elif dim_names:
            output.sort(key=lambda item: (item[0][0].casefold(), item[0][0]))

        result_rows = [row for _, row in output]
        elapsed = _elapsed_ms(started)

        self.logger.info(
            "report_aggregated",
            input_rows=len(rows),
            groups=len(result_rows),
            dimensions=dim_names,
            metrics=metric_names,
            execution_time_ms=round(elapsed, 3),
        )

        return ReportResult(
            rows=result_rows,
            totals=totals,
            row_count=len(result_rows),
            execution_time_ms=elapsed,
        )

    def time_series(
        self,
        rows: Iterable[Mapping[str, Any]],
        metric: str | Metric,
    ) -> list[TimeSeriesPoint]:
        """
        Build a daily ``{date, value}`` series for one metric.

        Rows are grouped by calendar date (rows without a date are skipped) and
        the metric is evaluated per date. Points are returned oldest first, the
        order the series analytics expect.

        Args:
            rows: Fact rows
            metric: Metric to evaluate per date

        Returns:
            Time series points in ascending date order
        """
        by_date: dict[date, list[Mapping[str, Any]]] = {}
        for row in rows:
            raw = row_date(row)
            if raw is None:
                continue
            by_date.setdefault(parse_fact_date(raw), []).append(row)

        points = [
            TimeSeriesPoint(date=day.isoformat(), value=self.registry.evaluate(metric, day_rows))
            for day, day_rows in sorted(by_date.items())
        ]

        self.logger.debug("time_series_built", metric=getattr(metric, "value", metric), points=len(points))
        return points


def _first_bucket_start(resolutions: tuple[Resolution, ...]) -> Optional[date]:
    return resolutions[0].bucket_start if resolutions else None


def _date_sort_key(start: Optional[date]) -> date:
    # Unknown dates sort after every real bucket when ordering newest first
    return start or date.min


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000
