"""
Metric Formula Registry - fact rows to metric values.

This module maps a metric name plus a group of fact rows to a single numeric
value. Fact rows arrive from several views whose column names differ, so every
additive metric resolves its source field through an ordered list of accepted
synonyms.

Resolution rules:
    - Synonyms are tried in order; the first *present* value wins
    - None, "", 0 and NaN are not present and fall through to the next synonym
    - When no synonym is present the metric's default applies (0, or 1 for
      order counts so that one fact row counts as one order)

Derived metrics (profit, margin, net_revenue, avg_order_value) are computed
from other metrics of the same group, in dependency order, with per-group
memoization. Unknown metric names evaluate to 0.
"""

import math
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from bizmetrics.models.enums import Metric

logger = structlog.get_logger()

FactRows = Sequence[Mapping[str, Any]]

# Ordered candidate field names per additive metric
METRIC_FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "orders": ("order_count",),
    "po_count": ("order_count",),
    "revenue": ("total_revenue", "revenue", "total_amount"),
    "cost": ("total_cogs", "total_cost", "cost"),
    "tax": ("total_tax", "tax_amount", "tax"),
    "discounts": ("total_discounts", "discount_amount", "discounts"),
    "quantity": ("quantity_sold", "quantity", "qty"),
    "po_total": ("total_amount",),
    "po_paid": ("amount_paid",),
    "po_outstanding": ("amount_outstanding",),
    "po_items": ("total_quantity", "item_count"),
}

# Per-row contribution when no synonym is present
METRIC_FIELD_DEFAULTS: dict[str, float] = {
    "orders": 1.0,
    "po_count": 1.0,
}

ADDITIVE_METRICS = frozenset(METRIC_FIELD_SYNONYMS)

CURRENCY_METRICS = frozenset(
    {
        "revenue",
        "cost",
        "profit",
        "tax",
        "discounts",
        "net_revenue",
        "avg_order_value",
        "po_total",
        "po_paid",
        "po_outstanding",
    }
)
COUNT_METRICS = frozenset({"orders", "quantity", "po_count", "po_items"})
PERCENT_METRICS = frozenset({"margin"})


def _is_present(value: Any) -> bool:
    """Whether a raw field value counts as supplied."""
    if value is None or value == "" or value == 0:
        return False
    if isinstance(value, float) and math.isnan(value):
        return False
    return True


def resolve_field(row: Mapping[str, Any], candidates: Iterable[str], default: float = 0.0) -> float:
    """
    Resolve a numeric value from the first present candidate field.

    Args:
        row: Fact row
        candidates: Field names tried in order
        default: Value used when no candidate is present

    Returns:
        The resolved value as a float

    Raises:
        ValueError: If the resolved field holds a non-numeric string
    """
    for name in candidates:
        value = row.get(name)
        if _is_present(value):
            return float(value)
    return default


@dataclass(frozen=True)
class MetricDefinition:
    """
    A named metric formula.

    Additive metrics carry ``fields`` (ordered synonyms) and ``default``.
    Derived metrics carry ``depends_on`` and ``combine``, which receives the
    dependency values in declaration order.
    """

    name: str
    fields: tuple[str, ...] = ()
    default: float = 0.0
    depends_on: tuple[str, ...] = ()
    combine: Callable[..., float] | None = None

    @property
    def is_derived(self) -> bool:
        return self.combine is not None


def _difference(a: float, b: float) -> float:
    return a - b


def _margin(profit: float, revenue: float) -> float:
    return profit / revenue * 100 if revenue > 0 else 0.0


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


def _default_definitions() -> dict[str, MetricDefinition]:
    definitions = {
        name: MetricDefinition(
            name=name,
            fields=fields,
            default=METRIC_FIELD_DEFAULTS.get(name, 0.0),
        )
        for name, fields in METRIC_FIELD_SYNONYMS.items()
    }
    derived = [
        MetricDefinition("profit", depends_on=("revenue", "cost"), combine=_difference),
        MetricDefinition("net_revenue", depends_on=("revenue", "discounts"), combine=_difference),
        MetricDefinition("margin", depends_on=("profit", "revenue"), combine=_margin),
        MetricDefinition("avg_order_value", depends_on=("revenue", "orders"), combine=_ratio),
    ]
    definitions.update({d.name: d for d in derived})
    return definitions


class MetricFormulaRegistry:
    """
    Registry of metric formulas keyed by metric name.

    Attributes:
        definitions: Metric name to MetricDefinition

    Example:
        >>> registry = MetricFormulaRegistry()
        >>> registry.evaluate("revenue", [{"total_revenue": 10}, {"revenue": 5}])
        15.0
        >>> registry.evaluate_many(["profit", "margin"], rows)
        {'profit': 4.0, 'margin': 40.0}
    """

    def __init__(self, definitions: Mapping[str, MetricDefinition] | None = None):
        self.definitions: dict[str, MetricDefinition] = dict(
            definitions if definitions is not None else _default_definitions()
        )
        self.logger = structlog.get_logger()

    def is_known(self, metric: str | Metric) -> bool:
        return _metric_name(metric) in self.definitions

    def evaluate(self, metric: str | Metric, rows: FactRows) -> float:
        """
        Evaluate one metric over a group of fact rows.

        Args:
            metric: Metric name
            rows: Fact rows of the group

        Returns:
            Metric value (0 for unknown metric names)
        """
        return self._evaluate(_metric_name(metric), rows, {})

    def evaluate_many(self, metrics: Iterable[str | Metric], rows: FactRows) -> dict[str, float]:
        """
        Evaluate several metrics over the same group.

        Shared dependencies (e.g. revenue for profit and margin) are computed
        once per call.

        Args:
            metrics: Metric names, output keeps this order
            rows: Fact rows of the group

        Returns:
            Metric name to value
        """
        cache: dict[str, float] = {}
        results = {}
        for metric in metrics:
            name = _metric_name(metric)
            results[name] = self._evaluate(name, rows, cache)
        return results

    def _evaluate(self, name: str, rows: FactRows, cache: dict[str, float]) -> float:
        if name in cache:
            return cache[name]

        definition = self.definitions.get(name)
        if definition is None:
            self.logger.debug("unknown_metric", metric=name)
            value = 0.0
        elif definition.is_derived:
            inputs = [self._evaluate(dep, rows, cache) for dep in definition.depends_on]
            value = float(definition.combine(*inputs))
        else:
            value = float(
                sum(resolve_field(row, definition.fields, definition.default) for row in rows)
            )

        cache[name] = value
        return value

    @staticmethod
    def format_value(metric: str | Metric, value: float) -> str:
        """
        Format a metric value for display.

        Currency metrics render as US dollars, margin as a two-decimal
        percentage, counts as half-up rounded integers with thousands
        separators, anything else with up to three decimals.

        Example:
            >>> MetricFormulaRegistry.format_value("revenue", -1234.5)
            '-$1,234.50'
        """
        name = _metric_name(metric)
        if name in CURRENCY_METRICS:
            sign = "-" if value < 0 else ""
            return f"{sign}${abs(value):,.2f}"
        if name in PERCENT_METRICS:
            return f"{value:.2f}%"
        if name in COUNT_METRICS:
            return f"{math.floor(value + 0.5):,}"
        text = f"{value:,.3f}".rstrip("0").rstrip(".")
        return "0" if text in ("", "-0") else text


def _metric_name(metric: str | Metric) -> str:
    return metric.value if isinstance(metric, Metric) else str(metric)
