"""
Enumeration types for the business metrics analytics engine.

This module defines the closed vocabularies used by report queries and
analytics results. All enums inherit from str to ensure JSON serialization
compatibility.
"""

from enum import Enum


class DataSource(str, Enum):
    """Fact views a report can be built from."""

    SALES = "sales"
    PURCHASE_ORDERS = "purchase_orders"


class Dimension(str, Enum):
    """
    Categorical grouping keys available to pivot reports.

    Most dimensions are direct field reads; ``date``, ``location``, ``store``
    and ``channel`` are resolved (formatted, looked up or derived).
    """

    DATE = "date"
    LOCATION = "location"
    STORE = "store"
    CATEGORY = "category"
    PRODUCT = "product"
    EMPLOYEE = "employee"
    CHANNEL = "channel"
    PAYMENT_METHOD = "payment_method"
    ORDER_TYPE = "order_type"
    SUPPLIER = "supplier"
    PO_NUMBER = "po_number"
    PO_STATUS = "po_status"
    PAYMENT_STATUS = "payment_status"


class Metric(str, Enum):
    """
    Numeric measures computed over a group of fact rows.

    Sales metrics and purchase-order metrics share one namespace so a report
    may mix them when the underlying rows carry both sets of fields.
    """

    ORDERS = "orders"
    REVENUE = "revenue"
    COST = "cost"
    PROFIT = "profit"
    MARGIN = "margin"
    TAX = "tax"
    DISCOUNTS = "discounts"
    NET_REVENUE = "net_revenue"
    QUANTITY = "quantity"
    AVG_ORDER_VALUE = "avg_order_value"
    PO_COUNT = "po_count"
    PO_TOTAL = "po_total"
    PO_PAID = "po_paid"
    PO_OUTSTANDING = "po_outstanding"
    PO_ITEMS = "po_items"


class Granularity(str, Enum):
    """Date-bucketing resolution applied to the ``date`` dimension."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class TrendDirection(str, Enum):
    """Direction of a series or of a period-over-period change."""

    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class TrendStrength(str, Enum):
    """Strength classification of a fitted trend."""

    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


class AnomalySeverity(str, Enum):
    """
    Severity tiers for detected anomalies.

    Ordering matters for ensemble voting: critical outranks warning, which
    outranks info.
    """

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Numeric rank used to pick the most severe detection."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    AnomalySeverity.INFO: 1,
    AnomalySeverity.WARNING: 2,
    AnomalySeverity.CRITICAL: 3,
}


class AnomalyMethod(str, Enum):
    """Outlier detection algorithm that produced an anomaly."""

    ZSCORE = "zscore"
    IQR = "iqr"
    MAD = "mad"


class DetectionMode(str, Enum):
    """Detection mode requested from the ensemble detector."""

    ZSCORE = "zscore"
    IQR = "iqr"
    MAD = "mad"
    ENSEMBLE = "ensemble"


class ForecastMethod(str, Enum):
    """Forecasting method tag attached to forecast points."""

    EXPONENTIAL = "exponential"
    LINEAR = "linear"
    SEASONAL = "seasonal"
