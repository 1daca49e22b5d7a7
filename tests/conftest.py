"""
Pytest configuration and shared fixtures for the bizmetrics test suite.

Provides fact-row and time-series factories, environment isolation for
settings, and reusable fixtures across unit, integration and property-based
tests.
"""

import os
from datetime import date, timedelta
from typing import Any, Optional

import pytest

# Set testing environment BEFORE importing settings
os.environ["TESTING"] = "true"

from bizmetrics.config import Settings, get_settings
from bizmetrics.models import ReferenceLookup, TimeSeriesPoint


# ---------------------------------------------------------------------------
# Factories - reusable across all test suites
# ---------------------------------------------------------------------------


def make_fact_row(
    sale_date: Optional[str] = "2025-01-15",
    store_id: Optional[str] = "s1",
    store_name: Optional[str] = None,
    location_id: Optional[str] = None,
    location_name: Optional[str] = None,
    category: Optional[str] = "Coffee",
    pickup_location_id: Optional[str] = None,
    total_revenue: Any = 100.0,
    total_cogs: Any = 40.0,
    **overrides: Any,
) -> dict:
    """Create a sales fact row with sensible defaults."""
    row = {
        "sale_date": sale_date,
        "store_id": store_id,
        "store_name": store_name,
        "location_id": location_id,
        "location_name": location_name,
        "category": category,
        "pickup_location_id": pickup_location_id,
        "total_revenue": total_revenue,
        "total_cogs": total_cogs,
    }
    row.update(overrides)
    return row


def make_po_row(
    order_date: str = "2025-02-01",
    supplier_name: Optional[str] = "Acme Beans",
    po_number: str = "PO-1001",
    status: str = "open",
    payment_status: str = "unpaid",
    total_amount: float = 500.0,
    amount_paid: float = 0.0,
    amount_outstanding: float = 500.0,
    **overrides: Any,
) -> dict:
    """Create a purchase-order fact row with sensible defaults."""
    row = {
        "order_date": order_date,
        "supplier_name": supplier_name,
        "po_number": po_number,
        "status": status,
        "payment_status": payment_status,
        "total_amount": total_amount,
        "amount_paid": amount_paid,
        "amount_outstanding": amount_outstanding,
    }
    row.update(overrides)
    return row


def make_series(
    values: list[float],
    start: date = date(2025, 1, 1),
) -> list[TimeSeriesPoint]:
    """Create a daily series starting at ``start``, one point per value."""
    return [
        TimeSeriesPoint(date=(start + timedelta(days=i)).isoformat(), value=float(v))
        for i, v in enumerate(values)
    ]


def make_lookups(
    stores: Optional[dict] = None,
    locations: Optional[dict] = None,
) -> ReferenceLookup:
    """Create reference lookups for the default store and location ids."""
    return ReferenceLookup(
        stores={"s1": "Downtown", "s2": "Airport"} if stores is None else stores,
        locations={"l1": "North Counter"} if locations is None else locations,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Reset the cached settings between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def test_settings() -> Settings:
    """Settings with defaults, isolated from any local .env file."""
    return Settings(_env_file=None, testing=True)


@pytest.fixture
def sales_rows() -> list[dict]:
    """Small multi-store sales fact table spanning two months."""
    return [
        make_fact_row(sale_date="2025-01-05", store_id="s1", category="Coffee", total_revenue=100, total_cogs=40),
        make_fact_row(sale_date="2025-01-05", store_id="s2", category="Pastry", total_revenue=50, total_cogs=30),
        make_fact_row(sale_date="2025-01-20", store_id="s1", category="Pastry", total_revenue=80, total_cogs=20),
        make_fact_row(sale_date="2025-02-03", store_id="s2", category="Coffee", total_revenue=120, total_cogs=60),
        make_fact_row(sale_date="2025-02-14", store_id="s3", store_name="Harbor", category="Coffee", total_revenue=60, total_cogs=15),
    ]


@pytest.fixture
def spike_series() -> list[float]:
    """Stable series with one large spike at index 4."""
    return [10, 11, 9, 10, 200, 10, 11, 9]
