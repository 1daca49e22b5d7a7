"""
Dimension resolution for pivot reports.

Every dimension of a fact row is resolved to a display string through a
single resolver so the "Unknown" fallback policy lives in one place:

    - date: the row's date field bucketed by granularity
    - location / store: reference lookup, then the row's own name field
    - channel: derived from the presence of a pickup location
    - everything else: a direct field read

A resolution is either Resolved(name) or Unknown; only its display form
("Unknown" for the latter) enters the grouping key.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Optional

import structlog

from bizmetrics.models.enums import Dimension, Granularity
from bizmetrics.models.reports import ReferenceLookup

logger = structlog.get_logger()

UNKNOWN = "Unknown"

# Date field candidates (sales views use sale_date, purchase orders order_date)
DATE_FIELDS = ("sale_date", "order_date", "date")

# Dimensions read from a differently named field
DIMENSION_FIELDS: dict[str, str] = {
    "supplier": "supplier_name",
    "po_number": "po_number",
    "po_status": "status",
    "payment_status": "payment_status",
}

IN_STORE = "In-Store"
ONLINE = "Online"

# Resolver capability: (kind, ids) -> {id: name}; kind is "stores" or "locations"
NameResolver = Callable[[str, list[Any]], Mapping[Any, str]]


@dataclass(frozen=True)
class Resolution:
    """
    Tagged resolution of one dimension value.

    ``value`` is None for Unknown. ``bucket_start`` is set for the date
    dimension and orders date buckets chronologically.
    """

    value: Optional[str] = None
    bucket_start: Optional[date] = None

    @property
    def is_unknown(self) -> bool:
        return self.value is None

    @property
    def display(self) -> str:
        return UNKNOWN if self.value is None else self.value


UNRESOLVED = Resolution()


def _blank(value: Any) -> bool:
    return value is None or value == "" or value == 0


def dimension_name(dimension: str | Dimension) -> str:
    return dimension.value if isinstance(dimension, Dimension) else str(dimension)


def granularity_name(granularity: str | Granularity | None) -> str:
    if granularity is None:
        return Granularity.DAY.value
    return granularity.value if isinstance(granularity, Granularity) else str(granularity)


def parse_fact_date(value: Any) -> date:
    """
    Parse a fact-row date (``YYYY-MM-DD``, optionally followed by a time).

    Raises:
        ValueError: If the value is not an ISO date
    """
    if isinstance(value, date):
        return value if type(value) is date else value.date()
    return date.fromisoformat(str(value)[:10])


def _month_day(d: date) -> str:
    return f"{d.strftime('%b')} {d.day}"


def bucket_date(d: date, granularity: str | Granularity | None) -> tuple[str, date]:
    """
    Bucket a date by granularity.

    Returns:
        (display label, bucket start date)

    Example:
        >>> bucket_date(date(2025, 1, 8), "week")
        ('Week of Jan 5', datetime.date(2025, 1, 5))
    """
    g = granularity_name(granularity)
    if g == "day":
        return f"{_month_day(d)}, {d.year}", d
    if g == "week":
        # Weeks start on Sunday
        start = d - timedelta(days=(d.weekday() + 1) % 7)
        return f"Week of {_month_day(start)}", start
    if g == "month":
        return f"{d.strftime('%B')} {d.year}", d.replace(day=1)
    if g == "quarter":
        quarter = (d.month - 1) // 3 + 1
        return f"Q{quarter} {d.year}", date(d.year, 3 * quarter - 2, 1)
    if g == "year":
        return str(d.year), date(d.year, 1, 1)
    return d.isoformat(), d


def row_date(row: Mapping[str, Any]) -> Any:
    """Return the first present date field of a row, or None."""
    for name in DATE_FIELDS:
        value = row.get(name)
        if not _blank(value):
            return value
    return None


class DimensionResolver:
    """
    Resolves fact-row dimensions to display values.

    Attributes:
        granularity: Date bucketing for the date dimension
        lookups: Reference id to name maps for stores and locations

    Example:
        >>> resolver = DimensionResolver("month", ReferenceLookup(stores={"s1": "Downtown"}))
        >>> resolver.resolve({"store_id": "s1"}, "store").display
        'Downtown'
    """

    def __init__(
        self,
        granularity: str | Granularity | None = None,
        lookups: Optional[ReferenceLookup] = None,
    ):
        self.granularity = granularity_name(granularity)
        self.lookups = lookups or ReferenceLookup()

    def resolve(self, row: Mapping[str, Any], dimension: str | Dimension) -> Resolution:
        """Resolve a single dimension of a row."""
        name = dimension_name(dimension)

        if name == "date":
            raw = row_date(row)
            if raw is None:
                return UNRESOLVED
            label, start = bucket_date(parse_fact_date(raw), self.granularity)
            return Resolution(label, start)

        if name == "location":
            return self._looked_up(
                self.lookups.location_name(row.get("location_id")), row.get("location_name")
            )

        if name == "store":
            return self._looked_up(
                self.lookups.store_name(row.get("store_id")), row.get("store_name")
            )

        if name == "channel":
            return Resolution(ONLINE if _blank(row.get("pickup_location_id")) else IN_STORE)

        value = row.get(DIMENSION_FIELDS.get(name, name))
        return UNRESOLVED if _blank(value) else Resolution(str(value))

    def resolve_key(
        self, row: Mapping[str, Any], dimensions: Iterable[str | Dimension]
    ) -> tuple[Resolution, ...]:
        return tuple(self.resolve(row, dim) for dim in dimensions)

    @staticmethod
    def _looked_up(looked_up: Optional[str], own_name: Any) -> Resolution:
        if looked_up:
            return Resolution(looked_up)
        if not _blank(own_name):
            return Resolution(str(own_name))
        return UNRESOLVED


def build_lookups(
    rows: Iterable[Mapping[str, Any]],
    dimensions: Iterable[str | Dimension],
    resolver: NameResolver,
) -> ReferenceLookup:
    """
    Build reference lookups for the ids present in a row set.

    Only the kinds required by the requested dimensions are resolved; each
    kind is requested once with the distinct ids in first-seen order.

    Args:
        rows: Fact rows
        dimensions: Requested dimensions
        resolver: Capability mapping (kind, ids) to {id: name}

    Returns:
        ReferenceLookup populated for the requested kinds
    """
    rows = list(rows)
    names = {dimension_name(d) for d in dimensions}
    maps: dict[str, Mapping[Any, str]] = {}

    for dim, kind, id_field in (("store", "stores", "store_id"), ("location", "locations", "location_id")):
        if dim not in names:
            continue
        ids = list(dict.fromkeys(row.get(id_field) for row in rows if row.get(id_field) is not None))
        maps[kind] = resolver(kind, ids) if ids else {}
        logger.debug("reference_lookup_built", kind=kind, ids=len(ids), resolved=len(maps[kind]))

    return ReferenceLookup(**maps)
