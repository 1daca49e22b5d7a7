"""
Report data models for the pivot engine.

This module defines the request shape of a pivot report, the reference
lookups used to resolve store/location display names, and the aggregated
result handed to table and export renderers.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .enums import DataSource, Dimension, Granularity, Metric

# Raw fact record as supplied by the caller (already fetched and authorized)
FactRow = Mapping[str, Any]


class ReferenceLookup(BaseModel):
    """
    Id to display-name maps for the two looked-up dimension kinds.

    Built once per report from the distinct ids present in the fact rows and
    passed explicitly into aggregation. Ids are normalized to strings so that
    integer and string keys resolve identically.

    Attributes:
        stores: Store id to store display name
        locations: Location id to location display name
    """

    stores: dict[str, str] = Field(
        default_factory=dict, description="Store id to store display name"
    )
    locations: dict[str, str] = Field(
        default_factory=dict, description="Location id to location display name"
    )

    @field_validator("stores", "locations", mode="before")
    @classmethod
    def normalize_ids(cls, v: Any) -> dict[str, str]:
        """Coerce lookup keys to strings and drop unnamed entries."""
        if v is None:
            return {}
        return {str(k): str(name) for k, name in dict(v).items() if name}

    def store_name(self, store_id: Any) -> str | None:
        """Return the display name for a store id, if known."""
        if store_id is None:
            return None
        return self.stores.get(str(store_id))

    def location_name(self, location_id: Any) -> str | None:
        """Return the display name for a location id, if known."""
        if location_id is None:
            return None
        return self.locations.get(str(location_id))


class ReportQuery(BaseModel):
    """
    Validated pivot report request.

    Dimensions and metrics are closed enumerations; the first dimension also
    drives row ordering of the result.
    """

    data_source: DataSource = Field(
        default=DataSource.SALES, description="Fact view the rows were read from"
    )
    dimensions: list[Dimension] = Field(
        min_length=1, description="Grouping dimensions, in key order"
    )
    metrics: list[Metric] = Field(
        min_length=1, description="Metrics evaluated for every group"
    )
    date_granularity: Granularity = Field(
        default=Granularity.DAY, description="Bucketing applied to the date dimension"
    )

    @field_validator("dimensions", "metrics")
    @classmethod
    def reject_duplicates(cls, v: list) -> list:
        """Each dimension and metric may appear only once."""
        if len(set(v)) != len(v):
            raise ValueError("Duplicate entries are not allowed")
        return v


class AggregatedRow(BaseModel):
    """
    One pivot table row: resolved dimension values plus metric values.

    Created once per distinct dimension key during an aggregation pass and
    never mutated afterwards.
    """

    dimensions: dict[str, str] = Field(
        description="Resolved display value per requested dimension"
    )
    metrics: dict[str, float] = Field(description="Value per requested metric")

    def to_flat(self) -> dict[str, Any]:
        """Flatten into a single ``{dimension: value, metric: value}`` record."""
        return {**self.dimensions, **self.metrics}


class ReportResult(BaseModel):
    """
    Output of a pivot aggregation.

    ``totals`` sums each row's already-computed metric value; for ratio
    metrics (margin, avg_order_value) this is a sum of per-group ratios.
    """

    rows: list[AggregatedRow] = Field(default_factory=list)
    totals: dict[str, float] = Field(default_factory=dict)
    row_count: int = Field(default=0, ge=0)
    execution_time_ms: float = Field(default=0.0, ge=0.0)

    def to_records(self) -> list[dict[str, Any]]:
        """Flat row records for table and export renderers."""
        return [row.to_flat() for row in self.rows]
