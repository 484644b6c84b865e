"""
Serializable replenishment report.

Pydantic models so results can be exported as JSON. Infinite coverage is
encoded as an explicit ``"unbounded"`` kind instead of a float, since
JSON has no infinity.
"""

from datetime import datetime
import math
from typing import Literal

from pydantic import BaseModel, Field

from .records import Coverage
from .replenishment import BrandRow, ReplenishmentResult, ReplenishmentRow


class CoverageModel(BaseModel):
    kind: Literal["finite", "unbounded"]
    months: float | None = Field(
        default=None, description="Months of stock left; null when unbounded"
    )

    @classmethod
    def from_coverage(cls, coverage: Coverage) -> "CoverageModel":
        if coverage.is_unbounded:
            return cls(kind="unbounded")
        return cls(kind="finite", months=coverage.months)


class ReplenishmentItem(BaseModel):
    """One catalog item with its purchase recommendation."""

    code: str
    description: str
    brand: str
    stock_current: float
    consumption_units: float = Field(description="Units consumed inside the window")
    available_months: float = Field(description="Days in stock / 30")
    monthly_consumption: float
    coverage: CoverageModel
    should_buy: bool
    qty_to_buy: float
    cost_estimate: float | None = Field(description="Null when no unit cost is known")

    @classmethod
    def from_row(cls, row: ReplenishmentRow) -> "ReplenishmentItem":
        return cls(
            code=row.code,
            description=row.desc,
            brand=row.brand,
            stock_current=row.stock_current,
            consumption_units=row.consumption_units,
            available_months=row.available_months,
            monthly_consumption=row.monthly_consumption,
            coverage=CoverageModel.from_coverage(row.coverage),
            should_buy=row.should_buy,
            qty_to_buy=row.qty_to_buy,
            cost_estimate=row.cost_estimate if math.isfinite(row.cost_estimate) else None,
        )


class BrandSummary(BaseModel):
    brand: str
    items: int
    qty: float
    cost: float

    @classmethod
    def from_row(cls, row: BrandRow) -> "BrandSummary":
        return cls(brand=row.brand, items=row.items, qty=row.qty, cost=row.cost)


class ReplenishmentReport(BaseModel):
    """Complete replenishment recommendation for export."""

    window_start: datetime | None = None
    window_end: datetime | None = None
    window_months: int | None = None
    lead_time_months: float | None = None
    buffer_months: float | None = None
    min_coverage_months: float | None = None
    coverage_target: float | None = None
    items: list[ReplenishmentItem] = Field(default_factory=list)
    brands: list[BrandSummary] = Field(default_factory=list)
    total_cost: float = Field(default=0.0, description="Sum of brand costs")

    @classmethod
    def from_result(cls, result: ReplenishmentResult) -> "ReplenishmentReport":
        brands = [BrandSummary.from_row(row) for row in result.brand_rows]
        return cls(
            window_start=result.window_start,
            window_end=result.window_end,
            window_months=result.window_months,
            lead_time_months=result.lead_time_months,
            buffer_months=result.buffer_months,
            min_coverage_months=result.min_coverage_months,
            coverage_target=result.coverage_target,
            items=[ReplenishmentItem.from_row(row) for row in result.rows],
            brands=brands,
            total_cost=sum(brand.cost for brand in brands),
        )
