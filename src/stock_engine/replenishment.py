"""
Replenishment forecaster for catalog items.

For each catalog item:
1. Rebuild day-by-day stock over a trailing window from the movement log
2. Count the days the item was actually available (stock > 0)
3. Turn outgoing movements in the window into a monthly consumption rate
4. Compare current stock against the coverage target and size the purchase

Months are approximated as 30 days of availability.
"""

from dataclasses import dataclass, field
from datetime import datetime
import math

import pandas as pd

from .records import ALL, Coverage, Filter, ItemRecord, ItemsIndex, MovementEvent
from .series import movement_sign

DAYS_PER_MONTH = 30


@dataclass
class ReplenishmentRow:
    code: str
    desc: str
    brand: str
    stock_current: float
    consumption_units: float
    available_days: int
    available_months: float
    monthly_consumption: float
    coverage: Coverage
    min_coverage_months: float
    coverage_target: float
    should_buy: bool
    qty_to_buy: float
    cost_estimate: float

    @property
    def months_coverage(self) -> float:
        return self.coverage.as_float()


@dataclass
class BrandRow:
    brand: str
    items: int = 0
    qty: float = 0.0
    cost: float = 0.0


@dataclass
class ReplenishmentResult:
    """
    Forecast output. ``rows == []`` means the call was valid but no catalog
    item matched; the window fields are then None.
    """

    rows: list[ReplenishmentRow] = field(default_factory=list)
    brand_rows: list[BrandRow] = field(default_factory=list)
    window_start: datetime | None = None
    window_end: datetime | None = None
    window_months: int | None = None
    min_coverage_months: float | None = None
    coverage_target: float | None = None
    lead_time_months: float | None = None
    buffer_months: float | None = None

    @property
    def to_buy(self) -> list[ReplenishmentRow]:
        return [row for row in self.rows if row.should_buy]


def _non_negative(value) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return max(0.0, number) if math.isfinite(number) else 0.0


def coverage_targets(
    target_months: float, lead_time_months: float, buffer_months: float
) -> tuple[float, float]:
    """(minimum coverage = lead + buffer, coverage target = max(minimum, target))"""
    minimum = _non_negative(lead_time_months) + _non_negative(buffer_months)
    return minimum, max(minimum, _non_negative(target_months))


def _available_days(
    codes: list[str],
    moves: list[tuple[str, pd.Timestamp, float]],
    before: dict[str, float],
    days: pd.DatetimeIndex,
) -> pd.Series:
    """
    Days with positive stock per item code.

    Same-day deltas are applied before testing availability for that day.
    """
    daily = pd.DataFrame(0.0, index=days, columns=codes)
    if moves:
        frame = pd.DataFrame(moves, columns=["item", "day", "delta"])
        grouped = frame.groupby(["day", "item"])["delta"].sum().unstack("item")
        daily = daily.add(grouped.reindex(index=days, columns=codes), fill_value=0.0)
    opening = pd.Series(before, dtype=float).reindex(codes, fill_value=0.0)
    levels = daily.cumsum() + opening
    return (levels > 0).sum()


def _unit_cost(item: ItemRecord) -> float:
    return item.last_cost if math.isfinite(item.last_cost) else item.average_cost


def _plan_item(
    item: ItemRecord,
    consumption_units: float,
    available_days: int,
    min_coverage: float,
    target: float,
) -> ReplenishmentRow:
    stock = item.stock_on_hand if math.isfinite(item.stock_on_hand) else 0.0
    available_months = available_days / DAYS_PER_MONTH
    monthly = consumption_units / available_months if available_months > 0 else 0.0

    if monthly > 0:
        coverage = Coverage.finite(stock / monthly)
    elif stock > 0:
        coverage = Coverage.unbounded()
    else:
        coverage = Coverage.finite(0.0)

    # no historical demand, no forecast-driven purchase
    should_buy = monthly > 0 and coverage.at_most(min_coverage)
    qty = max(0.0, monthly * target - stock) if should_buy else 0.0
    unit_cost = _unit_cost(item)

    return ReplenishmentRow(
        code=item.code,
        desc=item.desc,
        brand=item.brand,
        stock_current=stock,
        consumption_units=consumption_units,
        available_days=int(available_days),
        available_months=available_months,
        monthly_consumption=monthly,
        coverage=coverage,
        min_coverage_months=min_coverage,
        coverage_target=target,
        should_buy=should_buy,
        qty_to_buy=qty,
        cost_estimate=qty * unit_cost if math.isfinite(unit_cost) else math.nan,
    )


def _cost_key(row: ReplenishmentRow) -> float:
    return row.cost_estimate if math.isfinite(row.cost_estimate) else 0.0


def summarize_brands(rows: list[ReplenishmentRow]) -> list[BrandRow]:
    """Roll up items with something to buy by brand, costliest brand first."""
    brands: dict[str, BrandRow] = {}
    for row in rows:
        if not row.qty_to_buy:
            continue
        entry = brands.setdefault(row.brand, BrandRow(brand=row.brand))
        entry.items += 1
        entry.qty += row.qty_to_buy
        entry.cost += _cost_key(row)
    return sorted(brands.values(), key=lambda entry: -entry.cost)


def forecast(
    items_index: ItemsIndex | None,
    movements: list[MovementEvent],
    window_months: int = 12,
    target_months: float = 3,
    lead_time_months: float = 1,
    buffer_months: float = 1,
    motive_filter: Filter = ALL,
    item_filter: Filter = ALL,
) -> ReplenishmentResult | None:
    """
    Recommend purchases for catalog items.

    Returns None without movements or items index (insufficient data) and
    an empty result when no catalog item passes ``item_filter``.

    Rows needing a purchase come first; each tier is ordered by estimated
    cost, highest first.
    """
    if items_index is None or not movements:
        return None
    items = [
        item
        for item in items_index.items
        if item.is_catalog and item_filter.includes(item.code)
    ]
    if not items:
        return ReplenishmentResult()

    window_months = int(_non_negative(window_months))
    window_end = pd.Timestamp(max(event.date for event in movements))
    window_start = window_end - pd.DateOffset(months=window_months)
    days = pd.date_range(window_start.normalize(), window_end.normalize(), freq="D")

    codes = list(dict.fromkeys(item.code for item in items))
    wanted = set(codes)
    before: dict[str, float] = {}
    consumption: dict[str, float] = {}
    moves = []

    for event in movements:
        if event.item not in wanted:
            continue
        qty = abs(event.qty) if math.isfinite(event.qty) else 0.0
        if not qty:
            continue
        sign = movement_sign(event)
        if event.date < window_start:
            before[event.item] = before.get(event.item, 0.0) + qty * sign
            continue
        if event.date > window_end:
            continue
        moves.append((event.item, pd.Timestamp(event.date).normalize(), qty * sign))
        if sign < 0 and motive_filter.includes(event.motive):
            consumption[event.item] = consumption.get(event.item, 0.0) + qty

    available = _available_days(codes, moves, before, days)
    min_coverage, target = coverage_targets(target_months, lead_time_months, buffer_months)

    rows = [
        _plan_item(
            item,
            consumption.get(item.code, 0.0),
            int(available[item.code]),
            min_coverage,
            target,
        )
        for item in items
    ]
    rows.sort(key=lambda row: (not row.should_buy, -_cost_key(row)))

    return ReplenishmentResult(
        rows=rows,
        brand_rows=summarize_brands(rows),
        window_start=window_start.to_pydatetime(),
        window_end=window_end.to_pydatetime(),
        window_months=window_months,
        min_coverage_months=min_coverage,
        coverage_target=target,
        lead_time_months=_non_negative(lead_time_months),
        buffer_months=_non_negative(buffer_months),
    )
