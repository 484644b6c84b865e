"""
Time-bucketed series builders.

Computes, for a selection of items:
- Cumulative stock (units and value) per period
- Weighted average purchase cost per supplier per period
- Weighted average sale price / cost / net price per period

All builders return None when the selection leaves nothing to plot.
Non-finite inputs are skipped, never counted as zero.
"""

from dataclasses import dataclass, field
from datetime import datetime
import math

import numpy as np
import pandas as pd

from .parsers import normalize_text, parse_date
from .periods import Granularity, period_key, period_start, snap
from .records import ALL, Filter, MovementEvent, SaleEvent, rows_date_range

NO_SUPPLIER = "Sin proveedor"
TOP_SUPPLIERS = 6


def movement_sign(event: MovementEvent) -> int:
    """
    +1 for incoming, -1 for outgoing.

    The movement type text wins over numbers: a return row with a positive
    quantity is still an egress. Without recognizable text, a negative
    quantity, then a negative total, means outgoing.
    """
    kind = normalize_text(event.kind)
    if "egreso" in kind or "salida" in kind:
        return -1
    if "ingreso" in kind or "entrada" in kind:
        return 1
    if math.isfinite(event.qty) and event.qty < 0:
        return -1
    if math.isfinite(event.total) and event.total < 0:
        return -1
    return 1


def _abs_or_zero(value: float) -> float:
    return abs(value) if math.isfinite(value) else 0.0


def unit_delta(event: MovementEvent) -> float:
    return movement_sign(event) * _abs_or_zero(event.qty)


def value_delta(event: MovementEvent) -> float:
    """Signed monetary effect: |total|, else |unit cost| * |qty|, else 0."""
    qty = _abs_or_zero(event.qty)
    if math.isfinite(event.total):
        amount = abs(event.total)
    elif math.isfinite(event.unit_cost):
        amount = abs(event.unit_cost) * qty
    else:
        amount = 0.0
    return movement_sign(event) * amount


@dataclass
class InventorySeries:
    granularity: Granularity
    period_keys: list[str]
    period_starts: list[datetime]
    cumulative_units: list[float]
    cumulative_value: list[float]
    range_start: datetime
    range_end: datetime

    @property
    def last_units(self) -> float:
        return self.cumulative_units[-1] if self.cumulative_units else 0.0

    @property
    def last_value(self) -> float:
        return self.cumulative_value[-1] if self.cumulative_value else 0.0


@dataclass
class SupplierSeries:
    supplier: str
    values: list[float | None]


@dataclass
class CostSeries:
    granularity: Granularity
    period_keys: list[str]
    period_starts: list[datetime]
    suppliers: list[SupplierSeries] = field(default_factory=list)


@dataclass
class SalesPriceSeries:
    granularity: Granularity
    period_keys: list[str]
    period_starts: list[datetime]
    price: list[float | None]
    cost: list[float | None]
    net: list[float | None]


def _bucket_frame(frame: pd.DataFrame, granularity: Granularity) -> pd.DataFrame:
    """Add period key/start columns to a frame with a ``date`` column."""
    frame["period"] = [period_key(moment, granularity) for moment in frame["date"]]
    starts = {key: period_start(key, granularity) for key in frame["period"].unique()}
    frame["period_start"] = frame["period"].map(starts)
    return frame


def _ordered_periods(frame: pd.DataFrame) -> pd.DataFrame:
    """One row per period (key, start) ordered by start, never by key text."""
    return (
        frame[["period", "period_start"]]
        .drop_duplicates("period")
        .sort_values("period_start", kind="mergesort")
        .reset_index(drop=True)
    )


def _weighted(total: float, weight: float) -> float | None:
    return total / weight if weight else None


def _to_datetimes(values) -> list[datetime]:
    return [pd.Timestamp(value).to_pydatetime() for value in values]


def _resolve_range(range_start, range_end, first: datetime, last: datetime):
    """
    Window bounds as naive datetimes. ISO strings and dates are accepted;
    a missing or unparseable bound falls back to the first or last event date.
    """
    start = parse_date(range_start)
    end = parse_date(range_end)
    return (start if start is not None else first, end if end is not None else last)


def build_series(
    movements: list[MovementEvent],
    granularity: Granularity | str = Granularity.MONTH,
    range_start: datetime | str | None = None,
    range_end: datetime | str | None = None,
    item_filter: Filter = ALL,
) -> InventorySeries | None:
    """
    Cumulative stock series replayed from the movement log.

    Events after ``range_end`` are ignored entirely. Periods before the
    window still feed the running totals, so the first visible point
    carries the full history balance. Window membership compares period
    starts, so both bounds are snapped to their bucket.
    """
    granularity = Granularity.coerce(granularity)
    selected = [event for event in movements if item_filter.includes(event.item)]
    if not selected:
        return None

    first, last = rows_date_range(selected)
    start, end = _resolve_range(range_start, range_end, first, last)

    frame = pd.DataFrame(
        {
            "date": [event.date for event in selected],
            "units": [unit_delta(event) for event in selected],
            "value": [value_delta(event) for event in selected],
        }
    ).sort_values("date", kind="mergesort")
    frame = frame[frame["date"] <= end].copy()
    if frame.empty:
        return None

    frame = _bucket_frame(frame, granularity)
    totals = frame.groupby("period", sort=False)[["units", "value"]].sum()
    periods = _ordered_periods(frame)
    periods["units"] = periods["period"].map(totals["units"]).cumsum()
    periods["value"] = periods["period"].map(totals["value"]).cumsum()

    window_start = snap(start, granularity)
    window_end = snap(end, granularity)
    visible = periods[
        (periods["period_start"] >= window_start)
        & (periods["period_start"] <= window_end)
    ]
    if visible.empty:
        return None

    return InventorySeries(
        granularity=granularity,
        period_keys=visible["period"].tolist(),
        period_starts=_to_datetimes(visible["period_start"]),
        cumulative_units=[float(v) for v in visible["units"]],
        cumulative_value=[float(v) for v in visible["value"]],
        range_start=start,
        range_end=end,
    )


def purchase_unit_cost(event: MovementEvent) -> float:
    """|unit cost| when set and non-zero, else |total| / |qty|; NaN if unusable."""
    qty = _abs_or_zero(event.qty)
    if math.isfinite(event.unit_cost) and event.unit_cost != 0:
        cost = abs(event.unit_cost)
    elif math.isfinite(event.total) and qty:
        cost = abs(event.total) / qty
    else:
        return math.nan
    return cost if math.isfinite(cost) and cost > 0 else math.nan


def build_cost_series(
    movements: list[MovementEvent],
    granularity: Granularity | str = Granularity.MONTH,
    range_start: datetime | str | None = None,
    range_end: datetime | str | None = None,
    item_filter: Filter = ALL,
    top_suppliers: int = TOP_SUPPLIERS,
) -> CostSeries | None:
    """
    Weighted average purchase cost per supplier and period.

    Only incoming movements count. The supplier is the counterparty, else
    the reference. Only the ``top_suppliers`` largest suppliers by total
    quantity get a series; the rest are dropped, not grouped.
    """
    granularity = Granularity.coerce(granularity)
    incoming = [
        event
        for event in movements
        if item_filter.includes(event.item) and movement_sign(event) > 0
    ]
    if not incoming:
        return None

    first, last = rows_date_range(incoming)
    start, end = _resolve_range(range_start, range_end, first, last)

    records = []
    for event in incoming:
        if event.date < start or event.date > end:
            continue
        qty = _abs_or_zero(event.qty)
        cost = purchase_unit_cost(event)
        if not qty or not math.isfinite(cost):
            continue
        supplier = event.counterparty or event.reference or NO_SUPPLIER
        records.append((event.date, supplier, cost * qty, qty))
    if not records:
        return None

    frame = _bucket_frame(
        pd.DataFrame(records, columns=["date", "supplier", "cost_sum", "qty"]),
        granularity,
    )
    periods = _ordered_periods(frame)
    buckets = frame.groupby(["period", "supplier"], sort=False)[["cost_sum", "qty"]].sum()

    ranking = (
        frame.groupby("supplier", sort=False)["qty"]
        .sum()
        .sort_values(ascending=False, kind="mergesort")
    )
    series = []
    for supplier in ranking.index[:top_suppliers]:
        values = []
        for key in periods["period"]:
            if (key, supplier) in buckets.index:
                entry = buckets.loc[(key, supplier)]
                values.append(_weighted(float(entry["cost_sum"]), float(entry["qty"])))
            else:
                values.append(None)
        series.append(SupplierSeries(supplier=supplier, values=values))

    return CostSeries(
        granularity=granularity,
        period_keys=periods["period"].tolist(),
        period_starts=_to_datetimes(periods["period_start"]),
        suppliers=series,
    )


def _sale_contributions(event: SaleEvent) -> dict | None:
    units = _abs_or_zero(event.units)
    if not units:
        return None
    price = event.gross_sale / units if math.isfinite(event.gross_sale) else math.nan
    cost = event.total_cost / units if math.isfinite(event.total_cost) else math.nan
    discount = (
        event.total_discount / units if math.isfinite(event.total_discount) else 0.0
    )
    net = price - discount if math.isfinite(price) else math.nan

    row = {"date": event.date}
    for name, unit_value in (("price", price), ("cost", cost), ("net", net)):
        usable = math.isfinite(unit_value)
        row[f"{name}_sum"] = unit_value * units if usable else 0.0
        row[f"{name}_units"] = units if usable else 0.0
    return row


def build_sales_price_series(
    sales: list[SaleEvent],
    granularity: Granularity | str = Granularity.MONTH,
    range_start: datetime | str | None = None,
    range_end: datetime | str | None = None,
    item_filter: Filter = ALL,
) -> SalesPriceSeries | None:
    """
    Quantity-weighted average unit price, cost and net price per period.

    Each of the three averages only uses the events where that figure is
    available, so a period may have a price but no cost.
    """
    granularity = Granularity.coerce(granularity)
    selected = [event for event in sales if item_filter.includes(event.item)]
    if not selected:
        return None

    first, last = rows_date_range(selected)
    start, end = _resolve_range(range_start, range_end, first, last)

    records = [
        _sale_contributions(event)
        for event in selected
        if start <= event.date <= end
    ]
    records = [row for row in records if row is not None]
    if not records:
        return None

    frame = _bucket_frame(pd.DataFrame(records), granularity)
    periods = _ordered_periods(frame)
    figures = ("price", "cost", "net")
    columns = [f"{name}_{part}" for name in figures for part in ("sum", "units")]
    sums = frame.groupby("period", sort=False)[columns].sum().reindex(periods["period"])

    averages = {}
    for name in figures:
        totals = sums[f"{name}_sum"].to_numpy()
        units = sums[f"{name}_units"].to_numpy()
        with np.errstate(divide="ignore", invalid="ignore"):
            values = np.where(units > 0, totals / units, np.nan)
        averages[name] = [None if np.isnan(value) else float(value) for value in values]

    return SalesPriceSeries(
        granularity=granularity,
        period_keys=periods["period"].tolist(),
        period_starts=_to_datetimes(periods["period_start"]),
        price=averages["price"],
        cost=averages["cost"],
        net=averages["net"],
    )
