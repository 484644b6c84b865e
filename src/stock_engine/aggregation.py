"""
Aggregation helpers for distribution charts.

- Top-N with an "Otros" remainder bucket
- Stock value per product line
- Catalog vs non-catalog split (stock value and yearly sales)
- Top customers per year
"""

from dataclasses import dataclass, field
import math

import pandas as pd

from .records import ALL, Filter, ItemsIndex, SaleEvent

OTHERS = "Otros"
NO_CUSTOMER = "Sin cliente"
LINE_TOP = 8
CUSTOMERS_TOP = 10


def top_n_with_others(
    totals: dict[str, float], n: int, others_label: str = OTHERS
) -> list[tuple[str, float]]:
    """
    Largest ``n`` entries, descending, plus one remainder entry.

    Non-finite and non-positive totals are ignored. The remainder is only
    added when it is positive.
    """
    entries = [
        (label, value)
        for label, value in totals.items()
        if math.isfinite(value) and value > 0
    ]
    entries.sort(key=lambda entry: -entry[1])
    top = entries[:n]
    others = sum(value for _, value in entries[n:])
    if others > 0:
        top.append((others_label, others))
    return top


def build_line_distribution(
    items_index: ItemsIndex | None,
    item_filter: Filter = ALL,
    top: int = LINE_TOP,
) -> list[tuple[str, float]] | None:
    """Stock value per product line, top lines plus "Otros"."""
    if items_index is None:
        return None
    totals: dict[str, float] = {}
    for item in items_index.items:
        if not item_filter.includes(item.code):
            continue
        totals[item.line] = totals.get(item.line, 0.0) + item.stock_value
    distribution = top_n_with_others(totals, top)
    return distribution or None


@dataclass
class CatalogShare:
    catalog: float
    non_catalog: float

    @property
    def total(self) -> float:
        return self.catalog + self.non_catalog


def build_catalog_share(
    items_index: ItemsIndex | None, item_filter: Filter = ALL
) -> CatalogShare | None:
    """Stock value held in catalog vs non-catalog items."""
    if items_index is None:
        return None
    share = CatalogShare(catalog=0.0, non_catalog=0.0)
    for item in items_index.items:
        if not item_filter.includes(item.code):
            continue
        if item.is_catalog:
            share.catalog += item.stock_value
        else:
            share.non_catalog += item.stock_value
    if not share.catalog and not share.non_catalog:
        return None
    return share


def _sales_frame(sales: list[SaleEvent]) -> pd.DataFrame:
    """Yearly gross sales rows; events without a usable gross value are skipped."""
    records = [
        (event.date.year, event.customer or NO_CUSTOMER, event.item, event.gross_sale)
        for event in sales
        if math.isfinite(event.gross_sale) and event.gross_sale
    ]
    return pd.DataFrame(records, columns=["year", "customer", "item", "gross"])


@dataclass
class CustomerRanking:
    """
    Per-year customer ranking.

    ``top_by_year[year]`` holds up to N (customer, gross) pairs, descending.
    ``legend`` lists the strongest customers across all years by their
    top-N totals, with "Otros" appended when any year has a remainder.
    """

    years: list[int]
    top_by_year: dict[int, list[tuple[str, float]]]
    others_by_year: dict[int, float]
    legend: list[str] = field(default_factory=list)

    @property
    def has_others(self) -> bool:
        return any(value > 0 for value in self.others_by_year.values())


def build_top_customers_by_year(
    sales: list[SaleEvent],
    max_top: int = CUSTOMERS_TOP,
    legend_top: int = CUSTOMERS_TOP,
) -> CustomerRanking | None:
    frame = _sales_frame(sales)
    if frame.empty:
        return None

    by_year = frame.groupby(["year", "customer"])["gross"].sum()
    years = sorted(int(year) for year in frame["year"].unique())
    top_by_year: dict[int, list[tuple[str, float]]] = {}
    others_by_year: dict[int, float] = {}
    legend_totals: dict[str, float] = {}

    for year in years:
        ranked = by_year.loc[year].sort_values(ascending=False, kind="mergesort")
        top = [(str(name), float(value)) for name, value in ranked.iloc[:max_top].items()]
        top_by_year[year] = top
        others_by_year[year] = float(ranked.iloc[max_top:].sum())
        for name, value in top:
            legend_totals[name] = legend_totals.get(name, 0.0) + value

    legend = [
        name
        for name, _ in sorted(legend_totals.items(), key=lambda entry: -entry[1])[:legend_top]
    ]
    ranking = CustomerRanking(
        years=years,
        top_by_year=top_by_year,
        others_by_year=others_by_year,
        legend=legend,
    )
    if ranking.has_others:
        ranking.legend.append(OTHERS)
    return ranking


@dataclass
class CatalogSalesSplit:
    years: list[int]
    catalog: list[float]
    non_catalog: list[float]


def build_sales_by_catalog(
    sales: list[SaleEvent], catalog_lookup: dict[str, bool] | None = None
) -> CatalogSalesSplit | None:
    """Gross sales per year, split by catalog membership of the item."""
    frame = _sales_frame(sales)
    if frame.empty:
        return None

    lookup = catalog_lookup or {}
    frame["is_catalog"] = [lookup.get(item) is True for item in frame["item"]]
    totals = frame.groupby(["year", "is_catalog"])["gross"].sum()
    years = sorted(int(year) for year in frame["year"].unique())
    return CatalogSalesSplit(
        years=years,
        catalog=[float(totals.get((year, True), 0.0)) for year in years],
        non_catalog=[float(totals.get((year, False), 0.0)) for year in years],
    )
