"""
Canonical record types shared by every builder.

Events and items are immutable once normalized. Builders receive them
read-only and never mutate caller-owned collections.
"""

from dataclasses import dataclass, field
from datetime import datetime
import math
from typing import Generic, Hashable, Iterable, TypeVar

T = TypeVar("T", bound=Hashable)

NO_BRAND = "Sin marca"
NO_LINE = "Sin linea"


@dataclass(frozen=True)
class MovementEvent:
    """A single inventory movement. Direction lives in ``kind`` text."""

    date: datetime
    item: str
    qty: float = math.nan
    total: float = math.nan
    unit_cost: float = math.nan
    pvp_total: float = math.nan
    reference: str = ""
    counterparty: str = ""
    motive: str = ""
    kind: str = ""
    desc: str = ""


@dataclass(frozen=True)
class SaleEvent:
    """A single sales line."""

    date: datetime
    item: str
    units: float = math.nan
    gross_sale: float = math.nan
    total_cost: float = math.nan
    total_discount: float = math.nan
    customer: str = ""


@dataclass(frozen=True)
class CatalogEntry:
    code: str
    name: str
    brand: str


@dataclass(frozen=True)
class ItemRecord:
    """Per-item attributes after merging the items list with the catalog."""

    code: str
    desc: str
    brand: str
    is_catalog: bool
    line: str
    list_price: float
    stock_on_hand: float
    average_cost: float
    last_cost: float

    @property
    def stock_value(self) -> float:
        """Stock valued at average cost, 0 when either side is missing."""
        if math.isfinite(self.stock_on_hand) and math.isfinite(self.average_cost):
            return self.stock_on_hand * self.average_cost
        return 0.0


@dataclass
class ItemsIndex:
    """Join target for all analytics. Owned by the caller."""

    items: list[ItemRecord] = field(default_factory=list)
    cost_by_code: dict[str, float] = field(default_factory=dict)
    _by_code: dict[str, ItemRecord] = field(
        init=False, default_factory=dict, repr=False, compare=False
    )

    def __post_init__(self):
        for item in self.items:
            self._by_code[item.code] = item

    def get(self, code: str) -> ItemRecord | None:
        """Item listed under ``code``; the last row wins, as in ``cost_by_code``."""
        return self._by_code.get(code)


@dataclass(frozen=True)
class Filter(Generic[T]):
    """
    Selection over item codes or motives.

    ``Filter.all()`` accepts everything; ``Filter.subset(values)`` accepts
    only the given values, so an empty subset selects nothing.
    """

    values: frozenset | None = None

    @classmethod
    def all(cls) -> "Filter":
        return cls(None)

    @classmethod
    def subset(cls, values: Iterable[T]) -> "Filter":
        return cls(frozenset(values))

    @property
    def is_all(self) -> bool:
        return self.values is None

    def includes(self, value: T) -> bool:
        return self.values is None or value in self.values


ALL = Filter.all()


@dataclass(frozen=True)
class Coverage:
    """Months of stock at current usage, or unbounded when nothing is consumed."""

    months: float | None

    @classmethod
    def finite(cls, months: float) -> "Coverage":
        return cls(float(months))

    @classmethod
    def unbounded(cls) -> "Coverage":
        return cls(None)

    @property
    def is_unbounded(self) -> bool:
        return self.months is None

    def at_most(self, threshold: float) -> bool:
        return self.months is not None and self.months <= threshold

    def as_float(self) -> float:
        return math.inf if self.months is None else self.months


def rows_date_range(rows: Iterable) -> tuple[datetime, datetime] | None:
    """(min date, max date) over anything with a ``date`` attribute."""
    dates = [row.date for row in rows]
    if not dates:
        return None
    return min(dates), max(dates)
