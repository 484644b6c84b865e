"""
Memoizing analytics session.

Holds one loaded dataset and caches every builder call keyed by
``(data version, builder, parameters)``. Loading new data bumps the
version, so stale results can never be served. The engine functions
themselves stay pure and know nothing about this cache.
"""

from collections import OrderedDict
from datetime import datetime
import logging
import threading
from typing import Any, Callable, Hashable

from stock_engine import aggregation, series
from stock_engine.catalog import build_catalog_lookup
from stock_engine.periods import Granularity
from stock_engine.records import ALL, Filter
from stock_engine.replenishment import ReplenishmentResult, forecast

from .erp_loader import LoadedData
from .settings import AnalyticsSettings, get_settings

logger = logging.getLogger(__name__)


class ResultCache:
    """Thread-safe LRU cache of builder results."""

    def __init__(self, max_size: int = 128):
        self.max_size = max_size
        self._entries: OrderedDict[Hashable, Any] = OrderedDict()
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                self.hits += 1
                logger.debug("Cache hit for %s", key[1] if isinstance(key, tuple) else key)
                return self._entries[key]

        logger.debug("Cache miss for %s", key[1] if isinstance(key, tuple) else key)
        value = compute()

        with self._lock:
            self.misses += 1
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)
        return value

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class AnalyticsSession:
    """
    Entry point for callers that re-run analytics on every parameter change.

    Usage:
        session = AnalyticsSession()
        session.load(ErpLoader("data/raw").load_all())
        stock = session.inventory_series("week", item_filter=Filter.subset({"A1"}))
        plan = session.replenishment(buffer_months=2)
    """

    def __init__(self, settings: AnalyticsSettings | None = None):
        self.settings = settings or get_settings()
        self.cache = ResultCache(self.settings.cache_size)
        self.data = LoadedData()
        self.version = 0

    def load(self, data: LoadedData) -> "AnalyticsSession":
        """Replace the dataset; cached results of older versions become unreachable."""
        self.data = data
        self.version += 1
        self.cache.clear()
        logger.info(
            "Loaded dataset v%d: %d movements, %d sales, %d items",
            self.version,
            len(data.movements),
            len(data.sales),
            len(data.items_index.items),
        )
        return self

    def _memo(self, name: str, params: tuple, compute: Callable[[], Any]) -> Any:
        return self.cache.get_or_compute((self.version, name, params), compute)

    def _granularity(self, granularity: Granularity | str | None) -> Granularity:
        return Granularity.coerce(granularity or self.settings.default_granularity)

    def inventory_series(
        self,
        granularity: Granularity | str | None = None,
        range_start: datetime | None = None,
        range_end: datetime | None = None,
        item_filter: Filter = ALL,
    ) -> series.InventorySeries | None:
        period = self._granularity(granularity)
        return self._memo(
            "inventory_series",
            (period, range_start, range_end, item_filter),
            lambda: series.build_series(
                self.data.movements, period, range_start, range_end, item_filter
            ),
        )

    def cost_series(
        self,
        granularity: Granularity | str | None = None,
        range_start: datetime | None = None,
        range_end: datetime | None = None,
        item_filter: Filter = ALL,
    ) -> series.CostSeries | None:
        period = self._granularity(granularity)
        return self._memo(
            "cost_series",
            (period, range_start, range_end, item_filter),
            lambda: series.build_cost_series(
                self.data.movements,
                period,
                range_start,
                range_end,
                item_filter,
                top_suppliers=self.settings.top_suppliers,
            ),
        )

    def sales_price_series(
        self,
        granularity: Granularity | str | None = None,
        range_start: datetime | None = None,
        range_end: datetime | None = None,
        item_filter: Filter = ALL,
    ) -> series.SalesPriceSeries | None:
        period = self._granularity(granularity)
        return self._memo(
            "sales_price_series",
            (period, range_start, range_end, item_filter),
            lambda: series.build_sales_price_series(
                self.data.sales, period, range_start, range_end, item_filter
            ),
        )

    def replenishment(
        self,
        window_months: int | None = None,
        target_months: float | None = None,
        lead_time_months: float | None = None,
        buffer_months: float | None = None,
        motive_filter: Filter = ALL,
        item_filter: Filter = ALL,
    ) -> ReplenishmentResult | None:
        s = self.settings
        params = (
            s.window_months if window_months is None else window_months,
            s.target_months if target_months is None else target_months,
            s.lead_time_months if lead_time_months is None else lead_time_months,
            s.buffer_months if buffer_months is None else buffer_months,
            motive_filter,
            item_filter,
        )
        return self._memo(
            "replenishment",
            params,
            lambda: forecast(
                self.data.items_index,
                self.data.movements,
                *params,
            ),
        )

    def line_distribution(self, item_filter: Filter = ALL):
        return self._memo(
            "line_distribution",
            (item_filter,),
            lambda: aggregation.build_line_distribution(
                self.data.items_index, item_filter, top=self.settings.line_top
            ),
        )

    def catalog_share(self, item_filter: Filter = ALL):
        return self._memo(
            "catalog_share",
            (item_filter,),
            lambda: aggregation.build_catalog_share(self.data.items_index, item_filter),
        )

    def top_customers_by_year(self):
        top = self.settings.customers_top
        return self._memo(
            "top_customers_by_year",
            (top,),
            lambda: aggregation.build_top_customers_by_year(self.data.sales, top, top),
        )

    def sales_by_catalog(self):
        return self._memo(
            "sales_by_catalog",
            (),
            lambda: aggregation.build_sales_by_catalog(
                self.data.sales,
                build_catalog_lookup(self.data.items_index, self.data.catalog),
            ),
        )
