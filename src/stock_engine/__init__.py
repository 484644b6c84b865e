# Inventory analytics and replenishment engine
# Pure functions over already-loaded rows: no I/O, no caching, no shared state

from .parsers import DateParser, NumberParser, get_field, normalize_key, to_number, parse_date
from .records import (
    ALL,
    CatalogEntry,
    Coverage,
    Filter,
    ItemRecord,
    ItemsIndex,
    MovementEvent,
    SaleEvent,
    rows_date_range,
)
from .normalizer import RecordNormalizer, normalize_movements, normalize_sales
from .catalog import build_catalog_index, build_catalog_lookup, build_items_index
from .periods import Granularity, period_key, period_start
from .series import (
    CostSeries,
    InventorySeries,
    SalesPriceSeries,
    build_cost_series,
    build_sales_price_series,
    build_series,
    movement_sign,
)
from .replenishment import BrandRow, ReplenishmentResult, ReplenishmentRow, forecast
from .aggregation import (
    build_catalog_share,
    build_line_distribution,
    build_sales_by_catalog,
    build_top_customers_by_year,
    top_n_with_others,
)
from .quality import DataQualityChecker, DataQualityReport
from .report import ReplenishmentReport

__all__ = [
    "DateParser",
    "NumberParser",
    "get_field",
    "normalize_key",
    "to_number",
    "parse_date",
    "ALL",
    "CatalogEntry",
    "Coverage",
    "Filter",
    "ItemRecord",
    "ItemsIndex",
    "MovementEvent",
    "SaleEvent",
    "rows_date_range",
    "RecordNormalizer",
    "normalize_movements",
    "normalize_sales",
    "build_catalog_index",
    "build_catalog_lookup",
    "build_items_index",
    "Granularity",
    "period_key",
    "period_start",
    "CostSeries",
    "InventorySeries",
    "SalesPriceSeries",
    "build_cost_series",
    "build_sales_price_series",
    "build_series",
    "movement_sign",
    "BrandRow",
    "ReplenishmentResult",
    "ReplenishmentRow",
    "forecast",
    "build_catalog_share",
    "build_line_distribution",
    "build_sales_by_catalog",
    "build_top_customers_by_year",
    "top_n_with_others",
    "DataQualityChecker",
    "DataQualityReport",
    "ReplenishmentReport",
]
