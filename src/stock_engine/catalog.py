"""
Item/catalog index builder.

Merges the items master list with the optional product catalog. The
catalog is authoritative for name and brand of the items it lists.
"""

import math

from .parsers import NumberParser, get_field, get_text, is_blank
from .records import NO_BRAND, NO_LINE, CatalogEntry, ItemRecord, ItemsIndex

CATALOG_CODE = ["SKU", "sku", "Codigo", "Código", "code"]
CATALOG_NAME = ["Nombre", "nombre", "Descripcion", "Descripción"]
# Visual brand wins over the legal brand
CATALOG_BRAND = ["Marca Visual", "marca_visual", "Marca Real", "marca_real", "Marca"]

ITEM_CODE = ["Código", "Codigo", "Item", "code", "sku"]
ITEM_DESC = ["Descripción", "Descripcion", "desc", "Nombre"]
ITEM_STOCK = ["StockTotal", "Stock", "stock_total", "Existencia"]
ITEM_AVERAGE_COST = ["CostoPromedio", "Costo Promedio", "costo_promedio"]
ITEM_LAST_COST = ["UltimoCosto", "Ultimo Costo", "ultimo_costo"]
ITEM_REPLACEMENT_COST = ["CostoReposicion", "Costo Reposicion", "costo_reposicion"]
ITEM_BRAND = ["Marca", "marca"]
ITEM_LINE = ["Linea", "Línea", "LineaDescripcionAlterna", "SubLinea"]
ITEM_PRICE = ["PVP1", "pvp1", "PVP1+IVA", "PVP2", "PVP2+IVA"]

_numbers = NumberParser()


def _first_text(row: dict, aliases: list[str]) -> str:
    """First alias with a non-empty value (unlike get_text, skips blanks)."""
    for alias in aliases:
        value = get_field(row, [alias])
        if not is_blank(value) and str(value).strip():
            return str(value).strip()
    return ""


def build_catalog_index(rows: list[dict] | None) -> dict[str, CatalogEntry]:
    """Map catalog code -> CatalogEntry. Later rows win on duplicate codes."""
    index: dict[str, CatalogEntry] = {}
    for row in rows or []:
        code = get_text(row, CATALOG_CODE)
        if not code:
            continue
        index[code] = CatalogEntry(
            code=code,
            name=get_text(row, CATALOG_NAME),
            brand=_first_text(row, CATALOG_BRAND) or NO_BRAND,
        )
    return index


def _average_cost(average: float, last: float, replacement: float) -> float:
    """average cost -> last cost -> replacement cost -> 0"""
    for candidate in (average, last, replacement):
        if math.isfinite(candidate):
            return candidate
    return 0.0


def build_items_index(
    rows: list[dict] | None,
    catalog: dict[str, CatalogEntry] | None = None,
) -> ItemsIndex:
    """
    Build the ItemsIndex from items rows and an optional catalog index.

    Rows without a code are skipped. The output depends only on the inputs,
    in row order.
    """
    items: list[ItemRecord] = []
    cost_by_code: dict[str, float] = {}

    for row in rows or []:
        code = get_text(row, ITEM_CODE)
        if not code:
            continue

        stock = _numbers.parse(get_field(row, ITEM_STOCK))
        last_cost = _numbers.parse(get_field(row, ITEM_LAST_COST))
        cost = _average_cost(
            _numbers.parse(get_field(row, ITEM_AVERAGE_COST)),
            last_cost,
            _numbers.parse(get_field(row, ITEM_REPLACEMENT_COST)),
        )
        cost_by_code[code] = cost

        entry = catalog.get(code) if catalog else None
        items.append(
            ItemRecord(
                code=code,
                desc=(entry.name if entry else "") or get_text(row, ITEM_DESC),
                brand=(entry.brand if entry else "")
                or get_text(row, ITEM_BRAND)
                or NO_BRAND,
                is_catalog=entry is not None,
                line=get_text(row, ITEM_LINE) or NO_LINE,
                list_price=_numbers.parse(get_field(row, ITEM_PRICE)),
                stock_on_hand=stock if math.isfinite(stock) else 0.0,
                average_cost=cost,
                last_cost=last_cost,
            )
        )

    return ItemsIndex(items=items, cost_by_code=cost_by_code)


def build_catalog_lookup(
    index: ItemsIndex | None,
    catalog: dict[str, CatalogEntry] | None = None,
) -> dict[str, bool]:
    """code -> is-catalog, from the items index plus every catalog code."""
    lookup: dict[str, bool] = {}
    if index is not None:
        for item in index.items:
            lookup[item.code] = item.is_catalog
    for code in catalog or {}:
        lookup[code] = True
    return lookup
