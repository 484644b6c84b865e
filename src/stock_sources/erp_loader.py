"""
Loader for the ERP spreadsheet exports.

THIS FILE CONTAINS SOURCE-SPECIFIC LOGIC:
- Header aliases of the ERP exports (Spanish, accented or not)
- Mapping of the four upload kinds to storage rows
- Quality checks tuned to what the ERP usually gets wrong

Upload kinds:
- movimientos: inventory movements (Emision, Item, Cantidad, TipoMovimiento...)
- ventas: sales lines (Emision, ItemCodigo, Unidades, VentaBruta...)
- items: items master list (Codigo, StockTotal, CostoPromedio...)
- catalogo: product catalog (SKU, Nombre, Marca Visual...)

The engine only sees already-parsed rows; this module is where files are
read.
"""

from dataclasses import asdict, dataclass, field
import logging
from pathlib import Path
from typing import Literal

import pandas as pd

from stock_engine.catalog import build_catalog_index, build_items_index
from stock_engine.normalizer import RecordNormalizer
from stock_engine.parsers import DateParser, NumberParser, get_field, get_text
from stock_engine.quality import DataQualityChecker, DataQualityReport
from stock_engine.records import CatalogEntry, ItemsIndex, MovementEvent, SaleEvent

logger = logging.getLogger(__name__)

UploadKind = Literal["movimientos", "ventas", "items", "catalogo"]
UPLOAD_KINDS: tuple[str, ...] = ("movimientos", "ventas", "items", "catalogo")


class UnsupportedSourceError(ValueError):
    """Unknown upload kind or unreadable file type."""


def read_sheet_rows(path: Path | str) -> list[dict]:
    """
    Rows of the first sheet (or of a CSV file) as plain dicts.

    Blank cells become None.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in (".xlsx", ".xlsm"):
        df = pd.read_excel(path, sheet_name=0)
    elif suffix == ".csv":
        df = pd.read_csv(path, dtype=str)
    else:
        raise UnsupportedSourceError(f"Unsupported file type: {path.name}")

    df = df.astype(object).where(df.notna(), None)
    rows = df.to_dict(orient="records")
    logger.info("Read %d rows from %s", len(rows), path.name)
    return rows


@dataclass
class LoadedData:
    """Container for all loaded and normalized sources."""

    movements: list[MovementEvent] = field(default_factory=list)
    sales: list[SaleEvent] = field(default_factory=list)
    catalog: dict[str, CatalogEntry] = field(default_factory=dict)
    items_index: ItemsIndex = field(default_factory=ItemsIndex)
    quality_reports: dict[str, DataQualityReport] = field(default_factory=dict)


class ErpLoader:
    """
    Loads and shapes the ERP exports.

    Source quirks handled:
    - Dates arrive as Excel serial numbers, native dates or strings
    - Numbers use either decimal convention, often with thousands separators
    - Headers drift between exports ("Código" vs "Codigo", "PVP Total" vs "PVPTotal")
    - Customer name column has at least five different names in sales exports
    """

    def __init__(self, data_dir: Path | str | None = None):
        self.data_dir = Path(data_dir) if data_dir is not None else None
        self.date_parser = DateParser()
        self.number_parser = NumberParser()
        self.normalizer = RecordNormalizer(self.date_parser, self.number_parser)

    def _number(self, row: dict, aliases: list[str]) -> float:
        return self.number_parser.parse(get_field(row, aliases))

    def _iso_date(self, row: dict) -> str | None:
        date = self.date_parser.parse(get_field(row, ["Emision", "Fecha"]))
        return date.isoformat() if date else None

    def shape_upload_rows(self, kind: UploadKind, rows: list[dict]) -> list[dict]:
        """
        Map raw sheet rows of one upload kind to storage rows.

        Movements and sales need a date and an item; items and catalog rows
        need a code. Rows missing them are dropped.
        """
        shapers = {
            "movimientos": self._shape_movement,
            "ventas": self._shape_sale,
            "items": self._shape_item,
            "catalogo": self._shape_catalog,
        }
        if kind not in shapers:
            raise UnsupportedSourceError(f"Unknown upload kind: {kind}")
        shaped = [shapers[kind](row) for row in rows or []]
        return [row for row in shaped if row is not None]

    def _shape_movement(self, row: dict) -> dict | None:
        date = self._iso_date(row)
        item = get_text(row, ["Item", "Codigo", "Código"])
        if not date or not item:
            return None
        return {
            "date": date,
            "item": item,
            "descripcion": get_text(row, ["Descripcion", "Descripción"]),
            "cantidad": self._number(row, ["Cantidad"]),
            "total": self._number(row, ["Total"]),
            "cx_unit": self._number(row, ["CXUnidad", "CostoUnidad", "Costo Unitario"]),
            "pvp_total": self._number(row, ["PVPTotal", "PVP Total"]),
            "referencia": get_text(row, ["Referencia"]),
            "persona": get_text(row, ["Persona"]),
            "mot": get_text(row, ["Mot"]),
            "tipo_movimiento": get_text(row, ["TipoMovimiento"]),
        }

    def _shape_sale(self, row: dict) -> dict | None:
        date = self._iso_date(row)
        item = get_text(row, ["ItemCodigo", "Item", "Codigo"])
        if not date or not item:
            return None
        return {
            "date": date,
            "item": item,
            "unidades": self._number(row, ["Unidades", "Cantidad"]),
            "venta_bruta": self._number(row, ["VentaBruta", "Venta Bruta"]),
            "costo_total": self._number(row, ["CostoTotal", "Costo Total"]),
            "descuento_total": self._number(row, ["Total Descuento", "Descuento Total"]),
            "persona": get_text(
                row,
                ["Persona", "Cliente", "Cliente Nombre", "Nombre Cliente", "ClienteNombre"],
            ),
        }

    def _shape_item(self, row: dict) -> dict | None:
        code = get_text(row, ["Código", "Codigo", "Item", "code", "sku"])
        if not code:
            return None
        return {
            "code": code,
            "descripcion": get_text(row, ["Descripción", "Descripcion", "Desc", "Nombre"]),
            "stock_total": self._number(row, ["StockTotal", "Stock", "Existencia"]),
            "costo_promedio": self._number(row, ["CostoPromedio", "Costo Promedio"]),
            "ultimo_costo": self._number(
                row, ["UltimoCosto", "Ultimo Costo", "Ultimo Costo Unitario"]
            ),
            "costo_reposicion": self._number(row, ["CostoReposicion", "Costo Reposicion"]),
            "marca": get_text(row, ["Marca", "Marca Visual", "Marca Real"]),
            "linea": get_text(
                row, ["Linea", "Línea", "LineaDescripcionAlterna", "SubLinea"]
            ),
            "pvp1": self._number(row, ["PVP1", "PVP 1", "PVP1+IVA", "PVP2", "PVP2+IVA"]),
        }

    def _shape_catalog(self, row: dict) -> dict | None:
        sku = get_text(row, ["SKU", "Codigo", "Código"])
        if not sku:
            return None
        return {
            "sku": sku,
            "nombre": get_text(row, ["Nombre", "Descripcion", "Descripción"]),
            "marca_visual": get_text(row, ["Marca Visual", "Marca"]),
            "marca_real": get_text(row, ["Marca Real"]),
        }

    def load_rows(
        self,
        movements: list[dict] | None = None,
        sales: list[dict] | None = None,
        items: list[dict] | None = None,
        catalog: list[dict] | None = None,
        read_rows: dict[str, list[dict]] | None = None,
    ) -> LoadedData:
        """
        Normalize already-read rows and run quality checks.

        ``read_rows`` holds the rows as read from file per upload kind, before
        shaping; quality reports count drops against them when given.
        """
        read_rows = read_rows or {}
        movement_events = self.normalizer.movements(movements)
        sale_events = self.normalizer.sales(sales)
        catalog_index = build_catalog_index(catalog)
        items_index = build_items_index(items, catalog_index)

        quality_reports = {
            "movimientos": self._check_movements(
                read_rows.get("movimientos", movements or []), movement_events
            ),
            "ventas": self._check_sales(read_rows.get("ventas", sales or []), sale_events),
        }
        for name, report in quality_reports.items():
            if report.has_critical_issues:
                logger.warning("Critical data quality issues in %s: %s", name, report.summary())

        return LoadedData(
            movements=movement_events,
            sales=sale_events,
            catalog=catalog_index,
            items_index=items_index,
            quality_reports=quality_reports,
        )

    def load_all(self, files: dict[str, str] | None = None) -> LoadedData:
        """
        Read every upload kind from ``data_dir`` and normalize it.

        ``files`` maps upload kind -> file name; by default each kind is read
        from ``<kind>.xlsx``. Missing files are treated as empty sources.
        """
        if self.data_dir is None:
            raise UnsupportedSourceError("ErpLoader.load_all needs a data_dir")
        files = files or {kind: f"{kind}.xlsx" for kind in UPLOAD_KINDS}
        unknown = set(files) - set(UPLOAD_KINDS)
        if unknown:
            raise UnsupportedSourceError(f"Unknown upload kinds: {sorted(unknown)}")

        read: dict[str, list[dict]] = {}
        rows: dict[str, list[dict]] = {}
        for kind, name in files.items():
            path = self.data_dir / name
            if not path.exists():
                logger.info("No %s file at %s, skipping", kind, path)
                continue
            read[kind] = read_sheet_rows(path)
            rows[kind] = self.shape_upload_rows(kind, read[kind])

        return self.load_rows(
            movements=rows.get("movimientos"),
            sales=rows.get("ventas"),
            items=rows.get("items"),
            catalog=rows.get("catalogo"),
            read_rows=read,
        )

    def _check_movements(
        self, raw: list[dict], events: list[MovementEvent]
    ) -> DataQualityReport:
        checker = DataQualityChecker("Movimientos")
        checker.check_numeric("qty")
        checker.check_missing_text("kind")
        return checker.run(pd.DataFrame(raw), _events_frame(events, MovementEvent))

    def _check_sales(self, raw: list[dict], events: list[SaleEvent]) -> DataQualityReport:
        checker = DataQualityChecker("Ventas")
        checker.check_numeric("units")
        checker.check_numeric("gross_sale")
        checker.check_numeric("total_cost")
        checker.check_missing_text("customer")
        return checker.run(pd.DataFrame(raw), _events_frame(events, SaleEvent))


def _events_frame(events: list, event_type: type) -> pd.DataFrame:
    columns = list(event_type.__dataclass_fields__)
    return pd.DataFrame([asdict(event) for event in events], columns=columns)
