"""
Record normalizer: loosely-typed rows -> MovementEvent / SaleEvent.

Rows may come straight from a spreadsheet (Spanish ERP headers) or from
the store (snake_case columns written by the upload step). Both shapes
are resolved through the same alias lists, so header casing, accents
and spacing do not matter.

Rows without a parseable date or an item code are dropped silently;
unparseable numbers become NaN.
"""

import logging

from .parsers import DateParser, NumberParser, get_field, get_text
from .records import MovementEvent, SaleEvent

logger = logging.getLogger(__name__)


class RecordNormalizer:
    """
    Converts raw rows into canonical events.

    To support a new export format, extend the alias lists. Aliases are
    tried in order, so put the store column names first.
    """

    MOVEMENT_FIELDS = {
        "date": ["date", "Emision", "Fecha"],
        "item": ["item", "Item", "Codigo", "Código"],
        "desc": ["descripcion", "Descripcion", "Descripción"],
        "qty": ["cantidad", "Cantidad"],
        "total": ["total", "Total"],
        "unit_cost": ["cx_unit", "CXUnidad", "CostoUnidad", "Costo Unitario"],
        "pvp_total": ["pvp_total", "PVPTotal", "PVP Total"],
        "reference": ["referencia", "Referencia"],
        "counterparty": ["persona", "Persona"],
        "motive": ["mot", "Mot"],
        "kind": ["tipo_movimiento", "TipoMovimiento", "Tipo Movimiento"],
    }

    SALE_FIELDS = {
        "date": ["date", "Emision", "Fecha"],
        "item": ["item", "ItemCodigo", "Item", "Codigo"],
        "units": ["unidades", "Unidades", "Cantidad"],
        "gross_sale": ["venta_bruta", "VentaBruta", "Venta Bruta"],
        "total_cost": ["costo_total", "CostoTotal", "Costo Total"],
        "total_discount": ["descuento_total", "Descuento Total", "Total Descuento"],
        "customer": [
            "persona",
            "Persona",
            "Cliente",
            "Cliente Nombre",
            "Nombre Cliente",
            "ClienteNombre",
        ],
    }

    def __init__(
        self,
        date_parser: DateParser | None = None,
        number_parser: NumberParser | None = None,
    ):
        self.date_parser = date_parser or DateParser()
        self.number_parser = number_parser or NumberParser()

    def _date(self, row: dict, aliases: list[str]):
        return self.date_parser.parse(get_field(row, aliases))

    def _number(self, row: dict, aliases: list[str]) -> float:
        return self.number_parser.parse(get_field(row, aliases))

    def movement(self, row: dict) -> MovementEvent | None:
        """Normalize one movement row, or None when date/item are missing."""
        f = self.MOVEMENT_FIELDS
        date = self._date(row, f["date"])
        item = get_text(row, f["item"])
        if date is None or not item:
            return None
        return MovementEvent(
            date=date,
            item=item,
            qty=self._number(row, f["qty"]),
            total=self._number(row, f["total"]),
            unit_cost=self._number(row, f["unit_cost"]),
            pvp_total=self._number(row, f["pvp_total"]),
            reference=get_text(row, f["reference"]),
            counterparty=get_text(row, f["counterparty"]),
            motive=get_text(row, f["motive"]),
            kind=get_text(row, f["kind"]),
            desc=get_text(row, f["desc"]),
        )

    def sale(self, row: dict) -> SaleEvent | None:
        """Normalize one sales row, or None when date/item are missing."""
        f = self.SALE_FIELDS
        date = self._date(row, f["date"])
        item = get_text(row, f["item"])
        if date is None or not item:
            return None
        return SaleEvent(
            date=date,
            item=item,
            units=self._number(row, f["units"]),
            gross_sale=self._number(row, f["gross_sale"]),
            total_cost=self._number(row, f["total_cost"]),
            total_discount=self._number(row, f["total_discount"]),
            customer=get_text(row, f["customer"]),
        )

    def movements(self, rows: list[dict] | None) -> list[MovementEvent]:
        events = [self.movement(row) for row in rows or []]
        kept = [event for event in events if event is not None]
        _log_dropped("movement", len(events), len(kept))
        return kept

    def sales(self, rows: list[dict] | None) -> list[SaleEvent]:
        events = [self.sale(row) for row in rows or []]
        kept = [event for event in events if event is not None]
        _log_dropped("sales", len(events), len(kept))
        return kept


def _log_dropped(source: str, total: int, kept: int) -> None:
    if kept < total:
        logger.debug(
            "Dropped %d of %d %s rows without date or item", total - kept, total, source
        )


_default = RecordNormalizer()


def normalize_movements(rows: list[dict] | None) -> list[MovementEvent]:
    return _default.movements(rows)


def normalize_sales(rows: list[dict] | None) -> list[SaleEvent]:
    return _default.sales(rows)
