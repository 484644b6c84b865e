"""
Tests for row normalization and the items/catalog index.
"""

from datetime import datetime
import math

from stock_engine.catalog import build_catalog_index, build_catalog_lookup, build_items_index
from stock_engine.normalizer import RecordNormalizer, normalize_movements, normalize_sales
from stock_engine.records import NO_BRAND, NO_LINE


class TestMovementNormalization:
    def test_raw_spreadsheet_headers(self):
        rows = [
            {
                "Emision": 45292,
                "Item": " A1 ",
                "Cantidad": "1.234,5",
                "Total": "100",
                "CXUnidad": None,
                "PVP Total": "150,00",
                "Referencia": "FAC-1",
                "Persona": "Proveedor SA",
                "Mot": "COMPRA",
                "TipoMovimiento": "Ingreso",
            }
        ]
        [event] = normalize_movements(rows)
        assert event.date == datetime(2024, 1, 1)
        assert event.item == "A1"
        assert event.qty == 1234.5
        assert event.total == 100
        assert math.isnan(event.unit_cost)
        assert event.pvp_total == 150
        assert event.counterparty == "Proveedor SA"
        assert event.motive == "COMPRA"
        assert event.kind == "Ingreso"

    def test_store_rows(self):
        rows = [
            {
                "date": "2024-02-10T00:00:00",
                "item": "A1",
                "cantidad": 4,
                "total": None,
                "cx_unit": 2.5,
                "tipo_movimiento": "Egreso",
            }
        ]
        [event] = RecordNormalizer().movements(rows)
        assert event.date == datetime(2024, 2, 10)
        assert event.qty == 4
        assert event.unit_cost == 2.5
        assert math.isnan(event.total)

    def test_rows_without_date_or_item_are_dropped(self):
        rows = [
            {"Fecha": "2024-01-01", "Item": "A"},
            {"Fecha": None, "Item": "A"},
            {"Fecha": "garbage", "Item": "A"},
            {"Fecha": "2024-01-01", "Item": "  "},
            {"Fecha": "2024-01-01"},
        ]
        assert len(normalize_movements(rows)) == 1

    def test_none_rows(self):
        assert normalize_movements(None) == []
        assert normalize_sales(None) == []


class TestSaleNormalization:
    def test_customer_aliases(self):
        rows = [
            {"Emision": "2024-03-01", "ItemCodigo": "A", "Unidades": "2", "Nombre Cliente": "ACME"},
            {"Emision": "2024-03-02", "ItemCodigo": "B", "Cantidad": 3, "ClienteNombre": "Beta"},
        ]
        first, second = normalize_sales(rows)
        assert first.customer == "ACME"
        assert first.units == 2
        assert second.customer == "Beta"
        assert second.units == 3

    def test_unparseable_numbers_are_nan(self):
        [event] = normalize_sales(
            [{"Fecha": "2024-03-01", "Item": "A", "VentaBruta": "n/a", "Costo Total": ""}]
        )
        assert math.isnan(event.gross_sale)
        assert math.isnan(event.total_cost)
        assert math.isnan(event.units)


class TestItemsIndex:
    def test_catalog_overrides_name_and_brand(self, items_index):
        item = items_index.get("A")
        assert item.is_catalog is True
        assert item.desc == "Valvula A"
        assert item.brand == "Parker"
        assert item.stock_on_hand == 20
        assert item.average_cost == 2.0
        assert item.last_cost == 2.5

    def test_catalog_brand_falls_back_to_real_brand(self, items_index):
        assert items_index.get("B").brand == "Rexroth"
        assert items_index.get("C").brand == NO_BRAND

    def test_cost_fallback_chain(self, items_index):
        bomb = items_index.get("B")
        assert bomb.average_cost == 10
        assert math.isnan(bomb.last_cost)
        assert items_index.cost_by_code == {"A": 2.0, "B": 10.0, "C": 1.0, "X": 3.0}

    def test_non_catalog_item(self, items_index):
        loose = items_index.get("X")
        assert loose.is_catalog is False
        assert loose.brand == "Otra"
        assert loose.line == NO_LINE

    def test_rows_without_code_are_skipped(self, items_index):
        assert [item.code for item in items_index.items] == ["A", "B", "C", "X"]

    def test_lookup_by_code(self, items_index):
        assert items_index.get("C").desc == "Filtro C"
        assert items_index.get("missing") is None

    def test_duplicate_codes_keep_last_row(self):
        index = build_items_index(
            [
                {"Codigo": "D", "Stock": 1, "CostoPromedio": 1},
                {"Codigo": "D", "Stock": 2, "CostoPromedio": 4},
            ]
        )
        assert index.get("D").stock_on_hand == 2
        assert index.cost_by_code["D"] == 4

    def test_zero_cost_when_nothing_known(self):
        index = build_items_index([{"Codigo": "Z", "Stock": "abc"}])
        item = index.items[0]
        assert item.average_cost == 0
        assert item.stock_on_hand == 0
        assert item.brand == NO_BRAND

    def test_deterministic(self, item_rows, catalog_rows):
        catalog = build_catalog_index(catalog_rows)
        first = build_items_index(item_rows, catalog)
        second = build_items_index(item_rows, catalog)
        assert repr(first) == repr(second)

    def test_catalog_lookup_includes_catalog_only_codes(self, items_index, catalog_rows):
        catalog = build_catalog_index(catalog_rows + [{"SKU": "NEW", "Nombre": "Nuevo"}])
        lookup = build_catalog_lookup(items_index, catalog)
        assert lookup["X"] is False
        assert lookup["A"] is True
        assert lookup["NEW"] is True
