"""
Tests for reading and shaping ERP exports.
"""

from datetime import datetime

import pandas as pd
import pytest

from stock_sources.erp_loader import ErpLoader, UnsupportedSourceError, read_sheet_rows

MOVEMENTS_CSV = """Emision,Item,Cantidad,Total,TipoMovimiento,Mot,Persona
2024-01-10,A,100,"200,00",Ingreso,COMPRA,Acme
15/03/2024,A,30,,Egreso,VENTA,
,A,5,,Egreso,VENTA,
"""

SALES_CSV = """Emision,ItemCodigo,Unidades,VentaBruta,Costo Total,Nombre Cliente
2024-03-15,A,30,"1.500,00",75,Cliente Uno
"""

ITEMS_CSV = """Código,Descripción,StockTotal,CostoPromedio,UltimoCosto,Linea
A,valvula,20,2,"2,5",Valvulas
X,suelto,5,3,,
"""

CATALOG_CSV = """SKU,Nombre,Marca Visual,Marca Real
A,Valvula A,,Parker
"""


@pytest.fixture
def export_dir(tmp_path):
    (tmp_path / "movimientos.csv").write_text(MOVEMENTS_CSV, encoding="utf-8")
    (tmp_path / "ventas.csv").write_text(SALES_CSV, encoding="utf-8")
    (tmp_path / "items.csv").write_text(ITEMS_CSV, encoding="utf-8")
    (tmp_path / "catalogo.csv").write_text(CATALOG_CSV, encoding="utf-8")
    return tmp_path


FILES = {kind: f"{kind}.csv" for kind in ("movimientos", "ventas", "items", "catalogo")}


class TestReadSheetRows:
    def test_csv_blank_cells_are_none(self, export_dir):
        rows = read_sheet_rows(export_dir / "movimientos.csv")
        assert len(rows) == 3
        assert rows[0]["Total"] == "200,00"
        assert rows[1]["Total"] is None
        assert rows[2]["Emision"] is None

    def test_excel(self, tmp_path):
        path = tmp_path / "movimientos.xlsx"
        pd.DataFrame(
            {"Emision": [datetime(2024, 1, 10)], "Item": ["A"], "Cantidad": [4]}
        ).to_excel(path, index=False)
        [row] = read_sheet_rows(path)
        assert row["Item"] == "A"
        assert row["Cantidad"] == 4

    def test_unsupported_type(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("{}")
        with pytest.raises(UnsupportedSourceError):
            read_sheet_rows(path)

    def test_legacy_xls_is_rejected(self, tmp_path):
        path = tmp_path / "movimientos.xls"
        path.write_bytes(b"")
        with pytest.raises(UnsupportedSourceError):
            read_sheet_rows(path)


class TestShapeUploadRows:
    def test_movement_rows(self):
        rows = [
            {"Emision": 45301, "Item": "A", "Cantidad": "1.000", "TipoMovimiento": "Ingreso"},
            {"Emision": None, "Item": "A"},
        ]
        [shaped] = ErpLoader().shape_upload_rows("movimientos", rows)
        assert shaped["date"] == "2024-01-10T00:00:00"
        assert shaped["cantidad"] == 1000
        assert shaped["tipo_movimiento"] == "Ingreso"

    def test_catalog_rows_need_sku(self):
        rows = [{"SKU": "A", "Nombre": "Valvula"}, {"SKU": None, "Nombre": "huerfano"}]
        assert ErpLoader().shape_upload_rows("catalogo", rows) == [
            {"sku": "A", "nombre": "Valvula", "marca_visual": "", "marca_real": ""}
        ]

    def test_unknown_kind(self):
        with pytest.raises(UnsupportedSourceError):
            ErpLoader().shape_upload_rows("facturas", [])


class TestLoadAll:
    def test_loads_every_kind(self, export_dir):
        data = ErpLoader(export_dir).load_all(files=FILES)

        assert [event.qty for event in data.movements] == [100, 30]
        assert data.movements[0].total == 200
        assert data.movements[1].date == datetime(2024, 3, 15)
        assert data.movements[0].counterparty == "Acme"

        [sold] = data.sales
        assert sold.gross_sale == 1500
        assert sold.customer == "Cliente Uno"

        item = data.items_index.get("A")
        assert item.is_catalog is True
        assert item.desc == "Valvula A"
        assert item.brand == "Parker"
        assert item.last_cost == 2.5
        assert data.items_index.get("X").is_catalog is False
        assert set(data.catalog) == {"A"}

    def test_missing_files_are_skipped(self, tmp_path):
        data = ErpLoader(tmp_path).load_all()
        assert data.movements == []
        assert data.items_index.items == []

    def test_quality_counts_rows_dropped_while_shaping(self, export_dir):
        data = ErpLoader(export_dir).load_all(files=FILES)
        report = data.quality_reports["movimientos"]
        assert report.raw_rows == 3
        assert report.kept_rows == 2
        assert report.dropped_rows == 1
        assert [issue.issue_type for issue in report.issues][0] == "dropped_rows"

    def test_requires_data_dir(self):
        with pytest.raises(UnsupportedSourceError):
            ErpLoader().load_all()

    def test_unknown_file_kind(self, tmp_path):
        with pytest.raises(UnsupportedSourceError):
            ErpLoader(tmp_path).load_all(files={"facturas": "f.csv"})


class TestQualityReports:
    def test_dropped_rows_are_reported(self):
        movements = [
            {"Fecha": "2024-01-01", "Item": "A", "Cantidad": 1, "TipoMovimiento": "Ingreso"},
            {"Fecha": "2024-01-02", "Item": "", "Cantidad": 1, "TipoMovimiento": "Ingreso"},
            {"Fecha": "2024-01-03", "Item": "B", "Cantidad": "?", "TipoMovimiento": ""},
        ]
        data = ErpLoader().load_rows(movements=movements)
        report = data.quality_reports["movimientos"]
        assert report.raw_rows == 3
        assert report.kept_rows == 2
        assert report.dropped_rows == 1
        assert report.has_critical_issues
        issue_types = {issue.issue_type for issue in report.issues}
        assert issue_types == {"dropped_rows", "unparseable_number", "missing"}

    def test_clean_source_has_no_issues(self):
        sales = [
            {
                "Fecha": "2024-01-01",
                "Item": "A",
                "Unidades": 1,
                "VentaBruta": 10,
                "CostoTotal": 5,
                "Cliente": "Uno",
            }
        ]
        report = ErpLoader().load_rows(sales=sales).quality_reports["ventas"]
        assert report.issues == []
        assert report.summary()["kept_rows"] == 1
