import json

from conftest import move
from stock_engine.replenishment import ReplenishmentResult, forecast
from stock_engine.report import ReplenishmentReport


def test_report_serializes_unbounded_coverage(items_index):
    movements = [
        move("2024-01-10", "A", 100, "Ingreso"),
        move("2024-03-15", "A", 30, "Egreso"),
    ]
    report = ReplenishmentReport.from_result(forecast(items_index, movements, window_months=1))
    payload = report.model_dump_json()

    assert "Infinity" not in payload
    items = {item["code"]: item for item in json.loads(payload)["items"]}
    assert items["C"]["coverage"] == {"kind": "unbounded", "months": None}
    assert items["A"]["coverage"]["kind"] == "finite"
    assert items["A"]["cost_estimate"] == 175.0
    assert report.total_cost == 175.0
    assert report.items[0].code == "A"


def test_empty_result_report():
    report = ReplenishmentReport.from_result(ReplenishmentResult())
    assert report.items == []
    assert report.window_start is None
    assert report.total_cost == 0
