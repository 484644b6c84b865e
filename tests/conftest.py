from datetime import datetime

import pytest

from stock_engine.catalog import build_catalog_index, build_items_index
from stock_engine.records import MovementEvent, SaleEvent


def move(day: str, item: str, qty: float, kind: str = "", **extra) -> MovementEvent:
    """Movement at midnight of an ISO day."""
    return MovementEvent(date=datetime.fromisoformat(day), item=item, qty=qty, kind=kind, **extra)


def sale(day: str, item: str, units: float, **extra) -> SaleEvent:
    return SaleEvent(date=datetime.fromisoformat(day), item=item, units=units, **extra)


@pytest.fixture
def catalog_rows():
    return [
        {"SKU": "A", "Nombre": "Valvula A", "Marca Visual": "Parker"},
        {"SKU": "B", "Nombre": "Bomba B", "Marca Visual": None, "Marca Real": "Rexroth"},
        {"SKU": "C", "Nombre": "Filtro C"},
    ]


@pytest.fixture
def item_rows():
    return [
        {
            "Código": "A",
            "Descripción": "valvula vieja",
            "StockTotal": "20",
            "CostoPromedio": "2,00",
            "UltimoCosto": "2,50",
            "Marca": "Generica",
            "Linea": "Valvulas",
        },
        {
            "Código": "B",
            "Descripción": "bomba",
            "StockTotal": 0,
            "CostoPromedio": None,
            "UltimoCosto": None,
            "CostoReposicion": "10",
            "Linea": "Bombas",
        },
        {
            "Código": "C",
            "Descripción": "filtro",
            "StockTotal": 40,
            "CostoPromedio": 1,
            "Linea": "Filtros",
        },
        {
            "Código": "X",
            "Descripción": "suelto",
            "StockTotal": 5,
            "CostoPromedio": 3,
            "Marca": "Otra",
        },
        {"Código": "", "Descripción": "sin codigo"},
    ]


@pytest.fixture
def items_index(item_rows, catalog_rows):
    return build_items_index(item_rows, build_catalog_index(catalog_rows))
