"""Purchases and stock intake."""
from datetime import datetime
from decimal import Decimal

import pytest

from inventory_ledger.core.exceptions import InvalidAmount, NotFound
from inventory_ledger.models import Purchase
from inventory_ledger.services.inventory_service import ProductService
from inventory_ledger.services.purchase_service import DEFAULT_SUPPLIER_NAME, PurchaseService


@pytest.fixture
def purchases(store):
    return PurchaseService(store)


def test_purchase_adds_stock(store, purchases, catalog):
    result = purchases.create_purchase(
        [
            {"product_id": "P001", "quantity": 10, "unit_cost": Decimal("2900")},
            {"product_id": "P003", "quantity": 5, "unit_cost": Decimal("1800")},
        ],
        user_id="u1",
        supplier_name="Papeleria Central",
    )

    assert result["total_amount"] == Decimal("38000")
    assert result["total_items"] == 15
    products = ProductService(store)
    notebook = products.get_product("P001")
    assert notebook.stock == 110
    assert notebook.last_purchase_cost == Decimal("2900")
    assert notebook.last_purchase_date is not None
    assert products.get_product("P003").stock == 205

    data = purchases.get_purchase(result["purchase_id"])
    assert data["purchase"].supplier_name == "Papeleria Central"
    assert [item.product_code for item in data["items"]] == ["P001", "P003"]


def test_repeated_product_lines_add_up(store, purchases, catalog):
    purchases.create_purchase(
        [
            {"product_id": "P002", "quantity": 1, "unit_cost": Decimal("7000")},
            {"product_id": "P002", "quantity": 2, "unit_cost": Decimal("6800")},
        ],
        user_id="u1",
    )

    product = ProductService(store).get_product("P002")
    assert product.stock == 53
    assert product.last_purchase_cost == Decimal("6800")


def test_default_supplier(purchases, catalog):
    result = purchases.create_purchase([{"product_id": "P001", "quantity": 1, "unit_cost": Decimal("3000")}], user_id="u1")

    assert purchases.get_purchase(result["purchase_id"])["purchase"].supplier_name == DEFAULT_SUPPLIER_NAME


def test_unknown_product_records_nothing(store, purchases, catalog):
    with pytest.raises(NotFound):
        purchases.create_purchase(
            [
                {"product_id": "P001", "quantity": 1, "unit_cost": Decimal("3000")},
                {"product_id": "NOPE", "quantity": 1, "unit_cost": Decimal("3000")},
            ],
            user_id="u1",
        )

    assert store.query(Purchase) == []
    assert ProductService(store).get_product("P001").stock == 100


@pytest.mark.parametrize("items", [
    [],
    [{"product_id": "P001", "quantity": 0, "unit_cost": Decimal("1")}],
    [{"product_id": "P001", "quantity": 1, "unit_cost": Decimal("-1")}],
])
def test_invalid_purchase(purchases, catalog, items):
    with pytest.raises(InvalidAmount):
        purchases.create_purchase(items, user_id="u1")


def test_summary_splits_current_month(store, purchases, catalog):
    purchases.create_purchase([{"product_id": "P001", "quantity": 2, "unit_cost": Decimal("3000")}], user_id="u1")
    store.batch().set(
        Purchase, "old",
        supplier_name=DEFAULT_SUPPLIER_NAME,
        total_amount=Decimal("1000"),
        total_items=1,
        status="completed",
        date=datetime(2020, 1, 15),
    ).commit()

    summary = purchases.get_purchases_summary()

    assert summary["total_purchases"] == 2
    assert summary["total_amount"] == Decimal("7000")
    assert summary["total_items"] == 3
    assert summary["monthly_purchases"] == 1
    assert summary["monthly_amount"] == Decimal("6000")


def test_purchases_by_date_range(store, purchases, catalog):
    store.batch().set(
        Purchase, "old",
        supplier_name=DEFAULT_SUPPLIER_NAME,
        total_amount=Decimal("1000"),
        total_items=1,
        status="completed",
        date=datetime(2020, 1, 15),
    ).commit()
    purchases.create_purchase([{"product_id": "P001", "quantity": 1, "unit_cost": Decimal("3000")}], user_id="u1")

    found = purchases.get_purchases_by_date_range(datetime(2020, 1, 1), datetime(2020, 1, 31))
    assert [purchase.id for purchase in found] == ["old"]


def test_missing_purchase(purchases):
    with pytest.raises(NotFound):
        purchases.get_purchase("ghost")


def test_unit_cost_rounded_to_cents(store, purchases, catalog):
    result = purchases.create_purchase(
        [{"product_id": "P001", "quantity": 3, "unit_cost": Decimal("2.345")}], user_id="u1"
    )

    assert result["total_amount"] == Decimal("7.05")
    item = purchases.get_purchase(result["purchase_id"])["items"][0]
    assert item.unit_cost == Decimal("2.35")
    assert item.subtotal == Decimal("7.05")
    assert ProductService(store).get_product("P001").last_purchase_cost == Decimal("2.35")
