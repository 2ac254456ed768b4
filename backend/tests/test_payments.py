"""Abonos: cheapest-first allocation within a sale, oldest-first across sales."""
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from inventory_ledger.core.exceptions import (
    AlreadySettled, ExcessAmount, InvalidAmount, NotFound, StoreFailure
)
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.models import Sale
from inventory_ledger.services.consistency_service import ConsistencyService
from inventory_ledger.services.payment_service import PaymentService, allocate_cheapest_first
from inventory_ledger.services.sales_service import SalesService


@pytest.fixture
def payments(store):
    return PaymentService(store)


def _item(position, unit_price, quantity=1, paid="0"):
    unit_price = Decimal(unit_price)
    return SimpleNamespace(
        id=f"i{position}", position=position, unit_price=unit_price,
        quantity=quantity, subtotal=unit_price * quantity, paid=Decimal(paid)
    )


def _items_by_product(store, sale_id):
    return {item.product_id: item for item in SalesService(store).get_sale_items(sale_id)}


# ---------------------------------------------------------------------------
# allocate_cheapest_first
# ---------------------------------------------------------------------------


def test_allocation_cheapest_first():
    expensive, cheap = _item(0, "8000"), _item(1, "5000")

    allocations, leftover = allocate_cheapest_first([expensive, cheap], Decimal("6000"))

    assert [(item.id, applied) for item, applied in allocations] == [("i1", Decimal("5000")), ("i0", Decimal("1000"))]
    assert leftover == Decimal("0")


def test_allocation_ties_keep_line_order():
    first, second = _item(0, "5000"), _item(1, "5000")

    allocations, _ = allocate_cheapest_first([second, first], Decimal("3000"))

    assert [(item.id, applied) for item, applied in allocations] == [("i0", Decimal("3000"))]


def test_allocation_skips_paid_items_and_reports_leftover():
    settled, open_item = _item(0, "1000", paid="1000"), _item(1, "2000")

    allocations, leftover = allocate_cheapest_first([settled, open_item], Decimal("2500"))

    assert [(item.id, applied) for item, applied in allocations] == [("i1", Decimal("2000"))]
    assert leftover == Decimal("500")


# ---------------------------------------------------------------------------
# apply_to_sale
# ---------------------------------------------------------------------------


def test_apply_to_sale_cheapest_item_first(store, payments, catalog, client_record, make_sale):
    sale_id = make_sale(client_record.id, [("P002", 1, "8000"), ("P001", 1, "5000")])

    result = payments.apply_to_sale(sale_id, Decimal("6000"), "u1")

    assert result["amount_applied"] == Decimal("6000")
    assert result["new_total_paid"] == Decimal("6000")
    assert result["new_pending_balance"] == Decimal("7000")
    assert result["sale_status"] == "partial"
    items = _items_by_product(store, sale_id)
    assert items["P001"].paid == Decimal("5000")
    assert items["P001"].pending == Decimal("0")
    assert items["P002"].paid == Decimal("1000")


def test_repeated_payments_settle_the_sale(store, payments, catalog, client_record, make_sale):
    sale_id = make_sale(client_record.id, [("P001", 2, "5000"), ("P003", 1, "3000")])

    payments.apply_to_sale(sale_id, Decimal("4000"), "u1")
    payments.apply_to_sale(sale_id, Decimal("4000"), "u1")
    result = payments.apply_to_sale(sale_id, Decimal("5000"), "u1")

    assert result["sale_status"] == "paid"
    assert result["new_pending_balance"] == Decimal("0")
    assert store.get(Sale, sale_id).status == "paid"
    assert len(payments.get_sale_payments(sale_id)) == 3
    assert all(item.pending == 0 for item in SalesService(store).get_sale_items(sale_id))
    assert ConsistencyService(store).check().ok


def test_payment_over_pending_rejected(store, payments, catalog, client_record, make_sale):
    sale_id = make_sale(client_record.id, [("P001", 1, "5000")], amount_paid="1000")

    with pytest.raises(ExcessAmount) as exc_info:
        payments.apply_to_sale(sale_id, Decimal("4000.02"), "u1")

    assert exc_info.value.pending == Decimal("4000")
    assert store.get(Sale, sale_id).paid == Decimal("1000")


def test_payment_within_tolerance_is_capped(store, payments, catalog, client_record, make_sale):
    sale_id = make_sale(client_record.id, [("P001", 1, "5000")], amount_paid="1000")

    result = payments.apply_to_sale(sale_id, Decimal("4000.01"), "u1")

    assert result["amount_applied"] == Decimal("4000")
    assert result["sale_status"] == "paid"
    assert payments.get_sale_payments(sale_id)[0].amount == Decimal("4000")


def test_settled_sale_rejects_payment(payments, catalog, client_record, make_sale):
    sale_id = make_sale(client_record.id, [("P001", 1, "5000")], payment_type="total")

    with pytest.raises(AlreadySettled):
        payments.apply_to_sale(sale_id, Decimal("1"), "u1")


@pytest.mark.parametrize("amount", ["0", "-10"])
def test_non_positive_amount_rejected(payments, catalog, client_record, make_sale, amount):
    sale_id = make_sale(client_record.id, [("P001", 1, "5000")])

    with pytest.raises(InvalidAmount):
        payments.apply_to_sale(sale_id, Decimal(amount), "u1")


def test_unknown_sale(payments):
    with pytest.raises(NotFound):
        payments.apply_to_sale("ghost", Decimal("10"), "u1")


# ---------------------------------------------------------------------------
# apply_cascading
# ---------------------------------------------------------------------------


def test_cascade_oldest_first(store, payments, catalog, client_record, make_sale):
    older = make_sale(client_record.id, [("P001", 1, "5000")], date=datetime(2024, 1, 1))
    newer = make_sale(client_record.id, [("P001", 1, "5000")], date=datetime(2024, 1, 5))

    result = payments.apply_cascading(client_record.id, Decimal("7000"), "u1")

    assert [entry["sale_id"] for entry in result["applied_to"]] == [older, newer]
    assert [entry["applied"] for entry in result["applied_to"]] == [Decimal("5000"), Decimal("2000")]
    assert result["total_applied"] == Decimal("7000")
    assert result["remaining_balance"] == Decimal("0")
    assert result["failures"] == []
    assert store.get(Sale, older).status == "paid"
    assert store.get(Sale, newer).paid == Decimal("2000")


def test_cascade_priority_sale_first(store, payments, catalog, client_record, make_sale):
    older = make_sale(client_record.id, [("P001", 1, "5000")], date=datetime(2024, 1, 1))
    newer = make_sale(client_record.id, [("P001", 1, "5000")], date=datetime(2024, 1, 5))

    result = payments.apply_cascading(client_record.id, Decimal("6000"), "u1", priority_sale_id=newer)

    assert [entry["sale_id"] for entry in result["applied_to"]] == [newer, older]
    assert store.get(Sale, newer).status == "paid"
    assert store.get(Sale, older).paid == Decimal("1000")


def test_cascade_returns_surplus(payments, catalog, client_record, make_sale):
    make_sale(client_record.id, [("P001", 1, "5000")], amount_paid="4000")

    result = payments.apply_cascading(client_record.id, Decimal("2500"), "u1")

    assert result["total_applied"] == Decimal("1000")
    assert result["remaining_balance"] == Decimal("1500")


def test_cascade_skips_settled_sales(payments, catalog, client_record, make_sale):
    make_sale(client_record.id, [("P001", 1, "5000")], payment_type="total", date=datetime(2024, 1, 1))
    open_sale = make_sale(client_record.id, [("P003", 1, "3000")], date=datetime(2024, 2, 1))

    result = payments.apply_cascading(client_record.id, Decimal("3000"), "u1")

    assert [entry["sale_id"] for entry in result["applied_to"]] == [open_sale]


def test_cascade_invalid_amount(payments, client_record):
    with pytest.raises(InvalidAmount):
        payments.apply_cascading(client_record.id, Decimal("0"), "u1")


class FailingStore(LedgerStore):
    """Store whose commits fail whenever a batch touches one given sale"""

    def __init__(self, session_factory, failing_sale_id):
        super().__init__(session_factory)
        self.failing_sale_id = failing_sale_id

    def commit_writes(self, writes):
        if any(model is Sale and record_id == self.failing_sale_id for _, model, record_id, _ in writes):
            raise StoreFailure("Simulated outage")
        super().commit_writes(writes)


def test_cascade_continues_past_a_failing_sale(session_factory, catalog, client_record, make_sale):
    first = make_sale(client_record.id, [("P001", 1, "5000")], date=datetime(2024, 1, 1))
    second = make_sale(client_record.id, [("P001", 1, "5000")], date=datetime(2024, 1, 5))
    flaky_store = FailingStore(session_factory, failing_sale_id=first)

    result = PaymentService(flaky_store).apply_cascading(client_record.id, Decimal("5000"), "u1")

    assert [entry["sale_id"] for entry in result["applied_to"]] == [second]
    assert result["failures"] == [{"sale_id": first, "code": "STORE_FAILURE", "detail": "Simulated outage"}]
    assert result["total_applied"] == Decimal("5000")
    assert result["remaining_balance"] == Decimal("0")
    assert flaky_store.get(Sale, first).paid == Decimal("0")
    assert flaky_store.get(Sale, second).status == "paid"


def test_get_payments_lists_every_sale_payment(payments, catalog, client_record, make_sale):
    sale_id = make_sale(client_record.id, [("P001", 2, "5000")])
    first = payments.apply_to_sale(sale_id, Decimal("1000"), "u1")
    second = payments.apply_to_sale(sale_id, Decimal("2000"), "u1")

    ids = [payment.id for payment in payments.get_payments()]
    assert set(ids) == {first["payment_id"], second["payment_id"]}


@pytest.mark.parametrize("priority, jan1_pending, jan5_pending", [
    ("jan5", Decimal("3000"), Decimal("0")),
    (None, Decimal("1000"), Decimal("2000")),
])
def test_cascade_priority_scenarios(store, payments, catalog, client_record, make_sale,
                                    priority, jan1_pending, jan5_pending):
    sales = {
        "jan1": make_sale(client_record.id, [("P003", 1, "3000")], date=datetime(2024, 1, 1)),
        "jan5": make_sale(client_record.id, [("P003", 1, "2000")], date=datetime(2024, 1, 5)),
    }

    payments.apply_cascading(client_record.id, Decimal("2000"), "u1",
                             priority_sale_id=sales[priority] if priority else None)

    assert store.get(Sale, sales["jan1"]).pending == jan1_pending
    assert store.get(Sale, sales["jan5"]).pending == jan5_pending


class SettledOnReadStore(LedgerStore):
    """Store that reports one sale as fully paid when it is read back by id"""

    def __init__(self, session_factory, settled_sale_id):
        super().__init__(session_factory)
        self.settled_sale_id = settled_sale_id

    def get(self, model, record_id):
        record = super().get(model, record_id)
        if model is Sale and record_id == self.settled_sale_id and record is not None:
            record.paid = record.total
        return record


def test_cascade_continues_past_a_rejected_sale(session_factory, catalog, client_record, make_sale):
    first = make_sale(client_record.id, [("P001", 1, "5000")], date=datetime(2024, 1, 1))
    second = make_sale(client_record.id, [("P001", 1, "5000")], date=datetime(2024, 1, 5))
    racy_store = SettledOnReadStore(session_factory, settled_sale_id=first)

    result = PaymentService(racy_store).apply_cascading(client_record.id, Decimal("5000"), "u1")

    assert [entry["sale_id"] for entry in result["applied_to"]] == [second]
    assert [(failure["sale_id"], failure["code"]) for failure in result["failures"]] == [(first, "ALREADY_SETTLED")]
    assert result["remaining_balance"] == Decimal("0")
    assert LedgerStore(session_factory).get(Sale, first).paid == Decimal("0")


# ---------------------------------------------------------------------------
# Rounding to cents
# ---------------------------------------------------------------------------


def test_sub_cent_payment_rejected(store, payments, catalog, client_record, make_sale):
    sale_id = make_sale(client_record.id, [("P001", 1, "5000")])

    with pytest.raises(InvalidAmount):
        payments.apply_to_sale(sale_id, Decimal("0.004"), "u1")
    with pytest.raises(InvalidAmount):
        payments.apply_cascading(client_record.id, Decimal("0.004"), "u1")

    assert payments.get_sale_payments(sale_id) == []
    assert store.get(Sale, sale_id).paid == Decimal("0")


def test_reported_amount_matches_stored_amount(store, payments, catalog, client_record, make_sale):
    sale_id = make_sale(client_record.id, [("P001", 1, "5000")])

    result = payments.apply_to_sale(sale_id, Decimal("10.005"), "u1")

    assert result["amount_applied"] == Decimal("10.01")
    assert result["new_total_paid"] == Decimal("10.01")
    assert store.get(Sale, sale_id).paid == result["new_total_paid"]
    assert payments.get_sale_payments(sale_id)[0].amount == result["amount_applied"]
    assert SalesService(store).get_sale_items(sale_id)[0].paid == Decimal("10.01")


def test_cascade_rounds_before_spreading(store, payments, catalog, client_record, make_sale):
    make_sale(client_record.id, [("P001", 1, "5000")])

    result = payments.apply_cascading(client_record.id, Decimal("20.004"), "u1")

    assert result["total_applied"] == Decimal("20.00")
    assert result["remaining_balance"] == Decimal("0")
