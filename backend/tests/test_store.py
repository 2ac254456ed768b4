"""Ledger store: detached reads and all-or-nothing batches."""
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from inventory_ledger.core.exceptions import NotFound, StoreFailure
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.models import Client, Product


def test_new_id_is_unique(store):
    ids = {store.new_id() for _ in range(100)}
    assert len(ids) == 100


def test_set_then_get(store):
    store.batch().set(Client, "c1", name="Ana").commit()

    client = store.get(Client, "c1")
    assert client.name == "Ana"
    assert store.get(Client, "missing") is None


def test_set_overwrites_existing_record(store):
    store.batch().set(Client, "c1", name="Ana").commit()
    store.batch().set(Client, "c1", name="Ana Maria").commit()

    assert store.get(Client, "c1").name == "Ana Maria"
    assert len(store.query(Client)) == 1


def test_update_missing_record_rolls_back_whole_batch(store):
    batch = store.batch()
    batch.set(Client, "c1", name="Ana")
    batch.update(Client, "ghost", name="Nobody")

    with pytest.raises(NotFound):
        batch.commit()

    assert store.get(Client, "c1") is None


def test_constraint_violation_becomes_store_failure(store):
    store.batch().set(Product, "P001", code="P001", name="Notebook",
                      cost_price=Decimal("3000"), sale_price=Decimal("5000"), stock=1).commit()

    batch = store.batch()
    batch.set(Client, "c1", name="Ana")
    batch.update(Product, "P001", stock=-5)

    with pytest.raises(StoreFailure) as exc_info:
        batch.commit()

    assert exc_info.value.retryable is True
    assert store.get(Client, "c1") is None
    assert store.get(Product, "P001").stock == 1


def test_delete(store):
    store.batch().set(Client, "c1", name="Ana").commit()
    store.batch().delete(Client, "c1").commit()

    assert store.get(Client, "c1") is None


def test_batch_commits_once(store):
    batch = store.batch().set(Client, "c1", name="Ana")
    batch.commit()

    with pytest.raises(RuntimeError):
        batch.commit()


def test_detached_records_do_not_write_back(store):
    store.batch().set(Client, "c1", name="Ana").commit()

    client = store.get(Client, "c1")
    client.name = "Changed locally"

    assert store.get(Client, "c1").name == "Ana"


def test_query_filters_and_orders(store):
    batch = store.batch()
    batch.set(Client, "c1", name="Bruno")
    batch.set(Client, "c2", name="Ana")
    batch.set(Client, "c3", name="Carla")
    batch.commit()

    names = [client.name for client in store.query(Client, order_by=Client.name)]
    assert names == ["Ana", "Bruno", "Carla"]
    assert [c.id for c in store.query(Client, Client.name == "Carla")] == ["c3"]


def test_read_failure_becomes_store_failure():
    class BrokenSession:
        def get(self, *args):
            raise SQLAlchemyError("connection lost")

        def close(self):
            pass

    store = LedgerStore(lambda: BrokenSession())

    with pytest.raises(StoreFailure):
        store.get(Client, "c1")
