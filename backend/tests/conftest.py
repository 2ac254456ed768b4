# backend/tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - Every test gets a fresh in-memory SQLite database (StaticPool keeps
#   the single connection alive across sessions)
# - Services run against a real LedgerStore; nothing is mocked
# - The API client overrides get_store and the whitelist, and signs its
#   own bearer tokens
# ---------------------------------------------------------------------
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from inventory_ledger.core.database import Base, get_store, init_db
from inventory_ledger.core.security import AccessPolicy, create_access_token, get_access_policy
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.services.crm_service import ClientService
from inventory_ledger.services.inventory_service import ProductService
from inventory_ledger.services.sales_service import SalesService

ADMIN_EMAIL = "owner@example.com"
SELLER_EMAIL = "seller@example.com"
AUTHORIZED_USERS = {ADMIN_EMAIL: "admin", SELLER_EMAIL: "seller"}


# ---------- Database / store ----------
@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def store(session_factory):
    return LedgerStore(session_factory)


# ---------- Seed helpers ----------
@pytest.fixture
def make_product(store):
    def _make(code="P001", name=None, cost_price="3000", sale_price="5000", stock=100):
        return ProductService(store).create_product(
            code=code,
            name=name or f"Product {code}",
            cost_price=Decimal(cost_price),
            sale_price=Decimal(sale_price),
            stock=stock,
        )
    return _make


@pytest.fixture
def make_client(store):
    def _make(name="Ana Torres", phone="555-0101", email=None):
        return ClientService(store).create_client(name=name, phone=phone, email=email)
    return _make


@pytest.fixture
def make_sale(store):
    """Create a sale and return its id; items are (product_id, quantity, unit_price)"""
    def _make(client_id, items, payment_type="partial", amount_paid="0", date=None, user_id="tester"):
        return SalesService(store).create_sale(
            client_id=client_id,
            items=[
                {"product_id": product_id, "quantity": quantity, "unit_price": Decimal(unit_price)}
                for product_id, quantity, unit_price in items
            ],
            user_id=user_id,
            payment_type=payment_type,
            amount_paid=Decimal(amount_paid),
            date=date,
        )
    return _make


@pytest.fixture
def catalog(make_product):
    """P001 5000/3000, P002 10000/7000, P003 3000/2000"""
    return {
        "P001": make_product("P001", "Notebook", "3000", "5000", 100),
        "P002": make_product("P002", "Backpack", "7000", "10000", 50),
        "P003": make_product("P003", "Pen set", "2000", "3000", 200),
    }


@pytest.fixture
def client_record(make_client):
    return make_client()


# ---------- API ----------
def auth_headers(email=ADMIN_EMAIL):
    token = create_access_token({"sub": email, "uid": email.split("@")[0]})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api(store):
    from inventory_ledger.main import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_access_policy] = lambda: AccessPolicy(AUTHORIZED_USERS)
    client = TestClient(app)
    client.headers.update(auth_headers())
    yield client
    app.dependency_overrides.clear()
