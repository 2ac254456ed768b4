"""
Database Seed Script
Creates the tables and loads a small catalog and two clients without
touching records that already exist
"""
from decimal import Decimal

from inventory_ledger.core.database import SessionLocal, init_db
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.services.inventory_service import ProductService
from inventory_ledger.services.crm_service import ClientService

SEED_PRODUCTS = [
    {"code": "P001", "name": "Notebook", "cost_price": Decimal("3000"), "sale_price": Decimal("5000"), "stock": 100},
    {"code": "P002", "name": "Backpack", "cost_price": Decimal("7000"), "sale_price": Decimal("10000"), "stock": 50},
    {"code": "P003", "name": "Pen set", "cost_price": Decimal("2000"), "sale_price": Decimal("3000"), "stock": 200},
]

SEED_CLIENTS = [
    {"name": "Ana Torres", "phone": "555-0101", "email": "ana@example.com"},
    {"name": "Luis Gomez", "phone": "555-0102", "email": None},
]


def seed_database():
    """Create tables and insert the seed records"""
    init_db()
    store = LedgerStore(SessionLocal)
    products = ProductService(store)
    clients = ClientService(store)

    print("=" * 60)
    print("Seeding database")
    print("=" * 60)

    for product in SEED_PRODUCTS:
        if products.get_product(product["code"]):
            print(f"  Product {product['code']} already exists")
            continue
        products.create_product(**product)
        print(f"✓ Added product {product['code']} ({product['name']})")

    existing_names = {client.name for client in clients.get_clients()}
    for client in SEED_CLIENTS:
        if client["name"] in existing_names:
            print(f"  Client {client['name']} already exists")
            continue
        clients.create_client(**client)
        print(f"✓ Added client {client['name']}")

    print("\n" + "=" * 60)
    print("✓ Seed completed successfully!")
    print("=" * 60)


if __name__ == "__main__":
    seed_database()
