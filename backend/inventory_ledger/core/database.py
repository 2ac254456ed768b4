"""
Database Configuration
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from typing import Generator

from inventory_ledger.core.config import settings

# Get the properly formatted database URL
db_url = settings.database_url

# Create engine
engine = create_engine(
    db_url,
    connect_args={"check_same_thread": False} if "sqlite" in db_url else {},
    echo=settings.DEBUG
)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

# Base model
Base = declarative_base()


def get_store() -> Generator["LedgerStore", None, None]:
    """
    Dependency that provides the ledger store bound to the application engine.
    Each store call opens and closes its own session.
    """
    from inventory_ledger.core.store import LedgerStore
    yield LedgerStore(SessionLocal)


def init_db(bind=None):
    """Initialize database tables"""
    # Import all models to register them with Base
    from inventory_ledger.models import (
        Product, Client, Sale, SaleItem, Payment, ProfitCut, Purchase, PurchaseItem
    )
    Base.metadata.create_all(bind=bind or engine)
