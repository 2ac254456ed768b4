"""
SQLAlchemy Models for the Inventory Ledger
"""
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, Numeric, JSON,
    ForeignKey, Index, CheckConstraint
)
import enum

from inventory_ledger.core.database import Base


# ==================== ENUMS ====================

class SaleStatus(enum.Enum):
    PARTIAL = "partial"
    PAID = "paid"


class PaymentType(enum.Enum):
    TOTAL = "total"
    PARTIAL = "partial"


class ClientStatus(enum.Enum):
    CURRENT = "current"
    IN_DEBT = "in_debt"


# ==================== INVENTORY ====================

class Product(Base):
    """Product; the id is the human-assigned product code"""
    __tablename__ = 'products'

    id = Column(String(64), primary_key=True)
    code = Column(String(64), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    cost_price = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    sale_price = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    stock = Column(Integer, nullable=False, default=0)
    last_purchase_date = Column(DateTime, nullable=True)
    last_purchase_cost = Column(Numeric(15, 2), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
    )


# ==================== CLIENTS ====================

class Client(Base):
    """Client; pending balance and status are derived from sales, never stored"""
    __tablename__ = 'clients'

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


# ==================== SALES ====================

class Sale(Base):
    """Sale header"""
    __tablename__ = 'sales'

    id = Column(String(64), primary_key=True)
    client_id = Column(String(64), ForeignKey('clients.id'), nullable=False)
    total = Column(Numeric(15, 2), nullable=False)
    paid = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    status = Column(String(20), nullable=False, default=SaleStatus.PARTIAL.value)
    payment_type = Column(String(20), nullable=False, default=PaymentType.PARTIAL.value)
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    user_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint('paid >= 0 AND paid <= total', name='ck_sales_paid_within_total'),
        Index('ix_sales_client_id', 'client_id'),
    )

    @property
    def pending(self) -> Decimal:
        return self.total - self.paid


class SaleItem(Base):
    """Sale line item; unit price is frozen at sale time"""
    __tablename__ = 'sale_items'

    id = Column(String(64), primary_key=True)
    sale_id = Column(String(64), ForeignKey('sales.id'), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    # No FK: cost lookups tolerate a product row that has gone away
    product_id = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    subtotal = Column(Numeric(15, 2), nullable=False)
    paid = Column(Numeric(15, 2), nullable=False, default=Decimal("0.00"))
    pending = Column(Numeric(15, 2), nullable=False)
    cut_units = Column(Integer, nullable=False, default=0)
    is_cut_included = Column(Boolean, nullable=False, default=False)
    cut_id = Column(String(64), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_sale_items_quantity_positive'),
        CheckConstraint('paid >= 0 AND paid <= subtotal', name='ck_sale_items_paid_within_subtotal'),
        CheckConstraint('cut_units >= 0 AND cut_units <= quantity', name='ck_sale_items_cut_units_range'),
        Index('ix_sale_items_sale_id', 'sale_id'),
    )


class Payment(Base):
    """Payment (abono) applied to a sale; append-only"""
    __tablename__ = 'payments'

    id = Column(String(64), primary_key=True)
    sale_id = Column(String(64), ForeignKey('sales.id'), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    user_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index('ix_payments_sale_id', 'sale_id'),
    )


class ProfitCut(Base):
    """Profit cut (corte); append-only settlement log"""
    __tablename__ = 'profit_cuts'

    id = Column(String(64), primary_key=True)
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    user_id = Column(String(255), nullable=True)
    items_count = Column(Integer, nullable=False)
    total_revenue = Column(Numeric(15, 2), nullable=False)
    total_cost = Column(Numeric(15, 2), nullable=False)
    net_profit = Column(Numeric(15, 2), nullable=False)
    included_item_ids = Column(JSON, nullable=False, default=list)
    # item id -> units recognized by this cut
    included_units = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)


# ==================== PURCHASES ====================

class Purchase(Base):
    """Supplier purchase; increments stock"""
    __tablename__ = 'purchases'

    id = Column(String(64), primary_key=True)
    supplier_id = Column(String(64), nullable=True)
    supplier_name = Column(String(255), nullable=False, default="General Supplier")
    total_amount = Column(Numeric(15, 2), nullable=False)
    total_items = Column(Integer, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="completed")
    user_id = Column(String(255), nullable=True)
    date = Column(DateTime, nullable=False, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)


class PurchaseItem(Base):
    """Purchase line item"""
    __tablename__ = 'purchase_items'

    id = Column(String(64), primary_key=True)
    purchase_id = Column(String(64), ForeignKey('purchases.id'), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String(64), ForeignKey('products.id'), nullable=False)
    product_name = Column(String(255), nullable=True)
    product_code = Column(String(64), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_cost = Column(Numeric(15, 2), nullable=False)
    subtotal = Column(Numeric(15, 2), nullable=False)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_purchase_items_quantity_positive'),
        Index('ix_purchase_items_purchase_id', 'purchase_id'),
    )
