"""
Pydantic Schemas for API Validation
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, List, Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


# ==================== ENUMS ====================

class PaymentTypeEnum(str, Enum):
    TOTAL = "total"
    PARTIAL = "partial"


class SaleStatusEnum(str, Enum):
    PARTIAL = "partial"
    PAID = "paid"


class ClientStatusEnum(str, Enum):
    CURRENT = "current"
    IN_DEBT = "in_debt"


# ==================== AUTH SCHEMAS ====================

class CurrentUser(BaseModel):
    """Identity resolved from a bearer token and the whitelist"""
    id: str
    email: str
    role: str


# ==================== PRODUCT SCHEMAS ====================

class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    cost_price: Decimal = Field(..., ge=0, decimal_places=2)
    sale_price: Decimal = Field(..., ge=0, decimal_places=2)


class ProductCreate(ProductBase):
    code: str = Field(..., min_length=1, max_length=64)
    stock: int = Field(default=0, ge=0)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    cost_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    sale_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)


class ProductResponse(ProductBase):
    id: str
    code: str
    stock: int
    last_purchase_date: Optional[datetime] = None
    last_purchase_cost: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== CLIENT SCHEMAS ====================

class ClientBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)


class ClientCreate(ClientBase):
    pass


class ClientUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)


class ClientResponse(ClientBase):
    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ClientWithBalance(ClientResponse):
    pending_balance: Decimal
    status: ClientStatusEnum


# ==================== SALE SCHEMAS ====================

class SaleItemCreate(BaseModel):
    product_id: str
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0, decimal_places=2)


class SaleItemResponse(BaseModel):
    id: str
    sale_id: str
    position: int
    product_id: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    paid: Decimal
    pending: Decimal
    cut_units: int
    is_cut_included: bool
    cut_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SaleCreate(BaseModel):
    client_id: str
    items: List[SaleItemCreate] = Field(..., min_length=1)
    payment_type: PaymentTypeEnum = PaymentTypeEnum.PARTIAL
    amount_paid: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    date: Optional[datetime] = None


class SaleResponse(BaseModel):
    id: str
    client_id: str
    total: Decimal
    paid: Decimal
    status: SaleStatusEnum
    payment_type: PaymentTypeEnum
    date: datetime
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SaleWithItems(SaleResponse):
    items: List[SaleItemResponse] = []


# ==================== PAYMENT SCHEMAS ====================

class PaymentResponse(BaseModel):
    id: str
    sale_id: str
    amount: Decimal
    date: datetime
    user_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ApplyPaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)


class CascadingPaymentRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    priority_sale_id: Optional[str] = None


class PaymentResult(BaseModel):
    payment_id: str
    amount_applied: Decimal
    new_total_paid: Decimal
    new_pending_balance: Decimal
    sale_status: SaleStatusEnum


class SalePaymentResult(PaymentResult):
    sale_id: str
    applied: Decimal


class CascadeFailure(BaseModel):
    sale_id: str
    code: str
    detail: str


class CascadingPaymentResult(BaseModel):
    total_applied: Decimal
    remaining_balance: Decimal
    applied_to: List[SalePaymentResult] = []
    failures: List[CascadeFailure] = []


# ==================== PROFIT CUT SCHEMAS ====================

class ProfitCutResult(BaseModel):
    cut_id: str
    items_count: int
    total_revenue: Decimal
    total_cost: Decimal
    net_profit: Decimal
    date: datetime


class ProfitCutResponse(BaseModel):
    id: str
    date: datetime
    user_id: Optional[str] = None
    items_count: int
    total_revenue: Decimal
    total_cost: Decimal
    net_profit: Decimal
    included_item_ids: List[str] = []
    included_units: Dict[str, int] = {}

    model_config = ConfigDict(from_attributes=True)


# ==================== PURCHASE SCHEMAS ====================

class PurchaseItemCreate(BaseModel):
    product_id: str
    quantity: int = Field(..., gt=0)
    unit_cost: Decimal = Field(..., ge=0, decimal_places=2)


class PurchaseItemResponse(BaseModel):
    id: str
    position: int
    product_id: str
    product_name: Optional[str] = None
    product_code: Optional[str] = None
    quantity: int
    unit_cost: Decimal
    subtotal: Decimal

    model_config = ConfigDict(from_attributes=True)


class PurchaseCreate(BaseModel):
    supplier_id: Optional[str] = None
    supplier_name: Optional[str] = Field(None, max_length=255)
    items: List[PurchaseItemCreate] = Field(..., min_length=1)
    notes: Optional[str] = None


class PurchaseResponse(BaseModel):
    id: str
    supplier_id: Optional[str] = None
    supplier_name: str
    total_amount: Decimal
    total_items: int
    notes: Optional[str] = None
    status: str
    user_id: Optional[str] = None
    date: datetime

    model_config = ConfigDict(from_attributes=True)


class PurchaseWithItems(PurchaseResponse):
    items: List[PurchaseItemResponse] = []


class PurchaseResult(BaseModel):
    purchase_id: str
    total_amount: Decimal
    total_items: int


class PurchasesSummary(BaseModel):
    total_purchases: int
    total_amount: Decimal
    total_items: int
    monthly_purchases: int
    monthly_amount: Decimal


# ==================== LEDGER CHECK SCHEMAS ====================

class ConsistencyViolationResponse(BaseModel):
    rule: str
    record_id: str
    detail: str


class ConsistencyReportResponse(BaseModel):
    ok: bool
    checked_sales: int
    checked_items: int
    violations: List[ConsistencyViolationResponse] = []
