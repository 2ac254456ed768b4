"""
Sales API Routes
"""
from fastapi import APIRouter, Depends, status
from typing import List

from inventory_ledger.core.database import get_store
from inventory_ledger.core.security import get_current_user
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.schemas import (
    SaleCreate, SaleResponse, SaleWithItems, SaleItemResponse,
    ApplyPaymentRequest, PaymentResult, PaymentResponse
)
from inventory_ledger.services.sales_service import SalesService
from inventory_ledger.services.payment_service import PaymentService

router = APIRouter(prefix="/sales", tags=["Sales"])


@router.get("", response_model=List[SaleResponse])
async def list_sales(
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """List all sales, newest first"""
    return SalesService(store).get_sales()


@router.post("", response_model=SaleWithItems, status_code=status.HTTP_201_CREATED)
async def create_sale(
    sale_data: SaleCreate,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Create a new sale and take its units out of stock"""
    sales_service = SalesService(store)
    sale_id = sales_service.create_sale(
        client_id=sale_data.client_id,
        items=[item.model_dump() for item in sale_data.items],
        user_id=current_user.id,
        payment_type=sale_data.payment_type.value,
        amount_paid=sale_data.amount_paid,
        date=sale_data.date
    )
    return _sale_with_items(sales_service.get_sale(sale_id))


@router.get("/{sale_id}", response_model=SaleWithItems)
async def get_sale(
    sale_id: str,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Get sale by id with its items"""
    return _sale_with_items(SalesService(store).get_sale(sale_id))


@router.get("/{sale_id}/payments", response_model=List[PaymentResponse])
async def list_sale_payments(
    sale_id: str,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Payments recorded against a sale, newest first"""
    return PaymentService(store).get_sale_payments(sale_id)


@router.post("/{sale_id}/payments", response_model=PaymentResult)
async def record_payment(
    sale_id: str,
    payment_data: ApplyPaymentRequest,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Apply a payment to one sale, cheapest items first"""
    return PaymentService(store).apply_to_sale(sale_id, payment_data.amount, current_user.id)


def _sale_with_items(sale_data: dict) -> dict:
    sale_dict = SaleResponse.model_validate(sale_data["sale"]).model_dump()
    sale_dict['items'] = [SaleItemResponse.model_validate(item).model_dump() for item in sale_data["items"]]
    return sale_dict
