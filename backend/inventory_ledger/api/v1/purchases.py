"""
Purchases API Routes - Stock replenishment
"""
from fastapi import APIRouter, Depends, status
from typing import List, Optional
from datetime import datetime

from inventory_ledger.core.database import get_store
from inventory_ledger.core.security import get_current_user
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.schemas import (
    PurchaseCreate, PurchaseResponse, PurchaseWithItems, PurchaseItemResponse,
    PurchaseResult, PurchasesSummary
)
from inventory_ledger.services.purchase_service import PurchaseService

router = APIRouter(prefix="/purchases", tags=["Purchases"])


@router.get("", response_model=List[PurchaseResponse])
async def list_purchases(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """List purchases, newest first; optionally only those between start_date and end_date"""
    purchase_service = PurchaseService(store)
    if start_date or end_date:
        return purchase_service.get_purchases_by_date_range(start_date or datetime.min, end_date or datetime.max)
    return purchase_service.get_purchases()


@router.post("", response_model=PurchaseResult, status_code=status.HTTP_201_CREATED)
async def create_purchase(
    purchase_data: PurchaseCreate,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Record a purchase and add its units to stock"""
    return PurchaseService(store).create_purchase(
        items=[item.model_dump() for item in purchase_data.items],
        user_id=current_user.id,
        supplier_id=purchase_data.supplier_id,
        supplier_name=purchase_data.supplier_name,
        notes=purchase_data.notes
    )


@router.get("/summary", response_model=PurchasesSummary)
async def get_purchases_summary(
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Purchase totals, overall and for the current month"""
    return PurchaseService(store).get_purchases_summary()


@router.get("/{purchase_id}", response_model=PurchaseWithItems)
async def get_purchase(
    purchase_id: str,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Get purchase with its items"""
    purchase_data = PurchaseService(store).get_purchase(purchase_id)
    purchase_dict = PurchaseResponse.model_validate(purchase_data["purchase"]).model_dump()
    purchase_dict['items'] = [PurchaseItemResponse.model_validate(item).model_dump() for item in purchase_data["items"]]
    return purchase_dict
