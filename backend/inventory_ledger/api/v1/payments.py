"""
Payments API Routes
"""
from fastapi import APIRouter, Depends
from typing import List

from inventory_ledger.core.database import get_store
from inventory_ledger.core.security import get_current_user
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.schemas import PaymentResponse
from inventory_ledger.services.payment_service import PaymentService

router = APIRouter(prefix="/payments", tags=["Payments"])


@router.get("", response_model=List[PaymentResponse])
async def list_payments(
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """List every recorded payment, newest first"""
    return PaymentService(store).get_payments()
