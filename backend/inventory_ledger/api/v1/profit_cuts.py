"""
Profit Cut API Routes
"""
from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from inventory_ledger.core.database import get_store
from inventory_ledger.core.security import get_current_user
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.schemas import ProfitCutResult, ProfitCutResponse
from inventory_ledger.services.profit_cut_service import ProfitCutService

router = APIRouter(prefix="/profit-cuts", tags=["Profit Cuts"])


@router.get("", response_model=List[ProfitCutResponse])
async def list_profit_cuts(
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """List profit cuts, newest first"""
    return ProfitCutService(store).get_profit_cuts()


@router.post("", response_model=ProfitCutResult, status_code=status.HTTP_201_CREATED)
async def create_profit_cut(
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """
    Realize profit on every paid unit not yet included in a cut.
    Returns 400 NOTHING_TO_SETTLE when no unit qualifies.
    """
    return ProfitCutService(store).create_cut(current_user.id)


@router.get("/last", response_model=ProfitCutResponse)
async def get_last_profit_cut(
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Most recent profit cut"""
    cut = ProfitCutService(store).get_last_profit_cut()
    if not cut:
        raise HTTPException(status_code=404, detail="No profit cuts yet")
    return cut


@router.get("/{cut_id}", response_model=ProfitCutResponse)
async def get_profit_cut(
    cut_id: str,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    return ProfitCutService(store).get_profit_cut(cut_id)
