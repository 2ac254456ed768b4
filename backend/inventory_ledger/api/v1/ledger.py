"""
Ledger API Routes - Consistency checks
"""
from fastapi import APIRouter, Depends

from inventory_ledger.core.database import get_store
from inventory_ledger.core.security import get_current_user
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.schemas import ConsistencyReportResponse
from inventory_ledger.services.consistency_service import ConsistencyService

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.get("/check", response_model=ConsistencyReportResponse)
async def check_ledger(
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Run every consistency rule over the stored ledger"""
    report = ConsistencyService(store).check()
    return {
        "ok": report.ok,
        "checked_sales": report.checked_sales,
        "checked_items": report.checked_items,
        "violations": [
            {"rule": v.rule, "record_id": v.record_id, "detail": v.detail}
            for v in report.violations
        ],
    }
