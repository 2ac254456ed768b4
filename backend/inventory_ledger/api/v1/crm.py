"""
CRM API Routes - Clients and their cascading payments
"""
from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from inventory_ledger.core.database import get_store
from inventory_ledger.core.security import get_current_user
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.schemas import (
    ClientCreate, ClientUpdate, ClientResponse, ClientWithBalance,
    CascadingPaymentRequest, CascadingPaymentResult, SaleResponse, SaleItemResponse
)
from inventory_ledger.services.crm_service import ClientService
from inventory_ledger.services.payment_service import PaymentService

router = APIRouter(prefix="/clients", tags=["Clients"])


@router.get("", response_model=List[ClientResponse])
async def list_clients(
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """List all clients"""
    return ClientService(store).get_clients()


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    client_data: ClientCreate,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Create a new client"""
    return ClientService(store).create_client(
        name=client_data.name,
        phone=client_data.phone,
        email=client_data.email
    )


@router.get("/{client_id}", response_model=ClientWithBalance)
async def get_client(
    client_id: str,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Get client with pending balance and status"""
    client = ClientService(store).get_client(client_id)
    if not client:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: str,
    client_data: ClientUpdate,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Update client"""
    return ClientService(store).update_client(client_id, **client_data.model_dump(exclude_unset=True))


@router.delete("/{client_id}")
async def delete_client(
    client_id: str,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Delete a client without sales history"""
    ClientService(store).delete_client(client_id)
    return {"message": "Client deleted"}


@router.get("/{client_id}/history")
async def get_client_history(
    client_id: str,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Client's sales with items, newest first"""
    history = ClientService(store).get_client_history(client_id)
    result = []
    for entry in history:
        sale_dict = SaleResponse.model_validate(entry["sale"]).model_dump()
        sale_dict['items'] = [SaleItemResponse.model_validate(item).model_dump() for item in entry["items"]]
        result.append(sale_dict)
    return result


@router.post("/{client_id}/payments", response_model=CascadingPaymentResult)
async def apply_cascading_payment(
    client_id: str,
    payment_data: CascadingPaymentRequest,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """
    Spread a payment over the client's outstanding sales.
    Check remaining_balance and failures: the cascade does not roll back
    sales already settled when a later one fails.
    """
    if not ClientService(store).get_client(client_id):
        raise HTTPException(status_code=404, detail="Client not found")

    return PaymentService(store).apply_cascading(
        client_id,
        payment_data.amount,
        current_user.id,
        priority_sale_id=payment_data.priority_sale_id
    )
