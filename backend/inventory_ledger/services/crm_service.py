"""
CRM Service - Business Logic for Clients
"""
from typing import Iterable, Optional, List
from decimal import Decimal
from datetime import datetime
import logging

from inventory_ledger.core.exceptions import NotFound, RecordInUse
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.models import Client, ClientStatus, Sale, SaleItem

logger = logging.getLogger(__name__)


def client_balance(sales: Iterable[Sale]) -> dict:
    """Derive a client's pending balance and status from their sales"""
    pending = sum((sale.total - sale.paid for sale in sales), Decimal("0"))
    status = ClientStatus.IN_DEBT if pending > 0 else ClientStatus.CURRENT
    return {"pending_balance": pending, "status": status.value}


class ClientService:
    def __init__(self, store: LedgerStore):
        self.store = store

    def get_clients(self) -> List[Client]:
        return self.store.query(Client, order_by=Client.name)

    def get_client(self, client_id: str) -> Optional[dict]:
        """Client fields plus derived pending_balance and status"""
        client = self.store.get(Client, client_id)
        if not client:
            return None

        sales = self.store.query(Sale, Sale.client_id == client_id)
        return {
            "id": client.id,
            "name": client.name,
            "phone": client.phone,
            "email": client.email,
            "created_at": client.created_at,
            "updated_at": client.updated_at,
            **client_balance(sales),
        }

    def create_client(self, name: str, phone: str = None, email: str = None) -> Client:
        client_id = self.store.new_id()
        now = datetime.utcnow()
        self.store.batch().set(
            Client, client_id,
            name=name,
            phone=phone,
            email=email,
            created_at=now,
            updated_at=now
        ).commit()
        return self.store.get(Client, client_id)

    def update_client(self, client_id: str, **changes) -> Client:
        if not self.store.get(Client, client_id):
            raise NotFound("Client", client_id)

        changes = {key: value for key, value in changes.items() if value is not None}
        changes["updated_at"] = datetime.utcnow()
        self.store.batch().update(Client, client_id, **changes).commit()
        return self.store.get(Client, client_id)

    def delete_client(self, client_id: str) -> bool:
        if not self.store.get(Client, client_id):
            raise NotFound("Client", client_id)

        # Sales history keeps the client alive
        if self.store.query(Sale, Sale.client_id == client_id):
            raise RecordInUse(f"Client {client_id} has sales history and cannot be deleted")

        self.store.batch().delete(Client, client_id).commit()
        logger.info(f"Client {client_id} deleted")
        return True

    def get_client_history(self, client_id: str) -> List[dict]:
        """The client's sales with their items, newest first"""
        if not self.store.get(Client, client_id):
            raise NotFound("Client", client_id)

        sales = self.store.query(Sale, Sale.client_id == client_id, order_by=Sale.date.desc())
        history = []
        for sale in sales:
            items = self.store.query(SaleItem, SaleItem.sale_id == sale.id, order_by=SaleItem.position)
            history.append({"sale": sale, "items": items})
        return history
