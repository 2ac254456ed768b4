"""
Payment Service - Abonos applied to sales

Two rules compose here:

* Within a sale, money settles line items cheapest unit price first
  (ties keep insertion order), each item paid off before the next one.
* Across a client's sales, a cascading payment settles the priority sale
  first and then the oldest debt first.

A single-sale payment is one atomic batch. A cascading payment is a
sequence of single-sale batches and is NOT atomic as a whole: a sale that
fails is logged and reported, and the cascade moves on to the next one.
"""
from typing import Iterable, List, Optional, Tuple
from decimal import Decimal
from datetime import datetime
import logging

from inventory_ledger.core.config import settings
from inventory_ledger.core.exceptions import (
    AlreadySettled, ExcessAmount, InvalidAmount, LedgerError, NotFound
)
from inventory_ledger.core.money import round_money
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.models import Payment, Sale, SaleItem, SaleStatus

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def sale_status(paid: Decimal, total: Decimal) -> str:
    return SaleStatus.PAID.value if paid >= total else SaleStatus.PARTIAL.value


def allocate_cheapest_first(items: Iterable[SaleItem], amount: Decimal) -> Tuple[List[Tuple[SaleItem, Decimal]], Decimal]:
    """
    Spread amount over items, lowest unit price first.

    Returns ([(item, applied), ...], leftover). Items that receive nothing
    are not listed.
    """
    ordered = sorted(items, key=lambda item: (item.unit_price, item.position))
    remaining = Decimal(amount)
    allocations = []

    for item in ordered:
        if remaining <= 0:
            break
        item_pending = item.subtotal - (item.paid or ZERO)
        if item_pending <= 0:
            continue
        applied = min(remaining, item_pending)
        allocations.append((item, applied))
        remaining -= applied

    return allocations, remaining


class PaymentService:
    def __init__(self, store: LedgerStore, tolerance: Decimal = None):
        self.store = store
        self.tolerance = settings.PAYMENT_TOLERANCE if tolerance is None else Decimal(tolerance)

    def apply_to_sale(self, sale_id: str, amount: Decimal, user_id: str) -> dict:
        """Apply a payment to one sale, distributing it over its items"""
        amount = round_money(amount)
        if amount <= 0:
            raise InvalidAmount("Payment amount must be at least 0.01")

        sale = self.store.get(Sale, sale_id)
        if not sale:
            raise NotFound("Sale", sale_id)

        pending_balance = sale.total - sale.paid
        if pending_balance <= 0:
            raise AlreadySettled(sale_id)
        if amount > pending_balance + self.tolerance:
            raise ExcessAmount(amount, pending_balance)

        # Inside the tolerance band, never carry paid past total
        applied_amount = min(amount, pending_balance)

        items = self.store.query(SaleItem, SaleItem.sale_id == sale_id)
        allocations, _ = allocate_cheapest_first(items, applied_amount)

        batch = self.store.batch()
        for item, applied in allocations:
            new_paid = item.paid + applied
            batch.update(
                SaleItem, item.id,
                paid=new_paid,
                pending=item.subtotal - new_paid
            )

        now = datetime.utcnow()
        payment_id = self.store.new_id()
        batch.set(
            Payment, payment_id,
            sale_id=sale_id,
            amount=applied_amount,
            date=now,
            user_id=user_id,
            created_at=now
        )

        new_paid_amount = sale.paid + applied_amount
        new_status = sale_status(new_paid_amount, sale.total)
        batch.update(
            Sale, sale_id,
            paid=new_paid_amount,
            status=new_status,
            updated_at=now
        )

        batch.commit()
        logger.info(f"Payment {payment_id} of {applied_amount} applied to sale {sale_id} ({new_status})")

        return {
            "payment_id": payment_id,
            "amount_applied": applied_amount,
            "new_total_paid": new_paid_amount,
            "new_pending_balance": sale.total - new_paid_amount,
            "sale_status": new_status,
        }

    def _outstanding_sales(self, client_id: str, priority_sale_id: Optional[str]) -> List[Sale]:
        sales = self.store.query(Sale, Sale.client_id == client_id)
        pending = [
            sale for sale in sales
            if sale.status != SaleStatus.PAID.value and sale.total - sale.paid > 0
        ]
        # Priority sale first, then oldest debt first
        pending.sort(key=lambda sale: (0 if sale.id == priority_sale_id else 1, sale.date))
        return pending

    def apply_cascading(self, client_id: str, total_amount: Decimal, user_id: str,
                        priority_sale_id: Optional[str] = None) -> dict:
        """
        Spread a payment over a client's outstanding sales.

        Each sale is settled by its own apply_to_sale batch. When one of them
        fails the error is logged and recorded under "failures", no money is
        counted as applied for it, and the cascade continues. Callers detect
        an incomplete settlement through remaining_balance and failures.
        """
        total_amount = round_money(total_amount)
        if total_amount <= 0:
            raise InvalidAmount("Payment amount must be at least 0.01")

        pending_sales = self._outstanding_sales(client_id, priority_sale_id)
        logger.info(
            f"Cascading payment of {total_amount} for client {client_id} "
            f"over {len(pending_sales)} pending sales"
        )

        remaining_money = total_amount
        applied_to = []
        failures = []

        for sale in pending_sales:
            if remaining_money <= 0:
                break

            pending_balance = sale.total - sale.paid
            payment_for_sale = min(remaining_money, pending_balance)
            if payment_for_sale <= 0:
                continue

            try:
                result = self.apply_to_sale(sale.id, payment_for_sale, user_id)
            except LedgerError as e:
                logger.error(f"Cascading payment skipped sale {sale.id}: {e}", exc_info=True)
                failures.append({"sale_id": sale.id, "code": e.code, "detail": str(e)})
                continue

            applied_to.append({"sale_id": sale.id, "applied": result["amount_applied"], **result})
            remaining_money -= result["amount_applied"]

        return {
            "total_applied": total_amount - remaining_money,
            "remaining_balance": remaining_money,
            "applied_to": applied_to,
            "failures": failures,
        }

    def get_sale_payments(self, sale_id: str) -> List[Payment]:
        return self.store.query(Payment, Payment.sale_id == sale_id, order_by=Payment.date.desc())

    def get_payments(self) -> List[Payment]:
        return self.store.query(Payment, order_by=Payment.date.desc())
