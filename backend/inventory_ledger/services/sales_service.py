"""
Sales Service - Sales, Line Items and Stock Decrements
"""
from typing import Optional, List
from collections import defaultdict
from decimal import Decimal
from datetime import datetime
import logging

from inventory_ledger.core.config import settings
from inventory_ledger.core.exceptions import InvalidAmount, NotFound
from inventory_ledger.core.money import round_money
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.models import Client, Payment, PaymentType, Sale, SaleItem
from inventory_ledger.services.inventory_service import ProductService
from inventory_ledger.services.payment_service import allocate_cheapest_first, sale_status

logger = logging.getLogger(__name__)


class SalesService:
    def __init__(self, store: LedgerStore, initial_payment_allocation: str = None):
        self.store = store
        self.products = ProductService(store)
        self.initial_payment_allocation = initial_payment_allocation or settings.INITIAL_PAYMENT_ALLOCATION

    def calculate_total(self, items: List[dict]) -> Decimal:
        """Sale total: sum of unit price (in cents) x quantity"""
        return sum((round_money(item["unit_price"]) * int(item["quantity"]) for item in items), Decimal("0"))

    def create_sale(self, client_id: str, items: List[dict], user_id: str,
                    payment_type: str = PaymentType.PARTIAL.value,
                    amount_paid: Decimal = Decimal("0"),
                    date: Optional[datetime] = None) -> str:
        """
        Create a sale header, its line items and the stock decrements in one batch.

        items: [{"product_id", "quantity", "unit_price"}, ...]
        """
        if not items:
            raise InvalidAmount("A sale needs at least one item")
        if payment_type not in (PaymentType.TOTAL.value, PaymentType.PARTIAL.value):
            raise InvalidAmount(f"Unknown payment type '{payment_type}'")
        for item in items:
            if int(item["quantity"]) <= 0:
                raise InvalidAmount("Item quantity must be greater than zero")
            if Decimal(item["unit_price"]) < 0:
                raise InvalidAmount("Unit price cannot be negative")
        items = [{**item, "unit_price": round_money(item["unit_price"])} for item in items]

        if not self.store.get(Client, client_id):
            raise NotFound("Client", client_id)

        total = self.calculate_total(items)
        amount_paid = round_money(amount_paid or 0)
        if payment_type == PaymentType.TOTAL.value:
            paid = total
        else:
            if amount_paid < 0 or amount_paid > total:
                raise InvalidAmount(f"Amount paid ({amount_paid}) must be between 0 and the sale total ({total})")
            paid = amount_paid

        # Aggregate quantities by product so repeated lines are checked together
        product_quantities = defaultdict(int)
        for item in items:
            product_quantities[item["product_id"]] += int(item["quantity"])

        batch = self.store.batch()
        for product_id, quantity in product_quantities.items():
            self.products.decrement_stock(product_id, quantity, batch=batch)

        now = datetime.utcnow()
        sale_date = date or now
        sale_id = self.store.new_id()
        batch.set(
            Sale, sale_id,
            client_id=client_id,
            total=total,
            paid=paid,
            payment_type=payment_type,
            status=sale_status(paid, total),
            date=sale_date,
            user_id=user_id,
            created_at=now,
            updated_at=now
        )

        sale_items = []
        for position, item in enumerate(items):
            unit_price = Decimal(item["unit_price"])
            subtotal = unit_price * int(item["quantity"])
            sale_items.append(SaleItem(
                id=self.store.new_id(),
                sale_id=sale_id,
                position=position,
                product_id=item["product_id"],
                quantity=int(item["quantity"]),
                unit_price=unit_price,
                subtotal=subtotal,
                paid=Decimal("0"),
                pending=subtotal,
                cut_units=0,
                is_cut_included=False,
                cut_id=None,
                created_at=now
            ))

        # The seeded payment lands on the cheapest items, as a later abono would
        item_paid = {}
        if paid > 0 and self.initial_payment_allocation == "cheapest_first":
            allocations, _ = allocate_cheapest_first(sale_items, paid)
            item_paid = {item.id: applied for item, applied in allocations}

        for sale_item in sale_items:
            item_paid_amount = item_paid.get(sale_item.id, Decimal("0"))
            batch.set(
                SaleItem, sale_item.id,
                sale_id=sale_id,
                position=sale_item.position,
                product_id=sale_item.product_id,
                quantity=sale_item.quantity,
                unit_price=sale_item.unit_price,
                subtotal=sale_item.subtotal,
                paid=item_paid_amount,
                pending=sale_item.subtotal - item_paid_amount,
                cut_units=0,
                is_cut_included=False,
                cut_id=None,
                created_at=now
            )

        if payment_type == PaymentType.PARTIAL.value and amount_paid > 0:
            batch.set(
                Payment, self.store.new_id(),
                sale_id=sale_id,
                amount=amount_paid,
                date=sale_date,
                user_id=user_id,
                created_at=now
            )

        batch.commit()
        logger.info(f"Sale {sale_id} created for client {client_id}: total {total}, paid {paid}")
        return sale_id

    def get_sales(self) -> List[Sale]:
        return self.store.query(Sale, order_by=Sale.date.desc())

    def get_sale(self, sale_id: str) -> dict:
        """Sale header with its items"""
        sale = self.store.get(Sale, sale_id)
        if not sale:
            raise NotFound("Sale", sale_id)
        return {"sale": sale, "items": self.get_sale_items(sale_id)}

    def get_sale_items(self, sale_id: str) -> List[SaleItem]:
        return self.store.query(SaleItem, SaleItem.sale_id == sale_id, order_by=SaleItem.position)

    def get_sales_by_client(self, client_id: str) -> List[Sale]:
        return self.store.query(Sale, Sale.client_id == client_id, order_by=Sale.date.desc())
