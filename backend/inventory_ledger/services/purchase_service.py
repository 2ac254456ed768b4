"""
Purchase Service - Supplier purchases and stock intake
"""
from typing import Optional, List
from collections import defaultdict
from decimal import Decimal
from datetime import datetime
import logging

from inventory_ledger.core.exceptions import InvalidAmount, NotFound
from inventory_ledger.core.money import round_money
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.models import Product, Purchase, PurchaseItem

logger = logging.getLogger(__name__)

DEFAULT_SUPPLIER_NAME = "General Supplier"


class PurchaseService:
    def __init__(self, store: LedgerStore):
        self.store = store

    def create_purchase(self, items: List[dict], user_id: str, supplier_id: str = None,
                        supplier_name: str = None, notes: str = None) -> dict:
        """
        Record a purchase and add the purchased units to stock, in one batch.

        items: [{"product_id", "quantity", "unit_cost"}, ...]
        """
        if not items:
            raise InvalidAmount("A purchase needs at least one product")
        for item in items:
            if int(item["quantity"]) <= 0:
                raise InvalidAmount("Purchased quantity must be greater than zero")
            if Decimal(item["unit_cost"]) < 0:
                raise InvalidAmount("Unit cost cannot be negative")
        items = [{**item, "unit_cost": round_money(item["unit_cost"])} for item in items]

        products = {}
        for item in items:
            product = self.store.get(Product, item["product_id"])
            if not product:
                raise NotFound("Product", item["product_id"])
            products[product.id] = product

        total_amount = sum((int(item["quantity"]) * Decimal(item["unit_cost"]) for item in items), Decimal("0"))
        total_items = sum(int(item["quantity"]) for item in items)

        now = datetime.utcnow()
        purchase_id = self.store.new_id()
        batch = self.store.batch()
        batch.set(
            Purchase, purchase_id,
            supplier_id=supplier_id,
            supplier_name=supplier_name or DEFAULT_SUPPLIER_NAME,
            total_amount=total_amount,
            total_items=total_items,
            notes=notes or "",
            status="completed",
            user_id=user_id,
            date=now,
            created_at=now
        )

        stock_added = defaultdict(int)
        last_cost = {}
        for position, item in enumerate(items):
            product = products[item["product_id"]]
            quantity = int(item["quantity"])
            unit_cost = Decimal(item["unit_cost"])
            batch.set(
                PurchaseItem, self.store.new_id(),
                purchase_id=purchase_id,
                position=position,
                product_id=product.id,
                product_name=product.name,
                product_code=product.code,
                quantity=quantity,
                unit_cost=unit_cost,
                subtotal=quantity * unit_cost
            )
            stock_added[product.id] += quantity
            last_cost[product.id] = unit_cost

        for product_id, quantity in stock_added.items():
            batch.update(
                Product, product_id,
                stock=products[product_id].stock + quantity,
                last_purchase_date=now,
                last_purchase_cost=last_cost[product_id],
                updated_at=now
            )

        batch.commit()
        logger.info(f"Purchase {purchase_id} recorded: {total_items} units, total {total_amount}")
        return {
            "purchase_id": purchase_id,
            "total_amount": total_amount,
            "total_items": total_items,
        }

    def get_purchases(self) -> List[Purchase]:
        return self.store.query(Purchase, order_by=Purchase.date.desc())

    def get_purchase(self, purchase_id: str) -> dict:
        purchase = self.store.get(Purchase, purchase_id)
        if not purchase:
            raise NotFound("Purchase", purchase_id)
        items = self.store.query(PurchaseItem, PurchaseItem.purchase_id == purchase_id, order_by=PurchaseItem.position)
        return {"purchase": purchase, "items": items}

    def get_purchases_by_date_range(self, start_date: datetime, end_date: datetime) -> List[Purchase]:
        return self.store.query(
            Purchase,
            Purchase.date >= start_date,
            Purchase.date <= end_date,
            order_by=Purchase.date.desc()
        )

    def get_purchases_summary(self, now: Optional[datetime] = None) -> dict:
        """Totals over all purchases and over the current month"""
        purchases = self.get_purchases()
        now = now or datetime.utcnow()
        start_of_month = datetime(now.year, now.month, 1)
        monthly = [p for p in purchases if p.date >= start_of_month]

        return {
            "total_purchases": len(purchases),
            "total_amount": sum((p.total_amount for p in purchases), Decimal("0")),
            "total_items": sum(p.total_items for p in purchases),
            "monthly_purchases": len(monthly),
            "monthly_amount": sum((p.total_amount for p in monthly), Decimal("0")),
        }
