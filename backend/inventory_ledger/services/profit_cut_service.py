"""
Profit Cut Service - Cortes de ganancias

A cut recognizes revenue and cost unit by unit. A unit of a line item is
eligible once cumulative payments on that item cover its full unit price;
a partial payment toward a unit does not count. Each item remembers how
many of its units were already cut (cut_units), so every cut re-scans all
items and only settles the units that became fully paid since.
"""
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
import logging

from inventory_ledger.core.config import settings
from inventory_ledger.core.exceptions import NotFound, NothingToSettle
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.models import Product, ProfitCut, SaleItem

logger = logging.getLogger(__name__)

MISSING_PRODUCT_POLICIES = ("skip", "fail")


def new_units_to_cut(item: SaleItem) -> int:
    """Units of item fully covered by payments and not yet in any cut"""
    if item.is_cut_included or not item.unit_price or item.unit_price <= 0:
        return 0
    paid_units = int((item.paid or Decimal("0")) // item.unit_price)
    cut_units = item.cut_units or 0
    return max(0, min(paid_units - cut_units, item.quantity - cut_units))


class ProfitCutService:
    def __init__(self, store: LedgerStore, missing_product_policy: str = None):
        self.store = store
        self.missing_product_policy = missing_product_policy or settings.MISSING_PRODUCT_COST_POLICY
        if self.missing_product_policy not in MISSING_PRODUCT_POLICIES:
            raise ValueError(f"Unknown missing product policy '{self.missing_product_policy}'")

    def create_cut(self, user_id: str) -> dict:
        """
        Settle every newly fully-paid unit into a new profit cut.

        The cut record and all line-item bookkeeping updates commit in one
        batch. Raises NothingToSettle when no unit qualifies.
        """
        products = {product.id: product for product in self.store.query(Product)}
        items = self.store.query(SaleItem, order_by=(SaleItem.sale_id, SaleItem.position))

        total_revenue = Decimal("0")
        total_cost = Decimal("0")
        items_count = 0
        staged = []

        for item in items:
            units = new_units_to_cut(item)
            if units <= 0:
                continue

            total_revenue += units * item.unit_price

            product = products.get(item.product_id)
            if product is not None:
                total_cost += units * product.cost_price
            elif self.missing_product_policy == "fail":
                raise NotFound("Product", item.product_id)
            else:
                logger.warning(
                    f"Product {item.product_id} missing; cost of {units} units of item {item.id} left out of the cut"
                )

            items_count += units
            cut_units = (item.cut_units or 0) + units
            staged.append((item, units, cut_units))

        if items_count == 0:
            raise NothingToSettle("No newly fully-paid units to include in a profit cut")

        net_profit = total_revenue - total_cost
        cut_id = self.store.new_id()
        now = datetime.utcnow()

        batch = self.store.batch()
        batch.set(
            ProfitCut, cut_id,
            date=now,
            user_id=user_id,
            items_count=items_count,
            total_revenue=total_revenue,
            total_cost=total_cost,
            net_profit=net_profit,
            included_item_ids=[item.id for item, _, _ in staged],
            included_units={item.id: units for item, units, _ in staged},
            created_at=now
        )
        for item, _, cut_units in staged:
            batch.update(
                SaleItem, item.id,
                cut_units=cut_units,
                is_cut_included=cut_units >= item.quantity,
                cut_id=cut_id
            )
        batch.commit()

        logger.info(
            f"Profit cut {cut_id}: {items_count} units, revenue {total_revenue}, "
            f"cost {total_cost}, net {net_profit}"
        )
        return {
            "cut_id": cut_id,
            "items_count": items_count,
            "total_revenue": total_revenue,
            "total_cost": total_cost,
            "net_profit": net_profit,
            "date": now,
        }

    def get_profit_cuts(self) -> List[ProfitCut]:
        return self.store.query(ProfitCut, order_by=ProfitCut.date.desc())

    def get_last_profit_cut(self) -> Optional[ProfitCut]:
        cuts = self.get_profit_cuts()
        return cuts[0] if cuts else None

    def get_profit_cut(self, cut_id: str) -> ProfitCut:
        cut = self.store.get(ProfitCut, cut_id)
        if not cut:
            raise NotFound("ProfitCut", cut_id)
        return cut
