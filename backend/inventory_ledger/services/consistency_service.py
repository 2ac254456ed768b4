"""
Consistency Service - checks the rules tying stock, sales, items, payments and cuts together
"""
from dataclasses import dataclass, field
from collections import defaultdict
from decimal import Decimal
from typing import List
import logging

from inventory_ledger.core.store import LedgerStore
from inventory_ledger.models import Product, ProfitCut, Sale, SaleItem, SaleStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConsistencyViolation:
    rule: str
    record_id: str
    detail: str


@dataclass
class ConsistencyReport:
    checked_sales: int = 0
    checked_items: int = 0
    violations: List[ConsistencyViolation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    def add(self, rule: str, record_id: str, detail: str):
        self.violations.append(ConsistencyViolation(rule, record_id, detail))


def check_sale(sale: Sale, items: List[SaleItem], report: ConsistencyReport):
    if sale.paid < 0 or sale.paid > sale.total:
        report.add("sale_paid_range", sale.id, f"paid {sale.paid} outside 0..{sale.total}")

    expected_status = SaleStatus.PAID.value if sale.paid >= sale.total else SaleStatus.PARTIAL.value
    if sale.status != expected_status:
        report.add("sale_status", sale.id, f"status '{sale.status}' but paid {sale.paid} of {sale.total}")

    subtotal_sum = sum((item.subtotal for item in items), Decimal("0"))
    if items and subtotal_sum != sale.total:
        report.add("sale_total", sale.id, f"total {sale.total} but items add up to {subtotal_sum}")


def check_item(item: SaleItem, report: ConsistencyReport):
    if item.subtotal != item.unit_price * item.quantity:
        report.add("item_subtotal", item.id, f"subtotal {item.subtotal} != {item.quantity} x {item.unit_price}")
    if item.paid < 0 or item.paid > item.subtotal:
        report.add("item_paid_range", item.id, f"paid {item.paid} outside 0..{item.subtotal}")
    if item.pending != item.subtotal - item.paid:
        report.add("item_pending", item.id, f"pending {item.pending} != {item.subtotal} - {item.paid}")
    if item.cut_units < 0 or item.cut_units > item.quantity:
        report.add("item_cut_units_range", item.id, f"cut_units {item.cut_units} outside 0..{item.quantity}")
    if bool(item.is_cut_included) != (item.cut_units == item.quantity):
        report.add(
            "item_cut_included", item.id,
            f"is_cut_included {item.is_cut_included} with {item.cut_units} of {item.quantity} units cut"
        )
    if item.unit_price > 0 and item.cut_units > int(item.paid // item.unit_price):
        report.add("item_cut_unpaid", item.id, f"{item.cut_units} units cut but only {item.paid} paid")


class ConsistencyService:
    def __init__(self, store: LedgerStore):
        self.store = store

    def check(self) -> ConsistencyReport:
        report = ConsistencyReport()

        sales = self.store.query(Sale)
        items = self.store.query(SaleItem)
        items_by_sale = defaultdict(list)
        for item in items:
            items_by_sale[item.sale_id].append(item)

        for sale in sales:
            check_sale(sale, items_by_sale.get(sale.id, []), report)
        for item in items:
            check_item(item, report)

        # Units recognized across all cuts never exceed an item's quantity
        cut_units = defaultdict(int)
        for cut in self.store.query(ProfitCut):
            for item_id, units in (cut.included_units or {}).items():
                cut_units[item_id] += int(units)
        items_by_id = {item.id: item for item in items}
        for item_id, units in cut_units.items():
            item = items_by_id.get(item_id)
            if item is None:
                report.add("cut_item_missing", item_id, "profit cut references a missing line item")
            elif units > item.quantity:
                report.add("cut_units_total", item_id, f"{units} units cut over time, quantity {item.quantity}")
            elif units != item.cut_units:
                report.add("cut_units_ledger", item_id, f"cuts record {units} units, item records {item.cut_units}")

        for product in self.store.query(Product):
            if product.stock < 0:
                report.add("product_stock", product.id, f"stock {product.stock} is negative")

        report.checked_sales = len(sales)
        report.checked_items = len(items)
        if not report.ok:
            logger.warning(f"Ledger check found {len(report.violations)} violations")
        return report
