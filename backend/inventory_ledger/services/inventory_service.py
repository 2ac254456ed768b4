"""
Inventory Service - Products and Stock Management
"""
from typing import Optional, List
from decimal import Decimal
from datetime import datetime
import logging

from inventory_ledger.core.exceptions import (
    DuplicateRecord, InsufficientStock, InvalidAmount, InvalidPrice, NotFound, RecordInUse
)
from inventory_ledger.core.money import round_money
from inventory_ledger.core.store import LedgerStore, WriteBatch
from inventory_ledger.models import Product, SaleItem, PurchaseItem

logger = logging.getLogger(__name__)


def profit_margin(sale_price: Decimal, cost_price: Decimal) -> Decimal:
    """Markup over cost as a percentage; 0 when the cost is 0"""
    if not cost_price:
        return Decimal("0")
    return (Decimal(sale_price) - Decimal(cost_price)) / Decimal(cost_price) * 100


class ProductService:
    def __init__(self, store: LedgerStore):
        self.store = store

    def get_products(self) -> List[Product]:
        return self.store.query(Product, order_by=Product.code)

    def get_product(self, product_id: str) -> Optional[Product]:
        return self.store.get(Product, product_id)

    def get_product_by_code(self, code: str) -> Optional[Product]:
        products = self.store.query(Product, Product.code == code)
        return products[0] if products else None

    def _require(self, product_id: str) -> Product:
        product = self.store.get(Product, product_id)
        if not product:
            raise NotFound("Product", product_id)
        return product

    @staticmethod
    def _check_prices(cost_price: Decimal, sale_price: Decimal):
        if cost_price >= sale_price:
            raise InvalidPrice(cost_price, sale_price)

    def create_product(self, code: str, name: str, cost_price: Decimal, sale_price: Decimal, stock: int = 0) -> Product:
        if self.get_product_by_code(code) or self.store.get(Product, code):
            raise DuplicateRecord(f"Product code '{code}' already exists")

        cost_price = round_money(cost_price)
        sale_price = round_money(sale_price)
        self._check_prices(cost_price, sale_price)
        if int(stock) < 0:
            raise InvalidAmount("Stock cannot be negative")

        now = datetime.utcnow()
        self.store.batch().set(
            Product, code,
            code=code,
            name=name,
            cost_price=cost_price,
            sale_price=sale_price,
            stock=int(stock),
            created_at=now,
            updated_at=now
        ).commit()
        logger.info(f"Product {code} created with stock {stock}")
        return self.store.get(Product, code)

    def update_product(self, product_id: str, **changes) -> Product:
        product = self._require(product_id)
        changes = {key: value for key, value in changes.items() if value is not None}

        for key in ("cost_price", "sale_price"):
            if key in changes:
                changes[key] = round_money(changes[key])
        cost_price = Decimal(changes.get("cost_price", product.cost_price))
        sale_price = Decimal(changes.get("sale_price", product.sale_price))
        if "cost_price" in changes or "sale_price" in changes:
            self._check_prices(cost_price, sale_price)
        if "stock" in changes and int(changes["stock"]) < 0:
            raise InvalidAmount("Stock cannot be negative")

        changes["updated_at"] = datetime.utcnow()
        self.store.batch().update(Product, product_id, **changes).commit()
        return self.store.get(Product, product_id)

    def delete_product(self, product_id: str) -> bool:
        self._require(product_id)

        in_sales = self.store.query(SaleItem, SaleItem.product_id == product_id)
        in_purchases = self.store.query(PurchaseItem, PurchaseItem.product_id == product_id)
        if in_sales or in_purchases:
            raise RecordInUse(f"Product {product_id} is referenced by sales or purchases")

        self.store.batch().delete(Product, product_id).commit()
        logger.info(f"Product {product_id} deleted")
        return True

    def cost_price(self, product_id: str) -> Decimal:
        return self._require(product_id).cost_price

    def increment_stock(self, product_id: str, quantity: int, batch: WriteBatch = None) -> int:
        """Add units to stock; staged on batch when given, committed otherwise"""
        if quantity <= 0:
            raise InvalidAmount("Quantity must be positive")
        product = self._require(product_id)
        new_stock = product.stock + quantity

        target = batch if batch is not None else self.store.batch()
        target.update(Product, product_id, stock=new_stock, updated_at=datetime.utcnow())
        if batch is None:
            target.commit()
        return new_stock

    def decrement_stock(self, product_id: str, quantity: int, batch: WriteBatch = None) -> int:
        """Remove units from stock; fails when fewer units are on hand"""
        if quantity <= 0:
            raise InvalidAmount("Quantity must be positive")
        product = self._require(product_id)
        if product.stock < quantity:
            raise InsufficientStock(product_id, product.stock, quantity)
        new_stock = product.stock - quantity

        target = batch if batch is not None else self.store.batch()
        target.update(Product, product_id, stock=new_stock, updated_at=datetime.utcnow())
        if batch is None:
            target.commit()
        return new_stock
