"""
Inventory API Routes - Products
"""
from fastapi import APIRouter, Depends, HTTPException, status
from typing import List

from inventory_ledger.core.database import get_store
from inventory_ledger.core.security import get_current_user, RoleChecker
from inventory_ledger.core.store import LedgerStore
from inventory_ledger.schemas import ProductCreate, ProductUpdate, ProductResponse
from inventory_ledger.services.inventory_service import ProductService, profit_margin

router = APIRouter(prefix="/products", tags=["Inventory"])


@router.get("", response_model=List[ProductResponse])
async def list_products(
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """List all products"""
    return ProductService(store).get_products()


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(RoleChecker(["admin"]))])
async def create_product(
    product_data: ProductCreate,
    store: LedgerStore = Depends(get_store)
):
    """Create a new product; the code becomes its id"""
    return ProductService(store).create_product(
        code=product_data.code,
        name=product_data.name,
        cost_price=product_data.cost_price,
        sale_price=product_data.sale_price,
        stock=product_data.stock
    )


@router.get("/{product_id}")
async def get_product(
    product_id: str,
    store: LedgerStore = Depends(get_store),
    current_user = Depends(get_current_user)
):
    """Get product by id, with its margin over cost"""
    product = ProductService(store).get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    product_dict = ProductResponse.model_validate(product).model_dump()
    product_dict['margin_percent'] = profit_margin(product.sale_price, product.cost_price)
    return product_dict


@router.put("/{product_id}", response_model=ProductResponse, dependencies=[Depends(RoleChecker(["admin"]))])
async def update_product(
    product_id: str,
    product_data: ProductUpdate,
    store: LedgerStore = Depends(get_store)
):
    """Update product"""
    return ProductService(store).update_product(product_id, **product_data.model_dump(exclude_unset=True))


@router.delete("/{product_id}", dependencies=[Depends(RoleChecker(["admin"]))])
async def delete_product(
    product_id: str,
    store: LedgerStore = Depends(get_store)
):
    """Delete a product that no sale or purchase references"""
    ProductService(store).delete_product(product_id)
    return {"message": "Product deleted"}
