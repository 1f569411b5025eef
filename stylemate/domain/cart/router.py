"""Cart router - FastAPI endpoints for the server-backed cart"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_customer
from ...database import get_db
from ...models import Customer
from .schemas import (
    AddToCartRequest,
    ApplyCouponRequest,
    ApplyCouponResponse,
    CartResponse,
    ServerCartItem,
    UpdateCartItemRequest,
)
from .service import CartService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["Cart"])


def get_cart_service(db: Session = Depends(get_db)) -> CartService:
    """Dependency injection for CartService"""
    return CartService(db)


@router.get("", response_model=CartResponse)
async def get_cart(
    current_customer: Customer = Depends(get_current_customer),
    service: CartService = Depends(get_cart_service),
):
    return CartResponse(cart=service.get_cart(current_customer))


@router.post("", response_model=ServerCartItem)
async def add_to_cart(
    data: AddToCartRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: CartService = Depends(get_cart_service),
):
    """Create-or-increment: adding a product already in the cart raises its quantity"""
    return service.add_item(current_customer, data)


@router.put("/items/{item_id}")
async def update_cart_item(
    item_id: str,
    data: UpdateCartItemRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: CartService = Depends(get_cart_service),
):
    item = service.update_item(current_customer, item_id, data.quantity)
    if item is None:
        return {"removed": True, "id": item_id}
    return item


@router.delete("/items/{item_id}")
async def remove_cart_item(
    item_id: str,
    current_customer: Customer = Depends(get_current_customer),
    service: CartService = Depends(get_cart_service),
):
    service.remove_item(current_customer, item_id)
    return {"success": True, "id": item_id}


@router.post("/apply-coupon", response_model=ApplyCouponResponse)
async def apply_coupon(
    data: ApplyCouponRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: CartService = Depends(get_cart_service),
):
    return service.apply_coupon(current_customer, data.code)
