"""Cart service - Business logic for server-backed customer carts"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import MAX_CART_ITEM_QUANTITY
from ...models import Cart, CartItem, Coupon, Customer
from ...shared.money import format_money, percent_of
from .repository import CartRepository
from .schemas import AddToCartRequest, ApplyCouponResponse, ServerCart, ServerCartItem

logger = logging.getLogger(__name__)


def item_stock(item: CartItem) -> int:
    if item.variant is not None:
        return item.variant.stock
    return item.product.stock


def quantity_ceiling(stock: int) -> int:
    """Per-line quantity cap: never more than stock, never more than the per-order maximum"""
    return min(stock, MAX_CART_ITEM_QUANTITY)


def serialize_item(item: CartItem) -> ServerCartItem:
    product = item.product
    stock = item_stock(item)
    unit_price = product.retail_price_in_paisa
    return ServerCartItem(
        id=item.id,
        productId=product.id,
        productName=product.name,
        productImage=product.primary_image,
        variantId=item.variant_id,
        variantValue=item.variant.value if item.variant is not None else None,
        quantity=item.quantity,
        unitPriceInPaisa=unit_price,
        totalPriceInPaisa=unit_price * item.quantity,
        stock=stock,
        isAvailable=bool(product.is_active) and stock > 0,
        salonId=product.salon_id,
        salonName=product.salon.name if product.salon else None,
    )


def compute_discount(coupon: Coupon, subtotal: int) -> int:
    if coupon.discount_percent:
        return percent_of(subtotal, coupon.discount_percent)
    if coupon.discount_in_paisa:
        return min(coupon.discount_in_paisa, subtotal)
    return 0


class CartService:
    """Service layer for cart business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CartRepository()

    def _cart(self, customer: Customer) -> Cart:
        return self.repo.get_or_create_cart(self.db, customer.id)

    def _coupon_error(self, coupon: Optional[Coupon], subtotal: int) -> Optional[str]:
        """Reason a coupon cannot be applied to this subtotal, or None if it can"""
        if coupon is None or not coupon.is_active:
            return "Invalid coupon code"
        if coupon.expires_at and coupon.expires_at < datetime.utcnow():
            return "This coupon has expired"
        if subtotal < (coupon.min_subtotal_in_paisa or 0):
            return f"Minimum order of {format_money(coupon.min_subtotal_in_paisa)} required"
        return None

    def get_cart(self, customer: Customer) -> ServerCart:
        cart = self._cart(customer)
        items = [serialize_item(i) for i in cart.items]
        subtotal = sum(i.totalPriceInPaisa for i in items if i.isAvailable)

        discount = 0
        if cart.coupon_code:
            coupon = self.repo.get_coupon(self.db, cart.coupon_code)
            if self._coupon_error(coupon, subtotal) is None:
                discount = compute_discount(coupon, subtotal)

        return ServerCart(items=items, couponCode=cart.coupon_code, discountInPaisa=discount)

    def add_item(self, customer: Customer, data: AddToCartRequest) -> ServerCartItem:
        """Create the line, or increment it if the product (and variant) is already in the cart"""
        product = self.repo.get_product(self.db, data.productId)
        if not product:
            raise HTTPException(status_code=404, detail="Product not found")
        if not product.is_active:
            raise HTTPException(status_code=400, detail="This product is no longer available")

        stock = product.stock
        if data.variantId:
            variant = self.repo.get_variant(self.db, data.variantId, product.id)
            if not variant:
                raise HTTPException(status_code=404, detail="Product variant not found")
            stock = variant.stock

        ceiling = quantity_ceiling(stock)
        if ceiling < 1:
            raise HTTPException(status_code=400, detail="This product is out of stock")

        cart = self._cart(customer)
        existing = self.repo.find_item(self.db, cart, product.id, data.variantId)
        requested = (existing.quantity if existing else 0) + data.quantity
        quantity = min(requested, ceiling)
        if quantity < requested:
            logger.info(
                f"⚠️ Clamped cart quantity for product {product.id} from {requested} to {quantity}"
            )

        if existing:
            item = self.repo.set_quantity(self.db, existing, quantity)
        else:
            item = self.repo.add_item(self.db, cart, product.id, data.variantId, quantity)

        logger.info(f"🛒 Customer {customer.id} cart: product {product.id} x{item.quantity}")
        return serialize_item(item)

    def update_item(self, customer: Customer, item_id: str, quantity: int) -> Optional[ServerCartItem]:
        """Set a line's quantity; zero or less removes the line (returns None)"""
        cart = self._cart(customer)
        item = self.repo.get_item(self.db, cart, item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Cart item not found")

        if quantity <= 0:
            self.repo.delete_item(self.db, item)
            logger.info(f"🗑️ Customer {customer.id} removed cart item {item_id} (quantity {quantity})")
            return None

        # Lowering is always allowed, even while stock sits below the current quantity
        ceiling = quantity_ceiling(item_stock(item))
        if quantity > ceiling and quantity >= item.quantity:
            raise HTTPException(status_code=400, detail=f"Only {ceiling} available for this product")

        item = self.repo.set_quantity(self.db, item, quantity)
        return serialize_item(item)

    def remove_item(self, customer: Customer, item_id: str) -> None:
        cart = self._cart(customer)
        item = self.repo.get_item(self.db, cart, item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Cart item not found")
        self.repo.delete_item(self.db, item)
        logger.info(f"🗑️ Customer {customer.id} removed cart item {item_id}")

    def apply_coupon(self, customer: Customer, code: str) -> ApplyCouponResponse:
        cart = self._cart(customer)
        items = [serialize_item(i) for i in cart.items]
        if not items:
            raise HTTPException(status_code=400, detail="Your cart is empty")
        subtotal = sum(i.totalPriceInPaisa for i in items if i.isAvailable)

        coupon = self.repo.get_coupon(self.db, code)
        error = self._coupon_error(coupon, subtotal)
        if error:
            logger.warning(f"⚠️ Coupon {code} rejected for customer {customer.id}: {error}")
            raise HTTPException(status_code=400, detail=error)

        self.repo.set_coupon(self.db, cart, coupon.code)
        discount = compute_discount(coupon, subtotal)
        logger.info(f"🏷️ Coupon {coupon.code} applied for customer {customer.id}: -{discount}")
        return ApplyCouponResponse(
            couponCode=coupon.code, discountInPaisa=discount, subtotalInPaisa=subtotal
        )
