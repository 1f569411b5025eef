"""Cart repository - Database operations for server-backed carts"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Cart, CartItem, Coupon, Product, ProductVariant


class CartRepository:
    """Repository for cart database operations"""

    @staticmethod
    def get_or_create_cart(db: Session, customer_id: str) -> Cart:
        cart = (
            db.query(Cart)
            .options(joinedload(Cart.items).joinedload(CartItem.product).joinedload(Product.salon))
            .filter(Cart.customer_id == customer_id)
            .first()
        )
        if cart is None:
            cart = Cart(customer_id=customer_id)
            db.add(cart)
            db.commit()
            db.refresh(cart)
        return cart

    @staticmethod
    def get_product(db: Session, product_id: str) -> Optional[Product]:
        return db.query(Product).filter(Product.id == product_id).first()

    @staticmethod
    def get_variant(db: Session, variant_id: str, product_id: str) -> Optional[ProductVariant]:
        return (
            db.query(ProductVariant)
            .filter(ProductVariant.id == variant_id, ProductVariant.product_id == product_id)
            .first()
        )

    @staticmethod
    def find_item(
        db: Session, cart: Cart, product_id: str, variant_id: Optional[str]
    ) -> Optional[CartItem]:
        query = db.query(CartItem).filter(
            CartItem.cart_id == cart.id, CartItem.product_id == product_id
        )
        if variant_id:
            query = query.filter(CartItem.variant_id == variant_id)
        else:
            query = query.filter(CartItem.variant_id.is_(None))
        return query.first()

    @staticmethod
    def get_item(db: Session, cart: Cart, item_id: str) -> Optional[CartItem]:
        return (
            db.query(CartItem)
            .filter(CartItem.id == item_id, CartItem.cart_id == cart.id)
            .first()
        )

    @staticmethod
    def add_item(
        db: Session, cart: Cart, product_id: str, variant_id: Optional[str], quantity: int
    ) -> CartItem:
        item = CartItem(
            cart_id=cart.id, product_id=product_id, variant_id=variant_id, quantity=quantity
        )
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def set_quantity(db: Session, item: CartItem, quantity: int) -> CartItem:
        item.quantity = quantity
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def delete_item(db: Session, item: CartItem) -> None:
        db.delete(item)
        db.commit()

    @staticmethod
    def get_coupon(db: Session, code: str) -> Optional[Coupon]:
        return db.query(Coupon).filter(Coupon.code == code).first()

    @staticmethod
    def set_coupon(db: Session, cart: Cart, code: Optional[str]) -> Cart:
        cart.coupon_code = code
        db.commit()
        db.refresh(cart)
        return cart
