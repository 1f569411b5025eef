"""Cart domain schemas - server items, guest items and the unified read-only view"""

from dataclasses import dataclass
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ...config import MAX_CART_ITEM_QUANTITY
from ...shared.validators import normalize_coupon_code


class ServerCartItem(BaseModel):
    """Cart line owned by an authenticated customer account"""

    kind: Literal["server"] = "server"
    id: str
    productId: str
    productName: str
    productImage: Optional[str] = None
    variantId: Optional[str] = None
    variantValue: Optional[str] = None
    quantity: int
    unitPriceInPaisa: int
    totalPriceInPaisa: int
    stock: int
    isAvailable: bool = True
    salonId: Optional[str] = None
    salonName: Optional[str] = None


class GuestCartItem(BaseModel):
    """Device-local cart entry; identified by product id only"""

    kind: Literal["guest"] = "guest"
    productId: str
    productName: str
    productImage: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    unitPriceInPaisa: int
    salonId: Optional[str] = None
    salonName: Optional[str] = None


CartEntry = Annotated[Union[ServerCartItem, GuestCartItem], Field(discriminator="kind")]


class ServerCart(BaseModel):
    items: list[ServerCartItem] = []
    couponCode: Optional[str] = None
    discountInPaisa: int = 0


class CartResponse(BaseModel):
    cart: ServerCart


class ProductRef(BaseModel):
    """What the storefront knows about a product when adding it to the cart"""

    id: str
    name: str
    retailPriceInPaisa: int
    primaryImage: Optional[str] = None
    salonId: Optional[str] = None
    salonName: Optional[str] = None


class AddToCartRequest(BaseModel):
    productId: str
    quantity: int = Field(default=1, ge=1)
    variantId: Optional[str] = None

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, v):
        if v < 1:
            raise ValueError("Quantity must be at least 1")
        return v


class UpdateCartItemRequest(BaseModel):
    quantity: int


class ApplyCouponRequest(BaseModel):
    code: str

    @field_validator("code")
    @classmethod
    def validate_code(cls, v):
        return normalize_coupon_code(v)


class ApplyCouponResponse(BaseModel):
    couponCode: str
    discountInPaisa: int
    subtotalInPaisa: int


@dataclass(frozen=True)
class CartLine:
    """
    Read-only projection of either cart item shape.

    `key` is the identifier mutations take: the server item id in server mode,
    the product id in guest mode.
    """

    key: str
    product_id: str
    product_name: str
    product_image: Optional[str]
    variant_value: Optional[str]
    quantity: int
    unit_price: int
    stock: Optional[int]
    is_available: bool
    salon_id: Optional[str]
    salon_name: Optional[str]
    is_guest: bool

    @property
    def total_price(self) -> int:
        return self.unit_price * self.quantity

    @property
    def max_quantity(self) -> Optional[int]:
        """Upper bound for the increment control; None when stock is unknown (guest lines)"""
        if self.stock is None:
            return None
        return min(self.stock, MAX_CART_ITEM_QUANTITY)

    @property
    def can_decrement(self) -> bool:
        return self.quantity > 1

    @property
    def can_increment(self) -> bool:
        return self.max_quantity is None or self.quantity < self.max_quantity

    @classmethod
    def from_entry(cls, entry: CartEntry) -> "CartLine":
        if isinstance(entry, ServerCartItem):
            return cls(
                key=entry.id,
                product_id=entry.productId,
                product_name=entry.productName,
                product_image=entry.productImage,
                variant_value=entry.variantValue,
                quantity=entry.quantity,
                unit_price=entry.unitPriceInPaisa,
                stock=entry.stock,
                is_available=entry.isAvailable,
                salon_id=entry.salonId,
                salon_name=entry.salonName,
                is_guest=False,
            )
        return cls(
            key=entry.productId,
            product_id=entry.productId,
            product_name=entry.productName,
            product_image=entry.productImage,
            variant_value=None,
            quantity=entry.quantity,
            unit_price=entry.unitPriceInPaisa,
            stock=None,
            is_available=True,
            salon_id=entry.salonId,
            salon_name=entry.salonName,
            is_guest=True,
        )
