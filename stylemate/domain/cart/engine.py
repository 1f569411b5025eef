"""
Cart Reconciliation Engine.

One cart view over two backing stores: the customer's account cart behind the
Persistence Gateway, or the device-local guest cart. Which store is active is
decided from the session on every call. When a guest signs in as a customer
the guest cart is moved into the account cart once, then wiped.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from redis.exceptions import RedisError

from ...client.gateway import PersistenceGateway
from ...client.notifier import Notifier
from ...client.query_cache import QueryCache
from ...client.session import Identity, SessionManager
from ...config import DELIVERY_CHARGE_IN_PAISA, TAX_RATE_PERCENT
from ...shared.http import GatewayError, user_facing_message
from ...shared.money import format_money
from ...shared.validators import normalize_coupon_code
from .guest_store import GuestCartStore
from .pricing import CartSummary, summarize
from .schemas import ApplyCouponResponse, CartEntry, CartLine, GuestCartItem, ProductRef, ServerCart

logger = logging.getLogger(__name__)

CART_QUERY_KEY = "/cart"
CART_PATH = "/cart"
CHECKOUT_PATH = "/checkout"
LOGIN_PATH = "/login"


@dataclass(frozen=True)
class CheckoutRedirect:
    """Where the checkout button sends the customer"""

    target: str
    requires_sign_in: bool
    item_count: int
    total: int


class CartEngine:
    def __init__(
        self,
        session: SessionManager,
        gateway: PersistenceGateway,
        guest_store: GuestCartStore,
        query_cache: QueryCache,
        notifier: Notifier,
        tax_rate_percent: int = TAX_RATE_PERCENT,
        delivery_charge: int = DELIVERY_CHARGE_IN_PAISA,
    ):
        self.session = session
        self.gateway = gateway
        self.guest_store = guest_store
        self.query_cache = query_cache
        self.notifier = notifier
        self.tax_rate_percent = tax_rate_percent
        self.delivery_charge = delivery_charge

        self._merging = False
        self._pending: set[str] = set()
        # Guest quantities already posted whose guest copy could not be wiped
        self._merged_quantities: dict[str, int] = {}
        self._unsubscribe = session.subscribe(self._on_session_change)

    def detach(self) -> None:
        """Stop following session changes (app teardown)"""
        self._unsubscribe()

    @property
    def is_server_mode(self) -> bool:
        return self.session.current.is_customer

    @property
    def is_merging(self) -> bool:
        return self._merging

    def is_pending(self, key: str) -> bool:
        """A mutation for this line is in flight; its controls should be disabled"""
        return key in self._pending

    async def _on_session_change(self, previous: Identity, current: Identity) -> None:
        if previous.is_customer and (
            not current.is_customer or previous.user_id != current.user_id
        ):
            # Cached account cart belongs to the previous customer
            self.query_cache.invalidate(CART_QUERY_KEY)
        if current.is_customer and not previous.is_customer:
            await self.merge_guest_cart_into_account()

    # Reads

    async def _server_cart(self) -> ServerCart:
        try:
            return await self.query_cache.fetch(CART_QUERY_KEY, self.gateway.get_cart)
        except GatewayError as e:
            logger.warning(f"⚠️ Error loading cart, showing it empty: {e}")
            return ServerCart()

    async def items(self) -> list[CartEntry]:
        if self.is_server_mode:
            return list((await self._server_cart()).items)
        try:
            return self.guest_store.load()
        except RedisError as e:
            logger.warning(f"⚠️ Error reading guest cart, showing it empty: {e}")
            return []

    async def lines(self) -> list[CartLine]:
        return [CartLine.from_entry(entry) for entry in await self.items()]

    async def available_lines(self) -> list[CartLine]:
        return [line for line in await self.lines() if line.is_available]

    async def unavailable_lines(self) -> list[CartLine]:
        return [line for line in await self.lines() if not line.is_available]

    async def summary(self) -> CartSummary:
        return summarize(
            await self.lines(),
            tax_rate_percent=self.tax_rate_percent,
            delivery_charge=self.delivery_charge,
        )

    # Mutations

    async def add(
        self, product: ProductRef, quantity: int = 1, variant_id: Optional[str] = None
    ) -> bool:
        if quantity < 1:
            self.notifier.error("Invalid quantity", "Quantity must be at least 1")
            return False

        if self.is_server_mode:
            try:
                await self.gateway.add_cart_item(product.id, quantity, variant_id=variant_id)
            except GatewayError as e:
                self.notifier.error("Error", user_facing_message(e, "Failed to add to cart"))
                return False
            self.query_cache.invalidate(CART_QUERY_KEY)
        else:
            try:
                self._add_guest_item(product, quantity)
            except RedisError as e:
                logger.error(f"❌ Error updating guest cart: {e}")
                self.notifier.error("Error", "Failed to add to cart")
                return False

        self.notifier.success("Added to cart", f"{product.name} added to your shopping cart")
        return True

    def _add_guest_item(self, product: ProductRef, quantity: int) -> None:
        items = self.guest_store.load()
        for index, item in enumerate(items):
            if item.productId == product.id:
                items[index] = item.model_copy(update={"quantity": item.quantity + quantity})
                break
        else:
            items.append(
                GuestCartItem(
                    productId=product.id,
                    productName=product.name,
                    productImage=product.primaryImage,
                    quantity=quantity,
                    unitPriceInPaisa=product.retailPriceInPaisa,
                    salonId=product.salonId,
                    salonName=product.salonName,
                )
            )
        self.guest_store.save(items)

    async def remove(self, key: str) -> bool:
        """Remove a line: `key` is the server item id in server mode, the product id for guests"""
        if not self.is_server_mode:
            try:
                items = self.guest_store.load()
                remaining = [item for item in items if item.productId != key]
                if len(remaining) == len(items):
                    return True
                self.guest_store.save(remaining)
            except RedisError as e:
                logger.error(f"❌ Error updating guest cart: {e}")
                self.notifier.error("Error", "Failed to remove item")
                return False
            self.notifier.success("Item removed", "Item has been removed from your cart")
            return True

        if key in self._pending:
            return False
        self._pending.add(key)
        try:
            await self.gateway.remove_cart_item(key)
        except GatewayError as e:
            self.notifier.error("Error", user_facing_message(e, "Failed to remove item"))
            return False
        finally:
            self._pending.discard(key)

        self.query_cache.invalidate(CART_QUERY_KEY)
        self.notifier.success("Item removed", "Item has been removed from your cart")
        return True

    async def update_quantity(self, key: str, quantity: int) -> bool:
        if not self.is_server_mode:
            if quantity <= 0:
                return await self.remove(key)
            try:
                items = self.guest_store.load()
                for index, item in enumerate(items):
                    if item.productId == key:
                        items[index] = item.model_copy(update={"quantity": quantity})
                        break
                else:
                    return False
                self.guest_store.save(items)
            except RedisError as e:
                logger.error(f"❌ Error updating guest cart: {e}")
                self.notifier.error("Error", "Failed to update quantity")
                return False
            return True

        if key in self._pending:
            return False
        self._pending.add(key)
        try:
            # Zero or less is the server's call: it removes the line
            await self.gateway.update_cart_item(key, quantity)
        except GatewayError as e:
            self.notifier.error("Error", user_facing_message(e, "Failed to update quantity"))
            return False
        finally:
            self._pending.discard(key)

        self.query_cache.invalidate(CART_QUERY_KEY)
        return True

    async def increment(self, line: CartLine) -> bool:
        if not line.can_increment:
            return False
        return await self.update_quantity(line.key, line.quantity + 1)

    async def decrement(self, line: CartLine) -> bool:
        if not line.can_decrement:
            return False
        return await self.update_quantity(line.key, line.quantity - 1)

    async def clear(self) -> bool:
        if not self.is_server_mode:
            try:
                self.guest_store.clear()
            except RedisError as e:
                logger.error(f"❌ Error clearing guest cart: {e}")
                self.notifier.error("Error", "Failed to clear cart")
                return False
            self.notifier.success("Cart cleared", "All items have been removed from your cart")
            return True

        # No bulk endpoint: delete line by line
        cart = await self._server_cart()
        failed = 0
        for item in cart.items:
            try:
                await self.gateway.remove_cart_item(item.id)
            except GatewayError as e:
                failed += 1
                logger.warning(f"⚠️ Error removing cart item {item.id} during clear: {e}")
        self.query_cache.invalidate(CART_QUERY_KEY)

        if failed:
            self.notifier.error("Error", f"{failed} item(s) could not be removed from your cart")
            return False
        self.notifier.success("Cart cleared", "All items have been removed from your cart")
        return True

    async def merge_guest_cart_into_account(self) -> int:
        """
        Move every guest entry into the account cart, one POST at a time.

        Items the server rejects are logged and skipped; the guest cart is
        wiped afterwards either way. Returns how many entries were merged.
        """
        if self._merging:
            logger.info("🔄 Guest cart merge already in progress, skipping")
            return 0
        if not self.is_server_mode:
            logger.debug("Guest cart merge requested without a customer session, skipping")
            return 0

        self._merging = True
        try:
            try:
                items = self.guest_store.load()
            except RedisError as e:
                logger.error(f"❌ Error reading guest cart for merge, keeping it for the next sign-in: {e}")
                return 0
            if not items:
                return 0

            merged = 0
            for item in items:
                already = self._merged_quantities.get(item.productId, 0)
                remaining = item.quantity - already
                if remaining <= 0:
                    logger.info(f"🔄 Guest cart item {item.productId} already merged, skipping")
                    continue
                try:
                    await self.gateway.add_cart_item(item.productId, remaining)
                    self._merged_quantities[item.productId] = already + remaining
                    merged += 1
                except GatewayError as e:
                    logger.warning(f"⚠️ Error merging guest cart item {item.productId}: {e}")

            if self._wipe_guest_cart():
                self._merged_quantities.clear()
            self.query_cache.invalidate(CART_QUERY_KEY)

            logger.info(f"✅ Merged {merged}/{len(items)} guest cart items into account cart")
            return merged
        finally:
            self._merging = False

    def _wipe_guest_cart(self) -> bool:
        """Empty the guest cart after a merge; an empty document is written if the delete fails"""
        try:
            self.guest_store.clear()
            return True
        except RedisError as e:
            logger.warning(f"⚠️ Error deleting guest cart after merge, writing it empty: {e}")
        try:
            self.guest_store.save([])
            return True
        except RedisError as e:
            logger.error(f"❌ Error emptying guest cart after merge: {e}")
            return False

    async def apply_coupon(self, code: str) -> Optional[ApplyCouponResponse]:
        if not self.is_server_mode:
            self.notifier.error("Sign in required", "Please sign in to apply a coupon")
            return None
        try:
            code = normalize_coupon_code(code)
        except ValueError:
            self.notifier.error("Invalid coupon", "Please enter a coupon code")
            return None

        try:
            result = await self.gateway.apply_coupon(code)
        except GatewayError as e:
            self.notifier.error("Invalid coupon", user_facing_message(e, "Failed to apply coupon"))
            return None

        self.query_cache.invalidate(CART_QUERY_KEY)
        self.notifier.success(
            "Coupon applied", f"{result.couponCode}: you save {format_money(result.discountInPaisa)}"
        )
        return result

    async def begin_checkout(self) -> CheckoutRedirect:
        """Guests are sent to sign in; nothing is sent to the server for them"""
        summary = await self.summary()
        if not self.is_server_mode:
            return CheckoutRedirect(
                target=LOGIN_PATH,
                requires_sign_in=True,
                item_count=summary.item_count,
                total=summary.total,
            )
        if summary.item_count == 0:
            self.notifier.error("Cart is empty", "Add some products before checking out")
            return CheckoutRedirect(
                target=CART_PATH, requires_sign_in=False, item_count=0, total=0
            )
        return CheckoutRedirect(
            target=CHECKOUT_PATH,
            requires_sign_in=False,
            item_count=summary.item_count,
            total=summary.total,
        )
