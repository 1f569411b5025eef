import asyncio

import pytest

from stylemate.client.session import Identity, SessionManager
from stylemate.domain.cart.engine import CartEngine
from stylemate.domain.cart.schemas import GuestCartItem, ProductRef, ServerCart

CUSTOMER = Identity(is_authenticated=True, roles=("customer",), user_id="cust-1")


def guest_item(product_id, quantity, price=10000):
    return GuestCartItem(productId=product_id, productName=product_id, quantity=quantity, unitPriceInPaisa=price)


@pytest.fixture
def session():
    return SessionManager()


@pytest.fixture
def engine(session, cart_gateway, guest_store, query_cache, notifier):
    return CartEngine(session, cart_gateway, guest_store, query_cache, notifier)


@pytest.fixture
def invalidated(query_cache):
    seen = []
    query_cache.subscribe(seen.extend)
    return seen


async def test_empty_guest_cart_makes_no_calls(engine, session, cart_gateway, invalidated):
    await session.sign_in("cust-1", ["customer"])

    assert cart_gateway.calls == []
    assert invalidated == []


async def test_sign_in_moves_guest_cart_once(engine, session, cart_gateway, guest_store, invalidated):
    guest_store.save([guest_item("prod-a", 2), guest_item("prod-b", 1)])

    await session.sign_in("cust-1", ["customer"])

    assert cart_gateway.calls == [("add", "prod-a", 2), ("add", "prod-b", 1)]
    assert guest_store.load() == []
    assert "/cart" in invalidated


async def test_repeat_merge_does_not_re_add(engine, session, cart_gateway, guest_store):
    guest_store.save([guest_item("prod-a", 2)])
    await session.sign_in("cust-1", ["customer"])

    assert await engine.merge_guest_cart_into_account() == 0
    assert cart_gateway.calls == [("add", "prod-a", 2)]


async def test_partial_failure_still_clears_guest_cart(engine, session, cart_gateway, guest_store):
    guest_store.save([guest_item("prod-a", 1), guest_item("prod-gone", 3), guest_item("prod-c", 1)])
    cart_gateway.failing_products = {"prod-gone"}

    await session.set_identity(CUSTOMER)

    assert [c[1] for c in cart_gateway.calls] == ["prod-a", "prod-gone", "prod-c"]
    assert guest_store.load() == []


async def test_merge_reports_count(cart_gateway, guest_store, query_cache, notifier):
    engine = CartEngine(SessionManager(CUSTOMER), cart_gateway, guest_store, query_cache, notifier)
    guest_store.save([guest_item("prod-a", 1), guest_item("prod-gone", 3)])
    cart_gateway.failing_products = {"prod-gone"}

    assert await engine.merge_guest_cart_into_account() == 1


async def test_concurrent_trigger_is_ignored(cart_gateway, guest_store, query_cache, notifier):
    engine = CartEngine(SessionManager(CUSTOMER), cart_gateway, guest_store, query_cache, notifier)
    guest_store.save([guest_item("prod-a", 1), guest_item("prod-b", 1)])
    cart_gateway.add_gate = asyncio.Event()

    first = asyncio.create_task(engine.merge_guest_cart_into_account())
    await asyncio.sleep(0)
    assert engine.is_merging

    assert await engine.merge_guest_cart_into_account() == 0

    cart_gateway.add_gate.set()
    assert await first == 2
    assert cart_gateway.calls == [("add", "prod-a", 1), ("add", "prod-b", 1)]
    assert not engine.is_merging


async def test_non_customer_sign_in_keeps_guest_cart(engine, session, cart_gateway, guest_store):
    guest_store.save([guest_item("prod-a", 1)])

    await session.sign_in("staff-user", ["staff"])

    assert cart_gateway.calls == []
    assert len(guest_store.load()) == 1


async def test_already_customer_identity_change_does_not_merge(cart_gateway, guest_store, query_cache, notifier):
    session = SessionManager(CUSTOMER)
    CartEngine(session, cart_gateway, guest_store, query_cache, notifier)
    guest_store.save([guest_item("prod-a", 1)])

    await session.set_identity(Identity(is_authenticated=True, roles=("customer", "vip"), user_id="cust-1"))

    assert cart_gateway.calls == []


async def test_sign_out_drops_account_cart(engine, session, query_cache):
    await session.set_identity(CUSTOMER)
    query_cache.set("/cart", "account cart")

    await session.sign_out()

    assert not query_cache.has("/cart")
    assert not engine.is_server_mode


async def test_switching_customers_drops_previous_account_cart(
    cart_gateway, guest_store, query_cache, notifier, server_item_factory
):
    session = SessionManager(CUSTOMER)
    engine = CartEngine(session, cart_gateway, guest_store, query_cache, notifier)
    cart_gateway.cart = ServerCart(items=[server_item_factory(id="a-item")])
    assert [line.key for line in await engine.lines()] == ["a-item"]

    cart_gateway.cart = ServerCart()
    await session.set_identity(Identity(is_authenticated=True, roles=("customer",), user_id="cust-2"))

    assert await engine.lines() == []


async def test_detached_engine_ignores_sign_in(engine, session, cart_gateway, guest_store):
    guest_store.save([guest_item("prod-a", 1)])
    engine.detach()

    await session.sign_in("cust-1", ["customer"])

    assert cart_gateway.calls == []
    assert len(guest_store.load()) == 1


async def test_unreadable_guest_cart_is_kept_for_later(engine, session, cart_gateway, guest_store, fake_redis):
    guest_store.save([guest_item("prod-a", 2)])
    fake_redis.failing_gets = 1

    await session.sign_in("cust-1", ["customer"])

    assert cart_gateway.calls == []
    assert len(guest_store.load()) == 1


async def test_failed_delete_empties_guest_cart_instead(engine, session, cart_gateway, guest_store, fake_redis):
    guest_store.save([guest_item("prod-a", 2)])
    fake_redis.fail_deletes = True

    await session.sign_in("cust-1", ["customer"])

    assert guest_store.load() == []
    assert await engine.merge_guest_cart_into_account() == 0
    assert cart_gateway.calls == [("add", "prod-a", 2)]


async def test_unwipeable_guest_cart_is_not_merged_twice(engine, session, cart_gateway, guest_store, fake_redis):
    guest_store.save([guest_item("prod-a", 2)])
    fake_redis.fail_deletes = True
    fake_redis.fail_writes = True

    await session.sign_in("cust-1", ["customer"])
    assert len(guest_store.load()) == 1

    assert await engine.merge_guest_cart_into_account() == 0
    assert cart_gateway.calls == [("add", "prod-a", 2)]

    # Only the quantity added since the last merge is posted
    fake_redis.fail_writes = False
    guest_store.save([guest_item("prod-a", 3)])
    assert await engine.merge_guest_cart_into_account() == 1
    assert cart_gateway.calls == [("add", "prod-a", 2), ("add", "prod-a", 1)]
    assert guest_store.load() == []


async def test_merge_into_real_account_cart(seed, api_gateway, guest_store, query_cache, notifier):
    session = SessionManager()
    engine = CartEngine(session, api_gateway, guest_store, query_cache, notifier)

    shampoo = ProductRef(id="prod-shampoo", name="Argan Shampoo", retailPriceInPaisa=50000)
    serum = ProductRef(id="prod-serum", name="Hair Serum", retailPriceInPaisa=30000)
    await engine.add(shampoo, quantity=2)
    await engine.add(serum)
    guest_summary = await engine.summary()

    await session.sign_in("cust-1", ["customer"])

    assert guest_store.load() == []
    lines = {line.product_id: line for line in await engine.lines()}
    assert lines["prod-shampoo"].quantity == 2
    assert lines["prod-serum"].quantity == 1
    assert not lines["prod-shampoo"].is_guest

    summary = await engine.summary()
    assert summary.subtotal == guest_summary.subtotal == 130000
    assert summary.total == 153400
