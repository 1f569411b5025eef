import asyncio
import fnmatch
from datetime import date, datetime, timedelta
from types import SimpleNamespace
from typing import Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stylemate.auth import create_access_token
from stylemate.cache import cache
from stylemate.client.gateway import PersistenceGateway
from stylemate.client.local_store import LocalStore
from stylemate.client.notifier import Notifier
from stylemate.client.query_cache import QueryCache
from stylemate.database import Base, get_db
from stylemate.domain.cart.guest_store import GuestCartStore
from stylemate.domain.cart.schemas import ApplyCouponResponse, ServerCart, ServerCartItem
from stylemate.domain.scheduling.schemas import Appointment as AppointmentSchema
from stylemate.domain.scheduling.schemas import TimeSlot
from stylemate.main import app
from stylemate.models import Appointment, Coupon, Customer, Product, ProductVariant, Salon, Service, Staff
from stylemate.shared.http import GatewayError

CUSTOMER_ID = "cust-1"
OTHER_CUSTOMER_ID = "cust-2"

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


class FakeRedis:
    """In-memory stand-in for the handful of redis-py calls the app makes"""

    def __init__(self):
        self.data: dict[str, str] = {}
        # Failure switches: the next N gets time out, writes/deletes raise while set
        self.failing_gets = 0
        self.fail_writes = False
        self.fail_deletes = False

    def ping(self):
        return True

    def get(self, key):
        if self.failing_gets:
            self.failing_gets -= 1
            raise RedisTimeoutError("Timeout reading from socket")
        return self.data.get(key)

    def set(self, key, value):
        if self.fail_writes:
            raise RedisError("READONLY You can't write against a read only replica")
        self.data[key] = value
        return True

    def setex(self, key, ttl, value):
        self.data[key] = value
        return True

    def delete(self, *keys):
        if self.fail_deletes:
            raise RedisError("Connection reset by peer")
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    def keys(self, pattern="*"):
        return [k for k in self.data if fnmatch.fnmatch(k, pattern)]


class FakeSchedulingGateway:
    """Gateway double whose slot responses can be held back per date"""

    def __init__(self):
        self.slots: dict[date, list[TimeSlot]] = {}
        self.gates: dict[date, asyncio.Event] = {}
        self.slot_errors: dict[date, Exception] = {}
        self.reschedule_error: Optional[Exception] = None
        self.slot_requests: list[date] = []
        self.reschedule_calls: list[tuple[str, date, str]] = []

    async def get_available_slots(self, salon_id, service_id, day, staff_id=None):
        self.slot_requests.append(day)
        if day in self.gates:
            await self.gates[day].wait()
        if day in self.slot_errors:
            raise self.slot_errors[day]
        return self.slots.get(day, [])

    async def reschedule_appointment(self, appointment_id, booking_date, booking_time):
        self.reschedule_calls.append((appointment_id, booking_date, booking_time))
        if self.reschedule_error:
            raise self.reschedule_error
        return make_appointment(id=appointment_id, bookingDate=booking_date, bookingTime=booking_time)


class FakeCartGateway:
    """Gateway double for the account cart; records every call"""

    def __init__(self):
        self.calls: list[tuple] = []
        self.cart = ServerCart()
        self.failing_products: set[str] = set()
        self.add_gate: Optional[asyncio.Event] = None
        self.update_gate: Optional[asyncio.Event] = None
        self.error: Optional[GatewayError] = None

    async def get_cart(self):
        self.calls.append(("get_cart",))
        return self.cart

    async def add_cart_item(self, product_id, quantity=1, variant_id=None):
        self.calls.append(("add", product_id, quantity))
        if self.add_gate is not None:
            await self.add_gate.wait()
        if self.error:
            raise self.error
        if product_id in self.failing_products:
            raise GatewayError("Product not found", status_code=404, server_message="Product not found")
        return make_server_item(id=f"item-{product_id}", productId=product_id, quantity=quantity)

    async def remove_cart_item(self, item_id):
        self.calls.append(("remove", item_id))
        if self.error:
            raise self.error

    async def update_cart_item(self, item_id, quantity):
        self.calls.append(("update", item_id, quantity))
        if self.update_gate is not None:
            await self.update_gate.wait()
        if self.error:
            raise self.error
        if quantity <= 0:
            return None
        return make_server_item(id=item_id, quantity=quantity)

    async def apply_coupon(self, code):
        self.calls.append(("apply_coupon", code))
        if self.error:
            raise self.error
        return ApplyCouponResponse(couponCode=code, discountInPaisa=5000, subtotalInPaisa=50000)


def make_appointment(**overrides) -> AppointmentSchema:
    fields = {
        "id": "appt-1",
        "salonId": "salon-1",
        "salonName": "Glow Studio",
        "serviceId": "service-1",
        "serviceName": "Haircut",
        "staffId": "staff-1",
        "staffName": "Asha",
        "bookingDate": date.today() + timedelta(days=2),
        "bookingTime": "09:00",
        "duration": 60,
    }
    fields.update(overrides)
    return AppointmentSchema(**fields)


def make_server_item(**overrides) -> ServerCartItem:
    fields = {
        "id": "item-1",
        "productId": "prod-1",
        "productName": "Argan Shampoo",
        "quantity": 1,
        "unitPriceInPaisa": 50000,
        "totalPriceInPaisa": 50000,
        "stock": 5,
    }
    fields.update(overrides)
    fields["totalPriceInPaisa"] = fields["unitPriceInPaisa"] * fields["quantity"]
    return ServerCartItem(**fields)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture(autouse=True)
def appointment_cache(fake_redis):
    """Point the server-side appointment cache at the in-memory Redis"""
    cache.redis_client = fake_redis
    yield cache
    cache.redis_client = None


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def today():
    return date.today()


@pytest.fixture
def seed(db_session, today):
    """
    One salon open 09:00-12:00 on a 30 minute grid with a single stylist,
    a 60 minute service, two customers with one appointment each, products
    and coupons.
    """
    salon = Salon(id="salon-1", name="Glow Studio", opening_time="09:00", closing_time="12:00", slot_interval_minutes=30)
    service = Service(id="service-1", salon_id=salon.id, name="Haircut", duration_minutes=60, price_in_paisa=80000)
    staff = Staff(id="staff-1", salon_id=salon.id, name="Asha", is_active=True)
    customer = Customer(id=CUSTOMER_ID, full_name="Priya")
    other_customer = Customer(id=OTHER_CUSTOMER_ID, full_name="Rahul")

    my_appointment = Appointment(
        id="appt-1",
        customer_id=CUSTOMER_ID,
        salon_id=salon.id,
        service_id=service.id,
        staff_id=staff.id,
        booking_date=today + timedelta(days=2),
        booking_time="09:00",
        duration_minutes=60,
        status="confirmed",
    )
    other_appointment = Appointment(
        id="appt-2",
        customer_id=OTHER_CUSTOMER_ID,
        salon_id=salon.id,
        service_id=service.id,
        staff_id=staff.id,
        booking_date=today + timedelta(days=3),
        booking_time="10:00",
        duration_minutes=60,
        status="confirmed",
    )
    cancelled_appointment = Appointment(
        id="appt-3",
        customer_id=CUSTOMER_ID,
        salon_id=salon.id,
        service_id=service.id,
        staff_id=staff.id,
        booking_date=today + timedelta(days=4),
        booking_time="11:00",
        duration_minutes=60,
        status="cancelled",
    )

    shampoo = Product(id="prod-shampoo", salon_id=salon.id, name="Argan Shampoo", retail_price_in_paisa=50000, stock=5)
    serum = Product(id="prod-serum", salon_id=salon.id, name="Hair Serum", retail_price_in_paisa=30000, stock=20)
    retired = Product(id="prod-retired", name="Old Gel", retail_price_in_paisa=10000, stock=10, is_active=False)
    sold_out = Product(id="prod-sold-out", name="Clay Mask", retail_price_in_paisa=20000, stock=0)
    oil = Product(id="prod-oil", name="Hair Oil", retail_price_in_paisa=25000, stock=50)
    oil_small = ProductVariant(id="var-oil-100", product_id=oil.id, value="100 ml", stock=2)

    welcome = Coupon(id="coupon-1", code="WELCOME10", discount_percent=10)
    big_spender = Coupon(id="coupon-2", code="BIGSPEND", discount_in_paisa=50000, min_subtotal_in_paisa=10000000)
    expired = Coupon(id="coupon-3", code="OLDDEAL", discount_percent=50, expires_at=datetime(today.year - 1, 1, 1))

    db_session.add_all(
        [
            salon,
            service,
            staff,
            customer,
            other_customer,
            my_appointment,
            other_appointment,
            cancelled_appointment,
            shampoo,
            serum,
            retired,
            sold_out,
            oil,
            oil_small,
            welcome,
            big_spender,
            expired,
        ]
    )
    db_session.commit()
    return SimpleNamespace(
        salon=salon,
        service=service,
        staff=staff,
        my_appointment=my_appointment,
        other_appointment=other_appointment,
        cancelled_appointment=cancelled_appointment,
        shampoo=shampoo,
        serum=serum,
        retired=retired,
        sold_out=sold_out,
        oil=oil,
        oil_small=oil_small,
    )


@pytest.fixture
def customer_token():
    return create_access_token(CUSTOMER_ID, ["customer"])


@pytest.fixture
def auth_headers(customer_token):
    return {"Authorization": f"Bearer {customer_token}"}


@pytest.fixture
def staff_headers():
    return {"Authorization": f"Bearer {create_access_token('staff-user', ['staff'])}"}


@pytest.fixture
async def api_gateway(client, customer_token):
    """Persistence Gateway client wired straight into the ASGI app"""
    gateway = PersistenceGateway.create(
        base_url="http://testserver/api",
        access_token=customer_token,
        transport=httpx.ASGITransport(app=app),
    )
    yield gateway
    await gateway.aclose()


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def query_cache():
    return QueryCache()


@pytest.fixture
def guest_store(fake_redis):
    return GuestCartStore(LocalStore("device-1", redis_client=fake_redis))


@pytest.fixture
def scheduling_gateway():
    return FakeSchedulingGateway()


@pytest.fixture
def cart_gateway():
    return FakeCartGateway()


@pytest.fixture
def appointment_factory():
    return make_appointment


@pytest.fixture
def server_item_factory():
    return make_server_item
