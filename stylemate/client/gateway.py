import logging
from datetime import date
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ValidationError

from ..config import API_BASE_URL
from ..domain.cart.schemas import ApplyCouponResponse, CartResponse, ServerCart, ServerCartItem
from ..domain.scheduling.schemas import (
    Appointment,
    AppointmentListResponse,
    AvailableSlotsResponse,
    TimeSlot,
)
from ..shared.http import GatewayError, send_request

logger = logging.getLogger(__name__)


def _validate(model: type[BaseModel], data: Any) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.error(f"❌ Unexpected {model.__name__} payload from gateway: {e}")
        raise GatewayError(f"Malformed {model.__name__} response", status_code=None) from e


class PersistenceGateway:
    """Client for the Stylemate REST API (JSON over HTTP, credentials included)"""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    @classmethod
    def create(
        cls,
        base_url: str = API_BASE_URL,
        access_token: Optional[str] = None,
        cookies: Optional[dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "PersistenceGateway":
        headers = {"Accept": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        client = httpx.AsyncClient(
            base_url=base_url, headers=headers, cookies=cookies, transport=transport
        )
        return cls(client)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "PersistenceGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # Scheduling

    async def get_available_slots(
        self, salon_id: str, service_id: str, day: date, staff_id: Optional[str] = None
    ) -> list[TimeSlot]:
        params = {"date": day.isoformat(), "serviceId": service_id}
        if staff_id:
            params["staffId"] = staff_id
        data = await send_request(
            self.client, "GET", f"/salons/{salon_id}/available-slots", params=params
        )
        return _validate(AvailableSlotsResponse, data or {}).slots

    async def reschedule_appointment(
        self, appointment_id: str, booking_date: date, booking_time: str
    ) -> Appointment:
        data = await send_request(
            self.client,
            "PATCH",
            f"/customer/appointments/{appointment_id}/reschedule",
            json={"bookingDate": booking_date.isoformat(), "bookingTime": booking_time},
        )
        return _validate(Appointment, data)

    async def list_appointments(self, status: Optional[str] = None) -> list[Appointment]:
        params = {"status": status} if status else None
        data = await send_request(self.client, "GET", "/customer/appointments", params=params)
        return _validate(AppointmentListResponse, data or {}).appointments

    # Cart

    async def get_cart(self) -> ServerCart:
        data = await send_request(self.client, "GET", "/cart")
        return _validate(CartResponse, data).cart

    async def add_cart_item(
        self, product_id: str, quantity: int = 1, variant_id: Optional[str] = None
    ) -> ServerCartItem:
        body: dict[str, Any] = {"productId": product_id, "quantity": quantity}
        if variant_id:
            body["variantId"] = variant_id
        data = await send_request(self.client, "POST", "/cart", json=body)
        return _validate(ServerCartItem, data)

    async def remove_cart_item(self, item_id: str) -> None:
        await send_request(self.client, "DELETE", f"/cart/items/{item_id}")

    async def update_cart_item(self, item_id: str, quantity: int) -> Optional[ServerCartItem]:
        """Returns the updated line, or None when the server removed it"""
        data = await send_request(
            self.client, "PUT", f"/cart/items/{item_id}", json={"quantity": quantity}
        )
        if not data or (isinstance(data, dict) and data.get("removed")):
            return None
        return _validate(ServerCartItem, data)

    async def apply_coupon(self, code: str) -> ApplyCouponResponse:
        data = await send_request(self.client, "POST", "/cart/apply-coupon", json={"code": code})
        return _validate(ApplyCouponResponse, data)
