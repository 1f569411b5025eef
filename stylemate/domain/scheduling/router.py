"""Scheduling router - slot availability and customer appointment endpoints"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import get_current_customer
from ...database import get_db
from ...models import Customer
from ...shared.validators import validate_iso_date
from .schemas import Appointment, AppointmentListResponse, AvailableSlotsResponse, RescheduleRequest
from .slot_service import SlotService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Scheduling"])


def get_slot_service(db: Session = Depends(get_db)) -> SlotService:
    """Dependency injection for SlotService"""
    return SlotService(db)


@router.get("/salons/{salon_id}/available-slots", response_model=AvailableSlotsResponse)
async def get_available_slots(
    salon_id: str,
    date: str = Query(..., description="YYYY-MM-DD"),
    serviceId: str = Query(...),
    staffId: Optional[str] = Query(None),
    service: SlotService = Depends(get_slot_service),
):
    """Public endpoint: candidate start times for a service on a date, each flagged available"""
    try:
        day = validate_iso_date(date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None

    slots = service.get_available_slots(salon_id, serviceId, day, staff_id=staffId)
    return AvailableSlotsResponse(slots=slots)


@router.get("/customer/appointments", response_model=AppointmentListResponse)
async def get_customer_appointments(
    status: Optional[Literal["upcoming", "history"]] = Query(None),
    current_customer: Customer = Depends(get_current_customer),
    service: SlotService = Depends(get_slot_service),
):
    appointments = service.list_appointments(current_customer, status)
    return {"appointments": appointments}


@router.patch("/customer/appointments/{appointment_id}/reschedule", response_model=Appointment)
async def reschedule_appointment(
    appointment_id: str,
    data: RescheduleRequest,
    current_customer: Customer = Depends(get_current_customer),
    service: SlotService = Depends(get_slot_service),
):
    """Move one of the caller's appointments to a new date and time"""
    logger.info(
        f"🔄 Reschedule requested for appointment {appointment_id} by customer {current_customer.id}"
    )
    return service.reschedule(appointment_id, current_customer, data)
