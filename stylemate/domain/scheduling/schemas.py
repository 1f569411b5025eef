"""Scheduling domain schemas - Pydantic models for slots and appointments"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_time_24h


class TimeSlot(BaseModel):
    """A candidate appointment time; recomputed on every date selection, never stored"""

    time: str  # HH:MM
    available: bool


class AvailableSlotsResponse(BaseModel):
    slots: list[TimeSlot] = []


class Appointment(BaseModel):
    """A booked service occurrence as the customer sees it"""

    id: str
    salonId: str
    salonName: Optional[str] = None
    serviceId: str
    serviceName: str
    staffId: Optional[str] = None
    staffName: Optional[str] = None
    bookingDate: date
    bookingTime: str  # HH:MM 24-hour
    duration: int  # minutes
    status: str = "confirmed"


class AppointmentListResponse(BaseModel):
    appointments: list[Appointment] = []


class RescheduleRequest(BaseModel):
    """Body of PATCH /customer/appointments/{id}/reschedule"""

    bookingDate: date
    bookingTime: str

    @field_validator("bookingTime")
    @classmethod
    def validate_booking_time(cls, v):
        return validate_time_24h(v)
