"""Slot service - availability computation and reschedule validation"""

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...cache import get_appointments_cached, invalidate_appointments_cache, set_appointments_cached
from ...config import (
    APPOINTMENTS_CACHE_TTL,
    DEFAULT_CLOSING_TIME,
    DEFAULT_OPENING_TIME,
    RESCHEDULE_WINDOW_DAYS,
    SLOT_INTERVAL_MINUTES,
)
from ...models import Appointment as AppointmentRow
from ...models import Customer, Salon
from .repository import AppointmentRepository
from .schemas import Appointment, RescheduleRequest, TimeSlot
from .time_utils import from_minutes, to_minutes

logger = logging.getLogger(__name__)

CLOSED_STATUSES = ("cancelled", "completed")


def serialize_appointment(appointment: AppointmentRow) -> Appointment:
    return Appointment(
        id=appointment.id,
        salonId=appointment.salon_id,
        salonName=appointment.salon.name if appointment.salon else None,
        serviceId=appointment.service_id,
        serviceName=appointment.service.name if appointment.service else "",
        staffId=appointment.staff_id,
        staffName=appointment.staff.name if appointment.staff else None,
        bookingDate=appointment.booking_date,
        bookingTime=appointment.booking_time,
        duration=appointment.duration_minutes,
        status=appointment.status,
    )


def _busy_intervals(appointments: list[AppointmentRow]) -> list[tuple[int, int]]:
    intervals = []
    for a in appointments:
        try:
            start = to_minutes(a.booking_time)
        except ValueError:
            logger.debug(f"Failed to parse booking time for appointment {a.id}: {a.booking_time}")
            continue
        intervals.append((start, start + int(a.duration_minutes or 0)))
    return intervals


class SlotService:
    """Service layer for slot availability and rescheduling"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()

    def _opening_hours(self, salon: Salon) -> tuple[int, int, int]:
        opening = to_minutes(salon.opening_time or DEFAULT_OPENING_TIME)
        closing = to_minutes(salon.closing_time or DEFAULT_CLOSING_TIME)
        interval = salon.slot_interval_minutes or SLOT_INTERVAL_MINUTES
        return opening, closing, interval

    def _build_slots(
        self,
        salon: Salon,
        day: date,
        duration: int,
        staff_id: Optional[str],
        now: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[TimeSlot]:
        opening, closing, interval = self._opening_hours(salon)

        appointments = self.repo.get_active_appointments_on(
            self.db, salon.id, day, staff_id=staff_id, exclude_appointment_id=exclude_appointment_id
        )
        busy = _busy_intervals(appointments)

        # One chair per active staff member when no particular staff is requested
        capacity = 1 if staff_id else max(self.repo.count_active_staff(self.db, salon.id), 1)

        today = now.date()
        now_minutes = now.hour * 60 + now.minute

        slots = []
        start = opening
        while start + duration <= closing:
            end = start + duration
            overlapping = sum(1 for b_start, b_end in busy if b_start < end and start < b_end)
            available = overlapping < capacity
            if day < today or (day == today and start <= now_minutes):
                available = False
            slots.append(TimeSlot(time=from_minutes(start), available=available))
            start += interval

        return slots

    def get_available_slots(
        self,
        salon_id: str,
        service_id: str,
        day: date,
        staff_id: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[TimeSlot]:
        """Every candidate start time for the service on that day, each flagged available or not"""
        now = now or datetime.now()

        salon = self.repo.get_salon(self.db, salon_id)
        if not salon:
            raise HTTPException(status_code=404, detail="Salon not found")

        service = self.repo.get_service(self.db, service_id, salon_id)
        if not service:
            raise HTTPException(status_code=404, detail="Service not found")

        if staff_id and not self.repo.get_staff(self.db, staff_id, salon_id):
            raise HTTPException(status_code=404, detail="Staff member not found")

        slots = self._build_slots(salon, day, service.duration_minutes, staff_id, now)
        logger.info(
            f"📅 Slots for salon {salon_id} on {day.isoformat()}: "
            f"{sum(1 for s in slots if s.available)}/{len(slots)} available"
        )
        return slots

    def reschedule(
        self,
        appointment_id: str,
        customer: Customer,
        data: RescheduleRequest,
        now: Optional[datetime] = None,
    ) -> Appointment:
        """Move an appointment to a new date/time after re-checking the slot is still free"""
        now = now or datetime.now()
        today = now.date()

        appointment = self.repo.get_customer_appointment(self.db, appointment_id, customer.id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")

        if appointment.status in CLOSED_STATUSES:
            raise HTTPException(
                status_code=400, detail=f"Cannot reschedule a {appointment.status} appointment"
            )

        new_date = data.bookingDate
        if new_date < today:
            raise HTTPException(status_code=400, detail="Cannot reschedule to a past date")
        if new_date > today + timedelta(days=RESCHEDULE_WINDOW_DAYS):
            raise HTTPException(
                status_code=400,
                detail=f"Appointments can only be booked up to {RESCHEDULE_WINDOW_DAYS} days ahead",
            )

        slots = self._build_slots(
            appointment.salon,
            new_date,
            appointment.duration_minutes,
            appointment.staff_id,
            now,
            exclude_appointment_id=appointment.id,
        )
        slot = next((s for s in slots if s.time == data.bookingTime), None)
        if slot is None:
            raise HTTPException(
                status_code=400, detail="Selected time is not a bookable slot for this salon"
            )
        if not slot.available:
            logger.warning(
                f"⚠️ Reschedule conflict for appointment {appointment.id}: "
                f"{new_date.isoformat()} {data.bookingTime}"
            )
            raise HTTPException(status_code=409, detail="Selected time slot is no longer available")

        old_date, old_time = appointment.booking_date, appointment.booking_time
        appointment = self.repo.update_schedule(self.db, appointment, new_date, data.bookingTime)
        invalidate_appointments_cache(customer.id)

        logger.info(
            f"✅ Appointment {appointment.id} rescheduled from {old_date.isoformat()} {old_time} "
            f"to {new_date.isoformat()} {data.bookingTime}"
        )
        return serialize_appointment(appointment)

    def list_appointments(
        self, customer: Customer, status: Optional[str] = None, today: Optional[date] = None
    ) -> list[dict]:
        """Customer appointment list (upcoming / history / all), served from cache when warm"""
        cached = get_appointments_cached(customer.id, status)
        if cached is not None:
            return cached

        rows = self.repo.list_customer_appointments(
            self.db, customer.id, status, today or datetime.now().date()
        )
        appointments = [serialize_appointment(a).model_dump(mode="json") for a in rows]
        set_appointments_cached(customer.id, status, appointments, ttl=APPOINTMENTS_CACHE_TTL)
        return appointments
