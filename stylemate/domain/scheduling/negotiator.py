"""
Client-side reschedule flow.

A RescheduleSession lives as long as one reschedule dialog:

    CLOSED -> DATE_SELECTING -> SLOTS_LOADING -> SLOT_SELECTED -> COMMITTING
           -> CLOSED (success) | SLOT_SELECTED (failure, user may retry)

Every slot fetch is tagged with a generation number; a response whose
generation is no longer current (a newer date was picked, or the dialog was
closed) is discarded.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import date
from enum import Enum
from typing import Optional

from ...client.gateway import PersistenceGateway
from ...client.notifier import Notifier
from ...client.query_cache import QueryCache
from ...config import SLOT_FETCH_DEBOUNCE_MS
from ...shared.http import GENERIC_ERROR_MESSAGE, GatewayError
from .schemas import Appointment, TimeSlot
from .time_utils import format_booking_date, format_time_12h, is_date_selectable, local_today

logger = logging.getLogger(__name__)

APPOINTMENTS_QUERY_KEY = "/customer/appointments"
RESCHEDULE_FAILED_MESSAGE = "Could not reschedule your appointment. Please try again."


class RescheduleState(str, Enum):
    CLOSED = "closed"
    DATE_SELECTING = "date_selecting"
    SLOTS_LOADING = "slots_loading"
    SLOT_SELECTED = "slot_selected"
    COMMITTING = "committing"


class RescheduleError(Exception):
    """Reschedule could not be committed; message is safe to show the customer"""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class RescheduleValidationError(RescheduleError, ValueError):
    """Preconditions not met; nothing was sent to the server"""


async def fetch_slots(
    gateway: PersistenceGateway,
    salon_id: str,
    service_id: str,
    day: date,
    staff_id: Optional[str] = None,
) -> list[TimeSlot]:
    """Slots for a date. Read path: any failure degrades to no slots."""
    try:
        return await gateway.get_available_slots(salon_id, service_id, day, staff_id=staff_id)
    except GatewayError as e:
        logger.warning(f"⚠️ Error fetching available slots for {salon_id} on {day.isoformat()}: {e}")
        return []


async def commit_reschedule(
    gateway: PersistenceGateway,
    query_cache: QueryCache,
    appointment_id: str,
    new_date: Optional[date],
    new_time: Optional[str],
    today: Optional[date] = None,
) -> Appointment:
    """
    Move an appointment. On success every cached appointment list (upcoming,
    history, unfiltered) is invalidated. Failures raise RescheduleError carrying
    the server's reason when it gave one. Never retried.
    """
    if not new_date or not new_time:
        raise RescheduleValidationError("Please select a new date and time for your appointment.")
    if not is_date_selectable(new_date, today or local_today()):
        raise RescheduleValidationError("Please select a date from today onwards.")

    try:
        updated = await gateway.reschedule_appointment(appointment_id, new_date, new_time)
    except GatewayError as e:
        if e.server_message:
            message = e.server_message
        elif e.is_transport_error:
            message = GENERIC_ERROR_MESSAGE
        else:
            message = RESCHEDULE_FAILED_MESSAGE
        logger.error(f"❌ Error rescheduling appointment {appointment_id}: {e}")
        raise RescheduleError(message, cause=e) from e

    query_cache.invalidate(APPOINTMENTS_QUERY_KEY)
    return updated


class RescheduleSession:
    """State of one reschedule dialog for one appointment"""

    def __init__(
        self,
        appointment: Appointment,
        gateway: PersistenceGateway,
        query_cache: QueryCache,
        notifier: Notifier,
        today_provider: Callable[[], date] = local_today,
        debounce_seconds: float = SLOT_FETCH_DEBOUNCE_MS / 1000,
    ):
        self.appointment = appointment
        self.gateway = gateway
        self.query_cache = query_cache
        self.notifier = notifier
        self.today_provider = today_provider
        self.debounce_seconds = debounce_seconds

        self.state = RescheduleState.CLOSED
        self.selected_date: Optional[date] = None
        self.selected_time: Optional[str] = None
        self.slots: list[TimeSlot] = []
        self.loading_slots = False
        self.rescheduling = False
        self._generation = 0

    @property
    def available_slots(self) -> list[TimeSlot]:
        return [slot for slot in self.slots if slot.available]

    @property
    def can_commit(self) -> bool:
        return bool(self.selected_date and self.selected_time) and not self.rescheduling

    def is_date_disabled(self, day: date) -> bool:
        return not is_date_selectable(day, self.today_provider())

    def open(self) -> None:
        if self.state != RescheduleState.CLOSED:
            return
        self._reset()
        self.state = RescheduleState.DATE_SELECTING

    def close(self) -> None:
        """Abandon the dialog; responses still in flight are discarded when they land"""
        self._generation += 1
        self._reset()
        self.state = RescheduleState.CLOSED

    def _reset(self) -> None:
        self.selected_date = None
        self.selected_time = None
        self.slots = []
        self.loading_slots = False
        self.rescheduling = False

    async def select_date(self, day: date) -> Optional[list[TimeSlot]]:
        """
        Select a date and load its slots.

        Returns the available slots, or None if this selection was superseded
        before its response arrived.
        """
        if self.state == RescheduleState.CLOSED:
            raise RescheduleError("The reschedule dialog is not open.")
        if self.state == RescheduleState.COMMITTING:
            raise RescheduleError("A reschedule is already in progress.")
        if self.is_date_disabled(day):
            raise RescheduleValidationError("Please select a date from today onwards.")

        self._generation += 1
        generation = self._generation

        self.selected_date = day
        self.selected_time = None
        self.slots = []
        self.loading_slots = True
        self.state = RescheduleState.SLOTS_LOADING

        if self.debounce_seconds > 0:
            await asyncio.sleep(self.debounce_seconds)
            if generation != self._generation:
                return None

        slots = await fetch_slots(
            self.gateway,
            self.appointment.salonId,
            self.appointment.serviceId,
            day,
            staff_id=self.appointment.staffId,
        )

        if generation != self._generation:
            logger.debug(f"Discarding stale slots for {day.isoformat()}")
            return None

        self.slots = slots
        self.loading_slots = False
        self.state = RescheduleState.DATE_SELECTING
        return self.available_slots

    def select_time(self, time_str: str) -> None:
        if self.state not in (RescheduleState.DATE_SELECTING, RescheduleState.SLOT_SELECTED):
            raise RescheduleError("Select a date before choosing a time.")
        if time_str not in {slot.time for slot in self.available_slots}:
            raise RescheduleValidationError(f"{format_time_12h(time_str)} is not available.")
        self.selected_time = time_str
        self.state = RescheduleState.SLOT_SELECTED

    async def commit(self) -> Appointment:
        if self.state == RescheduleState.COMMITTING:
            raise RescheduleError("A reschedule is already in progress.")
        if not self.selected_date or not self.selected_time:
            self.notifier.error(
                "Select date and time", "Please select a new date and time for your appointment."
            )
            raise RescheduleValidationError("Please select a new date and time for your appointment.")

        new_date, new_time = self.selected_date, self.selected_time
        generation = self._generation
        self.state = RescheduleState.COMMITTING
        self.rescheduling = True
        try:
            updated = await commit_reschedule(
                self.gateway,
                self.query_cache,
                self.appointment.id,
                new_date,
                new_time,
                today=self.today_provider(),
            )
        except RescheduleError as e:
            if generation == self._generation:
                self.state = RescheduleState.SLOT_SELECTED
                self.rescheduling = False
                self.notifier.error("Reschedule failed", e.message)
            raise

        if generation != self._generation:
            # Dialog closed while the request was in flight
            logger.info(f"Reschedule of {self.appointment.id} completed after dialog closed")
            return updated

        self.notifier.success(
            "Appointment rescheduled",
            f"Your {self.appointment.serviceName} appointment has been moved to "
            f"{format_booking_date(new_date)} at {format_time_12h(new_time)}.",
        )
        self.appointment = updated
        self.close()
        return updated
