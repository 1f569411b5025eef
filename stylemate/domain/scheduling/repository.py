"""Scheduling repository - Database operations for salons and appointments"""

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Salon, Service, Staff

# Statuses that occupy a slot on the calendar
ACTIVE_STATUSES = ("pending", "confirmed")


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_salon(db: Session, salon_id: str) -> Optional[Salon]:
        return db.query(Salon).filter(Salon.id == salon_id).first()

    @staticmethod
    def get_service(db: Session, service_id: str, salon_id: str) -> Optional[Service]:
        return (
            db.query(Service)
            .filter(Service.id == service_id, Service.salon_id == salon_id)
            .first()
        )

    @staticmethod
    def get_staff(db: Session, staff_id: str, salon_id: str) -> Optional[Staff]:
        return (
            db.query(Staff)
            .filter(Staff.id == staff_id, Staff.salon_id == salon_id, Staff.is_active.is_(True))
            .first()
        )

    @staticmethod
    def count_active_staff(db: Session, salon_id: str) -> int:
        return (
            db.query(Staff)
            .filter(Staff.salon_id == salon_id, Staff.is_active.is_(True))
            .count()
        )

    @staticmethod
    def get_active_appointments_on(
        db: Session,
        salon_id: str,
        day: date,
        staff_id: Optional[str] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[Appointment]:
        """Appointments that block time on the salon (or staff member) calendar for a day"""
        query = db.query(Appointment).filter(
            Appointment.salon_id == salon_id,
            Appointment.booking_date == day,
            Appointment.status.in_(ACTIVE_STATUSES),
        )
        if staff_id:
            query = query.filter(Appointment.staff_id == staff_id)
        if exclude_appointment_id:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.all()

    @staticmethod
    def get_customer_appointment(
        db: Session, appointment_id: str, customer_id: str
    ) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(
                joinedload(Appointment.salon),
                joinedload(Appointment.service),
                joinedload(Appointment.staff),
            )
            .filter(Appointment.id == appointment_id, Appointment.customer_id == customer_id)
            .first()
        )

    @staticmethod
    def list_customer_appointments(
        db: Session, customer_id: str, status: Optional[str], today: date
    ) -> list[Appointment]:
        """
        status='upcoming': active appointments from today on, soonest first.
        status='history': past, cancelled or completed appointments, latest first.
        """
        query = (
            db.query(Appointment)
            .options(
                joinedload(Appointment.salon),
                joinedload(Appointment.service),
                joinedload(Appointment.staff),
            )
            .filter(Appointment.customer_id == customer_id)
        )

        if status == "upcoming":
            query = query.filter(
                Appointment.booking_date >= today,
                Appointment.status.in_(ACTIVE_STATUSES),
            ).order_by(Appointment.booking_date.asc(), Appointment.booking_time.asc())
        elif status == "history":
            query = query.filter(
                (Appointment.booking_date < today)
                | (Appointment.status.in_(("cancelled", "completed")))
            ).order_by(Appointment.booking_date.desc(), Appointment.booking_time.desc())
        else:
            query = query.order_by(Appointment.booking_date.desc(), Appointment.booking_time.desc())

        return query.all()

    @staticmethod
    def update_schedule(
        db: Session, appointment: Appointment, booking_date: date, booking_time: str
    ) -> Appointment:
        appointment.booking_date = booking_date
        appointment.booking_time = booking_time
        db.commit()
        db.refresh(appointment)
        return appointment
