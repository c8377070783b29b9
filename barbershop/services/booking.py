# barbershop/services/booking.py

"""
Booking conflict guard and status transitions.

Occupancy of (barber, date, slot) is decided by the database: the partial
unique index ``uq_appointments_active_slot`` rejects a second active row,
so two concurrent bookings of one triple yield exactly one success no
matter how many processes are writing.
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from barbershop.core import normalize_slot, parse_date, shop_now, slot_start
from barbershop.errors import NotEligible, NotFound, SlotTaken, ValidationError, returns_result
from barbershop.models import ACTIVE_STATUSES, Appointment
from barbershop.notifier import APPOINTMENT_CONFIRMED, BOOKING_CREATED, Notifier, default_notifier, notify_quietly
from barbershop.repository import AppointmentRepository
from barbershop.schemas import AppointmentStatus
from barbershop.services.availability import ensure_slot_bookable

logger = logging.getLogger(__name__)


def create_booking(
    session: Session,
    barber_id: str,
    customer_id: str,
    service_id: str,
    target_date: Union[str, date],
    time_slot: str,
    notes: Optional[str] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> Appointment:
    missing = [
        name
        for name, value in (("barber_id", barber_id), ("customer_id", customer_id), ("service_id", service_id))
        if not value
    ]
    if missing:
        raise ValidationError(f"missing required fields: {', '.join(missing)}")

    day = parse_date(target_date)
    slot = normalize_slot(time_slot)
    now = now or shop_now()
    if slot_start(day, slot) <= now:
        raise ValidationError("cannot book an appointment in the past")

    # 1) template membership + fast occupancy check
    ensure_slot_bookable(session, barber_id, day, slot)

    # 2) the insert itself is the authoritative check
    try:
        appointment = AppointmentRepository.create_appointment(
            session,
            customer_id=customer_id,
            barber_id=barber_id,
            service_id=service_id,
            appointment_date=day,
            time_slot=slot,
            status=AppointmentStatus.pending,
            notes=notes,
            reschedule_count=0,
        )
    except IntegrityError:
        logger.warning("Slot %s %s for barber %s taken by a concurrent booking", day, slot, barber_id)
        raise SlotTaken()

    logger.info(
        "Booked appointment %s: barber %s, customer %s, %s %s",
        appointment.id, barber_id, customer_id, day, slot,
    )
    notify_quietly(notifier or default_notifier, appointment, BOOKING_CREATED)
    return appointment


def transition_status(
    session: Session,
    appointment_id: int,
    target: AppointmentStatus,
    allowed_from=ACTIVE_STATUSES,
) -> Appointment:
    current = AppointmentRepository.get(session, appointment_id)
    if current is None:
        raise NotFound(f"appointment {appointment_id} not found")

    updated = AppointmentRepository.update_appointment(
        session,
        appointment_id,
        Appointment.status.in_(list(allowed_from)),
        status=target,
    )
    if updated is None:
        raise NotEligible(
            NotEligible.INVALID_TRANSITION,
            f"cannot move appointment {appointment_id} from {current.status.value} to {target.value}",
        )
    logger.info("Appointment %s: %s -> %s", appointment_id, current.status.value, target.value)
    return updated


@returns_result
def book_appointment(
    session: Session,
    barber_id: str,
    customer_id: str,
    service_id: str,
    target_date: Union[str, date],
    time_slot: str,
    notes: Optional[str] = None,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> Appointment:
    return create_booking(
        session, barber_id, customer_id, service_id, target_date, time_slot,
        notes=notes, notifier=notifier, now=now,
    )


@returns_result
def confirm_appointment(session: Session, appointment_id: int, notifier: Optional[Notifier] = None) -> Appointment:
    appointment = transition_status(
        session, appointment_id, AppointmentStatus.confirmed, allowed_from=(AppointmentStatus.pending,),
    )
    notify_quietly(notifier or default_notifier, appointment, APPOINTMENT_CONFIRMED)
    return appointment


@returns_result
def cancel_appointment(session: Session, appointment_id: int) -> Appointment:
    return transition_status(session, appointment_id, AppointmentStatus.cancelled)


@returns_result
def complete_appointment(session: Session, appointment_id: int) -> Appointment:
    return transition_status(session, appointment_id, AppointmentStatus.completed)


@returns_result
def list_customer_appointments(
    session: Session,
    customer_id: str,
    status: Optional[AppointmentStatus] = None,
) -> List[Appointment]:
    return AppointmentRepository.list_appointments(
        session,
        customer_id=customer_id,
        statuses=[status] if status else None,
    )


@returns_result
def list_barber_appointments(
    session: Session,
    barber_id: str,
    on_date: Optional[Union[str, date]] = None,
    status: Optional[AppointmentStatus] = None,
) -> List[Appointment]:
    day = parse_date(on_date) if on_date is not None else None
    return AppointmentRepository.list_appointments(
        session,
        barber_id=barber_id,
        start=day,
        end=day,
        statuses=[status] if status else None,
    )
