# barbershop/services/reschedule.py

"""
Reschedule policy.

An appointment may move once, only while it is pending or confirmed, only
more than ``RESCHEDULE_CUTOFF_MINUTES`` before it starts, and only if it is
the customer's next upcoming active appointment. The move keeps the row id
and is applied with one conditional UPDATE, so a concurrent reschedule or
booking cannot push the count past the limit or double-book the target
slot. Reminder markers are dropped in the same commit so the new start
time gets its own reminders.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from barbershop.config import settings
from barbershop.core import normalize_slot, parse_date, shop_now, slot_start
from barbershop.errors import NotEligible, NotFound, SlotTaken, ValidationError, returns_result
from barbershop.models import ACTIVE_STATUSES, Appointment
from barbershop.repository import AppointmentRepository
from barbershop.services.availability import ensure_slot_bookable

logger = logging.getLogger(__name__)


def check_reschedule_eligibility(
    appointment: Appointment,
    customer_appointments: Iterable[Appointment],
    now: datetime,
    cutoff_minutes: Optional[int] = None,
    max_reschedules: Optional[int] = None,
) -> Optional[str]:
    """Return the reason the appointment may not be rescheduled, or None."""
    cutoff = timedelta(minutes=settings.RESCHEDULE_CUTOFF_MINUTES if cutoff_minutes is None else cutoff_minutes)
    limit = settings.MAX_RESCHEDULES if max_reschedules is None else max_reschedules

    if appointment.status not in ACTIVE_STATUSES:
        return NotEligible.INACTIVE_STATUS
    if appointment.reschedule_count >= limit:
        return NotEligible.RESCHEDULE_LIMIT_REACHED
    # strictly more than the cutoff; exactly on it is too late
    if slot_start(appointment.appointment_date, appointment.time_slot) - now <= cutoff:
        return NotEligible.TOO_CLOSE_TO_START

    # stale appointments that were never closed do not count as "next"
    active = [
        a for a in customer_appointments
        if a.status in ACTIVE_STATUSES and slot_start(a.appointment_date, a.time_slot) > now
    ]
    if appointment.id not in {a.id for a in active}:
        active.append(appointment)
    nearest = min(active, key=lambda a: a.sort_key)
    if nearest.id != appointment.id:
        return NotEligible.NOT_NEXT_APPOINTMENT
    return None


def move_appointment(
    session: Session,
    appointment_id: int,
    new_date: Union[str, date],
    new_time_slot: str,
    now: Optional[datetime] = None,
) -> Appointment:
    day = parse_date(new_date)
    slot = normalize_slot(new_time_slot)
    now = now or shop_now()

    appointment = AppointmentRepository.get(session, appointment_id)
    if appointment is None:
        raise NotFound(f"appointment {appointment_id} not found")

    customer_appointments = AppointmentRepository.list_appointments(
        session,
        customer_id=appointment.customer_id,
        statuses=ACTIVE_STATUSES,
    )
    reason = check_reschedule_eligibility(appointment, customer_appointments, now)
    if reason is not None:
        logger.info("Reschedule of appointment %s refused: %s", appointment_id, reason)
        raise NotEligible(reason)

    if slot_start(day, slot) <= now:
        raise ValidationError("cannot reschedule to a time in the past")

    # the appointment's own slot does not count against it
    ensure_slot_bookable(session, appointment.barber_id, day, slot, exclude_appointment_id=appointment.id)

    try:
        updated = AppointmentRepository.update_appointment(
            session,
            appointment_id,
            Appointment.status.in_(list(ACTIVE_STATUSES)),
            Appointment.reschedule_count < settings.MAX_RESCHEDULES,
            appointment_date=day,
            time_slot=slot,
            clear_reminders=True,
            reschedule_count=Appointment.reschedule_count + 1,
        )
    except IntegrityError:
        logger.warning(
            "Reschedule of appointment %s lost slot %s %s to a concurrent writer",
            appointment_id, day, slot,
        )
        raise SlotTaken()

    if updated is None:
        # another request changed the row between the policy check and the write
        latest = AppointmentRepository.get(session, appointment_id)
        if latest is not None and latest.status not in ACTIVE_STATUSES:
            raise NotEligible(NotEligible.INACTIVE_STATUS)
        raise NotEligible(NotEligible.RESCHEDULE_LIMIT_REACHED)

    logger.info(
        "Rescheduled appointment %s to %s %s (count=%s)",
        appointment_id, day, slot, updated.reschedule_count,
    )
    return updated


@returns_result
def reschedule_appointment(
    session: Session,
    appointment_id: int,
    new_date: Union[str, date],
    new_time_slot: str,
    now: Optional[datetime] = None,
) -> Appointment:
    return move_appointment(session, appointment_id, new_date, new_time_slot, now=now)
