# barbershop/services/availability.py

"""
Availability resolver.

Free vs. booked slots for one barber on one date, computed from the weekly
template of that weekday and the non-cancelled appointments of the day.
The result is only advisory: the booking guard re-checks occupancy at
commit time.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Optional, Union

from sqlmodel import Session

from barbershop.core import normalize_slot, parse_date, shop_now
from barbershop.errors import InvalidSlot, NotFound, SlotTaken, ValidationError, returns_result
from barbershop.repository import AppointmentRepository, ScheduleRepository
from barbershop.schemas import AppointmentStatus, DayOfWeek

logger = logging.getLogger(__name__)

# every status except cancelled keeps the slot occupied
OCCUPYING_STATUSES = (
    AppointmentStatus.pending,
    AppointmentStatus.confirmed,
    AppointmentStatus.completed,
)


@dataclass
class Availability:
    barber_id: str
    day_of_week: DayOfWeek
    date: date
    available_slots: List[str] = field(default_factory=list)
    booked_slots: List[str] = field(default_factory=list)


def load_template(session: Session, barber_id: str, day: date) -> List[str]:
    """Ordered, normalised slot labels of the barber's active template for ``day``."""
    weekday = DayOfWeek.from_date(day)
    schedule = ScheduleRepository.get_active_schedule(session, barber_id, weekday)
    if schedule is None:
        raise NotFound(f"barber {barber_id} has no active schedule on {weekday.value}")

    template: List[str] = []
    for raw in schedule.time_slots or []:
        slot = normalize_slot(raw)
        if slot not in template:
            template.append(slot)
    return template


def occupied_slots(
    session: Session,
    barber_id: str,
    day: date,
    exclude_appointment_id: Optional[int] = None,
) -> set:
    appointments = AppointmentRepository.list_appointments(
        session,
        barber_id=barber_id,
        start=day,
        end=day,
        statuses=OCCUPYING_STATUSES,
    )
    return {
        normalize_slot(a.time_slot)
        for a in appointments
        if a.id != exclude_appointment_id
    }


def resolve_availability(
    session: Session,
    barber_id: str,
    target_date: Union[str, date],
    now: Optional[datetime] = None,
) -> Availability:
    day = parse_date(target_date)
    now = now or shop_now()
    if day < now.date():
        raise ValidationError(f"cannot query availability for past date {day.isoformat()}")

    template = load_template(session, barber_id, day)
    occupied = occupied_slots(session, barber_id, day)

    available = [slot for slot in template if slot not in occupied]
    booked = [slot for slot in template if slot in occupied]

    stray = occupied.difference(template)
    if stray:
        # booked before a schedule edit; still blocks, not reported
        logger.debug("Barber %s on %s has bookings outside template: %s", barber_id, day, sorted(stray))

    return Availability(
        barber_id=barber_id,
        day_of_week=DayOfWeek.from_date(day),
        date=day,
        available_slots=available,
        booked_slots=booked,
    )


def ensure_slot_bookable(
    session: Session,
    barber_id: str,
    day: date,
    slot: str,
    exclude_appointment_id: Optional[int] = None,
) -> None:
    """Raise InvalidSlot when ``slot`` is not in the active template, SlotTaken when occupied."""
    try:
        template = load_template(session, barber_id, day)
    except NotFound:
        raise InvalidSlot(
            f"barber {barber_id} does not work on {DayOfWeek.from_date(day).value}",
        )
    if slot not in template:
        raise InvalidSlot(f"{slot} is not a bookable slot for barber {barber_id} on {day.isoformat()}")

    if slot in occupied_slots(session, barber_id, day, exclude_appointment_id):
        raise SlotTaken()


@returns_result
def get_availability(
    session: Session,
    barber_id: str,
    target_date: Union[str, date],
    now: Optional[datetime] = None,
) -> Availability:
    return resolve_availability(session, barber_id, target_date, now=now)
