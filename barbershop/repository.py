# barbershop/repository.py

"""Storage operations for schedules and appointments."""

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterable, Optional, Sequence

from sqlalchemy import delete, update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlmodel import Session, select

from barbershop.core import utcnow
from barbershop.errors import StorageError
from barbershop.models import Appointment, ReminderDelivery, WeeklySchedule
from barbershop.schemas import AppointmentStatus, DayOfWeek

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(session: Session, action: str):
    """Roll back and surface driver failures as a retryable StorageError.

    IntegrityError passes through untouched; callers decide what a
    constraint violation means.
    """
    try:
        yield
    except IntegrityError:
        session.rollback()
        raise
    except DBAPIError as exc:
        session.rollback()
        logger.error("Storage failure while %s: %s", action, exc.__class__.__name__)
        raise StorageError(f"storage unavailable while {action}, please retry") from exc


class ScheduleRepository:
    """Weekly availability catalog."""

    @staticmethod
    def get_active_schedule(session: Session, barber_id: str, day_of_week: DayOfWeek) -> Optional[WeeklySchedule]:
        with storage_errors(session, "loading schedule"):
            return session.exec(
                select(WeeklySchedule)
                .where(WeeklySchedule.barber_id == barber_id)
                .where(WeeklySchedule.day_of_week == day_of_week)
                .where(WeeklySchedule.is_active == True)  # noqa: E712
            ).first()

    @staticmethod
    def list_schedules(session: Session, barber_id: str) -> Sequence[WeeklySchedule]:
        with storage_errors(session, "listing schedules"):
            schedules = session.exec(
                select(WeeklySchedule).where(WeeklySchedule.barber_id == barber_id)
            ).all()
        order = list(DayOfWeek)
        return sorted(schedules, key=lambda s: order.index(s.day_of_week))

    @staticmethod
    def upsert_schedule(
        session: Session,
        barber_id: str,
        day_of_week: DayOfWeek,
        time_slots: list[str],
        is_active: bool = True,
    ) -> WeeklySchedule:
        with storage_errors(session, "saving schedule"):
            schedule = session.exec(
                select(WeeklySchedule)
                .where(WeeklySchedule.barber_id == barber_id)
                .where(WeeklySchedule.day_of_week == day_of_week)
            ).first()
            if schedule is None:
                schedule = WeeklySchedule(
                    barber_id=barber_id,
                    day_of_week=day_of_week,
                    time_slots=list(time_slots),
                    is_active=is_active,
                )
            else:
                schedule.time_slots = list(time_slots)
                schedule.is_active = is_active
                schedule.updated_at = utcnow()
            session.add(schedule)
            session.commit()
            session.refresh(schedule)
        return schedule


class AppointmentRepository:
    """Booking ledger."""

    @staticmethod
    def get(session: Session, appointment_id: int) -> Optional[Appointment]:
        with storage_errors(session, "loading appointment"):
            return session.get(Appointment, appointment_id, populate_existing=True)

    @staticmethod
    def list_appointments(
        session: Session,
        barber_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        statuses: Optional[Iterable[AppointmentStatus]] = None,
        customer_id: Optional[str] = None,
    ) -> list[Appointment]:
        """Appointments with ``start <= appointment_date <= end``, ordered by start."""
        stmt = select(Appointment)
        if barber_id is not None:
            stmt = stmt.where(Appointment.barber_id == barber_id)
        if customer_id is not None:
            stmt = stmt.where(Appointment.customer_id == customer_id)
        if start is not None:
            stmt = stmt.where(Appointment.appointment_date >= start)
        if end is not None:
            stmt = stmt.where(Appointment.appointment_date <= end)
        if statuses is not None:
            stmt = stmt.where(Appointment.status.in_(list(statuses)))
        stmt = stmt.order_by(Appointment.appointment_date, Appointment.time_slot, Appointment.id)

        with storage_errors(session, "listing appointments"):
            return list(session.exec(stmt).all())

    @staticmethod
    def create_appointment(session: Session, **fields) -> Appointment:
        """Insert and commit. Raises IntegrityError when the active-slot index rejects the row."""
        appointment = Appointment(**fields)
        session.add(appointment)
        with storage_errors(session, "creating appointment"):
            session.commit()
            session.refresh(appointment)
        return appointment

    @staticmethod
    def update_appointment(
        session: Session,
        appointment_id: int,
        *conditions,
        clear_reminders: bool = False,
        **patch,
    ) -> Optional[Appointment]:
        """Conditional single-statement update.

        ``conditions`` are extra WHERE clauses checked atomically with the
        write. Returns None when no row matched them. With
        ``clear_reminders`` the appointment's reminder markers are deleted
        in the same commit.
        """
        stmt = (
            update(Appointment)
            .where(Appointment.id == appointment_id, *conditions)
            .values(**patch, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        with storage_errors(session, "updating appointment"):
            result = session.exec(stmt)
            if result.rowcount != 1:
                session.rollback()
                return None
            if clear_reminders:
                session.exec(
                    delete(ReminderDelivery)
                    .where(ReminderDelivery.appointment_id == appointment_id)
                    .execution_options(synchronize_session="fetch")
                )
            session.commit()
            return session.get(Appointment, appointment_id, populate_existing=True)
