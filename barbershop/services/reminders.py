# barbershop/services/reminders.py

"""
Reminder scanner.

Background task that runs periodically (and on demand):
    1. Take the storage-backed run guard; if another scan holds it, skip.
    2. For every configured window, find pending/confirmed appointments
       starting in [now + floor, now + window) that have no successful
       delivery for that window and still have attempts left. A window's
       floor is the next shorter window, so each start gets one reminder
       per distance.
    3. Send one reminder per match. The delivery is marked sent only after
       the notifier returns; failures are counted and reported, and the
       rest of the batch keeps going.
    4. Release the guard, storing the run report.

Once an appointment's start time passes it drops out of every window, so
a contact that keeps failing is retried at most until then (or until
``REMINDER_MAX_ATTEMPTS``).
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy import or_, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from barbershop.config import settings
from barbershop.core import shop_now, slot_start, utcnow
from barbershop.errors import BookingError, NotifierError, returns_result
from barbershop.models import ACTIVE_STATUSES, Appointment, ReminderDelivery, ScannerState
from barbershop.notifier import Notifier, default_notifier
from barbershop.repository import AppointmentRepository, storage_errors

logger = logging.getLogger(__name__)

SCANNER_NAME = "reminders"


@dataclass(frozen=True)
class ReminderWindow:
    """Starts in ``[now + floor, now + lookahead)`` are due for this window."""

    name: str
    lookahead: timedelta
    floor: timedelta = timedelta(0)


def configured_windows(windows: Optional[Dict[str, int]] = None) -> List[ReminderWindow]:
    """Windows from ``{name: minutes}``, defaulting to ``settings.REMINDER_WINDOWS``.

    Each window starts where the next shorter one ends, so an appointment
    already inside ``upcoming`` is not also sent ``day_before``.
    """
    source = settings.REMINDER_WINDOWS if windows is None else windows
    lookaheads = sorted(set(source.values()))
    result = []
    for name, minutes in source.items():
        floor = max((m for m in lookaheads if m < minutes), default=0)
        result.append(ReminderWindow(name, timedelta(minutes=minutes), timedelta(minutes=floor)))
    return result


@dataclass
class ScanReport:
    reminders_sent: int = 0
    errors: List[str] = field(default_factory=list)
    skipped: bool = False

    def to_dict(self) -> dict:
        return {"reminders_sent": self.reminders_sent, "errors": list(self.errors), "skipped": self.skipped}


class ScanGuard:
    """Idle/running flag kept in ``scanner_state`` so every process sees it.

    A lease bounds how long a crashed scanner can keep the flag set.
    """

    def __init__(self, session: Session, name: str = SCANNER_NAME, lease_seconds: Optional[int] = None):
        self.session = session
        self.name = name
        self.lease = timedelta(seconds=lease_seconds or settings.SCANNER_LEASE_SECONDS)

    def _ensure_row(self) -> None:
        with storage_errors(self.session, "preparing scanner state"):
            if self.session.get(ScannerState, self.name) is not None:
                return
            self.session.add(ScannerState(name=self.name))
            try:
                self.session.commit()
            except IntegrityError:
                # created by a concurrent process
                self.session.rollback()

    def acquire(self) -> bool:
        self._ensure_row()
        started = utcnow()
        stmt = (
            update(ScannerState)
            .where(ScannerState.name == self.name)
            .where(or_(ScannerState.is_running == False, ScannerState.lease_expires_at < started))  # noqa: E712
            .values(is_running=True, started_at=started, lease_expires_at=started + self.lease)
            .execution_options(synchronize_session=False)
        )
        with storage_errors(self.session, "acquiring scanner lock"):
            result = self.session.exec(stmt)
            if result.rowcount != 1:
                self.session.rollback()
                return False
            self.session.commit()
        return True

    def release(self, report: ScanReport) -> None:
        stmt = (
            update(ScannerState)
            .where(ScannerState.name == self.name)
            .values(
                is_running=False,
                lease_expires_at=None,
                last_run_at=utcnow(),
                last_result=report.to_dict(),
            )
            .execution_options(synchronize_session=False)
        )
        with storage_errors(self.session, "releasing scanner lock"):
            self.session.exec(stmt)
            self.session.commit()


def find_due_appointments(
    session: Session,
    window: ReminderWindow,
    now: datetime,
    max_attempts: Optional[int] = None,
) -> List[Appointment]:
    max_attempts = settings.REMINDER_MAX_ATTEMPTS if max_attempts is None else max_attempts
    window_start = now + window.floor
    window_end = now + window.lookahead

    candidates = AppointmentRepository.list_appointments(
        session,
        start=window_start.date(),
        end=window_end.date(),
        statuses=ACTIVE_STATUSES,
    )
    due = [
        a for a in candidates
        if window_start <= slot_start(a.appointment_date, a.time_slot) < window_end
    ]
    if not due:
        return []

    with storage_errors(session, "loading reminder markers"):
        deliveries = session.exec(
            select(ReminderDelivery)
            .where(ReminderDelivery.window_name == window.name)
            .where(ReminderDelivery.appointment_id.in_([a.id for a in due]))
        ).all()
    exhausted = {
        d.appointment_id
        for d in deliveries
        if d.sent_at is not None or d.attempts >= max_attempts
    }
    return [a for a in due if a.id not in exhausted]


def record_delivery(session: Session, appointment_id: int, window_name: str, error: Optional[str] = None) -> ReminderDelivery:
    with storage_errors(session, "recording reminder delivery"):
        delivery = session.exec(
            select(ReminderDelivery)
            .where(ReminderDelivery.appointment_id == appointment_id)
            .where(ReminderDelivery.window_name == window_name)
        ).first()
        if delivery is None:
            delivery = ReminderDelivery(appointment_id=appointment_id, window_name=window_name)
        delivery.attempts += 1
        delivery.updated_at = utcnow()
        if error is None:
            delivery.sent_at = delivery.updated_at
            delivery.last_error = None
        else:
            delivery.last_error = error[:500]
        session.add(delivery)
        session.commit()
        session.refresh(delivery)
    return delivery


def _dispatch(session: Session, notifier: Notifier, appointment: Appointment, window: ReminderWindow, report: ScanReport) -> None:
    try:
        notifier.send_reminder(appointment, window.name)
    except Exception as exc:
        message = exc.message if isinstance(exc, NotifierError) else str(exc) or exc.__class__.__name__
        logger.warning("Reminder %s for appointment %s failed: %s", window.name, appointment.id, message)
        report.errors.append(f"appointment {appointment.id} ({window.name}): {message}")
        record_delivery(session, appointment.id, window.name, error=message)
        return

    record_delivery(session, appointment.id, window.name)
    report.reminders_sent += 1
    logger.info("Reminder %s sent for appointment %s", window.name, appointment.id)


def run_reminder_scan(
    session: Session,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
    windows: Optional[Dict[str, int]] = None,
) -> ScanReport:
    """One guarded scan; overlapping calls return a skipped report."""
    notifier = notifier or default_notifier
    guard = ScanGuard(session)

    if not guard.acquire():
        logger.warning("Reminder scan skipped: previous scan still running")
        return ScanReport(skipped=True)

    now = now or shop_now()
    report = ScanReport()
    logger.info("Starting reminder scan at %s", now.isoformat())
    try:
        for window in configured_windows(windows):
            try:
                due = find_due_appointments(session, window, now)
            except BookingError as exc:
                report.errors.append(f"{window.name}: {exc.message}")
                continue
            logger.info("Found %d appointments for %s reminders", len(due), window.name)
            for appointment in due:
                appointment_id = appointment.id
                try:
                    _dispatch(session, notifier, appointment, window, report)
                except BookingError as exc:
                    report.errors.append(f"appointment {appointment_id} ({window.name}): {exc.message}")
    finally:
        guard.release(report)

    logger.info("Reminder scan completed: %d sent, %d errors", report.reminders_sent, len(report.errors))
    return report


def get_scanner_status(session: Session) -> dict:
    with storage_errors(session, "loading scanner status"):
        state = session.get(ScannerState, SCANNER_NAME, populate_existing=True)
    return {
        "is_running": bool(state and state.is_running),
        "started_at": state.started_at if state else None,
        "last_run_at": state.last_run_at if state else None,
        "last_result": state.last_result if state else None,
        "interval_minutes": settings.REMINDER_SCAN_INTERVAL_MINUTES,
        "windows": dict(settings.REMINDER_WINDOWS),
    }


@returns_result
def trigger_reminder_scan(session: Session, notifier: Optional[Notifier] = None) -> ScanReport:
    """Manual trigger; the same guarded scan the scheduler runs."""
    return run_reminder_scan(session, notifier)


@returns_result
def reminder_status(session: Session) -> dict:
    return get_scanner_status(session)


class ReminderScheduler:
    """Timer driving ``run_reminder_scan``; shares the guard with manual triggers."""

    def __init__(self, engine: Engine, notifier: Optional[Notifier] = None, interval_minutes: Optional[int] = None):
        self.engine = engine
        self.notifier = notifier or default_notifier
        self.interval = timedelta(minutes=interval_minutes or settings.REMINDER_SCAN_INTERVAL_MINUTES)
        self.next_run_at: Optional[datetime] = None
        self._task: Optional[asyncio.Task] = None

    def run_once(self) -> ScanReport:
        with Session(self.engine) as session:
            return run_reminder_scan(session, self.notifier)

    async def _loop(self) -> None:
        while True:
            self.next_run_at = utcnow() + self.interval
            await asyncio.sleep(self.interval.total_seconds())
            try:
                await asyncio.to_thread(self.run_once)
            except Exception:
                logger.exception("Reminder scan failed")

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())
            logger.info("Reminder scheduler started (every %s)", self.interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Reminder scheduler stopped")
