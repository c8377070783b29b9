"""
Shared fixtures: a file-backed SQLite database per test (so threads can
race on it), a seeded weekly schedule and a recording notifier.
"""

from datetime import date, datetime

import pytest
from sqlmodel import Session

from barbershop.db import create_db_and_tables, make_engine
from barbershop.errors import NotifierError
from barbershop.notifier import Notifier
from barbershop.repository import ScheduleRepository
from barbershop.schemas import DayOfWeek

BARBER = "barber-1"
OTHER_BARBER = "barber-2"
CUSTOMER = "customer-1"
SERVICE = "haircut"

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
MONDAY_SLOTS = ["09:00", "10:00", "11:00"]


class RecordingNotifier(Notifier):
    """Fake transport; fails for appointment ids listed in ``fail_for``."""

    def __init__(self, fail_for=None):
        self.fail_for = set(fail_for or [])
        self.events = []
        self.reminders = []

    def notify(self, appointment, event):
        if appointment.id in self.fail_for:
            raise NotifierError("push service unavailable")
        self.events.append((appointment.id, event))

    def send_reminder(self, appointment, window):
        self.reminders.append((appointment.id, window))
        if appointment.id in self.fail_for:
            raise NotifierError("push token rejected")


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'barber_test.db'}")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def schedule(session):
    """BARBER works Monday 09/10/11 and Tuesday 09..12; OTHER_BARBER works Monday."""
    ScheduleRepository.upsert_schedule(session, BARBER, DayOfWeek.monday, MONDAY_SLOTS)
    ScheduleRepository.upsert_schedule(session, BARBER, DayOfWeek.tuesday, ["09:00", "10:00", "11:00", "12:00"])
    ScheduleRepository.upsert_schedule(session, OTHER_BARBER, DayOfWeek.monday, MONDAY_SLOTS)
    return session


@pytest.fixture
def sunday_noon():
    return datetime(2030, 1, 6, 12, 0)
