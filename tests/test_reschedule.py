from datetime import date, datetime, timedelta

import pytest

from barbershop.errors import InvalidSlot, NotEligible, NotFound, SlotTaken, ValidationError
from barbershop.repository import AppointmentRepository
from barbershop.schemas import AppointmentStatus
from barbershop.services.availability import get_availability
from barbershop.services.booking import book_appointment, cancel_appointment
from barbershop.services.reschedule import check_reschedule_eligibility, reschedule_appointment

from conftest import BARBER, CUSTOMER, MONDAY, SERVICE, TUESDAY

EARLY_MONDAY = datetime(2030, 1, 7, 8, 0)


def _book(session, notifier, slot, day=MONDAY, customer=CUSTOMER):
    result = book_appointment(session, BARBER, customer, SERVICE, day, slot, notifier=notifier)
    assert result.ok, result.error
    return result.value


def test_reschedule_moves_same_row(schedule, notifier):
    appointment = _book(schedule, notifier, "09:00")

    result = reschedule_appointment(schedule, appointment.id, TUESDAY, "12:00", now=EARLY_MONDAY)

    assert result.ok
    moved = result.value
    assert moved.id == appointment.id
    assert moved.appointment_date == TUESDAY
    assert moved.time_slot == "12:00"
    assert moved.reschedule_count == 1
    assert moved.status == AppointmentStatus.pending

    monday = get_availability(schedule, BARBER, MONDAY, now=EARLY_MONDAY).value
    assert "09:00" in monday.available_slots


def test_reschedule_count_never_exceeds_one(schedule, notifier):
    appointment = _book(schedule, notifier, "09:00")
    assert reschedule_appointment(schedule, appointment.id, MONDAY, "10:00", now=EARLY_MONDAY).ok

    for slot in ("11:00", "09:00", "10:00"):
        result = reschedule_appointment(schedule, appointment.id, MONDAY, slot, now=EARLY_MONDAY)
        assert isinstance(result.error, NotEligible)
        assert result.error.reason == NotEligible.RESCHEDULE_LIMIT_REACHED

    stored = AppointmentRepository.get(schedule, appointment.id)
    assert stored.reschedule_count == 1
    assert stored.time_slot == "10:00"


@pytest.mark.parametrize("minutes_before, eligible", [(30, False), (31, True), (29, False), (120, True)])
def test_thirty_minute_cutoff(schedule, notifier, minutes_before, eligible):
    appointment = _book(schedule, notifier, "10:00")
    now = datetime(2030, 1, 7, 10, 0) - timedelta(minutes=minutes_before)

    reason = check_reschedule_eligibility(appointment, [appointment], now)

    if eligible:
        assert reason is None
    else:
        assert reason == NotEligible.TOO_CLOSE_TO_START


def test_exactly_thirty_minutes_is_refused_end_to_end(schedule, notifier):
    appointment = _book(schedule, notifier, "10:00")

    result = reschedule_appointment(schedule, appointment.id, TUESDAY, "09:00", now=datetime(2030, 1, 7, 9, 30))

    assert isinstance(result.error, NotEligible)
    assert result.error.reason == NotEligible.TOO_CLOSE_TO_START
    assert AppointmentRepository.get(schedule, appointment.id).time_slot == "10:00"


def test_only_nearest_appointment_can_move(schedule, notifier):
    first = _book(schedule, notifier, "09:00")   # T+1h
    second = _book(schedule, notifier, "10:00")  # T+2h

    refused = reschedule_appointment(schedule, second.id, TUESDAY, "10:00", now=EARLY_MONDAY)
    assert isinstance(refused.error, NotEligible)
    assert refused.error.reason == NotEligible.NOT_NEXT_APPOINTMENT
    assert refused.error.message == "only your next appointment can be rescheduled"

    assert reschedule_appointment(schedule, first.id, TUESDAY, "10:00", now=EARLY_MONDAY).ok


def test_cancelled_appointments_do_not_count_as_nearest(schedule, notifier):
    first = _book(schedule, notifier, "09:00")
    second = _book(schedule, notifier, "10:00")
    cancel_appointment(schedule, first.id)

    assert reschedule_appointment(schedule, second.id, TUESDAY, "09:00", now=EARLY_MONDAY).ok


def test_other_customers_do_not_interfere(schedule, notifier):
    _book(schedule, notifier, "09:00", customer="customer-2")
    mine = _book(schedule, notifier, "11:00")

    assert reschedule_appointment(schedule, mine.id, TUESDAY, "11:00", now=EARLY_MONDAY).ok


def test_terminal_appointment_is_not_eligible(schedule, notifier):
    appointment = _book(schedule, notifier, "09:00")
    cancel_appointment(schedule, appointment.id)

    result = reschedule_appointment(schedule, appointment.id, TUESDAY, "09:00", now=EARLY_MONDAY)

    assert result.error.reason == NotEligible.INACTIVE_STATUS


def test_target_slot_taken_leaves_row_untouched(schedule, notifier):
    mine = _book(schedule, notifier, "09:00")
    _book(schedule, notifier, "11:00", customer="customer-2")

    result = reschedule_appointment(schedule, mine.id, MONDAY, "11:00", now=EARLY_MONDAY)

    assert isinstance(result.error, SlotTaken)
    stored = AppointmentRepository.get(schedule, mine.id)
    assert (stored.time_slot, stored.reschedule_count) == ("09:00", 0)


def test_target_slot_must_be_in_template(schedule, notifier):
    mine = _book(schedule, notifier, "09:00")

    result = reschedule_appointment(schedule, mine.id, MONDAY, "13:00", now=EARLY_MONDAY)

    assert isinstance(result.error, InvalidSlot)


def test_unknown_appointment_and_bad_input(schedule, notifier):
    assert isinstance(reschedule_appointment(schedule, 404, TUESDAY, "09:00", now=EARLY_MONDAY).error, NotFound)

    mine = _book(schedule, notifier, "09:00")
    assert isinstance(
        reschedule_appointment(schedule, mine.id, "someday", "09:00", now=EARLY_MONDAY).error,
        ValidationError,
    )


def test_moving_to_a_past_slot_is_rejected(schedule, notifier):
    mine = _book(schedule, notifier, "11:00")

    result = reschedule_appointment(schedule, mine.id, MONDAY, "09:00", now=datetime(2030, 1, 7, 9, 15))

    assert isinstance(result.error, ValidationError)


def test_stale_active_appointment_does_not_block_next_one(schedule, notifier):
    stale = AppointmentRepository.create_appointment(
        schedule,
        customer_id=CUSTOMER,
        barber_id=BARBER,
        service_id=SERVICE,
        appointment_date=date(2029, 12, 31),
        time_slot="09:00",
        status=AppointmentStatus.confirmed,
    )
    upcoming = _book(schedule, notifier, "10:00")

    assert check_reschedule_eligibility(upcoming, [stale, upcoming], EARLY_MONDAY) is None

    result = reschedule_appointment(schedule, upcoming.id, MONDAY, "11:00", now=EARLY_MONDAY)
    assert result.ok, result.error
    assert result.value.time_slot == "11:00"
