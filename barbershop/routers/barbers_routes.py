# barbershop/routers/barbers_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from barbershop.db import get_session
from barbershop.deps import unwrap_or_raise
from barbershop.errors import StorageError
from barbershop.repository import ScheduleRepository
from barbershop.schemas import (
    AppointmentPublic,
    AppointmentStatus,
    AvailabilityResponse,
    DayOfWeek,
    WeeklySchedulePublic,
    WeeklyScheduleUpdate,
)
from barbershop.services.availability import get_availability
from barbershop.services.booking import list_barber_appointments

router = APIRouter(
    prefix="/barbers",
    tags=["barbers"],
)


@router.put("/{barber_id}/schedule/{day_of_week}", response_model=WeeklySchedulePublic)
def set_schedule(
    barber_id: str,
    day_of_week: DayOfWeek,
    schedule: WeeklyScheduleUpdate,
    session: Session = Depends(get_session),
):
    # barber configuration; one template per barber and weekday
    try:
        db_schedule = ScheduleRepository.upsert_schedule(
            session,
            barber_id,
            day_of_week,
            schedule.time_slots,
            is_active=schedule.is_active,
        )
    except StorageError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_dict())

    return {
        "barber_id": db_schedule.barber_id,
        "day_of_week": db_schedule.day_of_week,
        "time_slots": db_schedule.time_slots,
        "is_active": db_schedule.is_active,
    }


@router.get("/{barber_id}/schedule", response_model=List[WeeklySchedulePublic])
def get_schedule(
    barber_id: str,
    session: Session = Depends(get_session),
):
    try:
        schedules = ScheduleRepository.list_schedules(session, barber_id)
    except StorageError as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.to_dict())
    if not schedules:
        raise HTTPException(status_code=404, detail="Schedule not set")
    return schedules


@router.get("/{barber_id}/availability", response_model=AvailabilityResponse)
def barber_availability(
    barber_id: str,
    date: str,
    session: Session = Depends(get_session),
):
    availability = unwrap_or_raise(get_availability(session, barber_id, date))
    return {
        "barber_id": availability.barber_id,
        "day_of_week": availability.day_of_week,
        "date": availability.date,
        "available_slots": availability.available_slots,
        "booked_slots": availability.booked_slots,
    }


@router.get("/{barber_id}/appointments", response_model=List[AppointmentPublic])
def barber_appointments(
    barber_id: str,
    on_date: Optional[str] = None,
    status: Optional[AppointmentStatus] = None,
    session: Session = Depends(get_session),
):
    return unwrap_or_raise(list_barber_appointments(session, barber_id, on_date=on_date, status=status))
