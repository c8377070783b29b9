# barbershop/routers/appointments_routes.py

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlmodel import Session

from barbershop.db import get_session
from barbershop.deps import get_notifier, unwrap_or_raise
from barbershop.notifier import Notifier
from barbershop.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    AppointmentReschedule,
    AppointmentStatus,
)
from barbershop.services.booking import (
    book_appointment,
    cancel_appointment,
    complete_appointment,
    confirm_appointment,
    list_customer_appointments,
)
from barbershop.services.reschedule import reschedule_appointment

router = APIRouter(
    tags=["appointments"],
)


@router.post("/appointments", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    return unwrap_or_raise(
        book_appointment(
            session,
            appt.barber_id,
            appt.customer_id,
            appt.service_id,
            appt.date,
            appt.time_slot,
            notes=appt.notes,
            notifier=notifier,
        )
    )


@router.patch("/appointments/{appt_id}/reschedule", response_model=AppointmentPublic)
def reschedule(
    appt_id: int,
    body: AppointmentReschedule,
    session: Session = Depends(get_session),
):
    return unwrap_or_raise(reschedule_appointment(session, appt_id, body.date, body.time_slot))


@router.patch("/appointments/{appt_id}/confirm", response_model=AppointmentPublic)
def confirm(
    appt_id: int,
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    return unwrap_or_raise(confirm_appointment(session, appt_id, notifier=notifier))


@router.patch("/appointments/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel(
    appt_id: int,
    session: Session = Depends(get_session),
):
    return unwrap_or_raise(cancel_appointment(session, appt_id))


@router.patch("/appointments/{appt_id}/complete", response_model=AppointmentPublic)
def complete(
    appt_id: int,
    session: Session = Depends(get_session),
):
    return unwrap_or_raise(complete_appointment(session, appt_id))


@router.get("/customers/{customer_id}/appointments", response_model=List[AppointmentPublic])
def customer_appointments(
    customer_id: str,
    status: Optional[AppointmentStatus] = None,
    session: Session = Depends(get_session),
):
    return unwrap_or_raise(list_customer_appointments(session, customer_id, status=status))
