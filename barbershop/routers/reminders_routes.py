# barbershop/routers/reminders_routes.py

from fastapi import APIRouter, Depends
from sqlmodel import Session

from barbershop.db import get_session
from barbershop.deps import get_notifier, unwrap_or_raise
from barbershop.notifier import Notifier
from barbershop.schemas import ScanReportPublic, ScannerStatusPublic
from barbershop.services.reminders import reminder_status, trigger_reminder_scan

router = APIRouter(
    prefix="/reminders",
    tags=["reminders"],
)


@router.post("/trigger", response_model=ScanReportPublic)
def trigger_scan(
    session: Session = Depends(get_session),
    notifier: Notifier = Depends(get_notifier),
):
    # returns skipped=True if a scan is already in flight
    report = unwrap_or_raise(trigger_reminder_scan(session, notifier))
    return report.to_dict()


@router.get("/status", response_model=ScannerStatusPublic)
def scanner_status(session: Session = Depends(get_session)):
    return unwrap_or_raise(reminder_status(session))
