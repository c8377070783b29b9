# barbershop/schemas.py

from datetime import datetime, date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from barbershop.core import normalize_slot


class DayOfWeek(str, Enum):
    monday = "monday"
    tuesday = "tuesday"
    wednesday = "wednesday"
    thursday = "thursday"
    friday = "friday"
    saturday = "saturday"
    sunday = "sunday"

    @classmethod
    def from_date(cls, day: date) -> "DayOfWeek":
        # date.weekday(): 0 = Monday ... 6 = Sunday, same order as the members
        return list(cls)[day.weekday()]


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


class WeeklyScheduleUpdate(BaseModel):
    time_slots: List[str] = Field(min_length=1)
    is_active: bool = True

    @field_validator("time_slots")
    @classmethod
    def normalize_slots(cls, slots: List[str]) -> List[str]:
        normalized = [normalize_slot(s) for s in slots]
        if len(normalized) != len(set(normalized)):
            raise ValueError("time_slots cannot contain duplicates")
        return normalized


class WeeklySchedulePublic(BaseModel):
    barber_id: str
    day_of_week: DayOfWeek
    time_slots: List[str]
    is_active: bool


class AvailabilityResponse(BaseModel):
    barber_id: str
    day_of_week: DayOfWeek
    date: date
    available_slots: List[str]
    booked_slots: List[str]


class AppointmentCreate(BaseModel):
    barber_id: str
    customer_id: str
    service_id: str
    date: str  # YYYY-MM-DD or dd/mm/yyyy
    time_slot: str
    notes: Optional[str] = None


class AppointmentReschedule(BaseModel):
    date: str
    time_slot: str


class AppointmentPublic(BaseModel):
    id: int
    customer_id: str
    barber_id: str
    service_id: str
    appointment_date: date
    time_slot: str
    status: AppointmentStatus
    notes: Optional[str] = None
    reschedule_count: int
    created_at: datetime
    updated_at: datetime


class ScanReportPublic(BaseModel):
    reminders_sent: int
    errors: List[str]
    skipped: bool = False


class ScannerStatusPublic(BaseModel):
    is_running: bool
    started_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    last_result: Optional[ScanReportPublic] = None
    interval_minutes: int
    windows: dict[str, int]
