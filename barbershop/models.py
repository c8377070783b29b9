# barbershop/models.py

from typing import Optional, List
from datetime import datetime, date as Date

from sqlalchemy import DateTime, Index, UniqueConstraint, text
from sqlalchemy.types import JSON
from sqlmodel import SQLModel, Field, Column

from barbershop.core import utcnow
from barbershop.schemas import AppointmentStatus, DayOfWeek

ACTIVE_STATUSES = (AppointmentStatus.pending, AppointmentStatus.confirmed)
_ACTIVE_STATUS_SQL = text("status IN ('pending', 'confirmed')")


class WeeklySchedule(SQLModel, table=True):
    __tablename__ = "weekly_schedules"
    __table_args__ = (
        UniqueConstraint("barber_id", "day_of_week", name="uq_schedule_barber_day"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    barber_id: str = Field(index=True)
    day_of_week: DayOfWeek
    time_slots: List[str] = Field(sa_column=Column(JSON, nullable=False))
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # one active booking per (barber, date, slot); cancelled/completed rows don't count
        Index(
            "uq_appointments_active_slot",
            "barber_id",
            "appointment_date",
            "time_slot",
            unique=True,
            sqlite_where=_ACTIVE_STATUS_SQL,
            postgresql_where=_ACTIVE_STATUS_SQL,
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    customer_id: str = Field(index=True)
    barber_id: str = Field(index=True)
    service_id: str
    appointment_date: Date = Field(index=True)
    time_slot: str
    status: AppointmentStatus = AppointmentStatus.pending
    notes: Optional[str] = None
    reschedule_count: int = 0
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

    @property
    def sort_key(self):
        return (self.appointment_date, self.time_slot, self.id or 0)


class ReminderDelivery(SQLModel, table=True):
    __tablename__ = "reminder_deliveries"
    __table_args__ = (
        UniqueConstraint("appointment_id", "window_name", name="uq_reminder_appointment_window"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    appointment_id: int = Field(foreign_key="appointments.id", index=True)
    window_name: str
    attempts: int = 0
    sent_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    last_error: Optional[str] = None
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class ScannerState(SQLModel, table=True):
    __tablename__ = "scanner_state"

    name: str = Field(primary_key=True)
    is_running: bool = False
    started_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    lease_expires_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    last_run_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    last_result: Optional[dict] = Field(default=None, sa_column=Column(JSON))
