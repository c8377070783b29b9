# barbershop/core.py

import re
from datetime import datetime, date, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo

from barbershop.config import settings
from barbershop.errors import ValidationError

_HOUR_ONLY = re.compile(r"^\d{1,2}$")
_HOUR_MINUTE = re.compile(r"^(\d{1,2}):(\d{2})$")
_DMY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


def normalize_slot(slot: str) -> str:
    """'9' -> '09:00', '9:30' -> '09:30'; minutes always take two digits."""
    value = (slot or "").strip()
    if _HOUR_ONLY.match(value):
        hour, minute = int(value), 0
    else:
        match = _HOUR_MINUTE.match(value)
        if match is None:
            raise ValidationError(f"invalid time slot {slot!r}, expected HH:MM")
        hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(f"invalid time slot {slot!r}")
    return f"{hour:02d}:{minute:02d}"


def parse_date(value: Union[str, date]) -> date:
    """Accepts a date, ISO YYYY-MM-DD or dd/mm/yyyy."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = (value or "").strip()
    try:
        match = _DMY.match(text)
        if match:
            day, month, year = (int(p) for p in match.groups())
            return date(year, month, day)
        return date.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"invalid date {value!r}, expected YYYY-MM-DD or dd/mm/yyyy")


def slot_start(day: date, slot: str) -> datetime:
    """Naive shop-local start of a slot."""
    hours, minutes = (int(p) for p in slot.split(":"))
    return datetime.combine(day, time(hours, minutes))


def shop_now(tz_name: Optional[str] = None) -> datetime:
    """Current shop-local wall clock, naive like the stored slots."""
    tz = ZoneInfo(tz_name or settings.SHOP_TIMEZONE)
    return datetime.now(tz).replace(tzinfo=None, microsecond=0)


def minutes_until(start: datetime, now: datetime) -> float:
    return (start - now) / timedelta(minutes=1)


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp for audit columns and scanner leases."""
    return datetime.now(timezone.utc)
