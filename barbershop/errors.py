# barbershop/errors.py

"""
Error taxonomy for the booking core.

Core functions raise these internally; the operations exposed to the HTTP
layer wrap their outcome in a ``Result`` so that every error kind maps to
exactly one status code.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BookingError(Exception):
    code = "booking_error"
    status_code = 400
    retryable = False

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.reason = reason or self.code

    def to_dict(self) -> dict:
        return {"error": self.code, "reason": self.reason, "message": self.message}


class ValidationError(BookingError, ValueError):
    """Malformed date or slot input."""

    code = "validation_error"
    status_code = 422


class NotFound(BookingError):
    code = "not_found"
    status_code = 404


class InvalidSlot(BookingError):
    """Slot is not part of the barber's active weekday template."""

    code = "invalid_slot"
    status_code = 422


class SlotTaken(BookingError):
    code = "slot_taken"
    status_code = 409

    def __init__(self, message: str = "slot no longer available", reason: Optional[str] = None):
        super().__init__(message, reason)


class NotEligible(BookingError):
    """Policy violation; ``reason`` says which rule failed."""

    code = "not_eligible"
    status_code = 409

    INACTIVE_STATUS = "inactive_status"
    RESCHEDULE_LIMIT_REACHED = "reschedule_limit_reached"
    TOO_CLOSE_TO_START = "too_close_to_start"
    NOT_NEXT_APPOINTMENT = "not_next_appointment"
    INVALID_TRANSITION = "invalid_transition"

    MESSAGES = {
        INACTIVE_STATUS: "only pending or confirmed appointments can be changed",
        RESCHEDULE_LIMIT_REACHED: "this appointment has already been rescheduled once",
        TOO_CLOSE_TO_START: "appointments can only be rescheduled more than 30 minutes in advance",
        NOT_NEXT_APPOINTMENT: "only your next appointment can be rescheduled",
        INVALID_TRANSITION: "appointment status does not allow this change",
    }

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or self.MESSAGES.get(reason, "not eligible"), reason)


class StorageError(BookingError):
    """Transient storage failure; the caller may retry."""

    code = "storage_error"
    status_code = 503
    retryable = True


class NotifierError(BookingError):
    """Delivery failure reported by the notifier. Logged, never fatal."""

    code = "notifier_error"
    status_code = 502
    retryable = True


@dataclass
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[BookingError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def returns_result(func: Callable[..., T]) -> Callable[..., Result[T]]:
    """Turn a raising core function into one returning ``Result``."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Result[T]:
        try:
            return Result(value=func(*args, **kwargs))
        except BookingError as exc:
            logger.debug("%s failed: %s (%s)", func.__name__, exc.code, exc.reason)
            return Result(error=exc)

    return wrapper
