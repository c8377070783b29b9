# barbershop/notifier.py

"""
Notifier seam.

Delivery transports (push, WhatsApp, SMS, email) live outside this package;
they plug in by subclassing ``Notifier``. A method that returns normally
means the transport confirmed delivery; any failure is raised as
``NotifierError``.
"""

import logging
from abc import ABC, abstractmethod

from barbershop.errors import NotifierError
from barbershop.models import Appointment

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking_created"
APPOINTMENT_CONFIRMED = "appointment_confirmed"


class Notifier(ABC):
    @abstractmethod
    def notify(self, appointment: Appointment, event: str) -> None:
        """Lifecycle message (booking created, appointment confirmed)."""

    @abstractmethod
    def send_reminder(self, appointment: Appointment, window: str) -> None:
        """Reminder for an appointment entering ``window``."""


class LoggingNotifier(Notifier):
    """Default notifier: records deliveries in the log only."""

    def notify(self, appointment: Appointment, event: str) -> None:
        logger.info(
            "Notification %s for appointment %s (customer %s, barber %s)",
            event, appointment.id, appointment.customer_id, appointment.barber_id,
        )

    def send_reminder(self, appointment: Appointment, window: str) -> None:
        logger.info(
            "Reminder %s for appointment %s on %s at %s",
            window, appointment.id, appointment.appointment_date, appointment.time_slot,
        )


def notify_quietly(notifier: Notifier, appointment: Appointment, event: str) -> bool:
    """Send a lifecycle notification; failures are logged, never raised."""
    try:
        notifier.notify(appointment, event)
        return True
    except NotifierError as exc:
        logger.warning("Failed to send %s for appointment %s: %s", event, appointment.id, exc.message)
    except Exception as exc:
        # a broken transport must not undo a committed booking
        logger.warning("Failed to send %s for appointment %s: %s", event, appointment.id, exc)
    return False


default_notifier = LoggingNotifier()
