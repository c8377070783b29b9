# barbershop/deps.py

from fastapi import HTTPException

from barbershop.errors import Result
from barbershop.notifier import Notifier, default_notifier


def unwrap_or_raise(result: Result):
    """Return the value, or raise the HTTPException matching the error kind."""
    if result.ok:
        return result.value
    error = result.error
    headers = {"Retry-After": "1"} if error.retryable else None
    raise HTTPException(status_code=error.status_code, detail=error.to_dict(), headers=headers)


def get_notifier() -> Notifier:
    return default_notifier
