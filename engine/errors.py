"""Exception types raised by the calendar engine and the calendar store."""

from __future__ import annotations

__all__ = [
    "CalendarError",
    "CalendarUnavailableError",
    "CalendarWriteError",
    "InputError",
    "PastDateError",
    "PermissionPolicyError",
]


class CalendarError(Exception):
    """Base class for all calendar engine errors."""


class InputError(CalendarError, ValueError):
    """Malformed or contradictory input (e.g. from_date after to_date)."""


class PastDateError(InputError):
    """The requested leave starts before today."""


class PermissionPolicyError(InputError):
    """A Permission request violates the time-of-day policy."""


class CalendarUnavailableError(CalendarError, ConnectionError):
    """The calendar store could not be read and no cached snapshot exists."""


class CalendarWriteError(CalendarError):
    """An administrative write to the calendar store was rejected or failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
