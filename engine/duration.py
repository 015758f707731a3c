"""Duration strings for leave requests, keyed by leave type.

Leave / On Duty count working days, Permission counts minutes on one day,
Compensation is always a single day.
"""

from __future__ import annotations

import re
from datetime import date

from _constants import (
    PERMISSION_DAY_END,
    PERMISSION_DAY_START,
    PERMISSION_DEFAULT_MINUTES,
    PERMISSION_MAX_MINUTES,
    PERMISSION_MIN_MINUTES,
    PERMISSION_WINDOWS,
)
from engine.classifier import DayClassifier
from engine.errors import InputError, PermissionPolicyError
from engine.models import LeaveType
from engine.ranges import count_working_days

__all__ = [
    "COMPENSATION_DURATION",
    "NO_WORKING_DAYS",
    "check_permission_window",
    "compute_duration",
    "derive_permission_end",
    "format_clock",
    "format_minutes",
    "format_working_days",
    "parse_clock",
    "permission_duration",
]

COMPENSATION_DURATION = "1 day (compensation)"
NO_WORKING_DAYS = "No working days"

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


# ---------------------------------------------------------------------------
# Clock helpers
# ---------------------------------------------------------------------------


def parse_clock(value: str, name: str = "time") -> int:
    """Parse ``HH:MM`` into minutes since midnight."""
    match = _CLOCK_RE.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        raise InputError(f"{name} must be in HH:MM format, got: {value!r}")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise InputError(f"{name} is not a valid time of day: {value!r}")
    return hours * 60 + minutes


def format_clock(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_minutes(total: int) -> str:
    """``"1h 30m"``, ``"2h"`` or ``"45m"``."""
    hours, minutes = divmod(total, 60)
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


# ---------------------------------------------------------------------------
# Permission
# ---------------------------------------------------------------------------


def _window_for_start(start: int) -> tuple[int, int, int] | None:
    for window in PERMISSION_WINDOWS:
        if window[0] <= start <= window[1]:
            return window
    return None


def check_permission_window(from_time: str, to_time: str) -> int:
    """Enforce the Permission time policy and return the duration in minutes.

    Raises:
        PermissionPolicyError: times outside 08:00-16:00, a start outside the
            08:00-11:00 / 12:00-15:00 windows, an end past the window's cap,
            or a duration outside 10-120 minutes.
        InputError: malformed times.
    """
    start = parse_clock(from_time, "from_time")
    end = parse_clock(to_time, "to_time")

    if not PERMISSION_DAY_START <= start <= PERMISSION_DAY_END:
        raise PermissionPolicyError("From time must be between 8:00 AM and 4:00 PM")
    if not PERMISSION_DAY_START <= end <= PERMISSION_DAY_END:
        raise PermissionPolicyError("To time must be between 8:00 AM and 4:00 PM")

    diff = end - start
    if diff < PERMISSION_MIN_MINUTES:
        raise PermissionPolicyError(
            f"Permission duration must be at least {PERMISSION_MIN_MINUTES} minutes"
        )
    if diff > PERMISSION_MAX_MINUTES:
        raise PermissionPolicyError(
            f"Permission duration cannot exceed {PERMISSION_MAX_MINUTES // 60} hours"
        )

    window = _window_for_start(start)
    if window is None:
        raise PermissionPolicyError(
            "Permission can only be requested during: "
            "Morning 8:00 AM - 11:00 AM, Afternoon 12:00 PM - 3:00 PM"
        )
    if end > window[2]:
        raise PermissionPolicyError(
            f"Permission starting at {format_clock(start)} must end by {format_clock(window[2])}"
        )
    return diff


def derive_permission_end(from_time: str) -> str:
    """Default end time: one hour after *from_time*, capped at the window end."""
    start = parse_clock(from_time, "from_time")
    window = _window_for_start(start)
    if window is None:
        raise PermissionPolicyError(
            "Permission can only be requested during: "
            "Morning 8:00 AM - 11:00 AM, Afternoon 12:00 PM - 3:00 PM"
        )
    return format_clock(min(start + PERMISSION_DEFAULT_MINUTES, window[2]))


def permission_duration(from_time: str | None, to_time: str | None) -> str:
    """Duration label for a Permission request; ``""`` if it cannot be computed."""
    if not from_time or not to_time:
        return ""
    try:
        diff = parse_clock(to_time) - parse_clock(from_time)
    except InputError:
        return ""
    if diff < PERMISSION_MIN_MINUTES:
        return ""
    return format_minutes(diff)


# ---------------------------------------------------------------------------
# Leave / On Duty
# ---------------------------------------------------------------------------


def format_working_days(working_days: int, total_days: int) -> str:
    if working_days == 0:
        return NO_WORKING_DAYS
    if working_days == 1:
        return f"1 working day ({total_days} total days)" if total_days > 1 else "1 working day"
    if total_days != working_days:
        return f"{working_days} working days ({total_days} total days)"
    return f"{working_days} working days"


def compute_duration(
    leave_type: LeaveType | str,
    from_date: date | None,
    to_date: date | None = None,
    from_time: str | None = None,
    to_time: str | None = None,
    *,
    classifier: DayClassifier | None = None,
    campus: str | None = None,
) -> str:
    """Duration label for a request.

    Without a *classifier*, multi-day Leave / On Duty requests fall back to a
    plain calendar-day count.
    """
    kind = LeaveType.parse(leave_type)

    if kind is LeaveType.COMPENSATION:
        return COMPENSATION_DURATION

    if from_date is None:
        return ""

    if kind is LeaveType.PERMISSION:
        return permission_duration(from_time, to_time)

    if to_date is None or to_date == from_date:
        return "1 day"
    if to_date < from_date:
        raise InputError("to_date cannot be before from_date")

    total_days = (to_date - from_date).days + 1
    if classifier is None:
        return f"{total_days} days"
    working_days = count_working_days(classifier, from_date, to_date, campus)
    return format_working_days(working_days, total_days)
