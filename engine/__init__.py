"""Calendar & leave-eligibility engine.

Pure classification, range, sandwich and duration logic over an immutable
:class:`CalendarSnapshot`, plus the async :class:`LeaveCalendarEngine` that
fetches snapshots from a cached store.
"""

from __future__ import annotations

from engine.classifier import DayClassifier, SaturdayPolicy
from engine.errors import (
    CalendarError,
    CalendarUnavailableError,
    CalendarWriteError,
    InputError,
    PastDateError,
    PermissionPolicyError,
)
from engine.models import (
    CalendarSnapshot,
    DayClassification,
    Holiday,
    HolidayType,
    LeaveRequestWindow,
    LeaveType,
    SaturdayOverride,
    ValidationResult,
)
from engine.sandwich import SandwichKind, SandwichViolation
from engine.service import CalendarSource, LeaveCalendarEngine

__all__ = [
    "CalendarError",
    "CalendarSnapshot",
    "CalendarSource",
    "CalendarUnavailableError",
    "CalendarWriteError",
    "DayClassification",
    "DayClassifier",
    "Holiday",
    "HolidayType",
    "InputError",
    "LeaveCalendarEngine",
    "LeaveRequestWindow",
    "LeaveType",
    "PastDateError",
    "PermissionPolicyError",
    "SandwichKind",
    "SandwichViolation",
    "SaturdayOverride",
    "SaturdayPolicy",
    "ValidationResult",
]
