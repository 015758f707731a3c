"""Data model for the leave calendar engine.

Holidays and Saturday overrides mirror the records kept in the remote
document store (camelCase keys on the wire, see ``from_record`` /
``to_record``).  Everything else here is derived or transient.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import StrEnum
from functools import cached_property
from typing import Any

from engine.errors import InputError

__all__ = [
    "CalendarSnapshot",
    "DayClassification",
    "Holiday",
    "HolidayType",
    "LeaveRequestWindow",
    "LeaveType",
    "SaturdayOverride",
    "ValidationResult",
    "as_day",
    "format_day",
    "normalize_campus",
]


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class HolidayType(StrEnum):
    NATIONAL = "national"
    STATE = "state"
    UNIVERSITY = "university"
    PUBLIC = "public"


class DayClassification(StrEnum):
    WORKING = "working"
    SUNDAY = "sunday"
    SATURDAY_HOLIDAY = "saturday_holiday"
    SATURDAY_WORKING = "saturday_working"
    HOLIDAY = "holiday"

    @property
    def is_working(self) -> bool:
        return self in (DayClassification.WORKING, DayClassification.SATURDAY_WORKING)


class LeaveType(StrEnum):
    LEAVE = "Leave"
    PERMISSION = "Permission"
    ON_DUTY = "On Duty"
    COMPENSATION = "Compensation"

    @classmethod
    def parse(cls, value: str | LeaveType) -> LeaveType:
        """Accept the display value or a loose spelling (``OnDuty``, ``on_duty``)."""
        if isinstance(value, LeaveType):
            return value
        key = str(value).replace(" ", "").replace("_", "").replace("-", "").lower()
        for member in cls:
            if member.value.replace(" ", "").lower() == key:
                return member
        raise InputError(
            f"Unknown leave type {value!r}. Expected one of: {', '.join(m.value for m in cls)}"
        )

    @property
    def checks_sandwich(self) -> bool:
        return self in (LeaveType.LEAVE, LeaveType.ON_DUTY)


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def as_day(value: date | datetime | str, name: str = "date") -> date:
    """Normalise *value* to a calendar day.

    ``datetime`` values lose their time component; strings must be ISO
    formatted (``YYYY-MM-DD`` or a full ISO timestamp).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                return date.fromisoformat(text)
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError as exc:
            raise InputError(f"{name} must be in YYYY-MM-DD format, got: {value!r}") from exc
    raise InputError(f"{name} must be a date, got {type(value).__name__}")


def normalize_campus(campus: str | None) -> str | None:
    """Campus tags are compared case-insensitively; blank means 'no campus'."""
    if campus is None:
        return None
    tag = campus.strip().upper()
    return tag or None


def format_day(d: date) -> str:
    """Format a day the way users see it in messages (``dd/mm/yyyy``)."""
    return d.strftime("%d/%m/%Y")


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Holiday:
    id: str
    date: date
    name: str
    type: HolidayType = HolidayType.PUBLIC
    is_recurring: bool = False
    year: int | None = None
    campus: str | None = None

    def applies_to(self, campus: str | None) -> bool:
        """A holiday without a campus tag applies everywhere."""
        return self.campus is None or self.campus == normalize_campus(campus)

    @classmethod
    def from_record(cls, record: dict[str, Any], doc_id: str | None = None) -> Holiday:
        day = as_day(record["date"], "holiday date")
        raw_type = str(record.get("type") or HolidayType.PUBLIC).lower()
        try:
            holiday_type = HolidayType(raw_type)
        except ValueError:
            holiday_type = HolidayType.PUBLIC
        year = record.get("year")
        return cls(
            id=str(doc_id or record.get("id") or f"{day.isoformat()}-{record.get('name', '')}"),
            date=day,
            name=str(record.get("name", "")),
            type=holiday_type,
            is_recurring=bool(record.get("isRecurring", False)),
            year=int(year) if year is not None else day.year,
            campus=normalize_campus(record.get("campus")),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "name": self.name,
            "type": self.type.value,
            "isRecurring": self.is_recurring,
            "year": self.year if self.year is not None else self.date.year,
            "campus": self.campus,
        }

    def label(self) -> str:
        return f"{self.name} ({format_day(self.date)})"


@dataclass(frozen=True)
class SaturdayOverride:
    date: date
    is_holiday: bool
    campus: str | None = None

    @property
    def doc_id(self) -> str:
        return self.make_doc_id(self.date, self.campus)

    @staticmethod
    def make_doc_id(day: date, campus: str | None) -> str:
        tag = normalize_campus(campus)
        return f"{day.isoformat()}_{tag}" if tag else day.isoformat()

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> SaturdayOverride:
        return cls(
            date=as_day(record["date"], "saturday date"),
            is_holiday=bool(record.get("isHoliday", True)),
            campus=normalize_campus(record.get("campus")),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "isHoliday": self.is_holiday,
            "campus": self.campus,
        }


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CalendarSnapshot:
    """Immutable view of every holiday and Saturday override.

    The store caches exactly one snapshot and swaps it as a whole, so a
    reader holding a snapshot never sees a partial update.
    """

    holidays: tuple[Holiday, ...] = ()
    saturday_overrides: tuple[SaturdayOverride, ...] = ()
    fetched_at: float = 0.0
    stale: bool = False
    # Store records that could not be parsed and are missing from this view.
    skipped_records: int = 0

    @cached_property
    def _holidays_by_day(self) -> dict[date, list[Holiday]]:
        index: dict[date, list[Holiday]] = defaultdict(list)
        for holiday in self.holidays:
            index[holiday.date].append(holiday)
        return dict(index)

    @cached_property
    def _overrides_by_id(self) -> dict[str, SaturdayOverride]:
        return {o.doc_id: o for o in self.saturday_overrides}

    def holidays_on(self, day: date, campus: str | None) -> list[Holiday]:
        return [h for h in self._holidays_by_day.get(day, ()) if h.applies_to(campus)]

    def holidays_between(self, start: date, end: date, campus: str | None) -> list[Holiday]:
        """Holidays in ``[start, end]`` applying to *campus*, in store order."""
        return [h for h in self.holidays if start <= h.date <= end and h.applies_to(campus)]

    def holidays_for_year(self, year: int | None, campus: str | None = None) -> list[Holiday]:
        out = self.holidays if year is None else [h for h in self.holidays if h.date.year == year]
        if campus is None:
            return list(out)
        return [h for h in out if h.applies_to(campus)]

    def override_for(self, day: date, campus: str | None) -> SaturdayOverride | None:
        """Campus-scoped override first, then the global one for that day."""
        tag = normalize_campus(campus)
        if tag is not None:
            scoped = self._overrides_by_id.get(SaturdayOverride.make_doc_id(day, tag))
            if scoped is not None:
                return scoped
        return self._overrides_by_id.get(SaturdayOverride.make_doc_id(day, None))


# ---------------------------------------------------------------------------
# Requests and results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LeaveRequestWindow:
    from_date: date
    to_date: date
    leave_type: LeaveType
    campus: str | None = None
    from_time: str | None = None
    to_time: str | None = None

    @property
    def total_days(self) -> int:
        return (self.to_date - self.from_date).days + 1

    def requested_dates(self) -> list[date]:
        return [self.from_date + timedelta(days=i) for i in range(max(self.total_days, 0))]


@dataclass
class ValidationResult:
    is_valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"is_valid": self.is_valid, "errors": list(self.errors), "warnings": list(self.warnings)}
