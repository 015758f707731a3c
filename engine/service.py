"""Async entry points of the leave calendar engine.

``LeaveCalendarEngine`` fetches a :class:`CalendarSnapshot` from its source
(the cached :class:`clients.calendar.CalendarStore` in production) and runs
the pure classification / range / sandwich / duration code over it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import Protocol, runtime_checkable

from engine.classifier import DayClassifier, SaturdayPolicy
from engine.duration import compute_duration
from engine.errors import CalendarUnavailableError, InputError
from engine.models import (
    CalendarSnapshot,
    DayClassification,
    Holiday,
    HolidayType,
    LeaveRequestWindow,
    LeaveType,
    ValidationResult,
    as_day,
    normalize_campus,
)
from engine.ranges import (
    add_working_days,
    blocked_dates_in_range,
    count_working_days,
    next_working_day,
    previous_working_day,
)
from engine.validation import UNABLE_TO_VALIDATE, check_against_calendar, check_request_basics

__all__ = ["CalendarSource", "LeaveCalendarEngine"]

logger = logging.getLogger("leave_calendar.engine")

DayLike = date | datetime | str


@runtime_checkable
class CalendarSource(Protocol):
    """Anything that can hand out the current calendar snapshot."""

    async def snapshot(self) -> CalendarSnapshot: ...


class LeaveCalendarEngine:
    """Classification, working-day counts, validation and durations per campus.

    Args:
        source: Provides snapshots; may raise :class:`CalendarUnavailableError`.
        saturday_policy: Meaning of a Saturday without an override record.
        fail_open: On store failure during validation, let the request
            through with a warning instead of blocking it.
        today: Clock used for the past-date check.
    """

    def __init__(
        self,
        source: CalendarSource,
        *,
        saturday_policy: SaturdayPolicy = SaturdayPolicy.HOLIDAY_UNLESS_WORKING,
        fail_open: bool = False,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._source = source
        self._policy = saturday_policy
        self._fail_open = fail_open
        self._today = today

    @property
    def saturday_policy(self) -> SaturdayPolicy:
        return self._policy

    @property
    def fail_open(self) -> bool:
        return self._fail_open

    async def classifier(self) -> DayClassifier:
        """Classifier over the current snapshot.  Raises on store failure."""
        return DayClassifier(await self._source.snapshot(), self._policy)

    # -- classification -----------------------------------------------------

    async def classify(self, day: DayLike, campus: str | None = None) -> DayClassification:
        return (await self.classifier()).classify(as_day(day), normalize_campus(campus))

    async def is_working_day(self, day: DayLike, campus: str | None = None) -> bool:
        return (await self.classify(day, campus)).is_working

    # -- ranges -------------------------------------------------------------

    async def get_working_days_between(
        self,
        from_date: DayLike,
        to_date: DayLike,
        campus: str | None = None,
    ) -> int:
        start, end = as_day(from_date, "from_date"), as_day(to_date, "to_date")
        return count_working_days(await self.classifier(), start, end, normalize_campus(campus))

    async def blocked_dates_in_range(
        self,
        from_date: DayLike,
        to_date: DayLike,
        campus: str | None = None,
    ) -> list[date]:
        start, end = as_day(from_date, "from_date"), as_day(to_date, "to_date")
        return blocked_dates_in_range(await self.classifier(), start, end, normalize_campus(campus))

    async def add_working_days(self, start: DayLike, days: int, campus: str | None = None) -> date:
        return add_working_days(
            await self.classifier(), as_day(start, "start"), days, normalize_campus(campus)
        )

    async def next_working_day(self, start: DayLike, campus: str | None = None) -> date:
        return next_working_day(await self.classifier(), as_day(start, "start"), normalize_campus(campus))

    async def previous_working_day(self, start: DayLike, campus: str | None = None) -> date:
        return previous_working_day(
            await self.classifier(), as_day(start, "start"), normalize_campus(campus)
        )

    # -- holiday queries ----------------------------------------------------

    async def holidays_in_range(
        self,
        from_date: DayLike,
        to_date: DayLike,
        campus: str | None = None,
    ) -> list[Holiday]:
        start, end = as_day(from_date, "from_date"), as_day(to_date, "to_date")
        snapshot = await self._source.snapshot()
        return snapshot.holidays_between(start, end, normalize_campus(campus))

    async def upcoming_holidays(self, days_ahead: int = 30, campus: str | None = None) -> list[Holiday]:
        """Holidays from today through ``today + days_ahead``, sorted by date."""
        today = self._today()
        found = await self.holidays_in_range(today, today + timedelta(days=days_ahead), campus)
        return sorted(found, key=lambda h: h.date)

    async def holidays_by_type(
        self,
        holiday_type: HolidayType | str,
        year: int | None = None,
        campus: str | None = None,
    ) -> list[Holiday]:
        try:
            wanted = HolidayType(str(holiday_type).lower())
        except ValueError as exc:
            raise InputError(f"Unknown holiday type {holiday_type!r}") from exc
        snapshot = await self._source.snapshot()
        return [
            h for h in snapshot.holidays_for_year(year, normalize_campus(campus)) if h.type is wanted
        ]

    # -- validation ---------------------------------------------------------

    async def validate_leave_request(
        self,
        from_date: DayLike,
        to_date: DayLike | None,
        leave_type: LeaveType | str,
        campus: str | None = None,
        *,
        from_time: str | None = None,
        to_time: str | None = None,
    ) -> ValidationResult:
        """Validate a request; never raises for calendar problems.

        Compensation is always valid.  Store failures become an explicit
        "unable to validate" error, or a warning when the engine is
        configured fail-open.
        """
        try:
            kind = LeaveType.parse(leave_type)
            if kind is LeaveType.COMPENSATION:
                return ValidationResult(is_valid=True)
            start = as_day(from_date, "from_date")
            end = as_day(to_date, "to_date") if to_date is not None else start
        except InputError as exc:
            return ValidationResult(is_valid=False, errors=[str(exc)])

        window = LeaveRequestWindow(
            from_date=start,
            to_date=end,
            leave_type=kind,
            campus=normalize_campus(campus),
            from_time=from_time,
            to_time=to_time,
        )
        errors = check_request_basics(window, self._today())
        warnings: list[str] = []

        try:
            classifier = await self.classifier()
        except CalendarUnavailableError as exc:
            logger.warning(
                "Calendar unavailable while validating from=%s to=%s campus=%s: %s",
                start,
                end,
                window.campus,
                exc,
            )
            if self._fail_open:
                warnings.append(
                    "Holiday calendar is unavailable; this request was not checked "
                    "against holidays or weekends."
                )
            else:
                errors.append(UNABLE_TO_VALIDATE)
            return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

        if classifier.snapshot.stale:
            warnings.append(
                "Holiday calendar could not be refreshed; the last known calendar was used."
            )
        if classifier.snapshot.skipped_records:
            warnings.append(
                f"{classifier.snapshot.skipped_records} holiday calendar entries could not be "
                "read; this request may not reflect every holiday."
            )
        calendar_errors, calendar_warnings = check_against_calendar(window, classifier)
        errors.extend(calendar_errors)
        warnings.extend(calendar_warnings)
        result = ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
        logger.debug(
            "Validated %s from=%s to=%s campus=%s valid=%s",
            kind.value,
            start,
            end,
            window.campus,
            result.is_valid,
        )
        return result

    # -- duration -----------------------------------------------------------

    async def compute_duration(
        self,
        leave_type: LeaveType | str,
        from_date: DayLike | None,
        to_date: DayLike | None = None,
        from_time: str | None = None,
        to_time: str | None = None,
        campus: str | None = None,
    ) -> str:
        kind = LeaveType.parse(leave_type)
        start = as_day(from_date, "from_date") if from_date is not None else None
        end = as_day(to_date, "to_date") if to_date is not None else None
        needs_calendar = (
            kind in (LeaveType.LEAVE, LeaveType.ON_DUTY)
            and start is not None
            and end is not None
            and end != start
        )
        classifier = await self.classifier() if needs_calendar else None
        return compute_duration(
            kind,
            start,
            end,
            from_time,
            to_time,
            classifier=classifier,
            campus=normalize_campus(campus),
        )
