"""Day classification: working day, Sunday, Saturday (worked or not), holiday."""

from __future__ import annotations

import logging
from datetime import date, datetime
from enum import StrEnum

from engine.models import CalendarSnapshot, DayClassification, as_day

__all__ = ["DayClassifier", "SaturdayPolicy"]

logger = logging.getLogger("leave_calendar.engine")

_SATURDAY = 5
_SUNDAY = 6


class SaturdayPolicy(StrEnum):
    """What a Saturday without an override record means.

    ``HOLIDAY_UNLESS_WORKING`` (default): Saturdays are off unless an admin
    marked that Saturday as working.  ``WORKING_UNLESS_HOLIDAY``: Saturdays
    are worked unless an admin marked that Saturday as a holiday.
    """

    HOLIDAY_UNLESS_WORKING = "holiday"
    WORKING_UNLESS_HOLIDAY = "working"

    @classmethod
    def from_env(cls, raw: str | None) -> SaturdayPolicy:
        value = (raw or "").strip().lower()
        if not value:
            return cls.HOLIDAY_UNLESS_WORKING
        try:
            return cls(value)
        except ValueError:
            logger.warning(
                "Unknown SATURDAY_DEFAULT=%r, falling back to %r",
                raw,
                cls.HOLIDAY_UNLESS_WORKING.value,
            )
            return cls.HOLIDAY_UNLESS_WORKING


class DayClassifier:
    """Pure classification over one :class:`CalendarSnapshot`.

    Holds no mutable state; build a new classifier when a fresh snapshot is
    fetched.
    """

    __slots__ = ("_policy", "_snapshot")

    def __init__(
        self,
        snapshot: CalendarSnapshot,
        saturday_policy: SaturdayPolicy = SaturdayPolicy.HOLIDAY_UNLESS_WORKING,
    ) -> None:
        self._snapshot = snapshot
        self._policy = saturday_policy

    @property
    def snapshot(self) -> CalendarSnapshot:
        return self._snapshot

    @property
    def saturday_policy(self) -> SaturdayPolicy:
        return self._policy

    def classify(self, day: date | datetime | str, campus: str | None = None) -> DayClassification:
        """Classify *day* for *campus*.

        Priority: Saturday override, then Sunday, then holidays.  Sunday
        cannot be overridden.
        """
        d = as_day(day)
        weekday = d.weekday()

        if weekday == _SATURDAY:
            override = self._snapshot.override_for(d, campus)
            if self._policy is SaturdayPolicy.HOLIDAY_UNLESS_WORKING:
                if override is not None and not override.is_holiday:
                    return DayClassification.SATURDAY_WORKING
                return DayClassification.SATURDAY_HOLIDAY
            if override is not None and override.is_holiday:
                return DayClassification.SATURDAY_HOLIDAY
            return DayClassification.SATURDAY_WORKING

        if weekday == _SUNDAY:
            return DayClassification.SUNDAY

        if self._snapshot.holidays_on(d, campus):
            return DayClassification.HOLIDAY
        return DayClassification.WORKING

    def is_working_day(self, day: date | datetime | str, campus: str | None = None) -> bool:
        return self.classify(day, campus).is_working
