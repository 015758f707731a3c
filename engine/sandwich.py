"""Holiday and weekend "sandwich" detection.

A sandwich is leave placed on both sides of a non-working period so that
the break becomes longer than what was approved.  Only Leave and On Duty
requests are checked; the caller decides that.

Checks run in a fixed order and the first match wins:

1. For each holiday in the buffered window (store order): leave on both the
   day before and the day after, then the wider pattern (one or two days
   before, and one or two days after).
2. Friday and the following Monday both requested.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from enum import StrEnum

from _constants import SANDWICH_BUFFER_DAYS
from engine.models import CalendarSnapshot, Holiday, format_day
from engine.ranges import iter_days, shift_day

__all__ = ["SandwichKind", "SandwichViolation", "detect_sandwich", "find_sandwich"]

_FRIDAY = 4
_MONDAY = 0


class SandwichKind(StrEnum):
    HOLIDAY = "holiday"
    EXTENDED_HOLIDAY = "extended_holiday"
    WEEKEND = "weekend"


@dataclass(frozen=True)
class SandwichViolation:
    kind: SandwichKind
    message: str
    blocked_dates: tuple[date, ...]
    holiday: Holiday | None = None


def _holiday_violation(holiday: Holiday, requested: set[date]) -> SandwichViolation | None:
    h = holiday.date
    day_before, day_after = shift_day(h, -1), shift_day(h, 1)
    two_before, two_after = shift_day(h, -2), shift_day(h, 2)

    if day_before in requested and day_after in requested:
        return SandwichViolation(
            kind=SandwichKind.HOLIDAY,
            message=(
                f"Cannot take leave on both {format_day(day_before)} and "
                f"{format_day(day_after)} as it creates continuous leave around "
                f"{holiday.name} ({format_day(h)})"
            ),
            blocked_dates=(day_before, day_after),
            holiday=holiday,
        )

    if (day_before in requested or two_before in requested) and (
        day_after in requested or two_after in requested
    ):
        return SandwichViolation(
            kind=SandwichKind.EXTENDED_HOLIDAY,
            message=(
                f"Cannot create extended continuous leave around {holiday.name} "
                f"({format_day(h)}). This would result in excessive consecutive days off."
            ),
            blocked_dates=tuple(
                d for d in (two_before, day_before, day_after, two_after) if d is not None
            ),
            holiday=holiday,
        )
    return None


def _weekend_violation(requested_in_order: Sequence[date], requested: set[date]) -> SandwichViolation | None:
    for d in requested_in_order:
        if d.weekday() == _FRIDAY:
            friday, monday = d, shift_day(d, 3)
        elif d.weekday() == _MONDAY:
            friday, monday = shift_day(d, -3), d
        else:
            continue
        if friday in requested and monday in requested:
            return SandwichViolation(
                kind=SandwichKind.WEEKEND,
                message=(
                    f"Cannot take leave on both Friday ({format_day(friday)}) and "
                    f"Monday ({format_day(monday)}) as it creates continuous leave "
                    f"around the weekend"
                ),
                blocked_dates=(friday, monday),
            )
    return None


def find_sandwich(
    requested_dates: Iterable[date],
    holidays: Iterable[Holiday],
) -> SandwichViolation | None:
    """Return the first sandwich pattern formed by *requested_dates*, if any.

    *holidays* should already be filtered to the requester's campus.
    """
    ordered = sorted(set(requested_dates))
    requested = set(ordered)
    if not requested:
        return None

    for holiday in holidays:
        violation = _holiday_violation(holiday, requested)
        if violation is not None:
            return violation

    return _weekend_violation(ordered, requested)


def detect_sandwich(
    snapshot: CalendarSnapshot,
    from_date: date,
    to_date: date,
    campus: str | None = None,
) -> SandwichViolation | None:
    """Check the contiguous request ``[from_date, to_date]`` for a sandwich."""
    window_start = shift_day(from_date, -SANDWICH_BUFFER_DAYS) or date.min
    window_end = shift_day(to_date, SANDWICH_BUFFER_DAYS) or date.max
    holidays = snapshot.holidays_between(window_start, window_end, campus)
    return find_sandwich(iter_days(from_date, to_date), holidays)
