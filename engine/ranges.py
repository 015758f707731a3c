"""Range analysis over a :class:`DayClassifier`.

All functions are inclusive of both endpoints and O(days in range).  The
classifier works on an already-fetched snapshot, so no memoisation is
needed here.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, timedelta

from _constants import MAX_SEARCH_DAYS
from engine.classifier import DayClassifier
from engine.errors import InputError

__all__ = [
    "add_working_days",
    "blocked_dates_in_range",
    "count_working_days",
    "iter_days",
    "next_working_day",
    "previous_working_day",
    "shift_day",
]


def iter_days(start: date, end: date) -> Iterator[date]:
    """Yield every day in ``[start, end]``; nothing if *start* > *end*."""
    for offset in range((end - start).days + 1):
        yield start + timedelta(days=offset)


def shift_day(day: date, days: int) -> date | None:
    """*day* moved by *days*, or ``None`` past either end of the calendar."""
    try:
        return day + timedelta(days=days)
    except OverflowError:
        return None


def count_working_days(
    classifier: DayClassifier,
    start: date,
    end: date,
    campus: str | None = None,
) -> int:
    """Number of working days in ``[start, end]``."""
    return sum(1 for d in iter_days(start, end) if classifier.is_working_day(d, campus))


def blocked_dates_in_range(
    classifier: DayClassifier,
    start: date,
    end: date,
    campus: str | None = None,
) -> list[date]:
    """Non-working days in ``[start, end]``, in date order."""
    return [d for d in iter_days(start, end) if not classifier.is_working_day(d, campus)]


def _step_to_working_day(
    classifier: DayClassifier,
    start: date,
    campus: str | None,
    direction: int,
) -> date:
    current = shift_day(start, direction)
    for _ in range(MAX_SEARCH_DAYS):
        if current is None:
            break
        if classifier.is_working_day(current, campus):
            return current
        current = shift_day(current, direction)
    raise InputError(f"No working day found within {MAX_SEARCH_DAYS} days of {start.isoformat()}")


def next_working_day(classifier: DayClassifier, start: date, campus: str | None = None) -> date:
    """First working day strictly after *start*."""
    return _step_to_working_day(classifier, start, campus, 1)


def previous_working_day(classifier: DayClassifier, start: date, campus: str | None = None) -> date:
    """Last working day strictly before *start*."""
    return _step_to_working_day(classifier, start, campus, -1)


def add_working_days(
    classifier: DayClassifier,
    start: date,
    days: int,
    campus: str | None = None,
) -> date:
    """Move *days* working days away from *start* (negative moves backwards)."""
    current = start
    for _ in range(abs(days)):
        current = _step_to_working_day(classifier, current, campus, 1 if days > 0 else -1)
    return current
