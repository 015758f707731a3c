"""Leave request validation pipeline.

``check_request_basics`` needs no calendar data; ``check_against_calendar``
runs over a classifier built from a fetched snapshot.  The async entry point
that fetches the snapshot and applies the store-failure policy lives in
:mod:`engine.service`.
"""

from __future__ import annotations

import logging
from datetime import date

from _constants import MAX_LEAVE_DAYS
from engine.classifier import DayClassifier
from engine.duration import check_permission_window
from engine.errors import InputError, PastDateError
from engine.models import (
    DayClassification,
    LeaveRequestWindow,
    LeaveType,
    ValidationResult,
    format_day,
)
from engine.ranges import iter_days
from engine.sandwich import detect_sandwich

__all__ = [
    "UNABLE_TO_VALIDATE",
    "check_against_calendar",
    "check_request_basics",
    "validate_window",
]

logger = logging.getLogger("leave_calendar.engine")

UNABLE_TO_VALIDATE = "Unable to validate leave request. Please try again."

_NON_WORKING = (DayClassification.SUNDAY, DayClassification.SATURDAY_HOLIDAY)


def check_request_basics(window: LeaveRequestWindow, today: date) -> list[str]:
    """Ordering, past-date, span and Permission time checks."""
    errors: list[str] = []
    problems: list[InputError] = []

    if window.from_date > window.to_date:
        problems.append(InputError("From date cannot be after to date"))
    elif window.total_days > MAX_LEAVE_DAYS:
        problems.append(
            InputError(
                f"Date range spans {window.total_days} days, exceeding the maximum of "
                f"{MAX_LEAVE_DAYS} days."
            )
        )

    if window.from_date < today:
        problems.append(PastDateError("Cannot request leave for past dates"))

    if window.leave_type is LeaveType.PERMISSION and (window.from_time or window.to_time):
        if not window.from_time or not window.to_time:
            problems.append(InputError("Permission requests need both from_time and to_time"))
        else:
            try:
                check_permission_window(window.from_time, window.to_time)
            except InputError as exc:
                problems.append(exc)

    errors.extend(str(p) for p in problems)
    return errors


def check_against_calendar(
    window: LeaveRequestWindow,
    classifier: DayClassifier,
) -> tuple[list[str], list[str]]:
    """Sandwich errors plus holiday / non-working-day warnings.

    Reversed windows and spans longer than the request limit are left to
    :func:`check_request_basics` and produce nothing here.
    """
    errors: list[str] = []
    warnings: list[str] = []
    if window.from_date > window.to_date or window.total_days > MAX_LEAVE_DAYS:
        return errors, warnings

    if window.leave_type.checks_sandwich:
        violation = detect_sandwich(
            classifier.snapshot, window.from_date, window.to_date, window.campus
        )
        if violation is not None:
            logger.info(
                "Sandwich violation kind=%s from=%s to=%s campus=%s",
                violation.kind,
                window.from_date,
                window.to_date,
                window.campus,
            )
            errors.append(violation.message)

    holidays = classifier.snapshot.holidays_between(window.from_date, window.to_date, window.campus)
    if holidays:
        labels = ", ".join(h.label() for h in holidays)
        if len(holidays) == 1:
            warnings.append(
                f"Your leave request includes a holiday: {labels}. Consider adjusting your dates."
            )
        else:
            warnings.append(
                f"Your leave request includes holidays: {labels}. Consider adjusting your dates."
            )

    non_working = [
        d
        for d in iter_days(window.from_date, window.to_date)
        if classifier.classify(d, window.campus) in _NON_WORKING
    ]
    if non_working:
        warnings.append(
            "Your leave request includes non-working days: "
            f"{', '.join(format_day(d) for d in non_working)}. These are non-working days."
        )
    return errors, warnings


def validate_window(
    window: LeaveRequestWindow,
    classifier: DayClassifier,
    today: date,
) -> ValidationResult:
    """Run the whole pipeline against an already-fetched snapshot."""
    if window.leave_type is LeaveType.COMPENSATION:
        return ValidationResult(is_valid=True)

    errors = check_request_basics(window, today)
    calendar_errors, warnings = check_against_calendar(window, classifier)
    errors.extend(calendar_errors)
    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
