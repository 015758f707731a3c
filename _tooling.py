"""Shared argument-parsing and error-handling helpers for MCP tools."""

from __future__ import annotations

import functools
import logging
import re
from collections.abc import Awaitable, Callable
from datetime import date
from typing import Any, ParamSpec, TypeVar

from fastmcp.exceptions import ToolError

from _constants import MAX_QUERY_DAYS
from engine.errors import CalendarError
from engine.models import Holiday, SaturdayOverride

logger = logging.getLogger("leave_calendar.server")

__all__ = [
    "holiday_to_dict",
    "override_to_dict",
    "parse_date_arg",
    "parse_range_args",
    "tool_error_handler",
]

P = ParamSpec("P")
R = TypeVar("R")

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def tool_error_handler(
    error_message: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorator that wraps MCP tool functions with standard error handling.

    Converts calendar errors, PermissionError and ValueError to ToolError
    (preserving message), and catches all other exceptions with a generic
    message.
    """

    def decorator(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await fn(*args, **kwargs)
            except ToolError:
                raise
            except (CalendarError, PermissionError, ValueError) as exc:
                raise ToolError(str(exc)) from exc
            except Exception:
                logger.exception("%s failed", fn.__name__)
                raise ToolError(error_message) from None

        return wrapper

    return decorator


def parse_date_arg(value: str, name: str = "date") -> date:
    """Parse a strict ``YYYY-MM-DD`` tool argument."""
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise ToolError(f"{name} must be in YYYY-MM-DD format, got: {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise ToolError(f"{name} is not a valid date: {value!r}") from exc


def parse_range_args(from_date: str, to_date: str) -> tuple[date, date]:
    """Parse and bound a read-query date range."""
    start = parse_date_arg(from_date, "from_date")
    end = parse_date_arg(to_date, "to_date")
    if end < start:
        raise ValueError("to_date must be on or after from_date.")
    day_span = (end - start).days + 1
    if day_span > MAX_QUERY_DAYS:
        raise ValueError(
            f"Date range spans {day_span} days, exceeding the maximum of "
            f"{MAX_QUERY_DAYS} days for read queries."
        )
    return start, end


def holiday_to_dict(holiday: Holiday) -> dict[str, Any]:
    return {
        "id": holiday.id,
        "date": holiday.date.isoformat(),
        "name": holiday.name,
        "type": holiday.type.value,
        "is_recurring": holiday.is_recurring,
        "year": holiday.year,
        "campus": holiday.campus,
    }


def override_to_dict(override: SaturdayOverride) -> dict[str, Any]:
    return {
        "id": override.doc_id,
        "date": override.date.isoformat(),
        "campus": override.campus,
        "is_holiday": override.is_holiday,
        "is_working": not override.is_holiday,
    }
