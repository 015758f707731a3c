"""Calendar MCP tools: day classification, working days, validation, durations."""

from __future__ import annotations

import logging
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from _constants import MAX_UPCOMING_DAYS
from _tooling import holiday_to_dict, parse_date_arg, parse_range_args, tool_error_handler
from clients import get_registry
from engine.duration import derive_permission_end

logger = logging.getLogger("leave_calendar.server")

__all__ = ["register"]


def register(mcp: FastMCP) -> None:
    """Register all calendar tools on the given FastMCP instance."""

    @mcp.tool
    @tool_error_handler("Failed to classify date. Please try again.")
    async def calendar_classify_date(date: str, campus: str | None = None) -> dict[str, Any]:
        """Classify a date as working, sunday, saturday_holiday, saturday_working or holiday.

        Args:
            date: Date in YYYY-MM-DD format.
            campus: Campus tag of the requester (e.g. TRP, RMP).
        """
        day = parse_date_arg(date, "date")
        classification = await get_registry().engine.classify(day, campus)
        return {
            "status": "success",
            "data": {
                "date": day.isoformat(),
                "campus": campus,
                "classification": classification.value,
                "is_working_day": classification.is_working,
            },
        }

    @mcp.tool
    @tool_error_handler("Failed to count working days. Please try again.")
    async def calendar_working_days_between(
        from_date: str,
        to_date: str,
        campus: str | None = None,
    ) -> dict[str, Any]:
        """Count working days between two dates (both inclusive).

        Args:
            from_date: Start date in YYYY-MM-DD format.
            to_date: End date in YYYY-MM-DD format.
            campus: Campus tag of the requester.
        """
        start, end = parse_range_args(from_date, to_date)
        working_days = await get_registry().engine.get_working_days_between(start, end, campus)
        return {
            "status": "success",
            "data": {
                "from_date": start.isoformat(),
                "to_date": end.isoformat(),
                "working_days": working_days,
                "total_days": (end - start).days + 1,
            },
        }

    @mcp.tool
    @tool_error_handler("Failed to list blocked dates. Please try again.")
    async def calendar_blocked_dates(
        from_date: str,
        to_date: str,
        campus: str | None = None,
    ) -> dict[str, Any]:
        """List the non-working days (Sundays, Saturdays off, holidays) in a range.

        Args:
            from_date: Start date in YYYY-MM-DD format.
            to_date: End date in YYYY-MM-DD format.
            campus: Campus tag of the requester.
        """
        start, end = parse_range_args(from_date, to_date)
        blocked = await get_registry().engine.blocked_dates_in_range(start, end, campus)
        return {"status": "success", "data": [d.isoformat() for d in blocked]}

    @mcp.tool
    @tool_error_handler("Failed to validate leave request. Please try again.")
    async def calendar_validate_leave_request(
        from_date: str,
        leave_type: str,
        to_date: str | None = None,
        campus: str | None = None,
        from_time: str | None = None,
        to_time: str | None = None,
    ) -> dict[str, Any]:
        """Validate a leave request against the holiday calendar.

        Errors block submission; warnings are informational.

        Args:
            from_date: First day of leave in YYYY-MM-DD format.
            leave_type: One of Leave, Permission, On Duty, Compensation.
            to_date: Last day of leave in YYYY-MM-DD format. Defaults to from_date.
            campus: Campus tag of the requester.
            from_time: Permission start time (HH:MM).
            to_time: Permission end time (HH:MM).
        """
        start = parse_date_arg(from_date, "from_date")
        end = parse_date_arg(to_date, "to_date") if to_date else start
        result = await get_registry().engine.validate_leave_request(
            start,
            end,
            leave_type,
            campus,
            from_time=from_time,
            to_time=to_time,
        )
        return {"status": "success", "data": result.to_dict()}

    @mcp.tool
    @tool_error_handler("Failed to compute duration. Please try again.")
    async def calendar_compute_duration(
        leave_type: str,
        from_date: str,
        to_date: str | None = None,
        from_time: str | None = None,
        to_time: str | None = None,
        campus: str | None = None,
    ) -> dict[str, Any]:
        """Compute the duration label shown for a leave request.

        Args:
            leave_type: One of Leave, Permission, On Duty, Compensation.
            from_date: First day in YYYY-MM-DD format.
            to_date: Last day in YYYY-MM-DD format (Leave / On Duty only).
            from_time: Permission start time (HH:MM).
            to_time: Permission end time (HH:MM).
            campus: Campus tag of the requester.
        """
        start = parse_date_arg(from_date, "from_date")
        end = parse_date_arg(to_date, "to_date") if to_date else None
        duration = await get_registry().engine.compute_duration(
            leave_type, start, end, from_time, to_time, campus
        )
        return {"status": "success", "data": {"duration": duration}}

    @mcp.tool
    @tool_error_handler("Failed to suggest permission end time. Please try again.")
    async def calendar_permission_end_time(from_time: str) -> dict[str, Any]:
        """Suggest the end time of a Permission: one hour later, capped at the window end.

        Args:
            from_time: Permission start time (HH:MM).
        """
        return {
            "status": "success",
            "data": {"from_time": from_time, "to_time": derive_permission_end(from_time)},
        }

    @mcp.tool
    @tool_error_handler("Failed to fetch holidays. Please try again.")
    async def calendar_list_holidays(
        year: int,
        campus: str | None = None,
        holiday_type: str | None = None,
    ) -> dict[str, Any]:
        """List holidays for a year.

        Args:
            year: Year (e.g. 2026).
            campus: Only holidays that apply to this campus.
            holiday_type: Filter by national, state, university or public.
        """
        registry = get_registry()
        if holiday_type:
            holidays = await registry.engine.holidays_by_type(holiday_type, year, campus)
        else:
            holidays = await registry.store.get_holidays(year, campus)
        return {"status": "success", "data": [holiday_to_dict(h) for h in holidays]}

    @mcp.tool
    @tool_error_handler("Failed to fetch upcoming holidays. Please try again.")
    async def calendar_upcoming_holidays(
        days_ahead: int = 30,
        campus: str | None = None,
    ) -> dict[str, Any]:
        """List holidays from today through the next days_ahead days.

        Args:
            days_ahead: How many days to look ahead (default 30).
            campus: Only holidays that apply to this campus.
        """
        if days_ahead < 0 or days_ahead > MAX_UPCOMING_DAYS:
            raise ToolError(f"days_ahead must be between 0 and {MAX_UPCOMING_DAYS}")
        holidays = await get_registry().engine.upcoming_holidays(days_ahead, campus)
        return {"status": "success", "data": [holiday_to_dict(h) for h in holidays]}
