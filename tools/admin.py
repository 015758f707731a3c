"""Admin MCP tools: create, edit and remove holidays and Saturday overrides.

Every write goes through :class:`clients.calendar.CalendarStore`, which
invalidates the calendar cache before the tool returns.
"""

from __future__ import annotations

import logging
from datetime import date as date_type
from typing import Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from _tooling import holiday_to_dict, override_to_dict, parse_date_arg, tool_error_handler
from clients import get_registry

logger = logging.getLogger("leave_calendar.server")

__all__ = ["register"]


def register(mcp: FastMCP) -> None:
    """Register all admin tools on the given FastMCP instance."""

    # ------------------------------------------------------------------
    # Holidays
    # ------------------------------------------------------------------

    @mcp.tool
    @tool_error_handler("Failed to create holiday. Please try again.")
    async def admin_create_holiday(
        date: str,
        name: str,
        holiday_type: str = "public",
        is_recurring: bool = True,
        campus: str | None = None,
    ) -> dict[str, Any]:
        """Add a holiday to the calendar.

        Args:
            date: Holiday date in YYYY-MM-DD format.
            name: Holiday name.
            holiday_type: national, state, university or public. Default is public.
            is_recurring: Whether the holiday recurs every year. Default is true.
            campus: Campus the holiday applies to. Omit for all campuses.
        """
        day = parse_date_arg(date, "date")
        holiday = await get_registry().store.create_holiday(
            day,
            name,
            holiday_type,
            is_recurring=is_recurring,
            campus=campus,
        )
        logger.info(
            "WRITE_OP tool=admin_create_holiday id=%s date=%s campus=%s",
            holiday.id,
            holiday.date,
            holiday.campus,
        )
        return {"status": "success", "data": holiday_to_dict(holiday)}

    @mcp.tool
    @tool_error_handler("Failed to update holiday. Please try again.")
    async def admin_update_holiday(
        holiday_id: str,
        date: str | None = None,
        name: str | None = None,
        holiday_type: str | None = None,
        is_recurring: bool | None = None,
    ) -> dict[str, Any]:
        """Edit an existing holiday. Only the given fields change.

        Args:
            holiday_id: Holiday ID (from calendar_list_holidays).
            date: New date in YYYY-MM-DD format.
            name: New name.
            holiday_type: New type (national, state, university, public).
            is_recurring: New recurrence flag.
        """
        day = parse_date_arg(date, "date") if date else None
        updates = await get_registry().store.update_holiday(
            holiday_id,
            day=day,
            name=name,
            holiday_type=holiday_type,
            is_recurring=is_recurring,
        )
        logger.info(
            "WRITE_OP tool=admin_update_holiday id=%s fields=%s",
            holiday_id,
            sorted(updates),
        )
        return {"status": "success", "data": {"id": holiday_id, "updated": updates}}

    @mcp.tool
    @tool_error_handler("Failed to delete holiday. Please try again.")
    async def admin_delete_holiday(holiday_id: str) -> dict[str, Any]:
        """Remove a holiday from the calendar.

        Args:
            holiday_id: Holiday ID (from calendar_list_holidays).
        """
        await get_registry().store.delete_holiday(holiday_id)
        logger.info("WRITE_OP tool=admin_delete_holiday id=%s", holiday_id)
        return {"status": "success", "data": {"id": holiday_id, "deleted": True}}

    @mcp.tool
    @tool_error_handler("Failed to seed default holidays. Please try again.")
    async def admin_initialize_holidays(year: int | None = None) -> dict[str, Any]:
        """Seed the default holiday list for a year and the next one, if the calendar is empty.

        Args:
            year: First year to seed. Defaults to the current year.
        """
        first = year or date_type.today().year
        written = await get_registry().store.initialize_defaults([first, first + 1])
        logger.info("WRITE_OP tool=admin_initialize_holidays year=%s written=%s", first, written)
        return {"status": "success", "data": {"written": written}}

    # ------------------------------------------------------------------
    # Saturdays
    # ------------------------------------------------------------------

    @mcp.tool
    @tool_error_handler("Failed to set Saturday. Please try again.")
    async def admin_set_saturday_working(
        date: str,
        is_working: bool = True,
        campus: str | None = None,
    ) -> dict[str, Any]:
        """Mark a Saturday as a working day (or explicitly as a holiday).

        Args:
            date: The Saturday in YYYY-MM-DD format.
            is_working: True for a working Saturday, false for a Saturday off.
            campus: Campus the override applies to. Omit for all campuses.
        """
        day = parse_date_arg(date, "date")
        if day.weekday() != 5:
            raise ToolError(f"date must be a Saturday, got {date} ({day.strftime('%A')})")
        override = await get_registry().store.set_saturday_working(day, is_working, campus)
        logger.info(
            "WRITE_OP tool=admin_set_saturday_working date=%s campus=%s is_working=%s",
            override.date,
            override.campus,
            is_working,
        )
        return {"status": "success", "data": override_to_dict(override)}

    @mcp.tool
    @tool_error_handler("Failed to remove Saturday override. Please try again.")
    async def admin_remove_saturday_override(
        date: str,
        campus: str | None = None,
    ) -> dict[str, Any]:
        """Remove a Saturday override so the Saturday falls back to the default policy.

        Args:
            date: The Saturday in YYYY-MM-DD format.
            campus: Campus of the override. Omit for the all-campus override.
        """
        day = parse_date_arg(date, "date")
        await get_registry().store.remove_saturday_override(day, campus)
        logger.info(
            "WRITE_OP tool=admin_remove_saturday_override date=%s campus=%s",
            day,
            campus,
        )
        return {"status": "success", "data": {"date": day.isoformat(), "deleted": True}}

    @mcp.tool
    @tool_error_handler("Failed to list Saturday overrides. Please try again.")
    async def admin_list_saturday_overrides(campus: str | None = None) -> dict[str, Any]:
        """List Saturday overrides for a campus (plus the all-campus ones).

        Args:
            campus: Campus tag. Omit to list only all-campus overrides.
        """
        overrides = await get_registry().store.list_saturday_overrides(campus)
        return {"status": "success", "data": [override_to_dict(o) for o in overrides]}
