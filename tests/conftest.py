"""Pytest configuration for the leave calendar tests.

Sets environment variables before any test module imports server.py, which
reads its configuration and registers tool domains at module level.
"""

from __future__ import annotations

import os
from datetime import date

os.environ.setdefault("CALENDAR_API_BASE_URL", "http://127.0.0.1:8000/api/v1")
os.environ.setdefault("ENABLED_DOMAINS", "calendar,admin")
os.environ.setdefault("ENABLE_SENSITIVE_DOMAINS", "true")
os.environ.setdefault("CALENDAR_API_TOKEN", "test-service-token")

# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------

from fastmcp.tools.function_tool import FunctionTool

import server as server_module
from engine.errors import CalendarUnavailableError
from engine.models import CalendarSnapshot, Holiday, HolidayType, SaturdayOverride

# Monday; the engine's "today" in validation tests.
TODAY = date(2026, 2, 2)
# Wednesday holiday used across sandwich and validation tests.
FOUNDERS_DAY = date(2026, 2, 11)


def get_tool_fn(name: str):
    """Get a registered tool's underlying async function by name.

    Looks up the tool in ``mcp.local_provider._components``.
    Raises ``KeyError`` with available tool names if not found.
    """
    lp = server_module.mcp.local_provider
    for comp in lp._components.values():
        if isinstance(comp, FunctionTool) and comp.name == name:
            return comp.fn
    available = sorted(
        comp.name for comp in lp._components.values() if isinstance(comp, FunctionTool)
    )
    raise KeyError(f"Tool {name!r} not found. Available: {available}")


def make_holiday(
    day: date,
    name: str = "Founders Day",
    *,
    campus: str | None = None,
    holiday_type: HolidayType = HolidayType.UNIVERSITY,
) -> Holiday:
    return Holiday(
        id=f"{day.isoformat()}-{name.lower().replace(' ', '-')}",
        date=day,
        name=name,
        type=holiday_type,
        is_recurring=True,
        year=day.year,
        campus=campus,
    )


def make_snapshot(
    holidays: tuple[Holiday, ...] | list[Holiday] = (),
    overrides: tuple[SaturdayOverride, ...] | list[SaturdayOverride] = (),
    *,
    stale: bool = False,
    skipped_records: int = 0,
) -> CalendarSnapshot:
    return CalendarSnapshot(
        holidays=tuple(holidays),
        saturday_overrides=tuple(overrides),
        fetched_at=0.0,
        stale=stale,
        skipped_records=skipped_records,
    )


class StaticSource:
    """In-memory ``CalendarSource``; raises ``error`` when set."""

    def __init__(
        self,
        snapshot: CalendarSnapshot | None = None,
        error: Exception | None = None,
    ) -> None:
        self.current = snapshot or make_snapshot()
        self.error = error
        self.calls = 0

    async def snapshot(self) -> CalendarSnapshot:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.current


def unavailable_source() -> StaticSource:
    return StaticSource(error=CalendarUnavailableError("store down"))
