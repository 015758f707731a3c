"""Shared constants for the leave calendar engine and MCP server."""

from __future__ import annotations

CACHE_TTL_SECONDS: float = 24 * 60 * 60
SANDWICH_BUFFER_DAYS: int = 2
MAX_LEAVE_DAYS: int = 90
MAX_QUERY_DAYS: int = 366
MAX_SEARCH_DAYS: int = 366
MAX_UPCOMING_DAYS: int = 366
MAX_HOLIDAY_NAME_LEN: int = 200

# Permission policy, in minutes since midnight.
PERMISSION_DAY_START: int = 8 * 60
PERMISSION_DAY_END: int = 16 * 60
PERMISSION_MIN_MINUTES: int = 10
PERMISSION_MAX_MINUTES: int = 120
PERMISSION_DEFAULT_MINUTES: int = 60
# (first allowed start, last allowed start, latest end)
PERMISSION_WINDOWS: tuple[tuple[int, int, int], ...] = (
    (8 * 60, 11 * 60, 12 * 60),
    (12 * 60, 15 * 60, 16 * 60),
)
