"""Client registry for the calendar store and the engine built on it.

Provides get_registry() / set_registry() instead of a module-level singleton.
Tests inject mocks via set_registry().
"""

from __future__ import annotations

from dataclasses import dataclass, field

from _constants import CACHE_TTL_SECONDS
from clients._base import BaseStoreClient
from clients.calendar import CalendarStore
from engine import LeaveCalendarEngine, SaturdayPolicy

__all__ = ["CalendarRegistry", "get_registry", "set_registry"]


@dataclass
class CalendarRegistry:
    """Holds the store and engine instances. One registry per server lifecycle."""

    base: BaseStoreClient
    saturday_policy: SaturdayPolicy = SaturdayPolicy.HOLIDAY_UNLESS_WORKING
    fail_open: bool = False
    cache_ttl: float = CACHE_TTL_SECONDS
    store: CalendarStore = field(init=False)
    engine: LeaveCalendarEngine = field(init=False)

    def __post_init__(self) -> None:
        self.store = CalendarStore(self.base, ttl=self.cache_ttl)
        self.engine = LeaveCalendarEngine(
            self.store,
            saturday_policy=self.saturday_policy,
            fail_open=self.fail_open,
        )

    async def close(self) -> None:
        await self.base.close()


_registry: CalendarRegistry | None = None


def get_registry() -> CalendarRegistry:
    """Return the active registry, or raise if not initialized."""
    if _registry is None:
        raise RuntimeError("CalendarRegistry not initialized. Server lifespan has not started.")
    return _registry


def set_registry(registry: CalendarRegistry | None) -> None:
    """Set (or clear) the global registry. Used by lifespan and tests."""
    global _registry
    _registry = registry
