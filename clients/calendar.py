"""Calendar store: cached reads and admin writes of holidays and Saturday overrides.

Uses composition: holds a reference to :class:`BaseStoreClient` for HTTP
transport and delegates all network I/O through ``self._base._request()``.

The whole calendar (every holiday and every Saturday override) is cached as
one :class:`CalendarSnapshot`, keyed by freshness only; year and campus
filtering happen on the cached superset.  Every write invalidates the cache
before returning.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import re
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace
from datetime import date
from typing import Any, TypeVar
from urllib.parse import quote

from _constants import CACHE_TTL_SECONDS, MAX_HOLIDAY_NAME_LEN
from clients._base import BaseStoreClient, SnapshotCache
from engine.errors import CalendarUnavailableError, CalendarWriteError, InputError
from engine.models import (
    CalendarSnapshot,
    Holiday,
    HolidayType,
    SaturdayOverride,
    as_day,
    normalize_campus,
)

__all__ = ["DEFAULT_HOLIDAYS", "CalendarStore", "make_holiday_id"]

logger = logging.getLogger("leave_calendar.store")

WriteListener = Callable[[], Awaitable[None] | None]

_HOLIDAYS_ENDPOINT = "holidays/"
_SATURDAYS_ENDPOINT = "saturday-overrides/"
_DOC_ID_RE = re.compile(r"^[A-Za-z0-9_.\-]{1,200}$")
_UNSET: Any = object()

# (month, day, name, type) -- seeded for each requested year on an empty store.
DEFAULT_HOLIDAYS: tuple[tuple[int, int, str, HolidayType], ...] = (
    (1, 1, "New Year's Day", HolidayType.PUBLIC),
    (1, 14, "Pongal", HolidayType.PUBLIC),
    (1, 15, "Thiruvalluvar Day", HolidayType.PUBLIC),
    (1, 16, "Uzhavar Thunal", HolidayType.PUBLIC),
    (1, 26, "Republic Day", HolidayType.PUBLIC),
    (5, 1, "May Day", HolidayType.PUBLIC),
    (7, 15, "University Foundation Day", HolidayType.UNIVERSITY),
    (8, 15, "Independence Day", HolidayType.PUBLIC),
    (10, 2, "Gandhi Jayanti", HolidayType.PUBLIC),
    (12, 25, "Christmas Day", HolidayType.PUBLIC),
)


def make_holiday_id(year: int, name: str) -> str:
    """``2026-republic-day`` style document id."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return f"{year}-{slug}"


def _check_doc_id(doc_id: str) -> str:
    if not isinstance(doc_id, str) or not _DOC_ID_RE.match(doc_id):
        raise InputError(f"Invalid document id: {doc_id!r}")
    return doc_id


def _check_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise InputError("Holiday name is required")
    if len(cleaned) > MAX_HOLIDAY_NAME_LEN:
        raise InputError(f"Holiday name too long (max {MAX_HOLIDAY_NAME_LEN} characters)")
    return cleaned


T = TypeVar("T")


def _parse_records(
    records: Iterable[dict[str, Any]],
    parse: Callable[[dict[str, Any]], T],
    kind: str,
) -> tuple[list[T], int]:
    """Parse *records*, returning the parsed items and the number skipped."""
    out: list[T] = []
    skipped = 0
    for record in records:
        try:
            out.append(parse(record))
        except (KeyError, TypeError, ValueError) as exc:
            skipped += 1
            logger.warning("Skipping malformed %s record %r: %s", kind, record.get("id"), exc)
    return out, skipped


class CalendarStore:
    """Cached read access and admin write access to the calendar collections."""

    def __init__(self, base: BaseStoreClient, ttl: float = CACHE_TTL_SECONDS) -> None:
        self._base = base
        self._cache: SnapshotCache[CalendarSnapshot] = SnapshotCache(ttl=ttl)
        self._listeners: list[WriteListener] = []

    # -- cache --------------------------------------------------------------

    @property
    def cache(self) -> SnapshotCache[CalendarSnapshot]:
        return self._cache

    def invalidate(self) -> None:
        """Drop the cached snapshot; the next read refetches."""
        self._cache.invalidate()
        logger.debug("Calendar cache invalidated (generation=%d)", self._cache.generation)

    def add_write_listener(self, listener: WriteListener) -> None:
        """Register a callback run after every calendar write."""
        self._listeners.append(listener)

    async def on_calendar_write(self) -> None:
        """Hook for any surface that mutated the calendar: invalidate, then notify."""
        self.invalidate()
        for listener in list(self._listeners):
            try:
                outcome = listener()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("Calendar write listener %r failed", listener)

    async def snapshot(self) -> CalendarSnapshot:
        """Return the cached snapshot, refreshing it when missing or expired.

        On a failed refresh the last known good snapshot is returned with
        ``stale=True``; without one :class:`CalendarUnavailableError` is
        raised.
        """
        cached = self._cache.get()
        if cached is not None:
            return cached

        async with self._cache.lock:
            # Another coroutine may have refreshed while we waited.
            cached = self._cache.get()
            if cached is not None:
                return cached

            generation = self._cache.generation
            try:
                fresh = await self._fetch_snapshot()
            except CalendarUnavailableError as exc:
                fallback = self._cache.last_known_good()
                if fallback is None:
                    logger.error("Calendar store unreachable and no cached calendar: %s", exc)
                    raise
                logger.warning("Calendar refresh failed, serving last known calendar: %s", exc)
                return replace(fallback, stale=True)

            if not self._cache.put(fresh, generation):
                logger.debug("Calendar changed during refresh; result not cached")
            logger.info(
                "Calendar refreshed: %d holidays, %d saturday overrides, %d skipped",
                len(fresh.holidays),
                len(fresh.saturday_overrides),
                fresh.skipped_records,
            )
            return fresh

    async def _fetch_snapshot(self) -> CalendarSnapshot:
        (holidays, bad_holidays), (overrides, bad_overrides) = await asyncio.gather(
            self._read_holidays(),
            self._read_saturday_overrides(),
        )
        return CalendarSnapshot(
            holidays=tuple(holidays),
            saturday_overrides=tuple(overrides),
            fetched_at=time.time(),
            skipped_records=bad_holidays + bad_overrides,
        )

    # -- uncached reads -----------------------------------------------------

    async def _read_holidays(self, year: int | None = None) -> tuple[list[Holiday], int]:
        params = {"year": year} if year is not None else None
        result = await self._base._request("GET", _HOLIDAYS_ENDPOINT, params=params)
        records, error = self._base._extract_records(result)
        if error is not None:
            raise CalendarUnavailableError(f"Could not load holidays: {error}")
        return _parse_records(records, Holiday.from_record, "holiday")

    async def _read_saturday_overrides(self) -> tuple[list[SaturdayOverride], int]:
        result = await self._base._request("GET", _SATURDAYS_ENDPOINT)
        records, error = self._base._extract_records(result)
        if error is not None:
            raise CalendarUnavailableError(f"Could not load Saturday overrides: {error}")
        return _parse_records(records, SaturdayOverride.from_record, "saturday override")

    async def fetch_holidays(self, year: int | None = None) -> list[Holiday]:
        """Read holidays straight from the store (optionally one year)."""
        holidays, _ = await self._read_holidays(year)
        if year is not None:
            holidays = [h for h in holidays if h.date.year == year]
        return holidays

    async def fetch_saturday_overrides(self) -> list[SaturdayOverride]:
        """Read every Saturday override straight from the store."""
        overrides, _ = await self._read_saturday_overrides()
        return overrides

    # -- cached reads -------------------------------------------------------

    async def get_holidays(self, year: int | None = None, campus: str | None = None) -> list[Holiday]:
        """Holidays for *year* (all years if ``None``), optionally campus-filtered."""
        snapshot = await self.snapshot()
        return snapshot.holidays_for_year(year, normalize_campus(campus))

    async def get_saturday_override(
        self,
        day: date | str,
        campus: str | None = None,
    ) -> SaturdayOverride | None:
        snapshot = await self.snapshot()
        return snapshot.override_for(as_day(day), campus)

    async def list_saturday_overrides(self, campus: str | None = None) -> list[SaturdayOverride]:
        """Campus entries plus global ones; only global ones without a campus."""
        tag = normalize_campus(campus)
        snapshot = await self.snapshot()
        return sorted(
            (o for o in snapshot.saturday_overrides if o.campus is None or o.campus == tag),
            key=lambda o: (o.date, o.campus or ""),
        )

    # -- writes -------------------------------------------------------------

    async def _write(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            result = await self._base._request(method, endpoint, data=data)
        finally:
            # Outcome of a failed write is unknown; refetch either way.
            await self.on_calendar_write()
        if result.get("status") != "success":
            raise CalendarWriteError(
                str(result.get("message") or "Calendar write failed"),
                status_code=result.get("status_code"),
            )
        return result

    async def create_holiday(
        self,
        day: date | str,
        name: str,
        holiday_type: HolidayType | str = HolidayType.PUBLIC,
        *,
        is_recurring: bool = True,
        campus: str | None = None,
        holiday_id: str | None = None,
    ) -> Holiday:
        d = as_day(day, "holiday date")
        clean_name = _check_name(name)
        try:
            htype = HolidayType(str(holiday_type).lower())
        except ValueError as exc:
            raise InputError(f"Unknown holiday type {holiday_type!r}") from exc
        doc_id = _check_doc_id(holiday_id or make_holiday_id(d.year, clean_name))
        holiday = Holiday(
            id=doc_id,
            date=d,
            name=clean_name,
            type=htype,
            is_recurring=is_recurring,
            year=d.year,
            campus=normalize_campus(campus),
        )
        await self._write("PUT", f"{_HOLIDAYS_ENDPOINT}{quote(doc_id, safe='')}/", holiday.to_record())
        return holiday

    async def update_holiday(
        self,
        holiday_id: str,
        *,
        day: date | str | None = None,
        name: str | None = None,
        holiday_type: HolidayType | str | None = None,
        is_recurring: bool | None = None,
        campus: str | None = _UNSET,
    ) -> dict[str, Any]:
        """Patch the given fields of a holiday.  Returns the patch sent."""
        doc_id = _check_doc_id(holiday_id)
        updates: dict[str, Any] = {}
        if day is not None:
            d = as_day(day, "holiday date")
            updates["date"] = d.isoformat()
            updates["year"] = d.year
        if name is not None:
            updates["name"] = _check_name(name)
        if holiday_type is not None:
            try:
                updates["type"] = HolidayType(str(holiday_type).lower()).value
            except ValueError as exc:
                raise InputError(f"Unknown holiday type {holiday_type!r}") from exc
        if is_recurring is not None:
            updates["isRecurring"] = is_recurring
        if campus is not _UNSET:
            updates["campus"] = normalize_campus(campus)
        if not updates:
            raise InputError("No holiday fields to update")
        await self._write("PATCH", f"{_HOLIDAYS_ENDPOINT}{quote(doc_id, safe='')}/", updates)
        return updates

    async def delete_holiday(self, holiday_id: str) -> None:
        doc_id = _check_doc_id(holiday_id)
        await self._write("DELETE", f"{_HOLIDAYS_ENDPOINT}{quote(doc_id, safe='')}/")

    async def set_saturday_working(
        self,
        day: date | str,
        is_working: bool,
        campus: str | None = None,
    ) -> SaturdayOverride:
        d = as_day(day, "saturday date")
        if d.weekday() != 5:
            raise InputError(f"{d.isoformat()} is not a Saturday ({d.strftime('%A')})")
        override = SaturdayOverride(date=d, is_holiday=not is_working, campus=normalize_campus(campus))
        await self._write(
            "PUT",
            f"{_SATURDAYS_ENDPOINT}{quote(override.doc_id, safe='')}/",
            override.to_record(),
        )
        return override

    async def remove_saturday_override(self, day: date | str, campus: str | None = None) -> None:
        d = as_day(day, "saturday date")
        doc_id = SaturdayOverride.make_doc_id(d, campus)
        await self._write("DELETE", f"{_SATURDAYS_ENDPOINT}{quote(doc_id, safe='')}/")

    async def initialize_defaults(self, years: Iterable[int]) -> int:
        """Seed :data:`DEFAULT_HOLIDAYS` for *years* if the store has no holidays.

        Returns the number of holidays written (0 when the store was not empty).
        """
        if await self.fetch_holidays():
            return 0
        written = 0
        for year in years:
            for month, day_of_month, name, htype in DEFAULT_HOLIDAYS:
                await self.create_holiday(date(year, month, day_of_month), name, htype)
                written += 1
        logger.info("Seeded %d default holidays", written)
        return written
