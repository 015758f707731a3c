"""Base calendar-store client with snapshot cache and HTTP transport.

Provides ``BaseStoreClient`` -- the async HTTP client for the remote
document store that keeps holidays and Saturday overrides -- and
``SnapshotCache``, the single-entry TTL cache the calendar store keeps its
snapshot in.

Transport rules:
    * ``_request`` returns error dicts for 4xx/5xx and transport failures;
      it never raises.
    * ``httpx.AsyncClient(follow_redirects=False)``.
    * The constructor rejects non-HTTPS base URLs for non-loopback hosts.
"""

from __future__ import annotations

import asyncio
import ipaddress
import json
import logging
import time
from typing import Any, Generic, TypeVar
from urllib.parse import urlparse

import httpx

from _constants import CACHE_TTL_SECONDS

__all__ = ["BaseStoreClient", "SnapshotCache"]

logger = logging.getLogger("leave_calendar.store")

T = TypeVar("T")

# ---------------------------------------------------------------------------
# SnapshotCache
# ---------------------------------------------------------------------------


class SnapshotCache(Generic[T]):
    """One cached value with a TTL, replaced as a whole.

    The entry is a ``(value, fetched_at)`` tuple assigned in one statement,
    so readers see either the old or the new value, never a mix.  A
    generation counter is bumped on every :meth:`invalidate`; a refresh that
    started before an invalidation must not repopulate the cache.

    The last value ever stored is kept separately as *last known good* and
    survives invalidation and expiry.

    Clock source: :func:`time.monotonic` (immune to wall-clock changes).
    """

    __slots__ = ("_entry", "_generation", "_last_good", "_lock", "_ttl")

    def __init__(self, ttl: float = CACHE_TTL_SECONDS) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be > 0")
        if ttl > CACHE_TTL_SECONDS:
            raise ValueError(f"ttl must not exceed {CACHE_TTL_SECONDS:.0f} seconds")
        self._ttl = ttl
        self._entry: tuple[T, float] | None = None
        self._last_good: T | None = None
        self._generation = 0
        # Serialises refreshes so concurrent readers trigger one fetch.
        self._lock = asyncio.Lock()

    @property
    def ttl(self) -> float:
        return self._ttl

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    def get(self) -> T | None:
        """Return the cached value, or ``None`` if missing / expired."""
        entry = self._entry
        if entry is None:
            return None
        value, fetched_at = entry
        if time.monotonic() - fetched_at >= self._ttl:
            return None
        return value

    def put(self, value: T, generation: int | None = None) -> bool:
        """Store *value* unless the cache was invalidated since *generation*.

        Returns whether the value was stored.
        """
        if generation is not None and generation != self._generation:
            return False
        self._entry = (value, time.monotonic())
        self._last_good = value
        return True

    def last_known_good(self) -> T | None:
        return self._last_good

    def invalidate(self) -> None:
        """Drop the cached value immediately; the next read must refetch."""
        self._generation += 1
        self._entry = None

    def age(self) -> float | None:
        """Seconds since the cached value was fetched, or ``None``."""
        entry = self._entry
        if entry is None:
            return None
        return time.monotonic() - entry[1]


# ---------------------------------------------------------------------------
# BaseStoreClient
# ---------------------------------------------------------------------------


class BaseStoreClient:
    """Async HTTP client for the calendar document store.

    Authenticates with a service token sent as ``Authorization: Token
    <value>``.  Every method returns a result dict:
    ``{"status": "success", "data": ...}`` or
    ``{"status": "error", "message": ..., ["status_code": ...]}``.
    """

    # -- construction -------------------------------------------------------

    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        timeout: float = 30.0,
    ) -> None:
        parsed = urlparse(base_url)
        host = (parsed.hostname or "").lower()

        if parsed.scheme != "https" and not self._is_loopback(host):
            raise ValueError(
                f"Non-HTTPS base_url is only permitted for localhost. Got: {base_url}"
            )

        self._base_url: str = base_url.rstrip("/")
        self._api_token: str | None = (api_token or "").strip() or None
        self._http: httpx.AsyncClient = httpx.AsyncClient(
            follow_redirects=False,
            timeout=httpx.Timeout(connect=5.0, read=timeout, write=timeout, pool=5.0),
            verify=True,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        await self._http.aclose()

    async def __aenter__(self) -> BaseStoreClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    @staticmethod
    def _is_loopback(host: str) -> bool:
        """Check if host is a loopback address (localhost, 127.x.x.x, ::1, etc.)."""
        if host in ("localhost",):
            return True
        stripped = host.strip("[]")
        try:
            return ipaddress.ip_address(stripped).is_loopback
        except ValueError:
            return False

    # -- generic request helper ---------------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        data: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a request against the store.  Returns a result dict; never raises."""
        url = f"{self._base_url}/{endpoint.lstrip('/')}"
        headers: dict[str, str] = {"Accept": "application/json"}
        if self._api_token:
            headers["Authorization"] = f"Token {self._api_token}"
        if data is not None:
            headers["Content-Type"] = "application/json"

        try:
            response = await self._http.request(
                method,
                url,
                json=data,
                params=params,
                headers=headers,
            )
        except httpx.TransportError as exc:
            logger.warning("Calendar store %s %s transport error: %s", method, endpoint, exc)
            return {
                "status": "error",
                "message": "Calendar service temporarily unavailable.",
            }
        except Exception as exc:
            logger.warning("Calendar store %s %s unexpected error: %s", method, endpoint, exc)
            return {
                "status": "error",
                "message": "An unexpected error occurred. Please try again.",
            }

        if response.status_code == 204 or not response.content:
            response_data: Any = None
        else:
            try:
                response_data = response.json()
            except (json.JSONDecodeError, ValueError):
                response_data = {"text": response.text[:500]}

        if response.status_code >= 400:
            logger.warning(
                "Calendar store %s %s returned status=%d",
                method,
                endpoint,
                response.status_code,
            )
            error_msg: Any = f"API error: {response.status_code}"
            if isinstance(response_data, dict):
                error_msg = (
                    response_data.get("error")
                    or response_data.get("detail")
                    or error_msg
                )
            error_msg = str(error_msg)
            if len(error_msg) > 500:
                error_msg = error_msg[:500] + "..."
            return {
                "status": "error",
                "message": error_msg,
                "status_code": response.status_code,
            }

        return {"status": "success", "data": response_data}

    # -- static helpers (exposed for testing) --------------------------------

    @staticmethod
    def _extract_records(result: dict[str, Any]) -> tuple[list[dict[str, Any]], str | None]:
        """Pull a list of record dicts out of a list-endpoint response.

        Accepts a bare list or an envelope keyed by ``results`` / ``data`` /
        ``items`` / ``documents``.  Returns ``(records, error_message)``.
        """
        if result.get("status") != "success":
            return [], result.get("message") or "API request failed"

        data = result.get("data")
        if data is None:
            return [], None

        if isinstance(data, list):
            return [item for item in data if isinstance(item, dict)], None

        if isinstance(data, dict):
            for key in ("results", "data", "items", "documents"):
                val = data.get(key)
                if isinstance(val, list):
                    return [item for item in val if isinstance(item, dict)], None

        return [], "Unexpected response shape from calendar store"
