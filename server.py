"""Leave Calendar MCP Server.

Exposes the calendar & leave-eligibility engine via the Model Context
Protocol: day classification, working-day counts, leave validation and
duration labels, plus (when enabled) the admin calendar-editing tools.
"""

from __future__ import annotations

import importlib.metadata
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.middleware import Middleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from _constants import CACHE_TTL_SECONDS
from clients import CalendarRegistry, get_registry, set_registry
from clients._base import BaseStoreClient
from engine import SaturdayPolicy
from tools import load_domains

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logger = logging.getLogger("leave_calendar.server")

# Configure logging; LOG_LEVEL env var overrides the default INFO level.
logging.basicConfig(
    level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

CALENDAR_BASE_URL: str = os.environ.get(
    "CALENDAR_API_BASE_URL", "https://calendar.example.edu/api/v1/"
)
CALENDAR_API_TOKEN: str = os.environ.get("CALENDAR_API_TOKEN", "")
SATURDAY_POLICY: SaturdayPolicy = SaturdayPolicy.from_env(os.environ.get("SATURDAY_DEFAULT"))
FAIL_OPEN: bool = os.environ.get("CALENDAR_FAIL_OPEN", "").lower().strip() == "true"

try:
    CACHE_TTL: float = min(
        float(os.environ.get("CALENDAR_CACHE_TTL", CACHE_TTL_SECONDS)), CACHE_TTL_SECONDS
    )
except ValueError:
    logger.warning("Invalid CALENDAR_CACHE_TTL, using %s seconds", CACHE_TTL_SECONDS)
    CACHE_TTL = CACHE_TTL_SECONDS

try:
    _APP_VERSION: str = importlib.metadata.version("leave-calendar-mcp")
except importlib.metadata.PackageNotFoundError:
    _APP_VERSION = os.environ.get("APP_VERSION", "dev")


def build_registry() -> CalendarRegistry:
    """Create the registry from the environment configuration."""
    return CalendarRegistry(
        base=BaseStoreClient(base_url=CALENDAR_BASE_URL, api_token=CALENDAR_API_TOKEN),
        saturday_policy=SATURDAY_POLICY,
        fail_open=FAIL_OPEN,
        cache_ttl=CACHE_TTL,
    )


@asynccontextmanager
async def _lifespan(server: FastMCP) -> AsyncIterator[None]:
    """Manage application resources during server lifecycle."""
    registry = build_registry()
    set_registry(registry)
    logger.info(
        "Leave calendar server %s starting up (saturday_default=%s fail_open=%s cache_ttl=%.0fs)",
        _APP_VERSION,
        SATURDAY_POLICY.value,
        FAIL_OPEN,
        CACHE_TTL,
    )
    try:
        yield
    finally:
        logger.info("Leave calendar server shutting down")
        set_registry(None)
        await registry.close()


mcp = FastMCP(name="leave-calendar-mcp", lifespan=_lifespan)

LOADED_DOMAINS: list[str] = load_domains(mcp)


# ---------------------------------------------------------------------------
# Security headers middleware (defense-in-depth for HTTP responses)
# ---------------------------------------------------------------------------


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject hardening headers into every HTTP response."""

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


# Starlette Middleware descriptor passed to mcp.run() at startup.
_security_middleware = Middleware(SecurityHeadersMiddleware)


# ---------------------------------------------------------------------------
# Health check endpoint (used by Docker HEALTHCHECK)
# ---------------------------------------------------------------------------


@mcp.custom_route("/health", methods=["GET"])
async def health_check(request: Request) -> JSONResponse:
    """Return 200 OK with calendar cache state."""
    payload: dict[str, Any] = {"status": "ok", "version": _APP_VERSION, "domains": LOADED_DOMAINS}
    try:
        age = get_registry().store.cache.age()
    except RuntimeError:
        age = None
    payload["calendar_cache_age_seconds"] = round(age, 1) if age is not None else None
    return JSONResponse(payload)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    mcp.run(
        transport="http",
        host=os.environ.get("MCP_HOST", "127.0.0.1"),
        port=int(os.environ.get("MCP_PORT", "8100")),
        stateless_http=True,
        middleware=[_security_middleware],
    )
