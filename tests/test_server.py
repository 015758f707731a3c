"""Tests for server.py -- lifespan, health endpoint, security headers, audit logging."""

from __future__ import annotations

import ast
import inspect
import json
from unittest.mock import MagicMock, patch

import pytest
from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Route
from starlette.testclient import TestClient

import server as server_module
import tools.admin as admin_tools
from clients import CalendarRegistry, get_registry, set_registry
from clients.calendar import CalendarStore
from engine import LeaveCalendarEngine, SaturdayPolicy

# ---------------------------------------------------------------------------
# AST-based tool discovery helpers
# ---------------------------------------------------------------------------


def _is_mcp_tool_decorator(dec: ast.expr) -> bool:
    """Return True if *dec* looks like ``@mcp.tool`` or ``@mcp.tool(...)``."""
    if isinstance(dec, ast.Attribute) and dec.attr == "tool":
        return True
    if isinstance(dec, ast.Call):
        func = dec.func
        if isinstance(func, ast.Attribute) and func.attr == "tool":
            return True
    return False


def _tools_by_write_op(module) -> dict[str, bool]:
    """Map each ``@mcp.tool`` function in *module* to whether it logs WRITE_OP."""
    with open(inspect.getfile(module), encoding="utf-8") as f:
        tree = ast.parse(f.read())

    found: dict[str, bool] = {}
    for node in ast.walk(tree):
        if not isinstance(node, ast.AsyncFunctionDef):
            continue
        if not any(_is_mcp_tool_decorator(dec) for dec in node.decorator_list):
            continue
        found[node.name] = any(
            isinstance(child, ast.Constant)
            and isinstance(child.value, str)
            and "WRITE_OP" in child.value
            for child in ast.walk(node)
        )
    return found


@pytest.fixture(autouse=True)
def _cleanup_registry():
    yield
    set_registry(None)


# ---------------------------------------------------------------------------
# Registry and lifespan
# ---------------------------------------------------------------------------


class TestBuildRegistry:
    async def test_builds_store_and_engine(self) -> None:
        registry = server_module.build_registry()
        try:
            assert isinstance(registry, CalendarRegistry)
            assert isinstance(registry.store, CalendarStore)
            assert isinstance(registry.engine, LeaveCalendarEngine)
            assert registry.engine.saturday_policy is server_module.SATURDAY_POLICY
            assert registry.store.cache.ttl == server_module.CACHE_TTL
        finally:
            await registry.close()

    async def test_registry_passes_policy_and_fail_open(self) -> None:
        with (
            patch.object(server_module, "SATURDAY_POLICY", SaturdayPolicy.WORKING_UNLESS_HOLIDAY),
            patch.object(server_module, "FAIL_OPEN", True),
        ):
            registry = server_module.build_registry()
        try:
            assert registry.engine.saturday_policy is SaturdayPolicy.WORKING_UNLESS_HOLIDAY
            assert registry.engine.fail_open is True
        finally:
            await registry.close()

    def test_get_registry_before_startup_raises(self) -> None:
        with pytest.raises(RuntimeError, match="not initialized"):
            get_registry()

    async def test_lifespan_sets_and_clears_registry(self) -> None:
        async with server_module._lifespan(server_module.mcp):
            assert isinstance(get_registry(), CalendarRegistry)
        with pytest.raises(RuntimeError):
            get_registry()


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


class TestHealthCheck:
    async def test_without_registry(self) -> None:
        response = await server_module.health_check(MagicMock())
        body = json.loads(response.body)
        assert response.status_code == 200
        assert body["status"] == "ok"
        assert body["domains"] == server_module.LOADED_DOMAINS
        assert body["calendar_cache_age_seconds"] is None

    async def test_reports_cache_age(self) -> None:
        registry = server_module.build_registry()
        registry.store.cache.put(MagicMock())
        set_registry(registry)
        try:
            body = json.loads((await server_module.health_check(MagicMock())).body)
            assert body["calendar_cache_age_seconds"] is not None
            assert body["calendar_cache_age_seconds"] >= 0
        finally:
            await registry.close()


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------


class TestSecurityHeaders:
    def test_headers_added(self) -> None:
        async def _ok(request):
            return PlainTextResponse("ok")

        app = Starlette(
            routes=[Route("/", _ok)],
            middleware=[server_module._security_middleware],
        )
        response = TestClient(app).get("/")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


# ---------------------------------------------------------------------------
# Audit logging
# ---------------------------------------------------------------------------


class TestWriteOpLogging:
    def test_admin_write_tools_log_write_op(self) -> None:
        found = _tools_by_write_op(admin_tools)
        read_only = {"admin_list_saturday_overrides"}
        assert len(found) == 7
        for name, logs in found.items():
            assert logs is (name not in read_only), name
