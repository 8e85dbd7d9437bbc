"""Tests for app factory, router registration and middleware."""
import importlib

import pytest

from zk_gateway.api.config import ApiSettings
from zk_gateway.api.main import create_app
from zk_gateway.api.routers import _ROUTER_MODULES


def _settings(tmp_path, **kw):
    return ApiSettings(stdio_path=str(tmp_path), _env_file=None, **kw)


def test_create_app(tmp_path):
    app = create_app(_settings(tmp_path))
    assert app.title == "ZK-PRET Gateway"
    assert app.state.job_runner is not None
    assert app.state.tool_service.async_enabled is True


def test_async_flag_from_settings(tmp_path):
    app = create_app(_settings(tmp_path, enable_async_jobs=False))
    assert app.state.tool_service.async_enabled is False


def test_async_flag_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("ZK_PRET_ENABLE_ASYNC_JOBS", "false")
    monkeypatch.setenv("ZK_PRET_EXECUTION_TIMEOUT", "90")
    settings = _settings(tmp_path)
    assert settings.enable_async_jobs is False
    assert settings.execution_timeout == 90


def test_invalid_timeout_rejected(tmp_path):
    with pytest.raises(ValueError):
        _settings(tmp_path, execution_timeout=0)


@pytest.mark.parametrize("module_path", _ROUTER_MODULES)
def test_router_module_has_router(module_path: str):
    mod = importlib.import_module(module_path)
    assert hasattr(mod, "router"), f"{module_path} missing 'router' attribute"


def test_routes_registered(tmp_path):
    app = create_app(_settings(tmp_path))
    paths = {r.path for r in app.routes}
    expected = {
        "/api/v1/health",
        "/api/v1/status",
        "/api/v1/tools",
        "/api/v1/tools/execute",
        "/api/v1/tools/execute-async",
        "/api/v1/jobs",
        "/api/v1/jobs/start",
        "/api/v1/jobs/{job_id}",
        "/api/v1/jobs/completed",
        "/api/v1/jobs/events",
        "/api/logs",
        "/ws",
    }
    for ep in expected:
        assert ep in paths, f"Missing route: {ep}"


def test_openapi_schema(tmp_path):
    schema = create_app(_settings(tmp_path)).openapi()
    assert "/api/v1/jobs/start" in schema["paths"]


@pytest.mark.asyncio
async def test_unknown_path_404(client):
    resp = await client.get("/api/nonexistent")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_cors_preflight(client):
    resp = await client.options(
        "/api/v1/health",
        headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "GET"},
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:3000"


def test_json_log_formatter():
    import json
    import logging

    from zk_gateway.api.main import JsonFormatter

    record = logging.LogRecord("zk_gateway.test", logging.INFO, __file__, 1, 'job "%s" done', ("job_1",), None)
    entry = json.loads(JsonFormatter().format(record))
    assert entry["level"] == "INFO"
    assert entry["logger"] == "zk_gateway.test"
    assert entry["msg"] == 'job "job_1" done'


@pytest.mark.asyncio
async def test_requests_are_logged(client, caplog):
    import logging

    with caplog.at_level(logging.INFO, logger="zk_gateway.api.main"):
        await client.get("/api/v1/tools", headers={"User-Agent": "zk-client/1.0"})
    lines = [r.getMessage() for r in caplog.records if r.name == "zk_gateway.api.main"]
    assert any("GET /api/v1/tools -> 200" in line and "zk-client/1.0" in line for line in lines)
