"""Shared test fixtures for the zk_gateway test suite."""
from __future__ import annotations

import asyncio
import threading
import time
from typing import Any, Dict, Iterable, Optional

import pytest

from zk_gateway.api.config import ApiSettings
from zk_gateway.api.executor.base import ToolExecutionResult, UnknownOperationError
from zk_gateway.api.jobs.broadcaster import JobEventBroadcaster
from zk_gateway.api.jobs.models import JobRecord
from zk_gateway.api.jobs.runner import JobRunner
from zk_gateway.api.jobs.store import JobStore


def pytest_sessionfinish(session, exitstatus):
    """Spawn a watchdog that force-exits if the process hangs at shutdown.

    Worker threads left behind by abandoned executor calls and aiosqlite
    connection threads can keep the interpreter alive after the last test.
    """
    import os

    def _watchdog():
        time.sleep(5)
        os._exit(exitstatus)

    t = threading.Thread(target=_watchdog, daemon=True)
    t.start()


# ── Stub executor ────────────────────────────────────────────────────


class StubExecutor:
    """In-process stand-in for the ZK-PRET executor.

    Records every call.  ``delay`` sleeps before returning, ``error`` is
    raised instead of returning, and ``gate`` (a ``threading.Event``)
    blocks the call until set.
    """

    def __init__(
        self,
        tools: Iterable[str] = ("verify-A", "verify-B"),
        delay: float = 0.0,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        gate: Optional[threading.Event] = None,
        connected: bool = True,
    ) -> None:
        self.tools = list(tools)
        self.delay = delay
        self.result = result if result is not None else {"verdict": "VALID"}
        self.error = error
        self.gate = gate
        self.connected = connected
        self.calls: list = []

    def available_tools(self):
        return list(self.tools)

    def execute(self, tool_name, parameters):
        if tool_name not in self.tools:
            raise UnknownOperationError(tool_name, self.tools)
        self.calls.append((tool_name, dict(parameters)))
        if self.gate is not None:
            self.gate.wait(timeout=10)
        time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return ToolExecutionResult(success=True, result=dict(self.result), elapsed_ms=self.delay * 1000)

    def health_check(self):
        if not self.connected:
            return {"connected": False, "status": {"reason": "stub offline"}}
        return {"connected": True, "status": {"mode": "stub"}}


@pytest.fixture
def make_executor():
    """Factory for stub executors with custom behaviour."""
    return StubExecutor


@pytest.fixture
def stub_executor():
    return StubExecutor(delay=0.05)


@pytest.fixture
def gate():
    """A released-at-teardown event for executors that must block."""
    ev = threading.Event()
    yield ev
    ev.set()


# ── Job fixtures ─────────────────────────────────────────────────────


@pytest.fixture
async def store():
    s = JobStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def broadcaster():
    return JobEventBroadcaster()


@pytest.fixture
async def runner(store, stub_executor, broadcaster):
    r = JobRunner(store, stub_executor, broadcaster)
    yield r
    await r.shutdown()


@pytest.fixture
def wait_for_terminal():
    """Return a coroutine function polling a job until it is terminal."""

    async def _wait(store: JobStore, job_id: str, timeout: float = 3.0) -> JobRecord:
        deadline = time.monotonic() + timeout
        while True:
            rec = await store.get_job(job_id)
            if rec is not None and rec.status.is_terminal:
                return rec
            if time.monotonic() > deadline:
                raise AssertionError(f"job {job_id} not terminal after {timeout}s: {rec}")
            await asyncio.sleep(0.01)

    return _wait


# ── API fixtures ─────────────────────────────────────────────────────


@pytest.fixture
def settings(tmp_path):
    return ApiSettings(
        stdio_path=str(tmp_path / "zk-pret"),
        job_db_path=":memory:",
        enable_async_jobs=True,
        _env_file=None,
    )


@pytest.fixture
async def app(settings, stub_executor):
    """Create a test FastAPI app backed by the stub executor."""
    from zk_gateway.api.main import create_app

    application = create_app(settings, executor=stub_executor)
    yield application

    await application.state.job_runner.shutdown()
    await application.state.job_store.close()


@pytest.fixture
async def client(app):
    """Async HTTP client bound to the test app."""
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as ac:
        yield ac
