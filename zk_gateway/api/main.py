"""FastAPI application factory and server entry point."""
from __future__ import annotations

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from .config import ApiSettings
from .deps.providers import get_settings
from .errors import register_error_handlers
from .executor.base import ToolExecutor
from .executor.zk_executor import ZKToolExecutor
from .jobs.broadcaster import JobEventBroadcaster
from .jobs.runner import JobRunner
from .jobs.store import JobStore
from .log_buffer import JobLogBuffer
from .services.tool_service import ToolService

logger = logging.getLogger(__name__)

_STRUCTURED_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(settings: ApiSettings) -> None:
    """Install the root log format selected by ``settings.log_format``."""
    handler = logging.StreamHandler()
    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_STRUCTURED_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )


@asynccontextmanager
async def _lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    settings: ApiSettings = app.state.settings
    configure_logging(settings)
    logger.info("Starting ZK-PRET gateway on %s:%s", settings.host, settings.port)
    logger.info(
        "Async job management %s", "enabled" if settings.enable_async_jobs else "disabled"
    )

    app.state.log_buffer.attach()

    store: JobStore = app.state.job_store
    await store.initialize()

    probe = await asyncio.to_thread(app.state.executor.health_check)
    if probe.get("connected"):
        logger.info("ZK tool executor ready at %s", settings.stdio_path)
    else:
        logger.warning("ZK tool executor unavailable: %s", probe.get("status"))

    yield

    await app.state.job_runner.shutdown()
    await store.close()
    logger.info("Shutting down ZK-PRET gateway")
    app.state.log_buffer.detach()


def create_app(
    settings: ApiSettings | None = None,
    executor: Optional[ToolExecutor] = None,
) -> FastAPI:
    """Build the application and its single set of job components.

    *executor* replaces the ZK-PRET process executor, e.g. with a stub in
    tests.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="ZK-PRET Gateway",
        description="HTTP/WebSocket gateway for ZK-PRET tool execution with async job tracking.",
        version=__version__,
        lifespan=_lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Composition root
    executor = executor or ZKToolExecutor(settings)
    store = JobStore(settings.job_db_path)
    broadcaster = JobEventBroadcaster()
    watchdog = settings.execution_timeout + settings.build_timeout
    app.state.settings = settings
    app.state.log_buffer = JobLogBuffer()
    app.state.executor = executor
    app.state.job_store = store
    app.state.broadcaster = broadcaster
    app.state.job_runner = JobRunner(
        store,
        executor,
        broadcaster,
        max_concurrent=settings.max_concurrent_jobs,
        max_active=settings.max_active_jobs,
        timeout=watchdog,
    )
    app.state.tool_service = ToolService(
        executor,
        store,
        broadcaster,
        async_enabled=settings.enable_async_jobs,
        timeout=watchdog,
    )

    # CORS
    origins = [o.strip() for o in settings.cors_origins.split(",")]
    allow_creds = "*" not in origins
    if not allow_creds:
        logger.warning("CORS origins contain '*'. Credentials will NOT be allowed.")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=allow_creds,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def _log_requests(request: Request, call_next):
        t0 = time.monotonic()
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.0fms) client=%s agent=%s",
            request.method,
            request.url.path,
            response.status_code,
            (time.monotonic() - t0) * 1000,
            request.client.host if request.client else "-",
            request.headers.get("user-agent", "-"),
        )
        return response

    register_error_handlers(app)

    from .routers import all_routers

    for router in all_routers():
        app.include_router(router)

    return app


def run_server() -> None:
    """CLI entry point: ``python -m zk_gateway.api.main``."""
    import uvicorn

    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run_server()
