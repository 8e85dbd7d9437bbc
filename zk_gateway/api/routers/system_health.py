"""Health and server status endpoints."""
from __future__ import annotations

import time

from fastapi import APIRouter, Depends

from ... import __version__
from ..config import ApiSettings
from ..deps.providers import get_app_settings, get_tool_service
from ..schemas.envelope import ApiResponse
from ..services.tool_service import ToolService

router = APIRouter(prefix="/api/v1", tags=["health"])


@router.get("/health")
async def health(svc: ToolService = Depends(get_tool_service)) -> ApiResponse:
    t0 = time.monotonic()
    data = await svc.health()
    data["version"] = __version__
    elapsed = (time.monotonic() - t0) * 1000
    return ApiResponse.success(data, elapsed_ms=elapsed)


@router.get("/status")
async def status(
    svc: ToolService = Depends(get_tool_service),
    settings: ApiSettings = Depends(get_app_settings),
) -> ApiResponse:
    t0 = time.monotonic()
    health_data = await svc.health()
    data = {
        "server": health_data["server"],
        "version": __version__,
        "status": health_data["status"],
        "timestamp": health_data["timestamp"],
        "host": settings.host,
        "port": settings.port,
        "features": {
            "syncExecution": True,
            "asyncExecution": svc.async_enabled,
            "websockets": True,
            "serverSentEvents": True,
            "jobManagement": True,
        },
        "executor": {
            "connected": health_data["services"]["zkExecutor"],
            "status": health_data["executorStatus"],
            "timeoutSeconds": settings.execution_timeout,
        },
        "jobs": health_data["jobs"],
        "websockets": {"connections": health_data["websocketConnections"], "enabled": True},
    }
    elapsed = (time.monotonic() - t0) * 1000
    return ApiResponse.success(data, elapsed_ms=elapsed)
