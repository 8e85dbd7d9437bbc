"""Tool listing and execution endpoints."""
from __future__ import annotations

import time
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from ..deps.providers import get_job_runner, get_tool_service
from ..executor.tools import CORPORATE_TOOL, EXIM_TOOL, GLEIF_TOOL
from ..jobs.runner import JobRunner
from ..schemas.envelope import ApiResponse
from ..schemas.tools import JobStartRequest, ToolExecuteRequest
from ..services.tool_service import ToolService
from .jobs import start_job

router = APIRouter(prefix="/api/v1/tools", tags=["tools"])


@router.get("")
async def list_tools(svc: ToolService = Depends(get_tool_service)) -> ApiResponse:
    tools = svc.list_tools()
    return ApiResponse.success(
        {"tools": tools, "count": len(tools), "asyncEnabled": svc.async_enabled}
    )


async def _run_sync(svc: ToolService, tool_name: str, params: Optional[Dict[str, Any]]) -> ApiResponse:
    t0 = time.monotonic()
    outcome = await svc.execute_sync(tool_name, params)
    elapsed = (time.monotonic() - t0) * 1000
    return ApiResponse.success(
        {
            "success": outcome.success,
            "toolName": tool_name,
            "parameters": params or {},
            "result": outcome.result,
            "executionTime": outcome.elapsed_time,
        },
        mode="sync",
        elapsed_ms=elapsed,
    )


@router.post("/execute")
async def execute_tool(
    req: ToolExecuteRequest,
    svc: ToolService = Depends(get_tool_service),
) -> ApiResponse:
    return await _run_sync(svc, req.tool_name, req.parameters)


# Shortcuts: the request body is the parameter object of one fixed tool.

@router.post("/gleif")
async def verify_gleif(
    params: Optional[Dict[str, Any]] = Body(default=None),
    svc: ToolService = Depends(get_tool_service),
) -> ApiResponse:
    return await _run_sync(svc, GLEIF_TOOL, params)


@router.post("/corporate")
async def verify_corporate(
    params: Optional[Dict[str, Any]] = Body(default=None),
    svc: ToolService = Depends(get_tool_service),
) -> ApiResponse:
    return await _run_sync(svc, CORPORATE_TOOL, params)


@router.post("/exim")
async def verify_exim(
    params: Optional[Dict[str, Any]] = Body(default=None),
    svc: ToolService = Depends(get_tool_service),
) -> ApiResponse:
    return await _run_sync(svc, EXIM_TOOL, params)


@router.post("/execute-async")
async def execute_tool_async(
    req: JobStartRequest,
    runner: JobRunner = Depends(get_job_runner),
    svc: ToolService = Depends(get_tool_service),
) -> ApiResponse:
    return await start_job(req, runner=runner, svc=svc)
