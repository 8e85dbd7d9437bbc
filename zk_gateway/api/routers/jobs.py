"""Job management endpoints."""
from __future__ import annotations

import json

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from ..deps.providers import get_broadcaster, get_job_runner, get_job_store, get_tool_service
from ..errors import AsyncJobsDisabledError, JobNotFoundError
from ..jobs.broadcaster import JobEventBroadcaster
from ..jobs.runner import JobRunner
from ..jobs.store import JobStore
from ..schemas.envelope import ApiResponse
from ..schemas.tools import JobStartRequest
from ..services.tool_service import ToolService

router = APIRouter(prefix="/api/v1/jobs", tags=["jobs"])


@router.post("/start")
async def start_job(
    req: JobStartRequest,
    runner: JobRunner = Depends(get_job_runner),
    svc: ToolService = Depends(get_tool_service),
) -> ApiResponse:
    if not svc.async_enabled:
        raise AsyncJobsDisabledError(
            "Async jobs are disabled. Set ZK_PRET_ENABLE_ASYNC_JOBS=true to use async execution"
        )
    rec = await runner.submit(req.tool_name, req.parameters, job_id=req.job_id)
    return ApiResponse.success(
        {
            "jobId": rec.job_id,
            "status": rec.status.value,
            "toolName": rec.tool_name,
            "timestamp": rec.start_time,
        },
        mode="async",
    )


@router.get("")
async def list_jobs(store: JobStore = Depends(get_job_store)) -> ApiResponse:
    jobs = await store.list_jobs()
    active = sum(1 for j in jobs if not j.status.is_terminal)
    return ApiResponse.success(
        {"jobs": [j.model_dump() for j in jobs], "total": len(jobs), "active": active}
    )


@router.delete("/completed")
async def purge_completed(store: JobStore = Depends(get_job_store)) -> ApiResponse:
    removed = await store.purge_terminal()
    return ApiResponse.success({"removed": removed})


@router.get("/events")
async def job_events(broadcaster: JobEventBroadcaster = Depends(get_broadcaster)):
    """Server-sent event stream carrying the same messages as the WebSocket."""

    async def _generate():
        stream = broadcaster.subscribe()
        try:
            async for message in stream:
                yield {"event": json.loads(message).get("type", "message"), "data": message}
        finally:
            await stream.aclose()

    return EventSourceResponse(_generate())


@router.get("/{job_id}")
async def get_job(job_id: str, store: JobStore = Depends(get_job_store)) -> ApiResponse:
    rec = await store.get_job(job_id)
    if rec is None:
        raise JobNotFoundError(f"Job '{job_id}' not found")
    return ApiResponse.success(rec.model_dump())
