"""Log retrieval endpoint."""
from __future__ import annotations

import time
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from ..log_buffer import JobLogBuffer
from ..schemas.envelope import ApiResponse

router = APIRouter(prefix="/api/logs", tags=["logs"])


@router.get("")
async def get_logs(
    request: Request,
    last_n: int = Query(100, ge=1, le=500),
    level: Optional[str] = None,
    job_id: Optional[str] = Query(None, alias="jobId"),
) -> ApiResponse:
    t0 = time.monotonic()
    buffer: JobLogBuffer = request.app.state.log_buffer
    try:
        entries = buffer.query(last_n, min_level=level, job_id=job_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    elapsed = (time.monotonic() - t0) * 1000
    return ApiResponse.success(entries, elapsed_ms=elapsed)
