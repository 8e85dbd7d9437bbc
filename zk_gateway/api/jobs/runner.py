"""Async job runner: drives each job through its lifecycle and publishes updates."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Optional

from ..executor.base import ExecutionTimeoutError, ToolExecutionResult, ToolExecutor, UnknownOperationError
from .broadcaster import JobEventBroadcaster
from .models import JobEvent, JobRecord, JobStatus, utcnow_iso
from .store import JobStore

logger = logging.getLogger(__name__)

# Progress reported once the executor has been handed the job.
INITIAL_PROGRESS = 10

SHUTDOWN_MESSAGE = "Cancelled: gateway shutting down"


def _log_fields(job: JobRecord) -> Dict[str, Any]:
    return {"job_id": job.job_id, "tool_name": job.tool_name, "status": job.status.value}


class JobQueueFullError(Exception):
    """Raised when the number of active jobs is at capacity."""


async def call_executor(
    executor: ToolExecutor,
    tool_name: str,
    params: Dict[str, Any],
    timeout: Optional[float] = None,
) -> ToolExecutionResult:
    """Run the blocking executor in a worker thread.

    *timeout* is a watchdog on top of the executor's own process timeout:
    if the call has not returned by then, ``ExecutionTimeoutError`` is
    raised and the worker thread is abandoned.
    """
    call = asyncio.to_thread(executor.execute, tool_name, params)
    if timeout is None:
        return await call
    try:
        return await asyncio.wait_for(call, timeout)
    except asyncio.TimeoutError:
        raise ExecutionTimeoutError(
            f"Tool {tool_name} did not finish within {int(timeout * 1000)}ms"
        ) from None


class JobRunner:
    """Executes tool jobs in the background with bounded concurrency.

    Transitions are ``pending -> running -> completed | failed``.  Every
    transition is written to the store first and then broadcast exactly
    once; all transitions of one job happen inside one task, so their
    events are ordered.
    """

    def __init__(
        self,
        store: JobStore,
        executor: ToolExecutor,
        broadcaster: JobEventBroadcaster,
        max_concurrent: int = 4,
        max_active: int = 50,
        timeout: Optional[float] = None,
    ) -> None:
        self._store = store
        self._executor = executor
        self._broadcaster = broadcaster
        self._sem = asyncio.Semaphore(max_concurrent)
        self._max_active = max_active
        self._timeout = timeout
        self._active_tasks: Dict[str, asyncio.Task] = {}

    @property
    def active_count(self) -> int:
        """Number of jobs pending or running in this process."""
        return len(self._active_tasks)

    # ── Submit & Run ─────────────────────────────────────────────────

    async def submit(
        self,
        tool_name: str,
        params: Optional[Dict[str, Any]] = None,
        job_id: Optional[str] = None,
    ) -> JobRecord:
        """Create a pending job and schedule it; returns without waiting.

        Raises
        ------
        UnknownOperationError
            If *tool_name* is not supported.  No job is created.
        JobQueueFullError
            If ``max_active`` jobs are already pending or running.
        DuplicateJobError
            If *job_id* is already used by a stored job.
        """
        available = self._executor.available_tools()
        if tool_name not in available:
            raise UnknownOperationError(tool_name, available)
        if len(self._active_tasks) >= self._max_active:
            raise JobQueueFullError(
                f"Job queue full. {self._max_active} jobs active. Try again later."
            )

        rec = await self._store.create_job(tool_name, params or {}, job_id=job_id)
        logger.info("Job %s submitted: %s", rec.job_id, tool_name, extra=_log_fields(rec))
        self._emit(rec)
        self._active_tasks[rec.job_id] = asyncio.create_task(self._run(rec.model_copy(deep=True)))
        return rec

    async def _run(self, job: JobRecord) -> None:
        try:
            async with self._sem:
                await self._store.update_status(job.job_id, JobStatus.running, progress=INITIAL_PROGRESS)
                job.status = JobStatus.running
                job.progress = INITIAL_PROGRESS
                self._emit(job)

                t0 = time.monotonic()
                try:
                    outcome = await call_executor(self._executor, job.tool_name, job.params, self._timeout)
                except Exception as exc:  # noqa: BLE001
                    logger.error("Job %s failed: %s", job.job_id, exc, extra=_log_fields(job))
                    await self._fail(job, str(exc) or type(exc).__name__)
                else:
                    await self._complete(job, outcome, (time.monotonic() - t0) * 1000)
        except asyncio.CancelledError:
            # covers the semaphore wait as well as the executor call
            await self._fail(job, SHUTDOWN_MESSAGE)
            raise
        finally:
            if self._active_tasks.get(job.job_id) is asyncio.current_task():
                del self._active_tasks[job.job_id]

    async def _complete(self, job: JobRecord, outcome: ToolExecutionResult, elapsed_ms: float) -> None:
        now = utcnow_iso()
        result = {
            **outcome.result,
            "success": outcome.success,
            "elapsedTime": outcome.elapsed_time,
            "executionTimeMs": round(elapsed_ms, 1),
            "jobId": job.job_id,
            "completedAt": now,
            "mode": "async",
        }
        changed = await self._store.update_status(
            job.job_id, JobStatus.completed, progress=100, end_time=now, result=result
        )
        if not changed:
            return
        job.status = JobStatus.completed
        job.progress = 100
        job.end_time = now
        job.result = result
        logger.info("Job %s completed in %.0fms", job.job_id, elapsed_ms, extra=_log_fields(job))
        self._emit(job)

    async def _fail(self, job: JobRecord, message: str) -> None:
        now = utcnow_iso()
        if not await self._store.update_status(job.job_id, JobStatus.failed, end_time=now, error=message):
            return
        job.status = JobStatus.failed
        job.end_time = now
        job.error = message
        logger.info("Job %s marked failed: %s", job.job_id, message, extra=_log_fields(job))
        self._emit(job)

    def _emit(self, job: JobRecord) -> None:
        self._broadcaster.broadcast(JobEvent.from_record(job))

    # ── Shutdown ─────────────────────────────────────────────────────

    async def shutdown(self) -> None:
        """Cancel outstanding jobs and mark every one of them failed.

        A task cancelled before its first step never runs its body, so
        anything still non-terminal after the tasks settle is failed here.
        """
        pending = list(self._active_tasks.items())
        for _, task in pending:
            task.cancel()
        if pending:
            logger.info("Cancelling %d active job(s)", len(pending))
            await asyncio.gather(*(t for _, t in pending), return_exceptions=True)
        for job_id, _ in pending:
            rec = await self._store.get_job(job_id)
            if rec is not None and not rec.status.is_terminal:
                await self._fail(rec, SHUTDOWN_MESSAGE)
        self._active_tasks.clear()
