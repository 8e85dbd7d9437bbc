"""Synchronous tool execution and gateway health reporting."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..executor.base import ToolExecutionResult, ToolExecutor
from ..jobs.broadcaster import JobEventBroadcaster
from ..jobs.models import utcnow_iso
from ..jobs.runner import call_executor
from ..jobs.store import JobStore

logger = logging.getLogger(__name__)

SERVER_NAME = "zk-pret-gateway"


class ToolService:
    """Blocking execution path plus read-only status summaries.

    ``execute_sync`` goes straight to the executor; it never creates a job
    record or broadcasts an event.
    """

    def __init__(
        self,
        executor: ToolExecutor,
        store: JobStore,
        broadcaster: JobEventBroadcaster,
        async_enabled: bool = True,
        timeout: Optional[float] = None,
    ) -> None:
        self._executor = executor
        self._store = store
        self._broadcaster = broadcaster
        self.async_enabled = async_enabled
        self._timeout = timeout

    def list_tools(self) -> List[str]:
        return self._executor.available_tools()

    async def execute_sync(self, tool_name: str, params: Optional[Dict[str, Any]] = None) -> ToolExecutionResult:
        """Run *tool_name* and wait for the outcome.

        Executor errors propagate unchanged for the HTTP error handlers.
        """
        logger.info("Synchronous execution started: %s", tool_name)
        outcome = await call_executor(self._executor, tool_name, params or {}, self._timeout)
        logger.info("Synchronous execution finished: %s in %s", tool_name, outcome.elapsed_time)
        return outcome

    async def health(self) -> Dict[str, Any]:
        """Executor reachability plus job and subscriber counts."""
        probe = await asyncio.to_thread(self._executor.health_check)
        counts = await self._store.count_jobs()
        connected = bool(probe.get("connected"))
        return {
            "status": "healthy" if connected else "degraded",
            "timestamp": utcnow_iso(),
            "server": SERVER_NAME,
            "services": {
                "zkExecutor": connected,
                "asyncJobs": self.async_enabled,
                "websockets": self._broadcaster.subscriber_count > 0,
            },
            "executorStatus": probe.get("status"),
            "jobs": counts,
            "activeJobs": counts["active"],
            "websocketConnections": self._broadcaster.subscriber_count,
        }
