"""Job data models."""
from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class JobStatus(str, enum.Enum):
    pending = "pending"
    running = "running"
    completed = "completed"
    failed = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.completed, JobStatus.failed)


ACTIVE_STATUSES = (JobStatus.pending, JobStatus.running)
TERMINAL_STATUSES = (JobStatus.completed, JobStatus.failed)


class JobRecord(BaseModel):
    """Snapshot of a tracked tool execution."""

    job_id: str
    tool_name: str
    params: Dict[str, Any] = Field(default_factory=dict)
    status: JobStatus = JobStatus.pending
    progress: int = 0
    start_time: str = Field(default_factory=utcnow_iso)
    end_time: Optional[str] = None
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class JobEvent(BaseModel):
    """Payload pushed to subscribers after every job transition."""

    type: str = "job_update"
    jobId: str
    status: JobStatus
    progress: int = 0
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    timestamp: str = Field(default_factory=utcnow_iso)
    server: str = "zk-pret-gateway"

    @classmethod
    def from_record(cls, rec: JobRecord) -> "JobEvent":
        return cls(
            jobId=rec.job_id,
            status=rec.status,
            progress=rec.progress,
            result=rec.result,
            error=rec.error,
        )
