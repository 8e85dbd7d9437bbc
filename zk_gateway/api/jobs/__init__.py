"""In-process job tracking for asynchronous tool execution."""
from .broadcaster import JobEventBroadcaster
from .models import JobEvent, JobRecord, JobStatus
from .runner import JobQueueFullError, JobRunner
from .store import DuplicateJobError, JobStore

__all__ = [
    "DuplicateJobError",
    "JobEvent",
    "JobEventBroadcaster",
    "JobQueueFullError",
    "JobRecord",
    "JobRunner",
    "JobStatus",
    "JobStore",
]
