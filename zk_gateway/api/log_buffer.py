"""Recent gateway log records, kept in memory for ``GET /api/logs``."""
from __future__ import annotations

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

# Attributes copied from ``extra=`` when a record carries them.
JOB_FIELDS = ("job_id", "tool_name", "status")


class JobLogBuffer(logging.Handler):
    """Ring buffer of log records under the ``zk_gateway`` logger.

    Records logged with ``extra={"job_id": ..., "tool_name": ...}`` keep
    those fields, so the log of a single job can be pulled back out.
    """

    def __init__(self, capacity: int = 500, level: int = logging.INFO) -> None:
        super().__init__(level)
        self._records: Deque[Dict[str, Any]] = deque(maxlen=capacity)
        self._logger_name = "zk_gateway"

    def emit(self, record: logging.LogRecord) -> None:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in JOB_FIELDS:
            value = record.__dict__.get(field)
            if value is not None:
                entry[field] = str(value)
        self._records.append(entry)

    def attach(self) -> None:
        target = logging.getLogger(self._logger_name)
        if self not in target.handlers:
            target.addHandler(self)

    def detach(self) -> None:
        logging.getLogger(self._logger_name).removeHandler(self)

    def query(
        self,
        last_n: int = 100,
        min_level: Optional[str] = None,
        job_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Newest *last_n* records at or above *min_level*, optionally for one job."""
        entries = list(self._records)
        if min_level:
            threshold = logging.getLevelName(min_level.upper())
            if not isinstance(threshold, int):
                raise ValueError(f"Unknown log level: {min_level}")
            entries = [e for e in entries if logging.getLevelName(e["level"]) >= threshold]
        if job_id:
            entries = [e for e in entries if e.get("job_id") == job_id]
        return entries[-last_n:] if last_n > 0 else []
