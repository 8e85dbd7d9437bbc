"""Request schemas for tool execution and job submission.

Field aliases accept the camelCase keys existing ZK-PRET clients send.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class ToolExecuteRequest(BaseModel):
    """Request body for POST /api/v1/tools/execute."""

    model_config = ConfigDict(populate_by_name=True)

    tool_name: str = Field(alias="toolName", min_length=1)
    parameters: Optional[Dict[str, Any]] = None


class JobStartRequest(ToolExecuteRequest):
    """Request body for POST /api/v1/jobs/start."""

    job_id: Optional[str] = Field(default=None, alias="jobId", min_length=1)
