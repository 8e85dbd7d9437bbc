"""Pydantic schemas for API request/response models."""
from .envelope import ApiResponse, ResponseMeta
from .tools import JobStartRequest, ToolExecuteRequest

__all__ = ["ApiResponse", "JobStartRequest", "ResponseMeta", "ToolExecuteRequest"]
