"""Dependency injection providers."""
from .providers import (
    get_app_settings,
    get_broadcaster,
    get_job_runner,
    get_job_store,
    get_settings,
    get_tool_service,
)

__all__ = [
    "get_app_settings",
    "get_broadcaster",
    "get_job_runner",
    "get_job_store",
    "get_settings",
    "get_tool_service",
]
