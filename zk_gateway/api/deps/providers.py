"""Dependency providers for FastAPI ``Depends()``.

Components are built once by ``create_app`` and kept on ``app.state``;
these functions only hand them out.
"""
from __future__ import annotations

from functools import lru_cache

from fastapi import Request

from ..config import ApiSettings
from ..jobs.broadcaster import JobEventBroadcaster
from ..jobs.runner import JobRunner
from ..jobs.store import JobStore
from ..services.tool_service import ToolService


@lru_cache
def get_settings() -> ApiSettings:
    return ApiSettings()


def get_app_settings(request: Request) -> ApiSettings:
    return request.app.state.settings


def get_job_store(request: Request) -> JobStore:
    return request.app.state.job_store


def get_job_runner(request: Request) -> JobRunner:
    return request.app.state.job_runner


def get_broadcaster(request: Request) -> JobEventBroadcaster:
    return request.app.state.broadcaster


def get_tool_service(request: Request) -> ToolService:
    return request.app.state.tool_service
