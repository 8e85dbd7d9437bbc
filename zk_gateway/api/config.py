"""Gateway settings loaded from the environment."""
from __future__ import annotations

import logging
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_LOG_FORMATS = {"structured", "json"}


class ApiSettings(BaseSettings):
    """Settings loaded from environment / .env file.

    Every field can be overridden with a ``ZK_PRET_`` prefixed variable,
    e.g. ``ZK_PRET_STDIO_PATH`` or ``ZK_PRET_ENABLE_ASYNC_JOBS=false``.
    """

    host: str = "localhost"
    port: int = 3001
    cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"
    log_format: str = "structured"

    # Job tracking
    job_db_path: str = ":memory:"
    enable_async_jobs: bool = True
    max_concurrent_jobs: int = 4
    max_active_jobs: int = 50

    # External ZK-PRET toolchain
    stdio_path: str = "./zk-pret-test-v3.6"
    stdio_build_path: str = "./build/tests/with-sign"
    node_binary: str = "node"
    execution_timeout: float = 1800.0
    build_timeout: float = 600.0

    model_config = SettingsConfigDict(env_prefix="ZK_PRET_", env_file=".env", extra="ignore")

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, v: str) -> str:
        if v not in _LOG_FORMATS:
            raise ValueError(f"log_format must be one of {sorted(_LOG_FORMATS)}")
        return v

    @field_validator("execution_timeout", "build_timeout")
    @classmethod
    def _check_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be positive")
        return v

    @property
    def build_dir(self) -> Path:
        """Directory holding the compiled tool scripts."""
        return Path(self.stdio_path) / self.stdio_build_path
