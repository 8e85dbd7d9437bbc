"""Executor contract, outcome model and process-level errors."""
from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Sequence

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ── Errors ───────────────────────────────────────────────────────────


class ExecutionError(Exception):
    """Base class for failures of the external toolchain invocation."""


class UnknownOperationError(ExecutionError):
    """Requested tool name is not part of the supported set."""

    def __init__(self, tool_name: str, available: Sequence[str]) -> None:
        self.tool_name = tool_name
        self.available = list(available)
        super().__init__(
            f"Unknown tool: {tool_name}. Available tools: {', '.join(self.available)}"
        )


class ExecutionTimeoutError(ExecutionError):
    """External process exceeded the configured ceiling and was killed."""


class ExternalProcessError(ExecutionError):
    """External process could not be spawned or exited non-zero."""


# ── Outcome ──────────────────────────────────────────────────────────


class ToolExecutionResult(BaseModel):
    """Outcome of a completed external invocation.

    ``success`` reports system-level execution only.  A negative business
    verdict (e.g. a failed compliance check) is still ``success=True`` with
    the verdict embedded in ``result``.
    """

    success: bool
    result: Dict[str, Any] = Field(default_factory=dict)
    elapsed_ms: float = 0.0

    @property
    def elapsed_time(self) -> str:
        return f"{int(round(self.elapsed_ms))}ms"


class ToolExecutor(Protocol):
    """What the job runner and the synchronous path need from an executor."""

    def available_tools(self) -> List[str]: ...

    def execute(self, tool_name: str, parameters: Mapping[str, Any]) -> ToolExecutionResult: ...

    def health_check(self) -> Dict[str, Any]: ...


# ── Process runner ───────────────────────────────────────────────────


@dataclass
class CommandResult:
    returncode: int
    stdout: str
    stderr: str


CommandRunner = Callable[[List[str], str, Optional[Dict[str, str]], float], CommandResult]


def run_command(
    argv: List[str],
    cwd: str,
    env: Optional[Dict[str, str]],
    timeout: float,
) -> CommandResult:
    """Run *argv* to completion, killing it if *timeout* seconds elapse.

    Raises
    ------
    ExternalProcessError
        If the executable cannot be spawned.
    ExecutionTimeoutError
        If the process outlives *timeout*.  The child is killed and reaped
        before the error propagates.
    """
    try:
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except OSError as exc:
        raise ExternalProcessError(f"Failed to spawn {argv[0]}: {exc}") from exc

    logger.debug("Spawned pid %s: %s", proc.pid, " ".join(argv))
    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.communicate()
        logger.warning("Killed pid %s after %.3fs timeout", proc.pid, timeout)
        raise ExecutionTimeoutError(
            f"Script execution timeout after {int(timeout * 1000)}ms"
        ) from None
    return CommandResult(proc.returncode, stdout or "", stderr or "")
