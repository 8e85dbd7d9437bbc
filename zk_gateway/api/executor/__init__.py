"""Executor adapter for the external ZK-PRET toolchain."""
from .base import (
    CommandResult,
    ExecutionError,
    ExecutionTimeoutError,
    ExternalProcessError,
    ToolExecutionResult,
    ToolExecutor,
    UnknownOperationError,
    run_command,
)
from .tools import TOOL_SCRIPTS, build_script_args
from .zk_executor import ZKToolExecutor

__all__ = [
    "CommandResult",
    "ExecutionError",
    "ExecutionTimeoutError",
    "ExternalProcessError",
    "TOOL_SCRIPTS",
    "ToolExecutionResult",
    "ToolExecutor",
    "UnknownOperationError",
    "ZKToolExecutor",
    "build_script_args",
    "run_command",
]
