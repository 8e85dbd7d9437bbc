"""Runs ZK-PRET tools as external Node.js processes."""
from __future__ import annotations

import json
import logging
import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from ..config import ApiSettings
from .base import (
    CommandRunner,
    ExternalProcessError,
    ToolExecutionResult,
    UnknownOperationError,
    run_command,
)
from .tools import CORE_SCRIPTS, TOOL_SCRIPTS, build_script_args

logger = logging.getLogger(__name__)

EXECUTION_MODE = "http-server"

# Verdicts reported by the toolchain that count as a passed verification.
_PASSING_VERDICTS = {"VALID", "PASSED", "SUCCESS", "VERIFIED"}


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def parse_structured_output(stdout: str) -> Optional[Dict[str, Any]]:
    """Return the last stdout line that is a JSON object, if any."""
    for line in reversed(stdout.splitlines()):
        line = line.strip()
        if not (line.startswith("{") and line.endswith("}")):
            continue
        try:
            data = json.loads(line)
        except ValueError:
            continue
        if isinstance(data, dict):
            return data
    return None


def classify_verdict(structured: Optional[Dict[str, Any]]) -> str:
    """Derive the business verdict from the script's structured result line.

    Precedence is ``verdict``, then boolean ``success``, then the presence
    of a ``proof``.  Free-form log text is never inspected; a script that
    prints no structured line yields ``UNKNOWN``.
    """
    if not structured:
        return "UNKNOWN"
    verdict = structured.get("verdict")
    if isinstance(verdict, str) and verdict.strip():
        return verdict.strip().upper()
    if isinstance(structured.get("success"), bool):
        return "VALID" if structured["success"] else "INVALID"
    if structured.get("proof") is not None:
        return "VALID"
    return "UNKNOWN"


class ZKToolExecutor:
    """Executor adapter for the ZK-PRET toolchain.

    Parameters
    ----------
    settings : gateway settings (toolchain paths, node binary, timeouts).
    command_runner : callable used to run every external command.  Defaults
        to :func:`run_command`; tests substitute recorders.
    """

    def __init__(self, settings: ApiSettings, command_runner: CommandRunner = run_command) -> None:
        self._settings = settings
        self._run = command_runner
        self._build_lock = threading.Lock()

    @property
    def root(self) -> Path:
        return Path(self._settings.stdio_path)

    @property
    def build_dir(self) -> Path:
        return self._settings.build_dir

    def available_tools(self) -> List[str]:
        return list(TOOL_SCRIPTS)

    # ── Health ───────────────────────────────────────────────────────

    def health_check(self) -> Dict[str, Any]:
        """Probe the toolchain directories without running anything."""
        if not self.root.is_dir():
            logger.debug("Toolchain root missing: %s", self.root)
            return {"connected": False, "status": {"path": str(self.root), "reason": "toolchain path not found"}}
        if not self.build_dir.is_dir():
            logger.debug("Toolchain build dir missing: %s", self.build_dir)
            return {"connected": False, "status": {"path": str(self.root), "reason": "build path not found"}}
        missing = [name for name in CORE_SCRIPTS if not (self.build_dir / name).is_file()]
        return {
            "connected": True,
            "status": {
                "mode": EXECUTION_MODE,
                "path": str(self.root),
                "buildPath": str(self.build_dir),
                "missingScripts": missing,
            },
        }

    # ── Execution ────────────────────────────────────────────────────

    def execute(self, tool_name: str, parameters: Mapping[str, Any]) -> ToolExecutionResult:
        """Run *tool_name* and classify the outcome.

        Raises
        ------
        UnknownOperationError
            If *tool_name* is not supported.  Nothing is spawned.
        ExternalProcessError
            If the script is missing, cannot be spawned, or exits non-zero.
        ExecutionTimeoutError
            If the script exceeds ``execution_timeout``.
        """
        script = TOOL_SCRIPTS.get(tool_name)
        if script is None:
            raise UnknownOperationError(tool_name, self.available_tools())

        t0 = time.monotonic()
        script_path = self._ensure_script(script)
        args = build_script_args(tool_name, parameters or {})
        argv = [self._settings.node_binary, str(script_path), *args]
        env = dict(os.environ, NODE_ENV="production")

        logger.info("Executing %s: %s", tool_name, " ".join(argv))
        proc = self._run(argv, str(self.root), env, self._settings.execution_timeout)
        elapsed_ms = (time.monotonic() - t0) * 1000

        if proc.returncode != 0:
            logger.warning("Tool %s exited with code %s after %.0fms", tool_name, proc.returncode, elapsed_ms)
            detail = (proc.stderr or proc.stdout or "No output").strip()
            raise ExternalProcessError(f"Script failed with exit code {proc.returncode}: {detail}")

        structured = parse_structured_output(proc.stdout)
        verdict = classify_verdict(structured)
        logger.info("Tool %s completed in %.0fms (verdict=%s)", tool_name, elapsed_ms, verdict)
        return ToolExecutionResult(
            success=True,
            result=self._build_payload(proc.stdout, proc.stderr, structured, verdict),
            elapsed_ms=elapsed_ms,
        )

    def build_project(self) -> bool:
        """Run ``npm run build`` in the toolchain root; True on exit code 0."""
        logger.info("Building ZK-PRET project in %s", self.root)
        try:
            proc = self._run(["npm", "run", "build"], str(self.root), None, self._settings.build_timeout)
        except ExternalProcessError as exc:
            logger.error("Project build could not run: %s", exc)
            return False
        if proc.returncode != 0:
            logger.error("Project build failed with exit code %s: %s", proc.returncode, proc.stderr.strip())
            return False
        return True

    def _ensure_script(self, script: str) -> Path:
        path = self.build_dir / script
        if path.is_file():
            return path
        with self._build_lock:
            if path.is_file():
                return path
            logger.warning("Compiled script not found: %s; attempting build", path)
            if not self.build_project():
                raise ExternalProcessError(
                    f"Pre-compiled JavaScript file not found: {path}. "
                    "Run 'npm run build' in the toolchain directory first."
                )
        if not path.is_file():
            raise ExternalProcessError(f"Build completed but compiled file still not found: {path}")
        return path

    @staticmethod
    def _build_payload(
        stdout: str,
        stderr: str,
        structured: Optional[Dict[str, Any]],
        verdict: str,
    ) -> Dict[str, Any]:
        now = _utcnow()
        payload: Dict[str, Any] = {
            "systemExecution": {
                "status": "success",
                "executionCompleted": True,
                "scriptExecuted": True,
                "executionTime": now,
            },
            "verificationResult": {
                "success": verdict in _PASSING_VERDICTS,
                "verdict": verdict,
                "zkProofGenerated": bool(structured and structured.get("proof") is not None),
            },
            "verdict": verdict,
            "status": "completed",
            "timestamp": now,
            "output": stdout,
            "stderr": stderr,
            "executionMode": EXECUTION_MODE,
        }
        if structured:
            payload["proofData"] = structured
            if structured.get("proof") is not None:
                payload["zkProof"] = structured["proof"]
        return payload
