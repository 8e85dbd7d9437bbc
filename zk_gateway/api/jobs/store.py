"""SQLite-backed table of job records.

Defaults to an in-memory database, so job state does not survive a
restart.  Pointing ``db_path`` at a file is the only change needed for
durable storage.
"""
from __future__ import annotations

import asyncio
import json
import secrets
import string
import time
from typing import Any, Dict, List, Optional

import aiosqlite

from .models import ACTIVE_STATUSES, TERMINAL_STATUSES, JobRecord, JobStatus

_ID_ALPHABET = string.ascii_lowercase + string.digits
_TERMINAL_SQL = ", ".join(f"'{s.value}'" for s in TERMINAL_STATUSES)
_ACTIVE_SQL = ", ".join(f"'{s.value}'" for s in ACTIVE_STATUSES)


class DuplicateJobError(Exception):
    """A live job already uses the requested id."""


def generate_job_id() -> str:
    """Return an id of the form ``job_<epoch-ms>_<9 random chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"job_{int(time.time() * 1000)}_{suffix}"


class JobStore:
    """Async SQLite store for job lifecycle tracking."""

    def __init__(self, db_path: str = ":memory:") -> None:
        self.db_path = db_path
        self._db: Optional[aiosqlite.Connection] = None
        self._init_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Open the connection and create the jobs table if needed."""
        async with self._init_lock:
            if self._db is not None:
                return
            self._db = await aiosqlite.connect(self.db_path)
            await self._db.execute("""
                CREATE TABLE IF NOT EXISTS jobs (
                    job_id TEXT PRIMARY KEY,
                    tool_name TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'pending',
                    progress INTEGER NOT NULL DEFAULT 0,
                    start_time TEXT NOT NULL,
                    end_time TEXT,
                    params TEXT DEFAULT '{}',
                    result TEXT,
                    error TEXT
                )
            """)
            await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    async def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            await self.initialize()
        return self._db

    # ── CRUD ─────────────────────────────────────────────────────────

    async def create_job(
        self,
        tool_name: str,
        params: Dict[str, Any] | None = None,
        job_id: str | None = None,
    ) -> JobRecord:
        """Insert a new pending job and return its record.

        Raises
        ------
        DuplicateJobError
            If *job_id* already denotes a stored job.
        """
        db = await self._conn()
        rec = JobRecord(
            job_id=job_id or generate_job_id(),
            tool_name=tool_name,
            params=params or {},
        )
        try:
            await db.execute(
                "INSERT INTO jobs (job_id, tool_name, status, progress, start_time, params) "
                "VALUES (?,?,?,?,?,?)",
                (rec.job_id, rec.tool_name, rec.status.value, rec.progress, rec.start_time,
                 json.dumps(rec.params)),
            )
        except aiosqlite.IntegrityError as exc:
            raise DuplicateJobError(f"Job '{rec.job_id}' already exists") from exc
        await db.commit()
        return rec

    async def get_job(self, job_id: str) -> Optional[JobRecord]:
        """Fetch a single job by ID."""
        db = await self._conn()
        async with db.execute("SELECT * FROM jobs WHERE job_id = ?", (job_id,)) as cur:
            row = await cur.fetchone()
            desc = cur.description
        if row is None:
            return None
        return self._row_to_record(row, desc)

    async def list_jobs(self, limit: int | None = None) -> List[JobRecord]:
        """List jobs in submission order (oldest first)."""
        return await self._select("SELECT * FROM jobs ORDER BY rowid LIMIT ?", (limit or -1,))

    async def list_active(self) -> List[JobRecord]:
        """Jobs that are still pending or running."""
        return await self._select(
            f"SELECT * FROM jobs WHERE status IN ({_ACTIVE_SQL}) ORDER BY rowid", ()
        )

    async def count_jobs(self) -> Dict[str, int]:
        """Return ``{"total": n, "active": m}``."""
        db = await self._conn()
        async with db.execute(
            f"SELECT COUNT(*), COALESCE(SUM(status IN ({_ACTIVE_SQL})), 0) FROM jobs"
        ) as cur:
            total, active = await cur.fetchone()
        return {"total": int(total), "active": int(active)}

    async def update_status(
        self,
        job_id: str,
        status: JobStatus,
        *,
        progress: int | None = None,
        end_time: str | None = None,
        result: Dict[str, Any] | None = None,
        error: str | None = None,
    ) -> bool:
        """Transition a non-terminal job; returns False if nothing changed.

        Terminal records are never rewritten.
        """
        sets = ["status = ?"]
        vals: list = [status.value]
        if progress is not None:
            sets.append("progress = MAX(progress, ?)")
            vals.append(progress)
        if end_time is not None:
            sets.append("end_time = ?")
            vals.append(end_time)
        if result is not None:
            sets.append("result = ?")
            vals.append(json.dumps(result, default=str))
        if error is not None:
            sets.append("error = ?")
            vals.append(error)
        vals.append(job_id)
        db = await self._conn()
        cur = await db.execute(
            f"UPDATE jobs SET {', '.join(sets)} "
            f"WHERE job_id = ? AND status NOT IN ({_TERMINAL_SQL})",
            vals,
        )
        await db.commit()
        return cur.rowcount > 0

    async def update_progress(self, job_id: str, progress: int) -> None:
        """Raise progress (0-100) of a running job; never lowers it."""
        progress = max(0, min(100, int(progress)))
        db = await self._conn()
        await db.execute(
            "UPDATE jobs SET progress = MAX(progress, ?) WHERE job_id = ? AND status = ?",
            (progress, job_id, JobStatus.running.value),
        )
        await db.commit()

    async def purge_terminal(self) -> int:
        """Delete every completed or failed job; returns the number removed."""
        db = await self._conn()
        cur = await db.execute(f"DELETE FROM jobs WHERE status IN ({_TERMINAL_SQL})")
        await db.commit()
        return cur.rowcount

    # ── Helpers ───────────────────────────────────────────────────────

    async def _select(self, sql: str, params: tuple) -> List[JobRecord]:
        db = await self._conn()
        async with db.execute(sql, params) as cur:
            rows = await cur.fetchall()
            desc = cur.description
        return [self._row_to_record(r, desc) for r in rows]

    @staticmethod
    def _row_to_record(row, description) -> JobRecord:
        cols = [d[0] for d in description]
        d = dict(zip(cols, row))
        d["params"] = json.loads(d.get("params") or "{}")
        d["result"] = json.loads(d["result"]) if d.get("result") else None
        return JobRecord(**d)
