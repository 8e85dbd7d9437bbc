"""Tests for the job event broadcaster."""
import asyncio
import json

import pytest

from zk_gateway.api.jobs.broadcaster import JobEventBroadcaster
from zk_gateway.api.jobs.models import JobEvent, JobRecord, JobStatus


def _event(job_id="job_1", status=JobStatus.running, progress=10):
    rec = JobRecord(job_id=job_id, tool_name="verify-A", status=status, progress=progress)
    return JobEvent.from_record(rec)


async def _next(stream, timeout=1.0):
    return json.loads(await asyncio.wait_for(stream.__anext__(), timeout))


@pytest.mark.asyncio
async def test_ack_is_first_message():
    b = JobEventBroadcaster()
    stream = b.subscribe()
    try:
        ack = await _next(stream)
        assert ack["type"] == "connection"
        assert ack["status"] == "connected"
        assert ack["server"] == "zk-pret-gateway"
        assert "timestamp" in ack
        assert b.subscriber_count == 1
    finally:
        await stream.aclose()
    assert b.subscriber_count == 0


@pytest.mark.asyncio
async def test_broadcast_reaches_every_subscriber():
    b = JobEventBroadcaster()
    s1, s2 = b.subscribe(), b.subscribe()
    try:
        await _next(s1)
        await _next(s2)
        assert b.broadcast(_event()) == 2

        for stream in (s1, s2):
            msg = await _next(stream)
            assert msg["type"] == "job_update"
            assert msg["jobId"] == "job_1"
            assert msg["status"] == "running"
            assert msg["progress"] == 10
    finally:
        await s1.aclose()
        await s2.aclose()


def test_broadcast_without_subscribers_is_noop():
    b = JobEventBroadcaster()
    assert b.broadcast(_event()) == 0
    assert b.broadcast({"type": "job_update", "jobId": "x"}) == 0


@pytest.mark.asyncio
async def test_full_subscriber_does_not_affect_others():
    b = JobEventBroadcaster(max_backlog=1)
    slow, fast = b.subscribe(), b.subscribe()
    try:
        await _next(slow)
        await _next(fast)

        assert b.broadcast(_event(progress=10)) == 2
        # fast drains, slow does not
        assert (await _next(fast))["progress"] == 10
        assert b.broadcast(_event(progress=50)) == 1
        assert (await _next(fast))["progress"] == 50

        # slow still holds only the first event
        assert (await _next(slow))["progress"] == 10
        assert b.subscriber_count == 2
    finally:
        await slow.aclose()
        await fast.aclose()


@pytest.mark.asyncio
async def test_late_subscriber_gets_no_replay():
    b = JobEventBroadcaster()
    b.broadcast(_event(status=JobStatus.completed, progress=100))

    stream = b.subscribe()
    try:
        await _next(stream)
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(stream.__anext__(), 0.05)
    finally:
        await stream.aclose()


@pytest.mark.asyncio
async def test_events_keep_broadcast_order():
    b = JobEventBroadcaster()
    stream = b.subscribe()
    try:
        await _next(stream)
        b.broadcast(_event(status=JobStatus.pending, progress=0))
        b.broadcast(_event(status=JobStatus.running, progress=10))
        b.broadcast(_event(status=JobStatus.completed, progress=100))
        statuses = [(await _next(stream))["status"] for _ in range(3)]
        assert statuses == ["pending", "running", "completed"]
    finally:
        await stream.aclose()
