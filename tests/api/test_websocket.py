"""WebSocket notification channel tests.

These use Starlette's TestClient as a context manager so the lifespan and
background job tasks share the client's event loop.
"""
import json

import pytest
from fastapi.testclient import TestClient

from zk_gateway.api.main import create_app


@pytest.fixture
def ws_client(settings, make_executor):
    app = create_app(settings, executor=make_executor(delay=0.05))
    with TestClient(app) as client:
        yield client


def test_connect_receives_ack(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        ack = json.loads(ws.receive_text())
    assert ack["type"] == "connection"
    assert ack["status"] == "connected"
    assert ack["server"] == "zk-pret-gateway"


def test_job_updates_stream_in_order(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        json.loads(ws.receive_text())

        resp = ws_client.post("/api/v1/jobs/start", json={"jobId": "job_1", "toolName": "verify-A"})
        assert resp.status_code == 200

        events = [json.loads(ws.receive_text()) for _ in range(3)]

    assert [e["type"] for e in events] == ["job_update"] * 3
    assert [e["status"] for e in events] == ["pending", "running", "completed"]
    assert [e["progress"] for e in events] == [0, 10, 100]
    assert events[-1]["result"]["verdict"] == "VALID"
    assert events[-1]["jobId"] == "job_1"


def test_subscriber_count_tracks_connections(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        ws.receive_text()
        health = ws_client.get("/api/v1/health").json()["data"]
        assert health["websocketConnections"] == 1
        assert health["services"]["websockets"] is True
        ws.send_text("ping")


def test_sync_execution_sends_no_updates(ws_client):
    with ws_client.websocket_connect("/ws") as ws:
        ws.receive_text()
        resp = ws_client.post("/api/v1/tools/execute", json={"toolName": "verify-A"})
        assert resp.status_code == 200

        # the next message must belong to the async job, not the sync call
        ws_client.post("/api/v1/jobs/start", json={"jobId": "after", "toolName": "verify-B"})
        first = json.loads(ws.receive_text())
        assert first["jobId"] == "after"
        assert first["status"] == "pending"
