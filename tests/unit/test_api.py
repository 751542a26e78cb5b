"""HTTP and WebSocket surface tests."""

import asyncio
import gc
import time
import uuid

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from backend.api.routes.websocket import _serve
from backend.main import app
from backend.services.simulation_manager import SessionManager, SessionRunner
from playground.core.parameters import SimulationParameters

PARAMS = {"dt": 0.01, "kp": 2.0, "setpoint": 1.0, "friction": 0.5}
FLYWHEEL_PARAMS = {
    "dt": 0.01, "kp": 1.0, "ki": 0.5, "setpoint": 2.0, "friction": 0.0,
    "plant": "flywheel", "drag": 0.2, "inertiaJ": 0.5, "loadTorque": 0.1,
}


@pytest.fixture
def client():
    SessionManager._instance = None
    with TestClient(app) as c:
        yield c
    SessionManager._instance = None


def _wait_for_data(ws, min_samples: int = 1, limit: int = 500) -> dict:
    for _ in range(limit):
        msg = ws.receive_json()
        if msg["type"] == "data" and len(msg["t"]) >= min_samples:
            return msg
    raise AssertionError("no data frame received")


class TestHealth:
    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestSessionRoutes:
    def test_create_and_snapshot(self, client):
        resp = client.post("/api/v1/sessions/", json={"params": FLYWHEEL_PARAMS})
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "running"
        assert body["params"]["inertiaJ"] == 0.5
        assert body["params"]["loadTorque"] == 0.1
        assert body["params"]["plant"] == "flywheel"

        snap = client.get(f"/api/v1/sessions/{body['id']}/snapshot")
        assert snap.status_code == 200
        data = snap.json()
        assert data["params"]["plant"] == "flywheel"
        assert set(data["data"]) >= {"type", "t", "y", "u", "sp"}

        assert client.delete(f"/api/v1/sessions/{body['id']}").status_code == 200

    def test_snapshot_exposes_loop_state(self, client):
        sid = client.post("/api/v1/sessions/", json={"params": PARAMS}).json()["id"]
        time.sleep(0.2)
        data = client.get(f"/api/v1/sessions/{sid}/snapshot").json()
        assert data["controller"]["kp"] == 2.0
        assert data["controller"]["setpoint"] == 1.0
        assert set(data["actuator"]) == {"command", "output", "effective"}
        assert data["total_samples"] > 0

    def test_snapshot_window(self, client):
        sid = client.post("/api/v1/sessions/", json={"params": PARAMS}).json()["id"]
        time.sleep(0.3)
        data = client.get(f"/api/v1/sessions/{sid}/snapshot", params={"window_s": 0.05}).json()
        t = data["data"]["t"]
        assert t
        assert t[-1] - t[0] <= 0.05 + 1e-9
        assert len(t) <= data["total_samples"]

        resp = client.get(f"/api/v1/sessions/{sid}/snapshot", params={"window_s": 0})
        assert resp.status_code == 422

    def test_defaults_applied(self, client):
        resp = client.post("/api/v1/sessions/", json={"params": PARAMS})
        params = resp.json()["params"]
        assert params["ki"] == 0.0
        assert params["kd"] == 0.0
        assert params["plant"] == "sled"

    def test_invalid_dt_rejected(self, client):
        resp = client.post("/api/v1/sessions/", json={"params": {**PARAMS, "dt": 0}})
        assert resp.status_code == 422

    def test_commands(self, client):
        sid = client.post("/api/v1/sessions/", json={"params": PARAMS}).json()["id"]
        for message in (
            {"type": "update", "params": {**PARAMS, "kp": 3.0}, "running": False},
            {"type": "randomize"},
            {"type": "randomize", "friction": True},
            {"type": "reset"},
            {"type": "start", "params": PARAMS, "running": True},
        ):
            resp = client.post(f"/api/v1/sessions/{sid}/commands", json=message)
            assert resp.status_code == 200
            assert resp.json()["command"] == message["type"]

        resp = client.post(f"/api/v1/sessions/{sid}/commands", json={"type": "explode"})
        assert resp.status_code == 422

    def test_metrics(self, client):
        sid = client.post("/api/v1/sessions/", json={"params": PARAMS}).json()["id"]
        resp = client.get(f"/api/v1/sessions/{sid}/metrics")
        assert resp.status_code == 200
        assert "overshoot_pct" in resp.json()

    def test_list(self, client):
        client.post("/api/v1/sessions/", json={"params": PARAMS})
        body = client.get("/api/v1/sessions/").json()
        assert body["active_count"] == 1
        assert body["sessions"][0]["plant"] == "sled"

    def test_not_found(self, client):
        missing = "00000000-0000-0000-0000-000000000000"
        assert client.get(f"/api/v1/sessions/{missing}/snapshot").status_code == 404
        assert client.get(f"/api/v1/sessions/{missing}/metrics").status_code == 404
        assert client.delete(f"/api/v1/sessions/{missing}").status_code == 404
        resp = client.post(f"/api/v1/sessions/{missing}/commands", json={"type": "reset"})
        assert resp.status_code == 404


class TestWebSocket:
    def test_ready_then_data(self, client):
        with client.websocket_connect("/api/v1/ws") as ws:
            ready = ws.receive_json()
            assert ready["type"] == "ready"
            ws.send_json({"type": "start", "params": PARAMS, "running": True})
            frame = _wait_for_data(ws, min_samples=5)
            assert len(frame["t"]) == len(frame["y"]) == len(frame["u"]) == len(frame["sp"])
            assert len(frame["t"]) <= 2000
            assert frame["t"] == sorted(frame["t"])
            assert all(sp == 1.0 for sp in frame["sp"])

    def test_malformed_command_gets_error(self, client):
        with client.websocket_connect("/api/v1/ws") as ws:
            assert ws.receive_json()["type"] == "ready"
            ws.send_json({"type": "start", "params": {**PARAMS, "dt": -1.0}})
            msg = ws.receive_json()
            assert msg["type"] == "error"
            ws.send_text("not json")
            assert ws.receive_json()["type"] == "error"

    def test_attach_to_rest_session(self, client):
        sid = client.post("/api/v1/sessions/", json={"params": PARAMS}).json()["id"]
        with client.websocket_connect(f"/api/v1/ws/{sid}") as ws:
            ready = ws.receive_json()
            assert ready == {"type": "ready", "session_id": sid}
            ws.send_json({"type": "reset"})
            _wait_for_data(ws)
        # Detaching does not tear the session down
        assert client.get(f"/api/v1/sessions/{sid}/snapshot").status_code == 200

    def test_attach_unknown_session(self, client):
        missing = "00000000-0000-0000-0000-000000000000"
        with client.websocket_connect(f"/api/v1/ws/{missing}") as ws:
            assert ws.receive_json()["type"] == "error"


class _BrokenSocket:
    """Accepts the ready message, then fails every data send."""

    def __init__(self):
        self.sent = []
        self.send_failed = asyncio.Event()

    async def send_json(self, data):
        if data["type"] == "data":
            self.send_failed.set()
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def receive_text(self):
        await self.send_failed.wait()
        raise WebSocketDisconnect(code=1006)


class TestStreamTeardown:
    def test_failed_send_is_collected(self):
        errors = []

        async def scenario():
            loop = asyncio.get_running_loop()
            loop.set_exception_handler(lambda _, context: errors.append(context))
            runner = SessionRunner(uuid.uuid4(), flush_interval_ms=5)
            runner.start(SimulationParameters(dt=0.01, kp=2.0))
            socket = _BrokenSocket()

            await asyncio.wait_for(_serve(socket, runner), timeout=2.0)
            pending = asyncio.all_tasks() - {asyncio.current_task(), runner._clock_task}
            subscribers = set(runner._subscribers)
            await runner.stop()
            return socket, pending, subscribers

        socket, pending, subscribers = asyncio.run(scenario())
        gc.collect()
        assert socket.sent[0]["type"] == "ready"
        assert pending == set()
        assert subscribers == set()
        assert errors == []
