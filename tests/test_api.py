"""
Tests for FastAPI Routes
========================

Tests for:
- Health endpoints
- Session management
- Device control endpoints
- Task cancel and client config
- WebSocket task streaming
"""

import pytest
from fastapi.testclient import TestClient

from phone_agent.config import AgentSettings, get_settings
from phone_agent.main import create_app
from tests.conftest import FakeChatModel

LAUNCH_REPLY = '<think>先打开微信</think><answer>do(action="Launch", app="微信")</answer>'
FINISH_REPLY = '<think>微信已打开</think><answer>finish(message="已打开微信")</answer>'

TERMINAL_EVENTS = {"completed", "cancelled", "failed"}


@pytest.fixture
def replies() -> list:
    return [LAUNCH_REPLY, FINISH_REPLY]


@pytest.fixture
def models() -> list[FakeChatModel]:
    return []


@pytest.fixture
def app(mock_device, replies, models):
    settings = get_settings().model_copy(update={"agent": AgentSettings(action_delay=0)})

    def llm_factory() -> FakeChatModel:
        model = FakeChatModel(replies)
        models.append(model)
        return model

    return create_app(settings=settings, device=mock_device, llm_factory=llm_factory)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


def _receive_until_terminal(websocket, limit: int = 50) -> list[dict]:
    events = []
    for _ in range(limit):
        event = websocket.receive_json()
        events.append(event)
        if event["type"] in TERMINAL_EVENTS:
            return events
    raise AssertionError("task did not finish")


class TestHealthRoutes:
    """Tests for health check endpoints."""

    def test_health_check(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    def test_service_info(self, client):
        response = client.get("/health/info")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "Phone Agent"
        assert data["llm"]["provider"] == "openai"
        assert data["llm"]["api_key_configured"] is True
        assert data["agent"]["action_delay"] == 0

    def test_request_headers(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"
        assert response.headers["X-Response-Time"].endswith("ms")


class TestRootEndpoint:
    """Tests for root endpoint."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "Phone Agent"
        assert data["health"] == "/health"
        assert "version" in data


class TestSessionRoutes:
    """Tests for session endpoints."""

    def test_no_session(self, client):
        response = client.get("/session")

        assert response.status_code == 200
        assert response.json() is None

    def test_create_and_get(self, client):
        created = client.post("/session", json={"device_id": "emulator-5554"})

        assert created.status_code == 201
        session = created.json()
        assert session["device_id"] == "emulator-5554"
        assert session["messages"] == []

        current = client.get("/session").json()
        assert current["id"] == session["id"]

    def test_create_replaces_session(self, client, app):
        first = client.post("/session", json={"device_id": "emulator-5554"}).json()
        old_event = app.state.sessions.get().cancel_event

        second = client.post("/session", json={"device_id": "emulator-5554"}).json()

        assert second["id"] != first["id"]
        assert old_event.is_set()

    def test_create_requires_device(self, client):
        response = client.post("/session", json={"device_id": ""})

        assert response.status_code == 422

    def test_disconnected_device_closes_session(self, client, app):
        client.post("/session", json={"device_id": "gone-device"})

        assert client.get("/session").json() is None
        assert app.state.sessions.get() is None

    def test_delete(self, client, app):
        client.post("/session", json={"device_id": "emulator-5554"})

        response = client.delete("/session")

        assert response.json() == {"success": True}
        assert app.state.sessions.get() is None


class TestDeviceRoutes:
    """Tests for device control endpoints."""

    def test_list_devices(self, client):
        response = client.get("/devices")

        assert response.status_code == 200
        (device,) = response.json()
        assert device["device_id"] == "emulator-5554"
        assert device["status"] == "device"
        assert device["screenshot"] is not None

    def test_tap(self, client, mock_device):
        response = client.post("/devices/tap", json={"x": 100, "y": 200, "device_id": "emulator-5554"})

        assert response.json() == {"success": True}
        mock_device.tap.assert_awaited_once_with(100, 200, "emulator-5554")

    def test_swipe(self, client, mock_device):
        response = client.post("/devices/swipe", json={"x1": 1, "y1": 2, "x2": 3, "y2": 4})

        assert response.json() == {"success": True}
        mock_device.swipe.assert_awaited_once_with(1, 2, 3, 4, 300, None)

    def test_home_and_recent(self, client, mock_device):
        assert client.post("/devices/home", json={}).json() == {"success": True}
        assert client.post("/devices/recent", json={}).json() == {"success": True}

        mock_device.home.assert_awaited_once_with(None)
        mock_device.recent.assert_awaited_once_with(None)

    def test_negative_coordinates_rejected(self, client):
        response = client.post("/devices/tap", json={"x": -1, "y": 0})

        assert response.status_code == 422

    def test_device_failure(self, client, mock_device):
        mock_device.tap.return_value = False

        response = client.post("/devices/tap", json={"x": 1, "y": 1})

        assert response.status_code == 502
        assert response.json()["detail"] == "Device tap failed"

    def test_screenshot(self, client, screenshot):
        data = client.get("/devices/screenshot").json()

        assert data["screenshot"] == screenshot.base64
        assert (data["width"], data["height"]) == (screenshot.width, screenshot.height)
        assert data["is_fallback"] is False

    def test_unhandled_error(self, app, mock_device):
        mock_device.list_devices.side_effect = RuntimeError("adb exploded")

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/devices")

        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"


class TestTaskRoutes:
    """Tests for task control endpoints."""

    def test_cancel_without_session(self, client):
        assert client.post("/task/cancel").json() == {"success": True}

    def test_cancel_signals_session(self, client, app):
        client.post("/session", json={"device_id": "emulator-5554"})
        event = app.state.sessions.get().cancel_event

        client.post("/task/cancel")

        assert event.is_set()
        assert not app.state.sessions.get().cancel_event.is_set()

    def test_config(self, client):
        assert client.get("/config").json() == {"model": get_settings().llm.get_active_model()}


class TestWebSocket:
    """Tests for the task WebSocket."""

    def test_ping(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "ping"})

            assert websocket.receive_json() == {"type": "pong", "data": {}}

    def test_invalid_json(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("not json")

            assert websocket.receive_json() == {"type": "error", "data": {"message": "Invalid JSON"}}

    def test_unknown_type(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "dance"})

            assert websocket.receive_json()["data"]["message"] == "Unknown message type: dance"

    def test_start_without_session(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "start_task", "data": {"task": "打开微信"}})

            assert websocket.receive_json()["data"]["message"] == "请先创建会话"

    def test_empty_task(self, client):
        client.post("/session", json={"device_id": "emulator-5554"})

        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "start_task", "data": {"task": "  "}})

            assert websocket.receive_json()["data"]["message"] == "任务不能为空"

    def test_task_flow(self, client, mock_device, models):
        client.post("/session", json={"device_id": "emulator-5554"})

        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "start_task", "data": {"task": "打开微信"}})
            events = _receive_until_terminal(websocket)

        types = [event["type"] for event in events]
        assert types[0] == "started"
        assert events[0]["data"] == {"task": "打开微信"}
        assert types.count("step") == 2
        assert events[-1] == {"type": "completed", "data": {"result": "已打开微信"}}

        actions = [event["data"]["action"] for event in events if event["type"] == "action"]
        assert actions[0] == {"action": "Launch", "app": "微信"}
        mock_device.launch_app.assert_awaited_once_with("微信", "emulator-5554")
        assert models[0].closed is True

        messages = client.get("/session").json()["messages"]
        assert messages == [
            {"role": "user", "content": "打开微信"},
            {"role": "assistant", "content": "已打开微信"},
        ]

    @pytest.mark.parametrize("replies", [[RuntimeError("boom")]])
    def test_model_error_is_recorded(self, client, replies):
        client.post("/session", json={"device_id": "emulator-5554"})

        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "start_task", "data": {"task": "打开微信"}})
            events = _receive_until_terminal(websocket)

        assert events[-1] == {"type": "completed", "data": {"result": "模型错误: boom"}}
        messages = client.get("/session").json()["messages"]
        assert messages[-1] == {"role": "assistant", "content": "模型错误: boom"}

    def test_device_error_does_not_stop_task(self, client, mock_device):
        mock_device.launch_app.side_effect = RuntimeError("boom")
        client.post("/session", json={"device_id": "emulator-5554"})

        with client.websocket_connect("/ws") as websocket:
            websocket.send_json({"type": "start_task", "data": {"task": "打开微信"}})
            events = _receive_until_terminal(websocket)

        steps = [event["data"]["step"] for event in events if event["type"] == "step"]
        assert steps[0]["success"] is False
        assert events[-1] == {"type": "completed", "data": {"result": "已打开微信"}}
