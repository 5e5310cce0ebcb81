"""WebSocket acceptor tests — real frames through Starlette's TestClient.

Learn: `with TestClient(app) as client` keeps one event loop for the
whole test, so sockets opened with client.websocket_connect() and
requests made with client.post() all share the app's registry and loop.
Leaving a websocket_connect() block waits for the server handler to
finish, so registry size is exact afterwards.
"""

import pytest
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from wsrelay.config import MessagePolicy
from wsrelay.main import create_app


@pytest.fixture()
def ws_client(app):
    with TestClient(app) as client:
        yield client


def _make_client(settings, registry, **overrides):
    for key, value in overrides.items():
        setattr(settings, key, value)
    return TestClient(create_app(settings, registry))


# ═══════════════════════════════════════════════════════════
# Lifecycle
# ═══════════════════════════════════════════════════════════


def test_welcome_frame_on_connect(ws_client):
    with ws_client.websocket_connect("/") as ws:
        welcome = ws.receive_json()

    assert welcome["type"] == "welcome"
    assert welcome["message"] == "Connected to test relay"
    assert welcome["timestamp"].endswith("Z")


def test_connection_registered_then_removed(ws_client, registry):
    with ws_client.websocket_connect("/") as ws:
        ws.receive_json()
        assert registry.size() == 1
        assert ws_client.get("/health").json()["clients"] == 1

    assert registry.size() == 0
    assert ws_client.get("/health").json()["clients"] == 0


def test_no_welcome_when_disabled(settings, registry):
    with _make_client(settings, registry, send_welcome=False) as client:
        with client.websocket_connect("/") as ws:
            ws.send_text("first")
            assert ws.receive_text() == "Echo: first"


def test_custom_ws_path(settings, registry):
    with _make_client(settings, registry, ws_path="/roku") as client:
        with client.websocket_connect("/roku") as ws:
            assert ws.receive_json()["type"] == "welcome"


# ═══════════════════════════════════════════════════════════
# Message policies
# ═══════════════════════════════════════════════════════════


def test_echo_text(ws_client):
    with ws_client.websocket_connect("/") as ws:
        ws.receive_json()
        ws.send_text("ping")
        assert ws.receive_text() == "Echo: ping"
        ws.send_text("pong")
        assert ws.receive_text() == "Echo: pong"


def test_echo_binary(ws_client):
    with ws_client.websocket_connect("/") as ws:
        ws.receive_json()
        ws.send_bytes(b"\x01\x02")
        assert ws.receive_bytes() == b"Echo: \x01\x02"


def test_echo_broadcast_reaches_other_clients(settings, registry):
    policy = MessagePolicy.ECHO_BROADCAST
    with _make_client(settings, registry, message_policy=policy) as client:
        with client.websocket_connect("/") as a, client.websocket_connect("/") as b:
            a.receive_json()
            b.receive_json()

            a.send_text("volume_up")
            assert a.receive_text() == "Echo: volume_up"
            assert b.receive_text() == "volume_up"


def test_log_policy_does_not_reply(settings, registry):
    with _make_client(settings, registry, message_policy=MessagePolicy.LOG) as client:
        with client.websocket_connect("/") as ws:
            ws.receive_json()
            ws.send_text("status:ok")
            client.post("/trigger", json={"message": "after"})
            # The first frame after our message is the trigger, not an echo
            assert ws.receive_text() == "after"


# ═══════════════════════════════════════════════════════════
# Trigger end to end
# ═══════════════════════════════════════════════════════════


def test_trigger_reaches_every_socket(ws_client):
    with ws_client.websocket_connect("/") as a, \
            ws_client.websocket_connect("/") as b, \
            ws_client.websocket_connect("/") as c:
        for ws in (a, b, c):
            ws.receive_json()

        r = ws_client.post("/trigger", json={"message": "hello"})
        assert r.json() == {
            "status": "success",
            "message": "Message broadcasted successfully.",
            "clientsCount": 3,
        }
        for ws in (a, b, c):
            assert ws.receive_text() == "hello"


def test_trigger_after_disconnect(ws_client):
    with ws_client.websocket_connect("/") as keep:
        keep.receive_json()
        with ws_client.websocket_connect("/") as gone:
            gone.receive_json()

        r = ws_client.post("/trigger", json={"message": "hello"})
        assert r.json()["clientsCount"] == 1
        assert keep.receive_text() == "hello"


# ═══════════════════════════════════════════════════════════
# Shutdown
# ═══════════════════════════════════════════════════════════


def test_close_all_sends_close_frame(ws_client, registry):
    with ws_client.websocket_connect("/") as ws:
        ws.receive_json()

        assert ws_client.portal.call(registry.close_all) == 1

        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_text()
        assert exc.value.code == 1001

    assert registry.size() == 0


# ═══════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════


def test_handler_error_closes_with_1011(ws_client, registry, monkeypatch):
    from wsrelay.services.relay_service import RelayService

    async def explode(self, connection, payload):
        raise RuntimeError("policy failed")

    monkeypatch.setattr(RelayService, "handle_client_message", explode)

    with ws_client.websocket_connect("/") as ws:
        ws.receive_json()
        assert registry.size() == 1

        ws.send_text("ping")
        with pytest.raises(WebSocketDisconnect) as exc:
            ws.receive_text()
        assert exc.value.code == 1011

    assert registry.size() == 0
    r = ws_client.get("/health")
    assert r.status_code == 200
    assert r.json()["clients"] == 0


def test_handler_error_leaves_other_clients_connected(ws_client, registry, monkeypatch):
    from wsrelay.services.relay_service import RelayService

    original = RelayService.handle_client_message

    async def explode_on_boom(self, connection, payload):
        if payload == "boom":
            raise RuntimeError("policy failed")
        return await original(self, connection, payload)

    monkeypatch.setattr(RelayService, "handle_client_message", explode_on_boom)

    with ws_client.websocket_connect("/") as keep:
        keep.receive_json()
        with ws_client.websocket_connect("/") as bad:
            bad.receive_json()
            bad.send_text("boom")
            with pytest.raises(WebSocketDisconnect):
                bad.receive_text()

        assert registry.size() == 1
        keep.send_text("still here")
        assert keep.receive_text() == "Echo: still here"
