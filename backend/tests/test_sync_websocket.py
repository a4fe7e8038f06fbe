"""
End-to-end tests over the real WebSocket endpoint
"""
import sys
import time

import pytest
from starlette.testclient import TestClient

from app.main import app


WS_PATH = "/api/v1/sync/ws"


@pytest.fixture
def ws_client():
    """TestClient runs the lifespan, so the hub and tables are set up for real"""
    with TestClient(app) as client:
        yield client


def send(ws, event, data, ack_id=None):
    message = {"type": event, "data": data}
    if ack_id is not None:
        message["ackId"] = ack_id
    ws.send_json(message)


def connect(ws):
    greeting = ws.receive_json()
    assert greeting["type"] == "connected"
    return greeting["data"]["connectionId"]


def test_two_editors_share_a_room(ws_client):
    """Test create, join, edit and language changes between two sockets"""
    with ws_client.websocket_connect(WS_PATH) as a, ws_client.websocket_connect(WS_PATH) as b:
        assert connect(a) != connect(b)

        send(a, "room-create", {"roomId": "r1"}, ack_id="1")
        ack = a.receive_json()
        assert ack["type"] == "ack"
        assert ack["ackId"] == "1"
        assert ack["data"] == {"success": True, "roomId": "r1"}
        assert a.receive_json()["type"] == "room-created"

        send(b, "room-join", {"roomId": "r1"})
        assert b.receive_json()["data"] == {"success": True, "roomId": "r1"}
        assert b.receive_json()["type"] == "room-joined"
        joined = a.receive_json()
        assert joined["type"] == "room-joined"
        assert joined["data"] == {"roomId": "r1"}

        send(a, "code-edit", {"roomId": "r1", "code": "print('hi')"})
        send(a, "language-select", {"roomId": "r1", "language": "python"})

        synced = b.receive_json()
        assert synced["type"] == "code-sync"
        assert synced["data"] == {"roomId": "r1", "code": "print('hi')"}
        assert b.receive_json()["type"] == "language-sync"

        # No echo of the edit: the sender's next message is the language change
        own = a.receive_json()
        assert own["type"] == "language-sync"
        assert own["data"] == {"roomId": "r1", "language": "python"}
        assert "timestamp" in own


def test_command_result_reaches_room(ws_client):
    command = f'"{sys.executable}" -c "print(2 + 2)"'

    with ws_client.websocket_connect(WS_PATH) as a, ws_client.websocket_connect(WS_PATH) as b:
        connect(a)
        connect(b)
        send(a, "room-create", {"roomId": "exec"})
        a.receive_json()
        a.receive_json()
        send(b, "room-join", {"roomId": "exec"})
        b.receive_json()
        b.receive_json()
        a.receive_json()

        send(b, "run-command", {"roomId": "exec", "command": command})

        for ws in (a, b):
            result = ws.receive_json()
            assert result["type"] == "command-result"
            assert result["data"]["command"] == command
            assert result["data"]["output"].strip() == "4"


def test_invalid_json_keeps_connection_open(ws_client):
    with ws_client.websocket_connect(WS_PATH) as ws:
        connect(ws)

        ws.send_text("{not json")
        error = ws.receive_json()
        assert error["type"] == "error"
        assert error["data"]["error"]["code"] == "INVALID_JSON"

        send(ws, "room-create", {"roomId": "still-works"})
        assert ws.receive_json()["data"] == {"success": True, "roomId": "still-works"}


def test_disconnect_leaves_rooms(ws_client):
    hub = app.state.sync_hub

    with ws_client.websocket_connect(WS_PATH) as ws:
        connect(ws)
        send(ws, "room-create", {"roomId": "temporary"})
        ws.receive_json()
        ws.receive_json()
        assert hub.rooms.members("temporary")

    # The endpoint detaches on its way out; give the server side a moment
    for _ in range(50):
        if not hub.rooms.members("temporary"):
            break
        time.sleep(0.02)

    assert hub.rooms.members("temporary") == []
    assert hub.rooms.connection_count == 0
