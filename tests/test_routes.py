import pytest

pytest.importorskip("httpx", reason="httpx requis pour les tests client FastAPI")

from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from spinroom.deps.engine import get_room_store
from spinroom.main import app
from spinroom.services.room_runtime import build_room_store

ROOM = "test-room"


@pytest.fixture
def client(tmp_path):
    store = build_room_store(tmp_path, persist=False)
    app.dependency_overrides[get_room_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_room_store, None)


def _create(client, **body):
    response = client.post("/rooms", json=body or None)
    assert response.status_code == 200
    return response.json()["room"]


def _join(client, name, room=ROOM):
    response = client.post(f"/rooms/{room}/players/join", json={"display_name": name})
    assert response.status_code == 200
    return response.json()["player"]["id"]


def test_create_room_defaults_and_idempotence(client):
    room = _create(client)
    assert room["room_id"] == ROOM
    assert room["revision"] == 1
    assert [o["label"] for o in room["options"]] == ["Japan", "Brazil", "Canada"]
    assert room["state"]["phase"] == "lobby"

    again = _create(client, room_id=ROOM, options=[{"label": "Peru"}])
    assert again == room

    custom = _create(client, room_id="party-2", options=[{"label": "Peru", "icon": "🇵🇪"}])
    assert custom["options"] == [{"label": "Peru", "icon": "🇵🇪"}]


def test_full_game_flow(client):
    _create(client)
    ids = [_join(client, name) for name in ("Ann", "Bob", "Cid")]

    # Démarrage: le coordinateur serveur désigne aussitôt un lanceur
    start = client.post(f"/rooms/{ROOM}/start").json()
    assert start["committed"] is True
    assert start["room"]["state"]["phase"] == "spinner_active"

    for turn in range(3):
        state = client.get(f"/rooms/{ROOM}").json()["state"]
        spinner = state["active_spinner_id"]
        assert spinner in ids
        other = next(pid for pid in state["remaining_player_ids"] if pid != spinner) if turn < 2 else "ghost"

        refused = client.post(f"/rooms/{ROOM}/spin/begin", json={"player_id": other}).json()
        assert refused["committed"] is False
        assert refused["prize_index"] is None

        begin = client.post(f"/rooms/{ROOM}/spin/begin", json={"player_id": spinner}).json()
        assert begin["committed"] is True
        assert begin["room"]["state"]["spinning"] is True
        assert 0 <= begin["prize_index"] < len(state["remaining_options"])

        resolved = client.post(
            f"/rooms/{ROOM}/spin/resolve",
            json={"outcome_index": begin["prize_index"], "player_id": spinner},
        ).json()
        assert resolved["committed"] is True

    final = client.get(f"/rooms/{ROOM}").json()["state"]
    assert final["phase"] == "complete"
    assert final["complete"] is True
    assert final["active_spinner_id"] is None
    assert sorted(o["player_id"] for o in final["outcomes"]) == sorted(ids)
    assert sorted(o["label"] for o in final["outcomes"]) == ["Brazil", "Canada", "Japan"]
    assert {o["display_name"] for o in final["outcomes"]} == {"Ann", "Bob", "Cid"}

    late = client.post(f"/rooms/{ROOM}/spin/resolve", json={"outcome_index": 0}).json()
    assert late["committed"] is False

    reset = client.post(f"/rooms/{ROOM}/reset").json()
    assert reset["committed"] is True
    assert reset["room"]["state"]["phase"] == "lobby"
    assert reset["room"]["players"] == {}
    assert len(reset["room"]["options"]) == 3


def test_start_without_quorum_is_not_committed(client):
    _create(client)
    _join(client, "Ann")
    _join(client, "Bob")

    start = client.post(f"/rooms/{ROOM}/start").json()

    assert start["committed"] is False
    assert start["room"]["state"]["phase"] == "lobby"


def test_start_with_unregistered_ids_is_rejected(client):
    _create(client)
    ids = [_join(client, name) for name in ("Ann", "Bob")]

    response = client.post(f"/rooms/{ROOM}/start", json={"player_ids": ids + ["ghost"]})

    assert response.status_code == 400
    assert response.json()["detail"].startswith("invalid_input")
    assert client.get(f"/rooms/{ROOM}").json()["state"]["phase"] == "lobby"


def test_resolve_rejects_stale_label(client):
    _create(client)
    for name in ("Ann", "Bob", "Cid"):
        _join(client, name)
    client.post(f"/rooms/{ROOM}/start")
    spinner = client.get(f"/rooms/{ROOM}").json()["state"]["active_spinner_id"]

    stale = client.post(
        f"/rooms/{ROOM}/spin/resolve",
        json={"outcome_index": 0, "player_id": spinner, "expected_label": "Canada"},
    ).json()

    assert stale["committed"] is False
    assert stale["room"]["state"]["outcomes"] == []


def test_input_errors(client):
    _create(client)

    empty = client.post(f"/rooms/{ROOM}/players/join", json={"display_name": "   "})
    assert empty.status_code == 400
    assert empty.json()["detail"].startswith("invalid_input")

    bad_id = client.post("/rooms", json={"room_id": "../etc"})
    assert bad_id.status_code == 400

    missing = client.get("/rooms/nowhere")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "room_not_found"

    join_missing = client.post("/rooms/nowhere/players/join", json={"display_name": "Ann"})
    assert join_missing.status_code == 404

    ghost = client.post(f"/rooms/{ROOM}/players/ghost/heartbeat")
    assert ghost.status_code == 404
    assert ghost.json()["detail"] == "player_not_found"

    unknown_rejoin = client.post(f"/rooms/{ROOM}/players/rejoin", json={"player_id": "ghost"})
    assert unknown_rejoin.status_code == 404


def test_rejoin_heartbeat_and_presence(client):
    _create(client)
    pid = _join(client, "Ann")

    rejoin = client.post(f"/rooms/{ROOM}/players/rejoin", json={"player_id": pid, "display_name": "Other"})
    assert rejoin.status_code == 200
    assert rejoin.json()["player"]["display_name"] == "Ann"

    beat = client.post(f"/rooms/{ROOM}/players/{pid}/heartbeat")
    assert beat.status_code == 200
    assert beat.json()["last_heartbeat"] > 0

    online = client.get(f"/rooms/{ROOM}/players/online").json()
    assert online["online_player_ids"] == [pid]

    view = client.get(f"/rooms/{ROOM}/presence").json()
    assert view["players"] == {pid: True}
    assert view["active_spinner_id"] is None
    assert view["spinner_label"] is None


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert "connections_total" in body["ws"]
    assert body["rooms"] == []


# ---------------------------------------------------------------- WebSocket

def test_ws_sends_snapshot_and_pong(client):
    _create(client)

    with client.websocket_connect(f"/ws/rooms/{ROOM}") as ws:
        first = ws.receive_json()
        assert first["type"] == "room_snapshot"
        assert first["payload"]["room_id"] == ROOM

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}

        ws.send_json({"type": "dance"})
        assert ws.receive_json()["error"] == "unknown_message"


def test_ws_heartbeat_pushes_new_snapshot(client):
    _create(client)
    pid = _join(client, "Ann")

    with client.websocket_connect(f"/ws/rooms/{ROOM}") as ws:
        first = ws.receive_json()

        ws.send_json({"type": "identify", "player_id": pid})
        assert ws.receive_json() == {"type": "identified", "player_id": pid}

        ws.send_json({"type": "heartbeat"})
        pushed = ws.receive_json()
        assert pushed["type"] == "room_snapshot"
        assert pushed["payload"]["revision"] > first["payload"]["revision"]

        ws.send_json({"type": "heartbeat", "player_id": "ghost"})
        assert ws.receive_json()["error"] == "player_not_found"


def test_ws_unknown_room_is_refused(client):
    with client.websocket_connect("/ws/rooms/nowhere") as ws:
        assert ws.receive_json() == {"type": "error", "error": "room_not_found"}
        with pytest.raises(WebSocketDisconnect) as excinfo:
            ws.receive_json()
        assert excinfo.value.code == 4404


@pytest.mark.parametrize(
    "message",
    [
        {"type": "identify", "payload": "abc"},
        {"type": "identify", "player_id": 123},
        {"type": "heartbeat", "player_id": ["x"]},
        {"type": "heartbeat", "payload": ["x"]},
    ],
)
def test_ws_malformed_player_id_keeps_socket_open(client, message):
    _create(client)

    with client.websocket_connect(f"/ws/rooms/{ROOM}") as ws:
        ws.receive_json()

        ws.send_json(message)
        assert ws.receive_json() == {"type": "error", "error": "missing player_id"}

        ws.send_json({"type": "ping"})
        assert ws.receive_json() == {"type": "pong"}
