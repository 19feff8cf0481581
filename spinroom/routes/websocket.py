# spinroom/routes/websocket.py
"""
WebSocket endpoints.

- /ws/rooms/{room_id} : flux d'abonnement d'une room.
  * à la connexion: snapshot complet ({"type": "room_snapshot", "payload": ...});
  * après chaque commit: nouveau snapshot (diffusé par RoomFeed);
  * messages acceptés: identify {player_id}, heartbeat {player_id?}, ping.
"""
from __future__ import annotations

from typing import Any

import orjson
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from spinroom.deps.engine import get_room_store
from spinroom.services import player_registry
from spinroom.services.errors import InvalidInput
from spinroom.services.room_store import RoomStore
from spinroom.services.ws_manager import WS, snapshot_message

router = APIRouter()


def _player_id(ws: WebSocket, msg: dict) -> str:
    """Id présenté dans le message (ou celui de l'identify); "" s'il n'est pas une chaîne."""
    payload = msg.get("payload")
    if not isinstance(payload, dict):
        payload = {}
    pid: Any = msg.get("player_id") or payload.get("player_id") or WS.player_of(ws)
    if not isinstance(pid, str):
        return ""
    return pid.strip()


@router.websocket("/ws/rooms/{room_id}")
async def room_stream(ws: WebSocket, room_id: str, store: RoomStore = Depends(get_room_store)):
    try:
        doc = store.get(room_id)
    except InvalidInput:
        await ws.accept()
        await ws.send_json({"type": "error", "error": "room_not_found"})
        await ws.close(code=4404)
        return

    await WS.connect(ws, doc.room_id)
    await WS.send_json(ws, snapshot_message(doc))
    try:
        while True:
            raw = await ws.receive_text()
            try:
                msg = orjson.loads(raw)
            except orjson.JSONDecodeError:
                # Message non JSON -> ignore
                continue
            if not isinstance(msg, dict):
                continue

            mtype = msg.get("type")
            if mtype == "identify":
                pid = _player_id(ws, msg)
                if pid:
                    WS.identify(ws, pid)
                    await WS.send_json(ws, {"type": "identified", "player_id": pid})
                else:
                    await WS.send_json(ws, {"type": "error", "error": "missing player_id"})
            elif mtype == "heartbeat":
                pid = _player_id(ws, msg)
                # le snapshot mis à jour arrive par le flux de la room
                if not pid:
                    await WS.send_json(ws, {"type": "error", "error": "missing player_id"})
                elif player_registry.heartbeat(store, doc.room_id, pid) is None:
                    await WS.send_json(ws, {"type": "error", "error": "player_not_found"})
            elif mtype == "ping":
                await WS.send_json(ws, {"type": "pong"})
            else:
                await WS.send_json(ws, {"type": "error", "error": "unknown_message", "received": mtype})
    except WebSocketDisconnect:
        pass
    finally:
        await WS.disconnect(ws)
