# spinroom/services/ws_manager.py
"""
Service: ws_manager.py
- Mapping room_id -> sockets, socket -> room_id, socket -> player_id (identify).
- Flux d'abonnement: chaque commit de room est diffusé en snapshot complet
  ({"type": "room_snapshot", "payload": ...}) aux sockets de la room.
- RoomFeed ignore les snapshots plus anciens que le dernier diffusé (les notifications
  imbriquées peuvent arriver dans le désordre).
- Snapshots immuables des sockets pour éviter "set changed size during iteration".
- Helpers sync (utilisables depuis les listeners du store).
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Dict, Optional, Set

import anyio
import orjson
from starlette.websockets import WebSocket, WebSocketState

from spinroom.models.room import RoomDocument

logger = logging.getLogger(__name__)

SNAPSHOT_EVENT = "room_snapshot"


@dataclass
class WSManager:
    _lock: RLock = field(default_factory=RLock, init=False, repr=False)
    # room_id -> set(WebSocket)
    clients_by_room: Dict[str, Set[WebSocket]] = field(default_factory=dict)
    # reverse maps
    ws_to_room: Dict[WebSocket, str] = field(default_factory=dict)
    ws_to_player: Dict[WebSocket, str] = field(default_factory=dict)

    async def connect(self, ws: WebSocket, room_id: str) -> None:
        """Accepte la connexion WS et l'abonne au flux de la room."""
        await ws.accept()
        with self._lock:
            self.clients_by_room.setdefault(room_id, set()).add(ws)
            self.ws_to_room[ws] = room_id

    def _unlink(self, ws: WebSocket) -> None:
        with self._lock:
            self.ws_to_player.pop(ws, None)
            room_id = self.ws_to_room.pop(ws, None)
            if room_id:
                bucket = self.clients_by_room.get(room_id)
                if bucket is not None:
                    bucket.discard(ws)
                    if not bucket:
                        self.clients_by_room.pop(room_id, None)

    async def disconnect(self, ws: WebSocket) -> None:
        """Ferme proprement la connexion et nettoie les registres."""
        self._unlink(ws)
        if ws.application_state == WebSocketState.DISCONNECTED:
            return
        try:
            await ws.close()
        except RuntimeError:
            # déjà fermée côté client
            pass

    def identify(self, ws: WebSocket, player_id: str) -> None:
        with self._lock:
            self.ws_to_player[ws] = player_id

    def player_of(self, ws: WebSocket) -> Optional[str]:
        with self._lock:
            return self.ws_to_player.get(ws)

    async def send_json(self, ws: WebSocket, payload: Any) -> bool:
        """Envoie à un WS; renvoie True si succès, sinon False (et retire le WS mort)."""
        try:
            await ws.send_text(orjson.dumps(payload).decode("utf-8"))
            return True
        except Exception:
            logger.debug("Dropping dead websocket", exc_info=True)
            self._unlink(ws)
            return False

    def _snapshot_room(self, room_id: str) -> list[WebSocket]:
        with self._lock:
            return list(self.clients_by_room.get(room_id, set()))

    async def broadcast_room(self, room_id: str, payload: Any) -> int:
        conns = self._snapshot_room(room_id)
        success = 0
        for ws in conns:
            if await self.send_json(ws, payload):
                success += 1
        return success

    def stats(self) -> dict:
        with self._lock:
            rooms = {rid: len(conns) for rid, conns in self.clients_by_room.items()}
            return {
                "rooms": rooms,
                "connections_total": sum(rooms.values()),
                "identified_total": len(self.ws_to_player),
            }


def snapshot_message(doc: RoomDocument) -> Dict[str, Any]:
    return {"type": SNAPSHOT_EVENT, "payload": doc.snapshot()}


WS = WSManager()


class RoomFeed:
    """Listener du store: diffuse chaque document commité aux sockets de sa room."""

    def __init__(self, ws: WSManager = WS):
        self.ws = ws
        self._lock = RLock()
        # room_id -> dernière révision diffusée
        self.last_revision: Dict[str, int] = {}
        # diffusions planifiées sur la loop courante, gardées jusqu'à leur fin
        self.pending: Set[asyncio.Task] = set()

    def _claim_revision(self, doc: RoomDocument) -> bool:
        with self._lock:
            if doc.revision <= self.last_revision.get(doc.room_id, 0):
                return False
            self.last_revision[doc.room_id] = doc.revision
            return True

    def __call__(self, doc: RoomDocument) -> None:
        if not self._claim_revision(doc):
            return
        if not self.ws._snapshot_room(doc.room_id):
            return
        _run_async(self.ws.broadcast_room(doc.room_id, snapshot_message(doc)), pending=self.pending)


# =====================================================
# WRAPPER THREAD-SAFE (utilisable depuis les listeners sync)
# =====================================================

def _run_async(coro, pending: Optional[Set[asyncio.Task]] = None):
    """
    Exécute une coroutine depuis un contexte potentiellement synchrone.
    - Essaie anyio.from_thread.run si on est dans un worker anyio (route sync / threadpool).
    - Sinon, planifie sur la loop courante si elle tourne, ou crée une loop.
    - La tâche planifiée est référencée dans `pending` jusqu'à sa fin.
    """
    async def _runner():
        return await coro

    try:
        return anyio.from_thread.run(_runner)
    except RuntimeError:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is not None:
            task = loop.create_task(_runner())
            if pending is not None:
                pending.add(task)
                task.add_done_callback(pending.discard)
            return task
        return asyncio.run(_runner())
