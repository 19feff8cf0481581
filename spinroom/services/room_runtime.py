"""
Room runtime registry
=====================

Assemble le store de rooms du processus: coordinateur de tours et diffusion WS
abonnés à tous les commits. Les routes obtiennent le store via la dépendance
FastAPI `get_room_store` (surchargée dans les tests).
"""
from __future__ import annotations

from pathlib import Path
from threading import RLock
from typing import Optional

from spinroom.services.room_store import RoomStore
from spinroom.services.turn_coordinator import TurnCoordinator
from spinroom.services.ws_manager import WS, RoomFeed, WSManager

_instance: Optional[RoomStore] = None
_LOCK = RLock()


def build_room_store(
    data_dir: Optional[Path | str] = None,
    *,
    persist: Optional[bool] = None,
    ws: Optional[WSManager] = WS,
) -> RoomStore:
    """Crée un store câblé: coordinateur de tours + flux WS (si `ws` est fourni)."""
    store = RoomStore(data_dir, persist=persist)
    TurnCoordinator(store, name="server").attach()
    if ws is not None:
        store.subscribe_all(RoomFeed(ws))
    return store


def get_room_store() -> RoomStore:
    """Garantit une unique instance `RoomStore` pour tout le backend (lazy)."""
    global _instance
    with _LOCK:
        if _instance is None:
            _instance = build_room_store()
        return _instance
