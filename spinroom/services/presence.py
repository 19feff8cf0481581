"""
Service: presence.py
Rôle:
- Déduire la présence d'un joueur de ses battements (heartbeats).
- Purement consultatif: la présence n'empêche jamais la partie d'avancer
  (un lanceur hors ligne garde son tour jusqu'à résolution ou reset).

Règle:
- en ligne  ⇔  now - last_heartbeat < ONLINE_WINDOW_S
"""
from __future__ import annotations

import time
from typing import Any, Dict, Mapping, Optional, Set

from spinroom.config.settings import settings
from spinroom.models.player import Player
from spinroom.models.room import RoomDocument

UNKNOWN_PLAYER_LABEL = "Unknown"
OFFLINE_SUFFIX = " (offline)"


def _now(now: Optional[float]) -> float:
    return time.time() if now is None else now


def _window(window: Optional[float]) -> float:
    return settings.ONLINE_WINDOW_S if window is None else window


def touch(player: Player, now: Optional[float] = None) -> Player:
    """Nouvelle instance du joueur avec `last_heartbeat` rafraîchi."""
    return player.model_copy(update={"last_heartbeat": _now(now)})


def is_online(player: Player, now: Optional[float] = None, window: Optional[float] = None) -> bool:
    return _now(now) - player.last_heartbeat < _window(window)


def online_ids(
    players: Mapping[str, Player],
    now: Optional[float] = None,
    window: Optional[float] = None,
) -> Set[str]:
    ts = _now(now)
    return {pid for pid, p in players.items() if is_online(p, ts, window)}


def spinner_label(doc: RoomDocument, now: Optional[float] = None) -> Optional[str]:
    """Nom affiché du lanceur courant, annoté " (offline)" s'il ne bat plus."""
    spinner_id = doc.state.active_spinner_id
    if spinner_id is None:
        return None
    player = doc.players.get(spinner_id)
    name = player.display_name if player else UNKNOWN_PLAYER_LABEL
    if player is None or not is_online(player, now):
        return name + OFFLINE_SUFFIX
    return name


def presence_view(doc: RoomDocument, now: Optional[float] = None) -> Dict[str, Any]:
    ts = _now(now)
    online = online_ids(doc.players, ts)
    return {
        "room_id": doc.room_id,
        "revision": doc.revision,
        "online_player_ids": sorted(online),
        "players": {pid: pid in online for pid in doc.players},
        "active_spinner_id": doc.state.active_spinner_id,
        "spinner_label": spinner_label(doc, ts),
        "online_window_s": settings.ONLINE_WINDOW_S,
        "heartbeat_interval_s": settings.HEARTBEAT_INTERVAL_S,
    }
