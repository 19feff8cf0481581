"""
Service: player_registry.py
Rôle:
- Registre des joueurs d'une room (stocké dans le document de room).
- Inscription, ré-identification d'un joueur qui revient, battements, liste des joueurs en ligne.

Règles:
- L'identité est auto-déclarée: présenter un id connu suffit à reprendre le joueur.
- Le registre n'est jamais purgé automatiquement (l'absence se déduit de la présence);
  seul un reset de room le vide.
- Toutes les écritures passent par `mutation.commit`.
"""
from __future__ import annotations

import logging
import time
from typing import Optional, Set
from uuid import uuid4

from spinroom.config.settings import settings
from spinroom.models.player import Player
from spinroom.models.room import RoomDocument
from spinroom.services import presence
from spinroom.services.errors import InvalidInput, PlayerNotFound
from spinroom.services.mutation import ABORT, commit
from spinroom.services.room_store import RoomStore

logger = logging.getLogger(__name__)


def clean_display_name(display_name: Optional[str]) -> str:
    """Nom nettoyé (trim + longueur max) ou InvalidInput s'il est vide."""
    name = (display_name or "").strip()[: settings.MAX_NAME_LENGTH].strip()
    if not name:
        raise InvalidInput("display_name must not be empty")
    return name


def join(store: RoomStore, room_id: str, display_name: Optional[str], now: Optional[float] = None) -> Player:
    """Inscrit un nouveau joueur (id fraîchement généré, insertion inconditionnelle)."""
    name = clean_display_name(display_name)
    ts = time.time() if now is None else now
    player = Player(id=str(uuid4()), display_name=name, joined_at=ts, last_heartbeat=ts)

    def _insert(doc: RoomDocument) -> RoomDocument:
        return doc.with_player(player)

    result = commit(store, room_id, _insert, intent="join")
    logger.info(
        "Player joined",
        extra={"room_id": room_id, "player_id": player.id, "revision": result.revision},
    )
    return player


def rejoin(
    store: RoomStore,
    room_id: str,
    player_id: Optional[str],
    display_name: Optional[str],
    now: Optional[float] = None,
) -> Player:
    """
    Reprend un joueur connu (renvoyé tel quel) ou le recrée avec l'id présenté.
    Idempotent: deux appels successifs renvoient le même enregistrement.
    """
    pid = (player_id or "").strip()
    if not pid:
        raise InvalidInput("player_id must not be empty")
    try:
        name: Optional[str] = clean_display_name(display_name)
    except InvalidInput:
        name = None
    ts = time.time() if now is None else now

    def _reinsert(doc: RoomDocument):
        if pid in doc.players:
            return ABORT
        if name is None:
            raise PlayerNotFound(pid)
        return doc.with_player(Player(id=pid, display_name=name, joined_at=ts, last_heartbeat=ts))

    result = commit(store, room_id, _reinsert, intent="rejoin")
    if result.committed:
        logger.info("Player re-registered", extra={"room_id": room_id, "player_id": pid})
    return result.document.players[pid]


def heartbeat(store: RoomStore, room_id: str, player_id: str, now: Optional[float] = None) -> Optional[Player]:
    """Rafraîchit `last_heartbeat`; un id inconnu est un no-op silencieux (renvoie None)."""
    ts = time.time() if now is None else now

    def _beat(doc: RoomDocument):
        player = doc.players.get(player_id)
        if player is None:
            return ABORT
        return doc.with_player(presence.touch(player, ts))

    result = commit(store, room_id, _beat, intent="heartbeat")
    return result.document.players.get(player_id)


def list_online(store: RoomStore, room_id: str, now: Optional[float] = None) -> Set[str]:
    return presence.online_ids(store.get(room_id).players, now)
