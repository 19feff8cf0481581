"""
Models / room.py
Rôle:
- Le document unique d'une room: état de partie + registre des joueurs + catalogue d'options.
- C'est l'unité de commit conditionnel: `revision` est incrémentée par le store à chaque écriture.

Notes:
- `players` est ordonné par ordre d'insertion (ordre d'arrivée, utilisé au démarrage).
- `snapshot()` produit la vue "document entier" diffusée aux abonnés (jamais de delta).
"""
from __future__ import annotations

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field

from spinroom.models.game import GameState, LobbyState, Option
from spinroom.models.player import Player


class RoomDocument(BaseModel):
    room_id: str
    revision: int = 0
    options: List[Option] = Field(default_factory=list)
    players: Dict[str, Player] = Field(default_factory=dict)
    state: GameState = Field(default_factory=LobbyState)
    updated_at: float = 0.0

    model_config = ConfigDict(frozen=True)

    def with_state(self, state: Any) -> "RoomDocument":
        return self.model_copy(update={"state": state})

    def with_player(self, player: Player) -> "RoomDocument":
        players = dict(self.players)
        players[player.id] = player
        return self.model_copy(update={"players": players})

    def snapshot(self) -> Dict[str, Any]:
        """Vue JSON complète du document (forme exposée aux collaborateurs)."""
        return {
            "room_id": self.room_id,
            "revision": self.revision,
            "updated_at": self.updated_at,
            "options": [o.model_dump() for o in self.options],
            "players": {pid: p.model_dump() for pid, p in self.players.items()},
            "state": self.state.document(),
        }
