"""
Service: turn_coordinator.py
Rôle:
- Règle réactive "qui remarque le premier agit": à chaque changement d'état,
  si la partie attend un lanceur, tenter `select_spinner`.
- Aucun coordinateur privilégié: plusieurs instances peuvent être attachées au même
  store (une par client); le commit conditionnel garantit qu'une seule sélection
  aboutit par tour, les autres observent l'état déjà mis à jour et abandonnent.
"""
from __future__ import annotations

import logging
import random
from typing import Callable, Optional

from spinroom.models.game import SelectingSpinnerState
from spinroom.models.room import RoomDocument
from spinroom.services import game_engine
from spinroom.services.mutation import CommitResult
from spinroom.services.room_store import RoomStore

logger = logging.getLogger(__name__)


def needs_spinner(doc: RoomDocument) -> bool:
    """started ∧ aucun lanceur actif ∧ joueurs restants ∧ partie non terminée."""
    return isinstance(doc.state, SelectingSpinnerState)


class TurnCoordinator:
    def __init__(self, store: RoomStore, rng: Optional[random.Random] = None, name: str = "local"):
        self.store = store
        self.rng = rng
        self.name = name
        self._unsubscribe: Optional[Callable[[], None]] = None

    def react(self, doc: RoomDocument) -> Optional[CommitResult]:
        if not needs_spinner(doc):
            return None
        result = game_engine.select_spinner(self.store, doc.room_id, rng=self.rng)
        if not result.committed:
            logger.debug(
                "Spinner selection lost the race",
                extra={"room_id": doc.room_id, "coordinator": self.name, "revision": result.revision},
            )
        return result

    def attach(self) -> "TurnCoordinator":
        """S'abonne aux commits de toutes les rooms du store."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe_all(self.react)
        return self

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
