"""
Service: mutation.py
Rôle:
- Protocole de mutation unique du document de room (concurrence optimiste):
  lire le document courant → calculer le suivant → commit conditionnel → réessayer si conflit.

Contrat de la fonction de mise à jour:
- `update(current) -> RoomDocument | ABORT`, pure et réévaluable contre n'importe
  quelle base plus récente: elle revalide ses préconditions sur `current` à chaque essai.
- Renvoyer `ABORT` (ou `current` lui-même) termine l'intention sans écriture.

API:
- commit(store, room_id, update, max_attempts=None, intent="mutation") -> CommitResult
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from spinroom.config.settings import settings
from spinroom.models.room import RoomDocument
from spinroom.services.errors import CommitRetriesExhausted
from spinroom.services.room_store import RoomStore

logger = logging.getLogger(__name__)


class _Abort:
    def __repr__(self) -> str:
        return "ABORT"


ABORT = _Abort()

UpdateFn = Callable[[RoomDocument], Union[RoomDocument, _Abort]]


@dataclass(frozen=True)
class CommitResult:
    """Issue d'une intention: `document` est l'état que l'appelant doit observer."""
    committed: bool
    document: RoomDocument
    attempts: int

    @property
    def revision(self) -> int:
        return self.document.revision


def commit(
    store: RoomStore,
    room_id: str,
    update: UpdateFn,
    *,
    max_attempts: Optional[int] = None,
    intent: str = "mutation",
) -> CommitResult:
    limit = max_attempts or settings.COMMIT_MAX_ATTEMPTS
    for attempt in range(1, limit + 1):
        current = store.get(room_id)
        proposed = update(current)
        if proposed is ABORT or proposed is current:
            logger.debug(
                "Mutation aborted (precondition)",
                extra={"room_id": room_id, "intent": intent, "revision": current.revision, "attempt": attempt},
            )
            return CommitResult(committed=False, document=current, attempts=attempt)
        if not isinstance(proposed, RoomDocument):
            raise TypeError(f"{intent}: update must return a RoomDocument or ABORT, got {type(proposed)!r}")

        stored = store.compare_and_set(room_id, current.revision, proposed)
        if stored is not None:
            logger.debug(
                "Mutation committed",
                extra={"room_id": room_id, "intent": intent, "revision": stored.revision, "attempt": attempt},
            )
            return CommitResult(committed=True, document=stored, attempts=attempt)

        logger.info(
            "Commit conflict, retrying against fresh document",
            extra={"room_id": room_id, "intent": intent, "revision": current.revision, "attempt": attempt},
        )

    logger.warning(
        "Mutation gave up after repeated conflicts",
        extra={"room_id": room_id, "intent": intent, "attempt": limit},
    )
    raise CommitRetriesExhausted(room_id, intent, limit)
