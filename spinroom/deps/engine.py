"""
Dépendances moteur pour les routes
==================================

- `get_room_store` : store de rooms du processus (surchargé dans les tests via
  `app.dependency_overrides`).
- `engine_errors()` : traduit les erreurs du moteur en `HTTPException`.

Codes retour
------------
- 404 `room_not_found` / `player_not_found`
- 400 `invalid_input` (nom vide, id vide, room id invalide...)
- 409 `commit_conflict` (commit conditionnel abandonné après trop de conflits)

Les courses d'état ne sont jamais des erreurs: elles donnent `committed: false`.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException

from spinroom.services.errors import (
    CommitRetriesExhausted,
    InvalidInput,
    PlayerNotFound,
    RoomNotFound,
)
from spinroom.services.room_runtime import get_room_store

__all__ = ["engine_errors", "get_room_store"]


@contextmanager
def engine_errors() -> Iterator[None]:
    try:
        yield
    except RoomNotFound as exc:
        raise HTTPException(status_code=404, detail="room_not_found") from exc
    except PlayerNotFound as exc:
        raise HTTPException(status_code=404, detail="player_not_found") from exc
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=f"invalid_input: {exc}") from exc
    except CommitRetriesExhausted as exc:
        raise HTTPException(status_code=409, detail="commit_conflict") from exc
