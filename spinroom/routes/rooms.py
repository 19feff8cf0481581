"""
Module routes/rooms.py
Rôle:
- Surface de commande d'une room: création, snapshot, présence, démarrage,
  lancer (début + résolution), reset.

Intégrations:
- game_engine: chaque commande est une mutation conditionnelle du document de room.
- presence: vue "en ligne" + libellé du lanceur courant (annoté "(offline)").

Réponses des commandes:
- {"ok": true, "committed": bool, "room": snapshot}
- `committed: false` = précondition non satisfaite (course perdue, état périmé):
  le client lit `room` pour savoir où en est la partie.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from spinroom.deps.engine import engine_errors, get_room_store
from spinroom.models.game import Option
from spinroom.services import game_engine, presence
from spinroom.services.mutation import CommitResult
from spinroom.services.room_store import RoomStore

router = APIRouter(prefix="/rooms", tags=["rooms"])


class OptionPayload(BaseModel):
    label: str = Field(min_length=1)
    icon: str = ""


class CreateRoomPayload(BaseModel):
    room_id: Optional[str] = None
    options: Optional[List[OptionPayload]] = None


class StartPayload(BaseModel):
    player_ids: Optional[List[str]] = None


class BeginSpinPayload(BaseModel):
    player_id: str


class ResolveSpinPayload(BaseModel):
    outcome_index: int
    player_id: Optional[str] = None
    expected_label: Optional[str] = None


def _command_response(result: CommitResult, **extra) -> dict:
    body = {"ok": True, "committed": result.committed, "room": result.document.snapshot()}
    body.update(extra)
    return body


@router.post("")
async def create_room(payload: Optional[CreateRoomPayload] = None, store: RoomStore = Depends(get_room_store)):
    """Crée la room si besoin (idempotent) et renvoie son snapshot."""
    payload = payload or CreateRoomPayload()
    options = None
    if payload.options is not None:
        options = [Option(label=o.label, icon=o.icon) for o in payload.options]
    with engine_errors():
        doc = store.create(payload.room_id, options)
    return {"ok": True, "room": doc.snapshot()}


@router.get("/{room_id}")
async def get_room(room_id: str, store: RoomStore = Depends(get_room_store)):
    with engine_errors():
        return store.get(room_id).snapshot()


@router.get("/{room_id}/presence")
async def get_presence(room_id: str, store: RoomStore = Depends(get_room_store)):
    with engine_errors():
        return presence.presence_view(store.get(room_id))


@router.post("/{room_id}/start")
async def start_game(
    room_id: str,
    payload: Optional[StartPayload] = None,
    store: RoomStore = Depends(get_room_store),
):
    player_ids = payload.player_ids if payload else None
    with engine_errors():
        result = game_engine.start_game(store, room_id, player_ids=player_ids)
        # le coordinateur de tours a pu sélectionner un lanceur dans la foulée
        latest = store.get(room_id)
    return {"ok": True, "committed": result.committed, "room": latest.snapshot()}


@router.post("/{room_id}/spin/begin")
async def begin_spin(room_id: str, payload: BeginSpinPayload, store: RoomStore = Depends(get_room_store)):
    """Le lanceur désigné réclame son tour; renvoie un index tiré pour l'animation."""
    with engine_errors():
        result = game_engine.begin_spin(store, room_id, payload.player_id)
    prize_index = game_engine.draw_prize_index(result.document) if result.committed else None
    return _command_response(result, prize_index=prize_index)


@router.post("/{room_id}/spin/resolve")
async def resolve_spin(room_id: str, payload: ResolveSpinPayload, store: RoomStore = Depends(get_room_store)):
    with engine_errors():
        result = game_engine.resolve_spin(
            store,
            room_id,
            payload.outcome_index,
            spinner_id=payload.player_id,
            expected_label=payload.expected_label,
        )
        latest = store.get(room_id)
    return {"ok": True, "committed": result.committed, "room": latest.snapshot()}


@router.post("/{room_id}/reset")
async def reset_room(room_id: str, store: RoomStore = Depends(get_room_store)):
    """Retour au Lobby et vidage du registre des joueurs."""
    with engine_errors():
        result = game_engine.reset(store, room_id)
    return _command_response(result)
