"""
Module routes/players.py
Rôle:
- Inscription d'un joueur dans une room (sans mot de passe: l'identité est auto-déclarée).
- Ré-identification d'un joueur qui revient avec un player_id mémorisé côté client.
- Battements de présence et liste des joueurs en ligne.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from spinroom.deps.engine import engine_errors, get_room_store
from spinroom.services import player_registry
from spinroom.services.room_store import RoomStore

router = APIRouter(prefix="/rooms/{room_id}/players", tags=["players"])


class JoinPayload(BaseModel):
    display_name: Optional[str] = None


class RejoinPayload(BaseModel):
    player_id: str
    display_name: Optional[str] = None


@router.post("/join")
async def join(room_id: str, payload: JoinPayload, store: RoomStore = Depends(get_room_store)):
    """Inscription d'un joueur -> retourne le joueur créé (player_id unique)."""
    with engine_errors():
        player = player_registry.join(store, room_id, payload.display_name)
    return {"ok": True, "room_id": room_id, "player": player.model_dump()}


@router.post("/rejoin")
async def rejoin(room_id: str, payload: RejoinPayload, store: RoomStore = Depends(get_room_store)):
    with engine_errors():
        player = player_registry.rejoin(store, room_id, payload.player_id, payload.display_name)
    return {"ok": True, "room_id": room_id, "player": player.model_dump()}


@router.post("/{player_id}/heartbeat")
async def heartbeat(room_id: str, player_id: str, store: RoomStore = Depends(get_room_store)):
    with engine_errors():
        player = player_registry.heartbeat(store, room_id, player_id)
    if player is None:
        raise HTTPException(status_code=404, detail="player_not_found")
    return {"ok": True, "player_id": player_id, "last_heartbeat": player.last_heartbeat}


@router.get("/online")
async def online(room_id: str, store: RoomStore = Depends(get_room_store)):
    with engine_errors():
        ids = player_registry.list_online(store, room_id)
    return {"room_id": room_id, "online_player_ids": sorted(ids)}
