"""
Module routes/health.py
Rôle:
- Sonde de vie: nom du service, rooms connues, connexions WS par room.
"""
from fastapi import APIRouter, Depends

from spinroom.config.settings import settings
from spinroom.deps.engine import get_room_store
from spinroom.services.room_store import RoomStore
from spinroom.services.ws_manager import WS

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health(store: RoomStore = Depends(get_room_store)):
    return {
        "ok": True,
        "service": settings.APP_NAME,
        "rooms": store.list_room_ids(),
        "ws": WS.stats(),
    }
