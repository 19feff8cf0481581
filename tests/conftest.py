from __future__ import annotations

import pytest

from spinroom.models.player import Player
from spinroom.services.room_store import RoomStore

ROOM_ID = "test-room"


def make_player(pid: str, name: str | None = None, ts: float = 0.0) -> Player:
    return Player(id=pid, display_name=name or pid, joined_at=ts, last_heartbeat=ts)


class RacingStore(RoomStore):
    """Store dont la prochaine lecture déclenche un écrivain concurrent (course simulée)."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.interference = None

    def race_once(self, hook) -> None:
        self.interference = hook

    def get(self, room_id):
        doc = super().get(room_id)
        if self.interference is not None:
            hook, self.interference = self.interference, None
            hook()
        return doc


@pytest.fixture
def store(tmp_path):
    s = RoomStore(tmp_path, persist=True)
    s.create(ROOM_ID)
    return s


@pytest.fixture
def racing_store(tmp_path):
    s = RacingStore(tmp_path, persist=False)
    s.create(ROOM_ID)
    return s
