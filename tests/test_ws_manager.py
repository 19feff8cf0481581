import asyncio

import orjson

from spinroom.models.room import RoomDocument
from spinroom.services.ws_manager import RoomFeed, WSManager


class FakeSocket:
    def __init__(self):
        self.sent = []

    async def send_text(self, text):
        await asyncio.sleep(0)
        self.sent.append(orjson.loads(text))


def _manager_with_socket(room_id):
    manager = WSManager()
    sock = FakeSocket()
    manager.clients_by_room[room_id] = {sock}
    manager.ws_to_room[sock] = room_id
    return manager, sock


def test_feed_keeps_scheduled_broadcast_until_done():
    manager, sock = _manager_with_socket("r")
    feed = RoomFeed(manager)

    async def _scenario():
        feed(RoomDocument(room_id="r", revision=2))
        assert len(feed.pending) == 1
        await asyncio.gather(*list(feed.pending))
        await asyncio.sleep(0)
        assert feed.pending == set()

    asyncio.run(_scenario())

    assert [m["payload"]["revision"] for m in sock.sent] == [2]


def test_feed_skips_older_revisions():
    manager, sock = _manager_with_socket("r")
    feed = RoomFeed(manager)

    async def _scenario():
        feed(RoomDocument(room_id="r", revision=3))
        feed(RoomDocument(room_id="r", revision=2))
        while feed.pending:
            await asyncio.gather(*list(feed.pending))
            await asyncio.sleep(0)

    asyncio.run(_scenario())

    assert [m["payload"]["revision"] for m in sock.sent] == [3]
