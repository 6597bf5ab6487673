import asyncio

import pytest

from shiritori.config import build_turn_config
from shiritori.dictionary import DictionaryLookup, DictionaryService
from shiritori.managers.game import ShiritoriGame


class FakeSio:
    """Records emits instead of sending them."""

    def __init__(self):
        self.emitted = []
        self.sessions = {}
        self.rooms = {}

    async def emit(self, event, data=None, room=None, to=None, **kwargs):
        self.emitted.append((event, data, room or to))

    async def get_session(self, sid):
        return self.sessions.get(sid)

    async def save_session(self, sid, session):
        self.sessions[sid] = session

    async def enter_room(self, sid, room):
        self.rooms.setdefault(room, set()).add(sid)

    async def leave_room(self, sid, room):
        self.rooms.get(room, set()).discard(sid)

    def events(self, name):
        return [data for event, data, _ in self.emitted if event == name]


@pytest.fixture()
def sio():
    return FakeSio()


@pytest.fixture()
def make_game(sio):
    def factory(fetch=None, turn_seconds=15, tick_interval=10.0, timeout_ms=8000):
        lookup = DictionaryLookup(fetch or DictionaryService(), timeout_ms=timeout_ms)
        config = build_turn_config(turn_seconds)
        return ShiritoriGame('room-1', sio, lookup, config=config, tick_interval=tick_interval)
    return factory


async def wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError('condition not reached in time')
        await asyncio.sleep(0.005)
