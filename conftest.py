import pytest
import pytest_asyncio

from noteboard.core.dispatch import Dispatcher
from noteboard.core.membership import MembershipTracker
from noteboard.core.notes import NoteRegistry
from noteboard.core.rooms import RoomDirectory
from noteboard.core.store import Store


class RecordingPort:
    """BroadcastPort that keeps every frame per connection id."""

    def __init__(self):
        self.sent = []  # (frozenset(conn_ids), frame)

    async def send(self, conn_ids, frame):
        self.sent.append((frozenset(conn_ids), frame))

    def inbox(self, conn_id, event=None):
        return [
            frame for targets, frame in self.sent
            if conn_id in targets and (event is None or frame["event"] == event)
        ]

    def events(self):
        return [frame["event"] for _, frame in self.sent]

    def clear(self):
        self.sent.clear()


@pytest_asyncio.fixture
async def store():
    s = Store(":memory:")
    await s.open()
    try:
        yield s
    finally:
        await s.close()


@pytest.fixture
def port():
    return RecordingPort()


@pytest.fixture
def members():
    return MembershipTracker()


@pytest.fixture
def dispatcher(store, members, port):
    return Dispatcher(
        rooms=RoomDirectory(store),
        notes=NoteRegistry(store),
        members=members,
        port=port,
    )
