import pytest

from noteboard.core import auth
from noteboard.core.errors import AuthorizationDenied, StoreError
from noteboard.core.proto import Note, Room
from noteboard.core.rooms import ENSURE_ATTEMPTS, RoomDirectory


@pytest.fixture
def rooms(store):
    return RoomDirectory(store)


def test_can_delete_is_creator_equality():
    room = Room(id="r1", creator_id="u1")
    assert auth.can_delete(room, "u1") is True
    assert auth.can_delete(room, "u2") is False
    assert auth.can_delete(room, "") is False


def test_ensure_can_delete_raises_for_non_creator():
    room = Room(id="r1", creator_id="u1")
    auth.ensure_can_delete(room, "u1")
    with pytest.raises(AuthorizationDenied) as info:
        auth.ensure_can_delete(room, "u2")
    assert info.value.room_id == "r1"
    assert info.value.requester_id == "u2"


@pytest.mark.asyncio
async def test_ensure_room_creates_once(rooms):
    room, created = await rooms.ensure_room("r1", "u1")
    assert created is True
    assert room == Room(id="r1", creator_id="u1")

    again, created = await rooms.ensure_room("r1", "u1")
    assert created is False
    assert again == room
    assert await rooms.list_rooms() == [room]


@pytest.mark.asyncio
async def test_rejoin_by_other_user_keeps_creator(rooms):
    await rooms.ensure_room("r1", "u1")
    room, created = await rooms.ensure_room("r1", "u2")
    assert created is False
    assert room.creator_id == "u1"


@pytest.mark.asyncio
async def test_ensure_room_reports_race_winner(rooms, store, monkeypatch):
    real_get_room = store.get_room
    calls = {"n": 0}

    async def stale_first_lookup(room_id):
        calls["n"] += 1
        if calls["n"] == 1:
            # someone else inserts between our lookup and our insert
            await store.upsert_room(room_id, "winner")
            return None
        return await real_get_room(room_id)

    monkeypatch.setattr(store, "get_room", stale_first_lookup)
    room, created = await rooms.ensure_room("r1", "loser")
    assert created is False
    assert room.creator_id == "winner"


@pytest.mark.asyncio
async def test_delete_missing_room_is_silent_noop(rooms):
    assert await rooms.delete_room("ghost", "u1") is False


@pytest.mark.asyncio
async def test_delete_by_non_creator_changes_nothing(rooms, store):
    await rooms.ensure_room("r1", "u1")
    await store.insert_note(Note(id="n1", room_id="r1", x=0, y=0, text="", author_id="u1"))

    assert await rooms.delete_room("r1", "u2") is False
    assert await store.get_room("r1") is not None
    assert [n.id for n in await store.get_room_notes("r1")] == ["n1"]


@pytest.mark.asyncio
async def test_delete_by_creator_cascades(rooms, store):
    await rooms.ensure_room("r1", "u1")
    await rooms.ensure_room("r2", "u1")
    await store.insert_note(Note(id="n1", room_id="r1", x=0, y=0, text="", author_id="u2"))
    await store.insert_note(Note(id="n2", room_id="r2", x=0, y=0, text="", author_id="u2"))

    assert await rooms.delete_room("r1", "u1") is True
    assert await store.get_room("r1") is None
    assert await store.get_room_notes("r1") == []
    assert [n.id for n in await store.get_room_notes("r2")] == ["n2"]


@pytest.mark.asyncio
async def test_ensure_room_retries_when_winner_vanishes(rooms, store, monkeypatch):
    real_upsert = store.upsert_room
    calls = {"n": 0}

    async def lose_once(room_id, creator_id):
        calls["n"] += 1
        if calls["n"] == 1:
            # another joiner created it and the creator deleted it straight away
            return False
        return await real_upsert(room_id, creator_id)

    monkeypatch.setattr(store, "upsert_room", lose_once)
    room, created = await rooms.ensure_room("r1", "u1")
    assert created is True
    assert room.creator_id == "u1"
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_ensure_room_gives_up_after_bounded_attempts(rooms, store, monkeypatch):
    calls = {"n": 0}

    async def always_lose(room_id, creator_id):
        calls["n"] += 1
        return False

    monkeypatch.setattr(store, "upsert_room", always_lose)
    with pytest.raises(StoreError):
        await rooms.ensure_room("r1", "u1")
    assert calls["n"] == ENSURE_ATTEMPTS
