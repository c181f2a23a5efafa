from __future__ import annotations

import logging
from typing import List

from .errors import InvalidRoom
from .proto import Note, NoteBody
from .store import Store

log = logging.getLogger("noteboard.notes")


class NoteRegistry:
    """Per-room note collections.

    Every mutation returns the room's full current list rather than a delta.
    Clients that missed an event converge on the next snapshot, which is the
    only consistency mechanism the board has: no sequence numbers, no merge.

    The write and the re-read are separate store calls, so under concurrent
    writers the snapshot reflects at least this call's write plus whatever
    else has landed by the time of the read.
    """

    def __init__(self, store: Store, *, require_room: bool = False) -> None:
        self.store = store
        self.require_room = require_room

    async def list_notes(self, room_id: str) -> List[Note]:
        return await self.store.get_room_notes(room_id)

    async def add_note(self, room_id: str, body: NoteBody) -> List[Note]:
        if self.require_room and await self.store.get_room(room_id) is None:
            raise InvalidRoom(room_id)
        await self.store.insert_note(Note.in_room(room_id, body))
        log.debug("Note %s added to %s", body.id, room_id)
        return await self.list_notes(room_id)

    async def delete_note(self, room_id: str, note_id: str) -> List[Note]:
        # keyed globally by id; room_id only scopes the returned snapshot
        await self.store.delete_note_by_id(note_id)
        log.debug("Note %s deleted (room %s)", note_id, room_id)
        return await self.list_notes(room_id)


__all__ = ["NoteRegistry"]
