from __future__ import annotations

import logging
from typing import List, Tuple

from . import auth
from .errors import AuthorizationDenied, StoreError
from .proto import Room
from .store import Store

log = logging.getLogger("noteboard.rooms")

ENSURE_ATTEMPTS = 3


class RoomDirectory:
    """In-protocol view of all rooms. Holds no cache; every call hits the store."""

    def __init__(self, store: Store) -> None:
        self.store = store

    async def list_rooms(self) -> List[Room]:
        return await self.store.get_rooms()

    async def ensure_room(self, room_id: str, requester_id: str) -> Tuple[Room, bool]:
        """Return ``(room, created)``.

        An existing room is returned untouched, so re-joining never reassigns
        ownership. ``created`` tells the caller the room list changed.
        """

        for _ in range(ENSURE_ATTEMPTS):
            room = await self.store.get_room(room_id)
            if room is not None:
                return room, False
            if await self.store.upsert_room(room_id, requester_id):
                log.info("Room %s created by %s", room_id, requester_id)
                return Room(id=room_id, creator_id=requester_id), True
            # lost the insert race; the next lookup reports the winner's row
        raise StoreError(f"room {room_id!r} kept vanishing during create")

    async def delete_room(self, room_id: str, requester_id: str) -> bool:
        room = await self.store.get_room(room_id)
        if room is None:
            log.debug("delete_room for unknown room %s ignored", room_id)
            return False
        try:
            auth.ensure_can_delete(room, requester_id)
        except AuthorizationDenied as exc:
            log.info("Delete denied: %s", exc)
            return False

        await self.store.delete_notes_by_room(room_id)
        await self.store.delete_room_by_id(room_id)
        log.info("Room %s deleted by %s", room_id, requester_id)
        return True


__all__ = ["RoomDirectory"]
