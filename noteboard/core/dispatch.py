from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Protocol, Union

from . import proto
from .errors import InvalidRoom, StoreError
from .membership import MembershipTracker
from .notes import NoteRegistry
from .rooms import RoomDirectory


"""
Event Dispatcher
----------------
Wires inbound client events to the room directory and note registry, then
decides who hears about the result.

  join_room    → ensure room; load_notes + room_info to sender;
                 update_room_list to everyone if the room is new
  add_note     → persist; load_notes to the room
  delete_note  → remove; load_notes to the room
  delete_room  → creator only; room_deleted to the room, update_room_list to everyone
  leave_room   → drop one membership; nothing sent

Failure isolation: a StoreError or InvalidRoom inside one handler is logged
and that handler sends nothing. Denied room deletions are silent. Only
malformed frames are answered, with an `error` frame to the sender.
"""


log = logging.getLogger("noteboard.dispatch")


class BroadcastPort(Protocol):
    async def send(self, conn_ids: Iterable[str], frame: Dict[str, Any]) -> None: ...


Handler = Callable[[str, Any], Awaitable[None]]


class Dispatcher:
    def __init__(
        self,
        rooms: RoomDirectory,
        notes: NoteRegistry,
        members: MembershipTracker,
        port: BroadcastPort,
    ) -> None:
        self.rooms = rooms
        self.notes = notes
        self.members = members
        self.port = port
        self._handlers: Dict[str, Handler] = {
            "join_room": self._on_join_room,
            "add_note": self._on_add_note,
            "delete_note": self._on_delete_note,
            "delete_room": self._on_delete_room,
            "leave_room": self._on_leave_room,
        }

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self, conn_id: str) -> None:
        self.members.connect(conn_id)
        await self._isolated("connect", conn_id, self._broadcast_room_list())

    async def disconnect(self, conn_id: str) -> None:
        # presence is not tracked, so nobody is told
        self.members.disconnect(conn_id)

    # ------------------------------------------------------------------
    # Ingress
    # ------------------------------------------------------------------

    async def handle(self, conn_id: str, raw: Union[str, bytes]) -> None:
        try:
            event, payload = proto.parse_frame(raw)
        except proto.ProtocolError as exc:
            log.warning("Rejected frame from %s: %s %s", conn_id, exc.code, exc.detail)
            await self.port.send([conn_id], proto.error_frame(exc.code, exc.detail))
            return
        await self._isolated(event, conn_id, self._handlers[event](conn_id, payload))

    async def _isolated(self, event: str, conn_id: str, work: Awaitable[None]) -> None:
        try:
            await work
        except StoreError:
            log.exception("%s from %s failed in the store", event, conn_id)
        except InvalidRoom as exc:
            log.warning("%s from %s rejected: %s", event, conn_id, exc)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    async def _on_join_room(self, conn_id: str, payload: proto.JoinRoom) -> None:
        self.members.join(conn_id, payload.room_id)
        room, created = await self.rooms.ensure_room(payload.room_id, payload.user_id)
        if created:
            await self._broadcast_room_list()

        notes = await self.notes.list_notes(room.id)
        await self.port.send([conn_id], proto.notes_frame(notes))
        await self.port.send([conn_id], proto.room_info_frame(room))

    async def _on_add_note(self, conn_id: str, payload: proto.AddNote) -> None:
        notes = await self.notes.add_note(payload.room_id, payload.note)
        await self._to_room(payload.room_id, proto.notes_frame(notes))

    async def _on_delete_note(self, conn_id: str, payload: proto.DeleteNote) -> None:
        notes = await self.notes.delete_note(payload.room_id, payload.note_id)
        await self._to_room(payload.room_id, proto.notes_frame(notes))

    async def _on_delete_room(self, conn_id: str, payload: proto.DeleteRoom) -> None:
        if not await self.rooms.delete_room(payload.room_id, payload.user_id):
            return
        # members stay joined to the vanished room; clients decide what to do
        await self._to_room(payload.room_id, proto.room_deleted_frame())
        await self._broadcast_room_list()

    async def _on_leave_room(self, conn_id: str, payload: proto.LeaveRoom) -> None:
        self.members.leave(conn_id, payload.room_id)

    # ------------------------------------------------------------------
    # Egress
    # ------------------------------------------------------------------

    async def _to_room(self, room_id: str, frame: Dict[str, Any]) -> None:
        await self.port.send(self.members.audience_for(room_id), frame)

    async def _broadcast_room_list(self) -> None:
        rooms = await self.rooms.list_rooms()
        await self.port.send(self.members.all(), proto.room_list_frame(rooms))


__all__ = ["Dispatcher", "BroadcastPort"]
