from __future__ import annotations


class NoteboardError(Exception):
    """Base class for errors raised by the noteboard core."""


class StoreError(NoteboardError):
    """Connectivity or query failure in the persistent store."""


class AuthorizationDenied(NoteboardError):
    """A room deletion was requested by someone other than its creator."""

    def __init__(self, room_id: str, requester_id: str) -> None:
        super().__init__(f"{requester_id!r} may not delete room {room_id!r}")
        self.room_id = room_id
        self.requester_id = requester_id


class InvalidRoom(NoteboardError):
    """A note referenced a room that does not exist."""

    def __init__(self, room_id: str) -> None:
        super().__init__(f"unknown room {room_id!r}")
        self.room_id = room_id


__all__ = ["NoteboardError", "StoreError", "AuthorizationDenied", "InvalidRoom"]
