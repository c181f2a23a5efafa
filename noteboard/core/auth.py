from __future__ import annotations

from .errors import AuthorizationDenied
from .proto import Room


def can_delete(room: Room, requester_id: str) -> bool:
    """Only the recorded creator may delete a room."""

    return room.creator_id == requester_id


def ensure_can_delete(room: Room, requester_id: str) -> None:
    if not can_delete(room, requester_id):
        raise AuthorizationDenied(room.id, requester_id)


__all__ = ["can_delete", "ensure_can_delete"]
