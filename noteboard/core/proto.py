from __future__ import annotations

import json
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


# ---------------------------------------------------------------------------
# Records (wire shape is camelCase, attributes are snake_case)
# ---------------------------------------------------------------------------

class Room(BaseModel):
    id: str
    creator_id: str = Field(alias="creatorId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class NoteBody(BaseModel):
    """Note as a client submits it inside ``add_note``; the room comes from the event."""

    id: str = Field(min_length=1)
    x: float
    y: float
    text: str = ""
    author_id: str = Field(alias="authorId")

    # coordinates must be finite: JSON has no Infinity/NaN
    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False)


class Note(NoteBody):
    room_id: str = Field(alias="roomId")

    model_config = ConfigDict(populate_by_name=True, allow_inf_nan=False, frozen=True)

    @classmethod
    def in_room(cls, room_id: str, body: NoteBody) -> "Note":
        return cls(room_id=room_id, **body.model_dump())


# ---------------------------------------------------------------------------
# Inbound payloads
# ---------------------------------------------------------------------------

class _Payload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class JoinRoom(_Payload):
    room_id: str = Field(alias="roomId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)


class AddNote(_Payload):
    room_id: str = Field(alias="roomId", min_length=1)
    note: NoteBody


class DeleteNote(_Payload):
    room_id: str = Field(alias="roomId", min_length=1)
    note_id: str = Field(alias="noteId", min_length=1)


class DeleteRoom(_Payload):
    room_id: str = Field(alias="roomId", min_length=1)
    user_id: str = Field(alias="userId", min_length=1)


class LeaveRoom(_Payload):
    room_id: str = Field(alias="roomId", min_length=1)


INBOUND = {
    "join_room": JoinRoom,
    "add_note": AddNote,
    "delete_note": DeleteNote,
    "delete_room": DeleteRoom,
    "leave_room": LeaveRoom,
}

OUTBOUND = {"update_room_list", "load_notes", "room_info", "room_deleted", "error"}

ERROR_CODES = {
    "BAD_FRAME",
    "UNKNOWN_EVENT",
    "BAD_PAYLOAD",
}


class ProtocolError(ValueError):
    """Inbound frame rejected before reaching any handler."""

    def __init__(self, code: str, detail: str) -> None:
        super().__init__(detail)
        self.code = code
        self.detail = detail


# ---------------------------------------------------------------------------
# Frame construction
# ---------------------------------------------------------------------------

def build_frame(event: str, data: Any = None) -> Dict[str, Any]:
    """Create an outbound frame dict; pydantic models are dumped by alias."""

    if event not in OUTBOUND:
        raise ValueError(f"unknown outbound event: {event}")
    return {"event": event, "data": _dump(data)}


def room_list_frame(rooms: list[Room]) -> Dict[str, Any]:
    return build_frame("update_room_list", rooms)


def notes_frame(notes: list[Note]) -> Dict[str, Any]:
    return build_frame("load_notes", notes)


def room_info_frame(room: Room) -> Dict[str, Any]:
    return build_frame("room_info", {"creatorId": room.creator_id})


def room_deleted_frame() -> Dict[str, Any]:
    return build_frame("room_deleted")


def error_frame(code: str, detail: str) -> Dict[str, Any]:
    return build_frame("error", {"code": code, "detail": detail})


def encode(frame: Dict[str, Any]) -> str:
    return json.dumps(frame, separators=(",", ":"), allow_nan=False)


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True)
    if isinstance(data, (list, tuple)):
        return [_dump(item) for item in data]
    return data


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def parse_frame(raw: Union[str, bytes]) -> tuple[str, BaseModel]:
    """Decode and validate one inbound frame.

    Returns ``(event, payload_model)``; raises ProtocolError on anything the
    dispatcher should not see.
    """

    try:
        frame = json.loads(raw)
    except (TypeError, ValueError):
        raise ProtocolError("BAD_FRAME", "frame is not valid JSON") from None
    if not isinstance(frame, dict):
        raise ProtocolError("BAD_FRAME", "frame must be an object")

    event = frame.get("event")
    model = INBOUND.get(event) if isinstance(event, str) else None
    if model is None:
        raise ProtocolError("UNKNOWN_EVENT", f"unsupported event {event!r}")

    data: Optional[Any] = frame.get("data")
    if not isinstance(data, dict):
        raise ProtocolError("BAD_PAYLOAD", f"{event} payload must be an object")
    try:
        return event, model.model_validate(data)
    except ValidationError as exc:
        raise ProtocolError("BAD_PAYLOAD", _summarize(exc)) from None


def _summarize(exc: ValidationError) -> str:
    first = exc.errors()[0]
    where = ".".join(str(part) for part in first.get("loc", ()))
    return f"{where}: {first.get('msg')}" if where else str(first.get("msg"))


__all__ = [
    "Room",
    "Note",
    "NoteBody",
    "JoinRoom",
    "AddNote",
    "DeleteNote",
    "DeleteRoom",
    "LeaveRoom",
    "INBOUND",
    "OUTBOUND",
    "ERROR_CODES",
    "ProtocolError",
    "build_frame",
    "room_list_frame",
    "notes_frame",
    "room_info_frame",
    "room_deleted_frame",
    "error_frame",
    "encode",
    "parse_frame",
]
