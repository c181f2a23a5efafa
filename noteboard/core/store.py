from __future__ import annotations

import contextlib
import logging
from typing import AsyncIterator, List, Optional

import aiosqlite

from .errors import StoreError
from .proto import Note, Room

"""
Store - aiosqlite-backed persistent facts for noteboard
-------------------------------------------------------

Tables:
1. rooms  → one row per room, keyed by the caller-supplied room id.
2. notes  → one row per note, keyed by the caller-supplied note id.

notes.room_id is deliberately not a foreign key: whether orphan notes are
allowed is decided by the note registry, not the schema.
"""

log = logging.getLogger("noteboard.store")

SCHEMA = """
CREATE TABLE IF NOT EXISTS rooms(
    id         TEXT PRIMARY KEY,
    creator_id TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS notes(
    id        TEXT PRIMARY KEY,
    room_id   TEXT NOT NULL,
    x         REAL NOT NULL,
    y         REAL NOT NULL,
    text      TEXT NOT NULL DEFAULT '',
    author_id TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS notes_room_id ON notes(room_id);
"""


class Store:
    """Persistent store for rooms and notes."""

    def __init__(self, path: str = "noteboard.db") -> None:
        self.path = path
        self._db: Optional[aiosqlite.Connection] = None

    async def open(self) -> None:
        """Connect and provision the schema."""

        async with self._guard("open"):
            self._db = await aiosqlite.connect(self.path)
            self._db.row_factory = aiosqlite.Row
            await self._db.executescript(SCHEMA)
            await self._db.commit()
        log.info("Store ready at %s", self.path)

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    # --- Rooms ---

    async def get_rooms(self) -> List[Room]:
        rows = await self._fetchall("SELECT id, creator_id FROM rooms")
        return [_room(row) for row in rows]

    async def get_room(self, room_id: str) -> Optional[Room]:
        rows = await self._fetchall("SELECT id, creator_id FROM rooms WHERE id=?", (room_id,))
        return _room(rows[0]) if rows else None

    async def upsert_room(self, room_id: str, creator_id: str) -> bool:
        """Insert the room unless it already exists.

        Returns True only if this call created the row; an existing room keeps
        its creator.
        """

        rowcount = await self._write(
            "INSERT INTO rooms(id, creator_id) VALUES(?,?) ON CONFLICT(id) DO NOTHING",
            (room_id, creator_id),
        )
        return rowcount > 0

    async def delete_room_by_id(self, room_id: str) -> None:
        await self._write("DELETE FROM rooms WHERE id=?", (room_id,))

    # --- Notes ---

    async def get_room_notes(self, room_id: str) -> List[Note]:
        rows = await self._fetchall(
            "SELECT id, room_id, x, y, text, author_id FROM notes WHERE room_id=?",
            (room_id,),
        )
        return [_note(row) for row in rows]

    async def insert_note(self, note: Note) -> None:
        await self._write(
            "INSERT INTO notes(id, room_id, x, y, text, author_id) VALUES(?,?,?,?,?,?)",
            (note.id, note.room_id, note.x, note.y, note.text, note.author_id),
        )

    async def delete_note_by_id(self, note_id: str) -> None:
        await self._write("DELETE FROM notes WHERE id=?", (note_id,))

    async def delete_notes_by_room(self, room_id: str) -> None:
        await self._write("DELETE FROM notes WHERE room_id=?", (room_id,))

    # --- internals ---

    async def _fetchall(self, sql: str, params: tuple = ()) -> list:
        async with self._guard(sql):
            async with self._conn().execute(sql, params) as cur:
                return list(await cur.fetchall())

    async def _write(self, sql: str, params: tuple) -> int:
        async with self._guard(sql):
            db = self._conn()
            async with db.execute(sql, params) as cur:
                rowcount = cur.rowcount
            await db.commit()
            return rowcount

    def _conn(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StoreError("store is not open")
        return self._db

    @contextlib.asynccontextmanager
    async def _guard(self, what: str) -> AsyncIterator[None]:
        try:
            yield
        except StoreError:
            raise
        except (aiosqlite.Error, ValueError) as exc:
            # aiosqlite raises ValueError once its connection thread is gone
            raise StoreError(f"{what.split()[0]} failed: {exc}") from exc


def _room(row: aiosqlite.Row) -> Room:
    return Room(id=row["id"], creator_id=row["creator_id"])


def _note(row: aiosqlite.Row) -> Note:
    return Note(
        id=row["id"],
        room_id=row["room_id"],
        x=row["x"],
        y=row["y"],
        text=row["text"],
        author_id=row["author_id"],
    )


__all__ = ["Store", "SCHEMA"]
