from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

import websockets
from websockets.asyncio.server import Server, ServerConnection, serve

from noteboard.core import proto
from noteboard.core.dispatch import Dispatcher
from noteboard.core.membership import MembershipTracker
from noteboard.core.notes import NoteRegistry
from noteboard.core.rooms import RoomDirectory
from noteboard.core.store import Store

log = logging.getLogger("noteboard.server.runtime")


@dataclass(slots=True)
class Connection:
    websocket: ServerConnection
    conn_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    async def send(self, frame: Dict[str, Any]) -> None:
        text = proto.encode(frame)
        async with self.send_lock:
            await self.websocket.send(text)


class ServerRuntime:
    """WebSocket front end for the note board; also the dispatcher's BroadcastPort."""

    def __init__(self, config: Dict[str, Any]) -> None:
        self.cfg = config
        self.listen_host, self.listen_port = self._parse_listen(config.get("listen", "0.0.0.0:3001"))
        self.db_path = config.get("db_path", "noteboard.db")
        self.require_room_for_notes = bool(config.get("require_room_for_notes", False))

        self.store = Store(self.db_path)
        self.members = MembershipTracker()
        self.dispatcher = Dispatcher(
            rooms=RoomDirectory(self.store),
            notes=NoteRegistry(self.store, require_room=self.require_room_for_notes),
            members=self.members,
            port=self,
        )

        self._connections: Dict[str, Connection] = {}
        self._ws_server: Optional[Server] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self.store.open()
        self._ws_server = await serve(self._handle_connection, self.listen_host, self.listen_port)
        log.info("noteboard listening on ws://%s:%d", self.listen_host, self.bound_port)

    async def stop(self) -> None:
        if self._ws_server is not None:
            self._ws_server.close()
            await self._ws_server.wait_closed()
            self._ws_server = None
        self._connections.clear()
        await self.store.close()

    @property
    def bound_port(self) -> int:
        """Bound port; differs from the configured one when that was 0."""

        if self._ws_server is None:
            return self.listen_port
        for sock in self._ws_server.sockets:
            return sock.getsockname()[1]
        return self.listen_port

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    async def _handle_connection(self, websocket: ServerConnection) -> None:
        conn = Connection(websocket=websocket)
        self._connections[conn.conn_id] = conn
        log.info("Connection %s from %s", conn.conn_id, self._fmt_remote(websocket))
        try:
            await self.dispatcher.connect(conn.conn_id)
            async for raw in websocket:
                await self.dispatcher.handle(conn.conn_id, raw)
        except websockets.ConnectionClosed:
            pass
        finally:
            self._connections.pop(conn.conn_id, None)
            await self.dispatcher.disconnect(conn.conn_id)
            log.info("Connection %s closed", conn.conn_id)

    # ------------------------------------------------------------------
    # BroadcastPort
    # ------------------------------------------------------------------

    async def send(self, conn_ids: Iterable[str], frame: Dict[str, Any]) -> None:
        # one slow reader must not hold up the rest of the audience
        targets = [conn for conn in map(self._connections.get, conn_ids) if conn is not None]
        await asyncio.gather(*(self._send_one(conn, frame) for conn in targets))

    async def _send_one(self, conn: Connection, frame: Dict[str, Any]) -> None:
        try:
            await conn.send(frame)
        except websockets.ConnectionClosed:
            log.debug("Dropped %s for closed connection %s", frame.get("event"), conn.conn_id)

    # ------------------------------------------------------------------
    # Utilities
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_listen(value: str) -> tuple[str, int]:
        host, port = value.rsplit(":", 1)
        return host, int(port)

    @staticmethod
    def _fmt_remote(websocket: ServerConnection) -> str:
        peer = websocket.remote_address
        if isinstance(peer, tuple):
            return f"{peer[0]}:{peer[1]}"
        return str(peer)


__all__ = ["ServerRuntime", "Connection"]
