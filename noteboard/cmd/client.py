from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import sys
import uuid
from typing import Any, Dict, List, Optional

import websockets
from websockets.asyncio.client import ClientConnection, connect

from noteboard.core import proto

log = logging.getLogger("noteboard.cmd.client")


class ClientApp:
    def __init__(self, server_url: str, user_id: str) -> None:
        self.server_url = server_url
        self.user_id = user_id

        self.ws: Optional[ClientConnection] = None
        self.room_id: Optional[str] = None
        self.creator_id: Optional[str] = None
        self.rooms: List[Dict[str, Any]] = []
        self.notes: List[Dict[str, Any]] = []
        self.stop_event = asyncio.Event()

    async def run(self) -> None:
        async with connect(self.server_url) as ws:
            self.ws = ws
            receiver = asyncio.create_task(self._rx_loop())
            try:
                await self._command_loop()
            finally:
                self.stop_event.set()
                receiver.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await receiver

    async def _command_loop(self) -> None:
        loop = asyncio.get_running_loop()
        print(
            "noteboard client ready. Commands: /join <room>, /add <x> <y> <text>, "
            "/del <note>, /rooms, /notes, /delroom, /leave, /quit"
        )
        while not self.stop_event.is_set():
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            line = line.strip()
            if line:
                await self._handle_command(line)

    async def _handle_command(self, line: str) -> None:
        parts = line.split()
        cmd = parts[0]
        if cmd == "/join" and len(parts) == 2:
            self.room_id = parts[1]
            await self._send_event("join_room", {"roomId": self.room_id, "userId": self.user_id})
        elif cmd == "/add" and len(parts) >= 4:
            if not self._require_room():
                return
            try:
                x, y = float(parts[1]), float(parts[2])
            except ValueError:
                print("x and y must be numbers")
                return
            note = {
                "id": uuid.uuid4().hex,
                "x": x,
                "y": y,
                "text": line.split(" ", 3)[3],
                "authorId": self.user_id,
            }
            await self._send_event("add_note", {"roomId": self.room_id, "note": note})
        elif cmd == "/del" and len(parts) == 2:
            if self._require_room():
                await self._send_event("delete_note", {"roomId": self.room_id, "noteId": parts[1]})
        elif cmd == "/delroom":
            if self._require_room():
                await self._send_event("delete_room", {"roomId": self.room_id, "userId": self.user_id})
        elif cmd == "/leave":
            if self._require_room():
                await self._send_event("leave_room", {"roomId": self.room_id})
                self.room_id = None
                self.notes = []
        elif cmd == "/rooms":
            self._print_rooms()
        elif cmd == "/notes":
            self._print_notes()
        elif cmd in {"/quit", "/exit"}:
            self.stop_event.set()
        else:
            print("Unknown command")

    def _require_room(self) -> bool:
        if self.room_id is None:
            print("Join a room first with /join <room>")
            return False
        return True

    async def _rx_loop(self) -> None:
        assert self.ws is not None
        try:
            async for raw in self.ws:
                try:
                    frame = json.loads(raw)
                except ValueError:
                    log.warning("Dropped invalid frame: %s", raw)
                    continue
                if isinstance(frame, dict):
                    self._handle_incoming(frame.get("event"), frame.get("data"))
        except websockets.ConnectionClosed:
            pass
        finally:
            self.stop_event.set()

    def _handle_incoming(self, event: Optional[str], data: Any) -> None:
        if event == "update_room_list":
            self.rooms = list(data or [])
            self._print_rooms()
        elif event == "load_notes":
            self.notes = list(data or [])
            self._print_notes()
        elif event == "room_info":
            self.creator_id = (data or {}).get("creatorId")
            owner = " (you)" if self.creator_id == self.user_id else ""
            print(f"[room {self.room_id}] created by {self.creator_id}{owner}")
        elif event == "room_deleted":
            print(f"[room {self.room_id}] was deleted")
            self.notes = []
        elif event == "error":
            print(f"ERROR ({(data or {}).get('code')}): {(data or {}).get('detail')}")
        else:
            log.debug("Unhandled event %s", event)

    async def _send_event(self, event: str, data: Dict[str, Any]) -> None:
        assert self.ws is not None
        await self.ws.send(proto.encode({"event": event, "data": data}))

    def _print_rooms(self) -> None:
        names = ", ".join(sorted(r.get("id", "?") for r in self.rooms)) or "(none)"
        print(f"Rooms: {names}")

    def _print_notes(self) -> None:
        if not self.notes:
            print("(no notes)")
            return
        for note in self.notes:
            print(f"  {note.get('id')} @({note.get('x')}, {note.get('y')}) {note.get('authorId')}: {note.get('text')}")


async def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="noteboard client")
    parser.add_argument("--server", default="ws://127.0.0.1:3001", help="ws://host:port of noteboard server")
    parser.add_argument("--user", dest="user_id", default=None, help="Identity to post as (random if omitted)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    app = ClientApp(args.server, args.user_id or uuid.uuid4().hex[:8])
    await app.run()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
