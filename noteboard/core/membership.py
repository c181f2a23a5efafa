from __future__ import annotations

from typing import Dict, FrozenSet, Set


class MembershipTracker:
    """Maps live connections to the rooms they have joined.

    A connection may be in several rooms at once: joining one room never
    leaves another. Memberships end through leave() or disconnect().
    """

    def __init__(self) -> None:
        self._rooms_by_conn: Dict[str, Set[str]] = {}

    def connect(self, conn_id: str) -> None:
        self._rooms_by_conn.setdefault(conn_id, set())

    def join(self, conn_id: str, room_id: str) -> None:
        self._rooms_by_conn.setdefault(conn_id, set()).add(room_id)

    def leave(self, conn_id: str, room_id: str) -> None:
        rooms = self._rooms_by_conn.get(conn_id)
        if rooms is not None:
            rooms.discard(room_id)

    def disconnect(self, conn_id: str) -> None:
        self._rooms_by_conn.pop(conn_id, None)

    def rooms_of(self, conn_id: str) -> FrozenSet[str]:
        return frozenset(self._rooms_by_conn.get(conn_id, ()))

    def audience_for(self, room_id: str) -> Set[str]:
        return {cid for cid, rooms in self._rooms_by_conn.items() if room_id in rooms}

    def all(self) -> Set[str]:
        return set(self._rooms_by_conn)

    def __len__(self) -> int:
        return len(self._rooms_by_conn)

    def __contains__(self, conn_id: object) -> bool:
        return conn_id in self._rooms_by_conn


__all__ = ["MembershipTracker"]
