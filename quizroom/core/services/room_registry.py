"""Service for tracking which identities are connected to which quiz room.

Membership lives in process memory only. It is rebuilt from live connections
after a restart and is never persisted.
"""

from __future__ import annotations


class RoomRegistry:
    """Maps a session id to the insertion-ordered set of connected identities."""

    def __init__(self) -> None:
        # dict keys keep insertion order, values are unused
        self._rooms: dict[str, dict[str, None]] = {}

    def join(self, session_id: str, identity: str) -> list[str]:
        """Add an identity to a room, creating the room on first join."""
        room = self._rooms.setdefault(session_id, {})
        room.setdefault(identity, None)
        return list(room)

    def leave(self, session_id: str, identity: str) -> list[str]:
        """Remove an identity. The room is dropped once it is empty."""
        room = self._rooms.get(session_id)
        if room is None:
            return []
        room.pop(identity, None)
        if not room:
            del self._rooms[session_id]
            return []
        return list(room)

    def leave_everywhere(self, identity: str) -> dict[str, list[str]]:
        """Remove an identity from every room and return the remaining members per room."""
        affected = [session_id for session_id, room in self._rooms.items() if identity in room]
        return {session_id: self.leave(session_id, identity) for session_id in affected}

    def members_of(self, session_id: str) -> list[str]:
        return list(self._rooms.get(session_id, ()))

    def is_open(self, session_id: str) -> bool:
        return session_id in self._rooms

    def close(self, session_id: str) -> list[str]:
        """Tear a room down and return whoever was still in it."""
        room = self._rooms.pop(session_id, None)
        return list(room) if room else []

    def room_ids(self) -> list[str]:
        return list(self._rooms)
