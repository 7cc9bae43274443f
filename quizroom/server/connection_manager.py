"""WebSocket fan-out for quiz rooms."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import WebSocket

from quizroom.core.transport import RoomTransport

logger = logging.getLogger(__name__)


class ConnectionManager(RoomTransport):
    """Tracks open sockets per session and broadcasts JSON events to them."""

    def __init__(self) -> None:
        self._connections: dict[str, dict[WebSocket, str]] = {}

    async def connect(self, websocket: WebSocket, session_id: str, identity: str) -> None:
        await websocket.accept()
        self._connections.setdefault(session_id, {})[websocket] = identity
        logger.info("Socket connected: %s as %s (%s open)", session_id, identity, len(self._connections[session_id]))

    def disconnect(self, websocket: WebSocket, session_id: str) -> str | None:
        room = self._connections.get(session_id)
        if room is None:
            return None
        identity = room.pop(websocket, None)
        if not room:
            del self._connections[session_id]
        return identity

    def has_other_connections(self, session_id: str, identity: str) -> bool:
        return identity in self._connections.get(session_id, {}).values()

    def is_connected(self, identity: str) -> bool:
        """True while the identity has an open socket in any room."""
        return any(identity in room.values() for room in self._connections.values())

    def connection_count(self, session_id: str) -> int:
        return len(self._connections.get(session_id, {}))

    async def broadcast(self, session_id: str, event_name: str, payload: Any) -> None:
        connections = list(self._connections.get(session_id, {}))
        if not connections:
            return
        data = json.dumps({"event": event_name, "payload": payload}, default=str)
        dead: list[WebSocket] = []
        results = await asyncio.gather(
            *(connection.send_text(data) for connection in connections),
            return_exceptions=True,
        )
        for connection, outcome in zip(connections, results):
            if isinstance(outcome, Exception):
                logger.warning("Dropping dead socket in %s: %s", session_id, outcome)
                dead.append(connection)
        for connection in dead:
            self.disconnect(connection, session_id)

    async def send_to(self, websocket: WebSocket, event_name: str, payload: Any) -> None:
        await websocket.send_text(json.dumps({"event": event_name, "payload": payload}, default=str))
