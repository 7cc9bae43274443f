"""Real-time transport interface used to fan events out to a quiz room."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

logger = logging.getLogger(__name__)


class RoomTransport(ABC):
    @abstractmethod
    async def broadcast(self, session_id: str, event_name: str, payload: Any) -> None:
        """Deliver an event to every connection currently in the session's room."""
        raise NotImplementedError


class NullTransport(RoomTransport):
    """Drops every event. Used by offline tooling that has no connected clients."""

    async def broadcast(self, session_id: str, event_name: str, payload: Any) -> None:
        logger.debug("Dropping %s for session %s (no transport attached)", event_name, session_id)
