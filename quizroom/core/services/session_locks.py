"""Per-session mutual exclusion for the cooperative event loop."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field


@dataclass(slots=True)
class _SessionLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class SessionLocks:
    """Hands out one asyncio.Lock per session id. Different sessions never contend.

    A lock is dropped as soon as no task holds it or waits for it, so idle
    sessions cost nothing and a woken waiter never loses its lock to a
    freshly created one.
    """

    def __init__(self) -> None:
        self._locks: dict[str, _SessionLock] = {}

    @asynccontextmanager
    async def hold(self, session_id: str) -> AsyncIterator[None]:
        entry = self._locks.get(session_id)
        if entry is None:
            entry = self._locks[session_id] = _SessionLock()
        # counts holders and waiters alike
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[session_id]

    def active_sessions(self) -> list[str]:
        return list(self._locks)
