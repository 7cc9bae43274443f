"""Persistence interface consumed by the session engine."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TypeVar

from quizroom.core.errors import TransientStorageError
from quizroom.core.models import AnswerLedger, Session

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionStore(ABC):
    """Storage for sessions and their answer ledgers.

    Implementations must hand out copies: mutating a returned object has no
    effect until it is passed back to one of the save methods.
    """

    @abstractmethod
    async def get_session(self, session_id: str) -> Session | None:
        raise NotImplementedError

    @abstractmethod
    async def find_session_by_ledger_address(self, ledger_address: str) -> Session | None:
        raise NotImplementedError

    @abstractmethod
    async def save_session(self, session: Session) -> None:
        raise NotImplementedError

    @abstractmethod
    async def get_answer_ledger(self, session_id: str) -> AnswerLedger | None:
        raise NotImplementedError

    @abstractmethod
    async def save_answer_ledger(self, session_id: str, ledger: AnswerLedger) -> None:
        raise NotImplementedError

    async def list_session_ids(self) -> list[str]:
        return []

    async def prepare(self) -> None:
        """Create indexes or files the backend needs before serving."""
        return None

    async def close(self) -> None:
        return None


async def read_with_retry(
    read: Callable[[], Awaitable[T]],
    *,
    attempts: int = 3,
    backoff_seconds: float = 0.05,
) -> T:
    """Run a storage read, retrying a bounded number of times on transient failures."""
    attempts = max(1, attempts)
    for attempt in range(1, attempts + 1):
        try:
            return await read()
        except TransientStorageError as exc:
            if attempt == attempts:
                raise
            logger.warning("Transient storage read failure (attempt %s/%s): %s", attempt, attempts, exc)
            await asyncio.sleep(backoff_seconds * attempt)
    raise AssertionError("unreachable")
