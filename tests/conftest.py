from __future__ import annotations

import asyncio
from typing import Any

import pytest

from quizroom.core.errors import SettlementError, TransientStorageError
from quizroom.core.models import LedgerConfirmation, LedgerResult, Question
from quizroom.core.session_engine import EngineOptions, SessionEngine
from quizroom.core.transport import RoomTransport
from quizroom.ledger.base import LedgerClient
from quizroom.storage.memory import InMemorySessionStore


class RecordingTransport(RoomTransport):
    def __init__(self) -> None:
        self.events: list[tuple[str, str, Any]] = []

    async def broadcast(self, session_id: str, event_name: str, payload: Any) -> None:
        self.events.append((session_id, event_name, payload))

    def named(self, event_name: str) -> list[Any]:
        return [payload for _, name, payload in self.events if name == event_name]


class FailingLedger(LedgerClient):
    def __init__(self) -> None:
        self.calls = 0

    async def submit_result(self, ledger_address, participants, answer_encodings, scores) -> LedgerConfirmation:
        self.calls += 1
        raise SettlementError("relay unavailable")

    async def read_result(self, ledger_address: str) -> LedgerResult | None:
        return None


class FlakyStore(InMemorySessionStore):
    """Fails the first ``failures`` session reads with a transient error."""

    def __init__(self, failures: int) -> None:
        super().__init__()
        self.failures = failures
        self.reads = 0

    async def get_session(self, session_id):
        self.reads += 1
        if self.failures > 0:
            self.failures -= 1
            raise TransientStorageError("connection reset")
        return await super().get_session(session_id)


class YieldingStore(InMemorySessionStore):
    """Suspends inside every answer ledger read and write."""

    async def get_answer_ledger(self, session_id):
        await asyncio.sleep(0)
        return await super().get_answer_ledger(session_id)

    async def save_answer_ledger(self, session_id, ledger):
        await asyncio.sleep(0)
        await super().save_answer_ledger(session_id, ledger)


class BrokenSessionSaveStore(InMemorySessionStore):
    """Accepts the first session save, then refuses further session writes."""

    def __init__(self) -> None:
        super().__init__()
        self.session_saves = 0

    async def save_session(self, session):
        self.session_saves += 1
        if self.session_saves > 1:
            raise TransientStorageError("disk full")
        await super().save_session(session)


def sample_questions() -> list[Question]:
    return [
        Question(prompt="What is 1 + 1?", options=["1", "2", "3"], correct_option=1),
        Question(prompt="Capital of *France*?", options=["Berlin", "Paris"], correct_option=1),
    ]


async def create_sample(engine: SessionEngine, participants=("p1", "p2", "p3"), session_id: str = "1234") -> None:
    await engine.create_session(
        session_id,
        f"0xquiz{session_id}",
        "Warmup",
        "host",
        sample_questions(),
        participants,
    )


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def engine(store, transport) -> SessionEngine:
    return SessionEngine(store, transport=transport, options=EngineOptions())
