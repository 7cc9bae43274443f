"""Process-local store. Contents vanish when the process exits."""

from __future__ import annotations

from quizroom.core.models import AnswerLedger, Session
from quizroom.storage.base import SessionStore


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._sessions: dict[str, Session] = {}
        self._ledgers: dict[str, AnswerLedger] = {}

    async def get_session(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        return session.copy() if session is not None else None

    async def find_session_by_ledger_address(self, ledger_address: str) -> Session | None:
        for session in self._sessions.values():
            if session.ledger_address == ledger_address:
                return session.copy()
        return None

    async def save_session(self, session: Session) -> None:
        self._sessions[session.session_id] = session.copy()

    async def get_answer_ledger(self, session_id: str) -> AnswerLedger | None:
        ledger = self._ledgers.get(session_id)
        return ledger.snapshot() if ledger is not None else None

    async def save_answer_ledger(self, session_id: str, ledger: AnswerLedger) -> None:
        self._ledgers[session_id] = ledger.snapshot()

    async def list_session_ids(self) -> list[str]:
        return list(self._sessions)
