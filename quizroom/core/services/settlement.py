"""Service for finalizing a session's winner, locally or through the ledger."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from quizroom.constants.quiz_constants import (
    ANSWER_ENCODING_SEPARATOR,
    SETTLEMENT_MODE_LEDGER,
    SETTLEMENT_MODE_LOCAL,
)
from quizroom.core.errors import ConflictError, NotFoundError, ValidationError
from quizroom.core.models import AnswerLedger, Session, SessionResult, SettlementPayload
from quizroom.core.services.scoring import ScoringEngine
from quizroom.core.services.session_locks import SessionLocks
from quizroom.core.services.winner_resolver import WinnerResolver
from quizroom.ledger.base import LedgerClient
from quizroom.storage.base import SessionStore, read_with_retry

logger = logging.getLogger(__name__)


def encode_answers(vector: list[int]) -> str:
    return ANSWER_ENCODING_SEPARATOR.join(str(option) for option in vector)


class SettlementCoordinator:
    """Builds the ledger payload and records the resolved winner on the session.

    In ``local`` mode the resolver's output is final. In ``ledger`` mode it is
    a proposal: the ledger write has to succeed before anything is persisted,
    and the ledger is asked first when the winner is read back.
    """

    def __init__(
        self,
        store: SessionStore,
        locks: SessionLocks,
        scoring: ScoringEngine,
        resolver: WinnerResolver,
        *,
        mode: str = SETTLEMENT_MODE_LOCAL,
        ledger: LedgerClient | None = None,
        allow_resettlement: bool = True,
        read_attempts: int = 3,
    ) -> None:
        if mode not in (SETTLEMENT_MODE_LOCAL, SETTLEMENT_MODE_LEDGER):
            raise ValidationError(f"Unknown settlement mode {mode!r}.")
        if mode == SETTLEMENT_MODE_LEDGER and ledger is None:
            raise ValidationError("Ledger-settled mode requires a ledger client.")
        self._store = store
        self._locks = locks
        self._scoring = scoring
        self._resolver = resolver
        self._mode = mode
        self._ledger = ledger
        self._allow_resettlement = allow_resettlement
        self._read_attempts = read_attempts
        self._in_flight: set[str] = set()

    @property
    def mode(self) -> str:
        return self._mode

    def prepare_settlement(self, session: Session, ledger: AnswerLedger) -> SettlementPayload:
        """Build participant, answer-encoding and score arrays in roster order."""
        scores = self._scoring.compute_scores(session, ledger)
        vectors = self._scoring.answer_vectors(session, ledger)
        participants = list(session.participants)
        return SettlementPayload(
            session_id=session.session_id,
            ledger_address=session.ledger_address,
            participants=participants,
            answer_encodings=[encode_answers(vectors[identity]) for identity in participants],
            scores=[scores[identity] for identity in participants],
            resolution=self._resolver.resolve(scores),
        )

    async def settle(self, session_id: str) -> tuple[SessionResult, SettlementPayload]:
        """Snapshot, resolve and submit a session. One settlement per session at a time."""
        if session_id in self._in_flight:
            raise ConflictError(f"Settlement for session {session_id!r} is already in progress.")
        self._in_flight.add(session_id)
        try:
            async with self._locks.hold(session_id):
                session = await self._load_session(session_id)
                self._check_resettlement(session)
                ledger = await read_with_retry(
                    lambda: self._store.get_answer_ledger(session_id),
                    attempts=self._read_attempts,
                )
                snapshot = ledger if ledger is not None else AnswerLedger(session_id=session_id)
            payload = self.prepare_settlement(session, snapshot)
            result = await self.submit(session, payload)
            return result, payload
        finally:
            self._in_flight.discard(session_id)

    async def submit(self, session: Session, payload: SettlementPayload) -> SessionResult:
        """Hand the payload to the ledger (if any) and persist the winner on success."""
        transaction_ref = None
        if self._mode == SETTLEMENT_MODE_LEDGER and self._ledger is not None:
            logger.info(
                "Submitting %s result(s) for session %s to ledger %s",
                len(payload.participants),
                payload.session_id,
                payload.ledger_address,
            )
            confirmation = await self._ledger.submit_result(
                payload.ledger_address,
                payload.participants,
                payload.answer_encodings,
                payload.scores,
            )
            transaction_ref = confirmation.transaction_ref

        result = SessionResult(
            winner_identity=payload.resolution.winner_identity,
            score=payload.resolution.score,
            mode=self._mode,
            transaction_ref=transaction_ref,
        )
        async with self._locks.hold(session.session_id):
            await self._persist(session.session_id, result)
        logger.info(
            "Session %s settled (%s): winner=%s score=%s",
            session.session_id,
            self._mode,
            result.winner_identity,
            result.score,
        )
        return result

    async def read_winner(self, session_id: str) -> SessionResult | None:
        session = await self._load_session(session_id)
        if self._mode == SETTLEMENT_MODE_LEDGER and self._ledger is not None:
            recorded = await self._ledger.read_result(session.ledger_address)
            if recorded is not None:
                stored = session.result
                return SessionResult(
                    winner_identity=recorded.winner_identity,
                    score=recorded.score,
                    mode=SETTLEMENT_MODE_LEDGER,
                    settled_at=stored.settled_at if stored else datetime.now(timezone.utc),
                    transaction_ref=stored.transaction_ref if stored else None,
                )
        return session.result

    async def _persist(self, session_id: str, result: SessionResult) -> None:
        session = await self._load_session(session_id)
        session.result = result
        await self._store.save_session(session)

    def _check_resettlement(self, session: Session) -> None:
        if not session.is_settled():
            return
        if not self._allow_resettlement:
            raise ConflictError(f"Session {session.session_id!r} has already been settled.")
        logger.warning("Session %s is being settled again; the previous result will be replaced", session.session_id)

    async def _load_session(self, session_id: str) -> Session:
        session = await read_with_retry(
            lambda: self._store.get_session(session_id),
            attempts=self._read_attempts,
        )
        if session is None:
            raise NotFoundError(f"Quiz session {session_id!r} not found.")
        return session
