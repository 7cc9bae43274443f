"""Business logic for running quiz sessions shared by the API and the admin CLI."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from quizroom.constants.network_constants import EVENT_ENDED, EVENT_PLAYERS, EVENT_STARTED
from quizroom.constants.quiz_constants import (
    DEFAULT_LEADERBOARD_SIZE,
    SCORING_POLICY_SIMPLE,
    SETTLEMENT_MODE_LOCAL,
)
from quizroom.core.errors import ConflictError, NotFoundError, ValidationError
from quizroom.core.models import (
    AnswerRecord,
    LeaderboardEntry,
    Question,
    Resolution,
    Session,
    SessionResult,
    SettlementPayload,
)
from quizroom.core.services.answer_ledger import AnswerLedgerService
from quizroom.core.services.room_registry import RoomRegistry
from quizroom.core.services.scoring import ScoringEngine
from quizroom.core.services.session_builder import SessionBuilder
from quizroom.core.services.session_locks import SessionLocks
from quizroom.core.services.settlement import SettlementCoordinator
from quizroom.core.services.winner_resolver import WinnerResolver
from quizroom.core.transport import NullTransport, RoomTransport
from quizroom.ledger.base import LedgerClient
from quizroom.storage.base import SessionStore, read_with_retry

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EngineOptions:
    scoring_policy: str = SCORING_POLICY_SIMPLE
    settlement_mode: str = SETTLEMENT_MODE_LOCAL
    include_creator_as_participant: bool = False
    allow_resettlement: bool = True
    storage_read_attempts: int = 3

    @classmethod
    def from_settings(cls, config: Any) -> "EngineOptions":
        return cls(
            scoring_policy=config.scoring_policy,
            settlement_mode=config.settlement_mode,
            include_creator_as_participant=config.include_creator_as_participant,
            allow_resettlement=config.allow_resettlement,
            storage_read_attempts=config.storage_read_attempts,
        )


@dataclass(slots=True)
class SettlementOutcome:
    result: SessionResult
    payload: SettlementPayload

    @property
    def resolution(self) -> Resolution:
        return self.payload.resolution


class SessionEngine:
    """Facade for the session services: registry, answers, scoring, resolution, settlement."""

    def __init__(
        self,
        store: SessionStore,
        transport: RoomTransport | None = None,
        ledger: LedgerClient | None = None,
        options: EngineOptions | None = None,
    ) -> None:
        self._options = options or EngineOptions()
        self._store = store
        self._transport = transport or NullTransport()
        self._locks = SessionLocks()

        # Services
        self._registry = RoomRegistry()
        self._builder = SessionBuilder(self._options.include_creator_as_participant)
        self._answers = AnswerLedgerService(store, read_attempts=self._options.storage_read_attempts)
        self._scoring = ScoringEngine(self._options.scoring_policy)
        self._resolver = WinnerResolver()
        self._settlement = SettlementCoordinator(
            store,
            self._locks,
            self._scoring,
            self._resolver,
            mode=self._options.settlement_mode,
            ledger=ledger,
            allow_resettlement=self._options.allow_resettlement,
            read_attempts=self._options.storage_read_attempts,
        )

    @property
    def options(self) -> EngineOptions:
        return self._options

    @property
    def registry(self) -> RoomRegistry:
        return self._registry

    @property
    def locks(self) -> SessionLocks:
        return self._locks

    @property
    def settlement(self) -> SettlementCoordinator:
        return self._settlement

    def attach_transport(self, transport: RoomTransport) -> None:
        self._transport = transport

    # --- Session lifecycle ---

    async def create_session(
        self,
        session_id: str,
        ledger_address: str,
        name: str,
        creator_identity: str,
        questions: Iterable[Question | Mapping[str, Any]],
        participants: Iterable[str] = (),
    ) -> Session:
        session = self._builder.build(
            session_id, ledger_address, name, creator_identity, questions, participants
        )
        async with self._locks.hold(session.session_id):
            if await self._read(lambda: self._store.get_session(session.session_id)) is not None:
                raise ConflictError(f"Quiz PIN {session.session_id!r} is already in use.")
            if await self._read(
                lambda: self._store.find_session_by_ledger_address(session.ledger_address)
            ) is not None:
                raise ConflictError(f"Ledger address {session.ledger_address!r} is already in use.")
            await self._store.save_session(session)
        logger.info(
            "Created session %s (%s) with %s question(s)",
            session.session_id,
            session.ledger_address,
            session.question_count(),
        )
        return session

    async def get_session(self, session_id: str) -> Session:
        return await self._answers.load_session(session_id)

    async def get_session_by_ledger_address(self, ledger_address: str) -> Session:
        session = await self._read(lambda: self._store.find_session_by_ledger_address(ledger_address))
        if session is None:
            raise NotFoundError(f"Quiz not found for ledger address {ledger_address!r}.")
        return session

    async def add_participants(self, session_id: str, identities: Iterable[str]) -> Session:
        async with self._locks.hold(session_id):
            session = await self.get_session(session_id)
            added: list[str] = []
            for identity in identities:
                cleaned = (identity or "").strip()
                if not cleaned:
                    raise ValidationError("Participant identity must not be empty.")
                if session.add_participant(cleaned):
                    added.append(cleaned)
            if added:
                await self._store.save_session(session)
                logger.info("Added participant(s) %s to session %s", ", ".join(added), session_id)
        await self._transport.broadcast(session_id, EVENT_PLAYERS, list(session.participants))
        return session

    async def start_session(self, session_id: str) -> Session:
        session = await self.get_session(session_id)
        await self._transport.broadcast(
            session_id,
            EVENT_STARTED,
            {"session_id": session_id, "question_count": session.question_count()},
        )
        logger.info("Session %s started", session_id)
        return session

    async def end_session(self, session_id: str) -> SettlementOutcome:
        """Settle the session, announce the outcome and close its room."""
        outcome = await self.settle(session_id)
        await self._transport.broadcast(
            session_id,
            EVENT_ENDED,
            {
                "session_id": session_id,
                "ledger_address": outcome.payload.ledger_address,
                "winner": outcome.result.winner_identity,
                "score": outcome.result.score,
                "leaderboard": [
                    {"rank": entry.rank, "identity": entry.identity, "score": entry.score}
                    for entry in outcome.resolution.leaderboard
                ],
            },
        )
        async with self._locks.hold(session_id):
            self._registry.close(session_id)
        logger.info("Session %s ended; room closed", session_id)
        return outcome

    # --- Room membership ---

    async def join(self, session_id: str, identity: str) -> list[str]:
        """Register a live connection and broadcast the room's membership."""
        async with self._locks.hold(session_id):
            members = self._registry.join(session_id, identity)
            await self._enroll(session_id, identity)
        logger.info("%s joined room %s (%s member(s))", identity, session_id, len(members))
        await self._transport.broadcast(session_id, EVENT_PLAYERS, members)
        return members

    async def leave(self, session_id: str, identity: str) -> list[str]:
        async with self._locks.hold(session_id):
            members = self._registry.leave(session_id, identity)
        logger.info("%s left room %s (%s member(s))", identity, session_id, len(members))
        if members:
            await self._transport.broadcast(session_id, EVENT_PLAYERS, members)
        return members

    async def disconnect(self, identity: str) -> None:
        """Remove an identity from every room it was connected to."""
        # registry calls never suspend, so this sweep cannot interleave with a join
        remaining = self._registry.leave_everywhere(identity)
        for session_id, members in remaining.items():
            logger.info("%s disconnected from room %s (%s member(s) left)", identity, session_id, len(members))
            if members:
                await self._transport.broadcast(session_id, EVENT_PLAYERS, members)

    def members_of(self, session_id: str) -> list[str]:
        return self._registry.members_of(session_id)

    # --- Answers ---

    async def record_answer(
        self,
        session_id: str,
        participant_identity: str,
        question_index: int,
        selected_option: int,
        response_time_ms: int = 0,
    ) -> AnswerRecord:
        async with self._locks.hold(session_id):
            return await self._answers.record_answer(
                session_id, participant_identity, question_index, selected_option, response_time_ms
            )

    async def answers_for(self, session_id: str) -> list[AnswerRecord]:
        return await self._answers.answers_for(session_id)

    # --- Scores and results ---

    async def compute_scores(self, session_id: str) -> dict[str, int]:
        async with self._locks.hold(session_id):
            session = await self.get_session(session_id)
            ledger = await self._answers.load_ledger(session_id)
        return self._scoring.compute_scores(session, ledger)

    async def leaderboard(self, session_id: str, limit: int = DEFAULT_LEADERBOARD_SIZE) -> list[LeaderboardEntry]:
        scores = await self.compute_scores(session_id)
        return self._resolver.top_n(scores, limit)

    async def settle(self, session_id: str) -> SettlementOutcome:
        result, payload = await self._settlement.settle(session_id)
        return SettlementOutcome(result=result, payload=payload)

    async def read_winner(self, session_id: str) -> SessionResult | None:
        return await self._settlement.read_winner(session_id)

    async def _enroll(self, session_id: str, identity: str) -> None:
        # rooms may exist before their session does; only known sessions get a roster entry
        session = await self._read(lambda: self._store.get_session(session_id))
        if session is None or session.is_settled():
            return
        if identity == session.creator_identity and not self._options.include_creator_as_participant:
            return
        if session.add_participant(identity):
            await self._store.save_session(session)

    async def _read(self, read):
        return await read_with_retry(read, attempts=self._options.storage_read_attempts)
