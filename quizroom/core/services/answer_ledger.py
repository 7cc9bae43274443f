"""Service for recording participant answers against a session's answer key."""

from __future__ import annotations

import logging

from quizroom.core.errors import NotFoundError, ValidationError
from quizroom.core.models import AnswerLedger, AnswerRecord, Session
from quizroom.storage.base import SessionStore, read_with_retry

logger = logging.getLogger(__name__)


class AnswerLedgerService:
    """Append/overwrite answers per (session, participant, question).

    Callers hold the session lock around ``record_answer`` so the
    read-modify-write of a record cannot interleave with another submission.
    """

    def __init__(self, store: SessionStore, read_attempts: int = 3) -> None:
        self._store = store
        self._read_attempts = read_attempts

    async def record_answer(
        self,
        session_id: str,
        participant_identity: str,
        question_index: int,
        selected_option: int,
        response_time_ms: int,
    ) -> AnswerRecord:
        """Store an answer and return the participant's updated record."""
        if question_index < 0:
            raise ValidationError("Question index must be a non-negative integer.")

        session = await self.load_session(session_id)
        identity = self._validate(session, participant_identity, question_index, selected_option, response_time_ms)

        previous_ledger = await self.load_ledger(session_id)
        ledger = previous_ledger.snapshot()
        record = ledger.record_for(identity)
        if record is None:
            record = AnswerRecord(participant_identity=identity)
            ledger.records[identity] = record
        record.apply(question_index, selected_option, response_time_ms)

        await self._store.save_answer_ledger(session_id, ledger)
        if session.add_participant(identity):
            try:
                await self._store.save_session(session)
            except Exception:
                # put the ledger back so the submission leaves no trace
                await self._store.save_answer_ledger(session_id, previous_ledger)
                raise
            logger.info("Participant %s registered in session %s by answering", identity, session_id)

        logger.debug(
            "Recorded answer session=%s participant=%s question=%s option=%s",
            session_id,
            identity,
            question_index,
            selected_option,
        )
        return record

    async def answers_for(self, session_id: str) -> list[AnswerRecord]:
        ledger = await read_with_retry(
            lambda: self._store.get_answer_ledger(session_id),
            attempts=self._read_attempts,
        )
        if ledger is None:
            return []
        return ledger.all_records()

    async def load_session(self, session_id: str) -> Session:
        session = await read_with_retry(
            lambda: self._store.get_session(session_id),
            attempts=self._read_attempts,
        )
        if session is None:
            raise NotFoundError(f"Quiz session {session_id!r} not found.")
        return session

    async def load_ledger(self, session_id: str) -> AnswerLedger:
        ledger = await read_with_retry(
            lambda: self._store.get_answer_ledger(session_id),
            attempts=self._read_attempts,
        )
        return ledger if ledger is not None else AnswerLedger(session_id=session_id)

    @staticmethod
    def _validate(
        session: Session,
        participant_identity: str,
        question_index: int,
        selected_option: int,
        response_time_ms: int,
    ) -> str:
        identity = (participant_identity or "").strip()
        if not identity:
            raise ValidationError("Participant identity is required.")
        if question_index >= session.question_count():
            raise ValidationError(
                f"Question index {question_index} out of range for a quiz with "
                f"{session.question_count()} question(s)."
            )
        option_count = len(session.answer_key[question_index].options)
        if not 0 <= selected_option < option_count:
            raise ValidationError(f"Selected option must be between 0 and {option_count - 1}.")
        if response_time_ms < 0:
            raise ValidationError("Response time must not be negative.")
        return identity
