"""In-process ledger that settles results the way the quiz contract does."""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass

from quizroom.core.errors import SettlementError
from quizroom.core.models import LedgerConfirmation, LedgerResult
from quizroom.ledger.base import LedgerClient

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RecordedSubmission:
    participants: list[str]
    answer_encodings: list[str]
    scores: list[int]
    transaction_ref: str


class InMemoryLedger(LedgerClient):
    """Keeps the latest submission per ledger address for the process lifetime."""

    def __init__(self) -> None:
        self._submissions: dict[str, RecordedSubmission] = {}

    async def submit_result(
        self,
        ledger_address: str,
        participants: list[str],
        answer_encodings: list[str],
        scores: list[int],
    ) -> LedgerConfirmation:
        if not (len(participants) == len(answer_encodings) == len(scores)):
            raise SettlementError("Ledger rejected submission: arrays are not index-aligned.")
        if any(score < 0 for score in scores):
            raise SettlementError("Ledger rejected submission: scores must be unsigned.")

        body = json.dumps([ledger_address, participants, answer_encodings, scores])
        transaction_ref = "0x" + hashlib.sha256(body.encode("utf-8")).hexdigest()
        self._submissions[ledger_address] = RecordedSubmission(
            participants=list(participants),
            answer_encodings=list(answer_encodings),
            scores=list(scores),
            transaction_ref=transaction_ref,
        )
        logger.info("Recorded %s result(s) for %s (%s)", len(participants), ledger_address, transaction_ref)
        return LedgerConfirmation(ledger_address=ledger_address, transaction_ref=transaction_ref)

    async def read_result(self, ledger_address: str) -> LedgerResult | None:
        submission = self._submissions.get(ledger_address)
        if submission is None:
            return None
        winner: str | None = None
        best = 0
        for identity, score in zip(submission.participants, submission.scores):
            if winner is None or score > best:
                winner, best = identity, score
        return LedgerResult(winner_identity=winner, score=best)

    def submission_for(self, ledger_address: str) -> RecordedSubmission | None:
        return self._submissions.get(ledger_address)
