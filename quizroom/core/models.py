"""Domain models for the quiz session engine."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Question:
    """Multiple-choice question with its correct option index."""

    prompt: str
    options: list[str]
    correct_option: int


@dataclass(slots=True)
class SessionResult:
    """Resolved winner stored on a session once settlement succeeds."""

    winner_identity: str | None
    score: int
    mode: str
    settled_at: datetime = field(default_factory=_utcnow)
    transaction_ref: str | None = None


@dataclass(slots=True)
class Session:
    """One quiz instance, addressed by its join PIN and its ledger address."""

    session_id: str
    ledger_address: str
    name: str
    creator_identity: str
    answer_key: list[Question]
    participants: list[str] = field(default_factory=list)
    result: SessionResult | None = None
    created_at: datetime = field(default_factory=_utcnow)

    def add_participant(self, identity: str) -> bool:
        """Append an identity if unseen. Returns True when the roster changed."""
        if identity in self.participants:
            return False
        self.participants.append(identity)
        return True

    def question_count(self) -> int:
        return len(self.answer_key)

    def is_settled(self) -> bool:
        return self.result is not None

    def copy(self) -> "Session":
        return copy.deepcopy(self)


@dataclass(slots=True)
class Response:
    """A single submitted option and how long it took."""

    selected_option: int
    response_time_ms: int


@dataclass(slots=True)
class AnswerRecord:
    """All submissions of one participant within one session."""

    participant_identity: str
    responses: dict[int, Response] = field(default_factory=dict)
    total_response_time_ms: int = 0
    score: int = 0

    def apply(self, question_index: int, selected_option: int, response_time_ms: int) -> None:
        previous = self.responses.get(question_index)
        if previous is not None:
            self.total_response_time_ms -= previous.response_time_ms
        self.responses[question_index] = Response(
            selected_option=selected_option,
            response_time_ms=response_time_ms,
        )
        self.total_response_time_ms += response_time_ms


@dataclass(slots=True)
class AnswerLedger:
    """Per-session collection of answer records, ordered by first submission."""

    session_id: str
    records: dict[str, AnswerRecord] = field(default_factory=dict)

    def record_for(self, identity: str) -> AnswerRecord | None:
        return self.records.get(identity)

    def all_records(self) -> list[AnswerRecord]:
        return list(self.records.values())

    def snapshot(self) -> "AnswerLedger":
        return copy.deepcopy(self)


@dataclass(slots=True)
class LeaderboardEntry:
    """One ranked participant at the time the leaderboard was computed."""

    rank: int
    identity: str
    score: int


@dataclass(slots=True)
class Resolution:
    """Winner plus the full leaderboard it was taken from."""

    winner_identity: str | None
    score: int
    leaderboard: list[LeaderboardEntry]


@dataclass(slots=True)
class SettlementPayload:
    """Index-aligned arrays handed to the ledger collaborator."""

    session_id: str
    ledger_address: str
    participants: list[str]
    answer_encodings: list[str]
    scores: list[int]
    resolution: Resolution


@dataclass(slots=True)
class LedgerConfirmation:
    """Acknowledgement returned by a successful ledger write."""

    ledger_address: str
    transaction_ref: str | None = None


@dataclass(slots=True)
class LedgerResult:
    """Winner as recorded by the ledger collaborator."""

    winner_identity: str | None
    score: int
