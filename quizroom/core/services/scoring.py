"""Service for deriving participant scores from an answer ledger snapshot."""

from __future__ import annotations

import math
from collections.abc import Callable

from quizroom.constants.quiz_constants import (
    NO_ANSWER,
    POINTS_PER_CORRECT_ANSWER,
    SCORING_POLICY_SIMPLE,
    SCORING_POLICY_SPEED_WEIGHTED,
)
from quizroom.core.errors import ValidationError
from quizroom.core.models import AnswerLedger, AnswerRecord, Session


def _simple_score(correct_count: int, total_response_time_ms: int) -> int:
    return correct_count


def _speed_weighted_score(correct_count: int, total_response_time_ms: int) -> int:
    total_seconds = total_response_time_ms / 1000
    raw = correct_count * POINTS_PER_CORRECT_ANSWER - total_seconds
    # half-up rounding, Python's round() would use banker's rounding
    return max(0, math.floor(raw + 0.5))


_POLICIES: dict[str, Callable[[int, int], int]] = {
    SCORING_POLICY_SIMPLE: _simple_score,
    SCORING_POLICY_SPEED_WEIGHTED: _speed_weighted_score,
}


def answer_vector(session: Session, record: AnswerRecord | None) -> list[int]:
    """Align a participant's responses to the answer key, filling gaps with NO_ANSWER."""
    vector = [NO_ANSWER] * session.question_count()
    if record is None:
        return vector
    for question_index, response in record.responses.items():
        if 0 <= question_index < len(vector):
            vector[question_index] = response.selected_option
    return vector


def correct_count(session: Session, vector: list[int]) -> int:
    return sum(
        1
        for question, selected in zip(session.answer_key, vector)
        if selected != NO_ANSWER and selected == question.correct_option
    )


class ScoringEngine:
    """Computes scores for every participant of a session under one policy."""

    def __init__(self, policy: str = SCORING_POLICY_SIMPLE) -> None:
        if policy not in _POLICIES:
            raise ValidationError(
                f"Unknown scoring policy {policy!r}; expected one of {sorted(_POLICIES)}."
            )
        self._policy = policy
        self._score = _POLICIES[policy]

    @property
    def policy(self) -> str:
        return self._policy

    def compute_scores(self, session: Session, ledger: AnswerLedger) -> dict[str, int]:
        """Score each session participant; non-responders score 0."""
        scores: dict[str, int] = {}
        for identity in session.participants:
            record = ledger.record_for(identity)
            if record is None or not record.responses:
                scores[identity] = 0
                continue
            matches = correct_count(session, answer_vector(session, record))
            scores[identity] = self._score(matches, record.total_response_time_ms)
        return scores

    def answer_vectors(self, session: Session, ledger: AnswerLedger) -> dict[str, list[int]]:
        return {
            identity: answer_vector(session, ledger.record_for(identity))
            for identity in session.participants
        }
