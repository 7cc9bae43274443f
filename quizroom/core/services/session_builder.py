"""Validation and normalization of new quiz sessions."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from quizroom.constants.quiz_constants import MIN_OPTIONS_PER_QUESTION
from quizroom.core.errors import ValidationError
from quizroom.core.models import Question, Session


class SessionBuilder:
    """Turns raw creation input into a validated Session."""

    def __init__(self, include_creator_as_participant: bool = False) -> None:
        self._include_creator = include_creator_as_participant

    def build(
        self,
        session_id: str,
        ledger_address: str,
        name: str,
        creator_identity: str,
        questions: Iterable[Question | Mapping[str, Any]],
        participants: Iterable[str] = (),
    ) -> Session:
        session_id = self._required(session_id, "Quiz PIN")
        ledger_address = self._required(ledger_address, "Ledger address")
        name = self._required(name, "Quiz name")
        creator_identity = self._required(creator_identity, "Creator identity")

        answer_key = [self.prepare_question(question, index) for index, question in enumerate(questions or ())]
        if not answer_key:
            raise ValidationError("Quiz must contain at least one question.")

        session = Session(
            session_id=session_id,
            ledger_address=ledger_address,
            name=name,
            creator_identity=creator_identity,
            answer_key=answer_key,
        )
        if self._include_creator:
            session.add_participant(creator_identity)
        for identity in participants:
            cleaned = (identity or "").strip()
            if not cleaned:
                raise ValidationError("Participant identity must not be empty.")
            session.add_participant(cleaned)
        return session

    def prepare_question(self, question: Question | Mapping[str, Any], index: int = 0) -> Question:
        """Validate and normalize one question of the answer key."""
        if isinstance(question, Mapping):
            prompt = question.get("prompt", question.get("question"))
            options = question.get("options", question.get("answers"))
            correct = question.get("correct_option", question.get("correctAnswer"))
        else:
            prompt, options, correct = question.prompt, question.options, question.correct_option

        label = f"Question {index + 1}"
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValidationError(f"{label}: question text must not be empty.")
        cleaned_options = self._validate_options(options, label)
        if isinstance(correct, bool) or not isinstance(correct, int):
            raise ValidationError(f"{label}: correct option must be an integer index.")
        if not 0 <= correct < len(cleaned_options):
            raise ValidationError(
                f"{label}: correct option must be between 0 and {len(cleaned_options) - 1}."
            )
        return Question(prompt=prompt.strip(), options=cleaned_options, correct_option=correct)

    @staticmethod
    def _validate_options(options: Any, label: str) -> list[str]:
        if isinstance(options, str) or not isinstance(options, Iterable):
            raise ValidationError(f"{label}: options must be a list of strings.")
        cleaned = [option.strip() if isinstance(option, str) else "" for option in options]
        if len(cleaned) < MIN_OPTIONS_PER_QUESTION:
            raise ValidationError(f"{label}: at least {MIN_OPTIONS_PER_QUESTION} options are required.")
        if any(not option for option in cleaned):
            raise ValidationError(f"{label}: option text cannot be empty.")
        return cleaned

    @staticmethod
    def _required(value: str | None, field_name: str) -> str:
        cleaned = value.strip() if isinstance(value, str) else ""
        if not cleaned:
            raise ValidationError(f"{field_name} is required.")
        return cleaned
