"""Utilities for importing an answer key from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    Q: Question text (supports markdown). Additional lines until the
       next marker are treated as part of the question.
    A: First option text
    B: Second option text
    ...   (two or more options, lettered consecutively from A)
    CORRECT: A|B|...

Example:

    Q: What is the capital of France?
    A: London
    B: Paris
    C: Berlin
    D: Madrid
    CORRECT: B
"""

from __future__ import annotations

import string
from pathlib import Path

from quizroom.constants.quiz_constants import MIN_OPTIONS_PER_QUESTION
from quizroom.core.errors import ValidationError
from quizroom.core.models import Question


class QuizImportError(ValidationError):
    """Raised when a quiz definition cannot be parsed."""


OPTION_LETTERS = string.ascii_uppercase


def load_questions_from_file(file_path: Path) -> list[Question]:
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise QuizImportError(f"Could not read quiz file {file_path}: {exc}") from exc
    questions = parse_questions(text)
    if not questions:
        raise QuizImportError("Quiz file did not contain any questions.")
    return questions


def parse_questions(text: str) -> list[Question]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---":
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        if stripped:
            current_block.append(raw_line)
        elif current_block:
            # Blank line encountered after content - finalize current block
            blocks.append("\n".join(current_block).strip())
            current_block = []
    if current_block:
        blocks.append("\n".join(current_block).strip())

    return [_parse_block(block, number) for number, block in enumerate(blocks, start=1) if block]


def _parse_block(block: str, number: int) -> Question:
    question_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letter: str | None = None
    current_section: str | None = None

    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        upper = line.upper()
        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("CORRECT:"):
            correct_letter = line.split(":", 1)[1].strip().upper()
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in OPTION_LETTERS and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section in options:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuizImportError(
                f"Question {number}: encountered text outside of a known section: '{line}'."
            )

    if not question_lines:
        raise QuizImportError(f"Question {number}: question text missing (Q: ...)")
    if len(options) < MIN_OPTIONS_PER_QUESTION:
        raise QuizImportError(
            f"Question {number}: at least {MIN_OPTIONS_PER_QUESTION} options are required."
        )

    letters = OPTION_LETTERS[: len(options)]
    if set(options) != set(letters):
        raise QuizImportError(f"Question {number}: options must be lettered consecutively from A.")

    option_list = [options[letter].strip() for letter in letters]
    if any(not opt for opt in option_list):
        raise QuizImportError(f"Question {number}: option text cannot be empty.")

    if correct_letter is None:
        raise QuizImportError(f"Question {number}: CORRECT is required.")
    if correct_letter not in letters:
        raise QuizImportError(f"Question {number}: CORRECT must be one of {', '.join(letters)}.")

    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuizImportError(f"Question {number}: question text cannot be empty.")

    return Question(
        prompt=question_text,
        options=option_list,
        correct_option=letters.index(correct_letter),
    )
