"""Markdown rendering of question prompts for participant clients.

Prompts are stored as authored. Rendering happens on every read so stored
quizzes stay independent of the HTML the clients happen to need; math
delimiters (``$...$``) pass through untouched for client-side MathJax.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from markdown_it import MarkdownIt

from quizroom.core.models import Question, Session


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = markdown_text.strip() or ""
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_question(self, index: int, question: Question, reveal_answer: bool = False) -> dict[str, Any]:
        return {
            "index": index,
            "prompt": question.prompt,
            "prompt_html": self.render_fragment(question.prompt),
            "options": list(question.options),
            "correct_option": question.correct_option if reveal_answer else None,
        }

    def render_session(self, session: Session) -> list[dict[str, Any]]:
        """Participant view of the answer key; correct options stay hidden until settlement."""
        reveal = session.is_settled()
        return [self.render_question(index, question, reveal) for index, question in enumerate(session.answer_key)]


renderer = MarkdownMathRenderer()
# MarkdownIt is safe for concurrent read-only renders, so one shared instance
# serves every request.
