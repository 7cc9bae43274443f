"""Conversion between domain models and plain JSON-compatible documents."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from quizroom.core.models import (
    AnswerLedger,
    AnswerRecord,
    Question,
    Response,
    Session,
    SessionResult,
)


def session_to_document(session: Session) -> dict[str, Any]:
    return {
        "session_id": session.session_id,
        "ledger_address": session.ledger_address,
        "name": session.name,
        "creator_identity": session.creator_identity,
        "answer_key": [
            {
                "prompt": question.prompt,
                "options": list(question.options),
                "correct_option": question.correct_option,
            }
            for question in session.answer_key
        ],
        "participants": list(session.participants),
        "result": _result_to_document(session.result),
        "created_at": session.created_at.isoformat(),
    }


def session_from_document(document: dict[str, Any]) -> Session:
    return Session(
        session_id=document["session_id"],
        ledger_address=document["ledger_address"],
        name=document["name"],
        creator_identity=document["creator_identity"],
        answer_key=[
            Question(
                prompt=question["prompt"],
                options=list(question["options"]),
                correct_option=int(question["correct_option"]),
            )
            for question in document.get("answer_key", [])
        ],
        participants=list(document.get("participants", [])),
        result=_result_from_document(document.get("result")),
        created_at=_parse_timestamp(document.get("created_at")),
    )


def ledger_to_document(ledger: AnswerLedger) -> dict[str, Any]:
    # JSON and BSON object keys must be strings, so question indices travel as a list
    return {
        "session_id": ledger.session_id,
        "participants": [
            {
                "participant_identity": record.participant_identity,
                "answers": [
                    {
                        "question_index": question_index,
                        "selected_option": response.selected_option,
                        "response_time_ms": response.response_time_ms,
                    }
                    for question_index, response in record.responses.items()
                ],
                "total_response_time_ms": record.total_response_time_ms,
                "score": record.score,
            }
            for record in ledger.records.values()
        ],
    }


def ledger_from_document(document: dict[str, Any]) -> AnswerLedger:
    ledger = AnswerLedger(session_id=document["session_id"])
    for entry in document.get("participants", []):
        record = AnswerRecord(
            participant_identity=entry["participant_identity"],
            responses={
                int(answer["question_index"]): Response(
                    selected_option=int(answer["selected_option"]),
                    response_time_ms=int(answer.get("response_time_ms", 0)),
                )
                for answer in entry.get("answers", [])
            },
            total_response_time_ms=int(entry.get("total_response_time_ms", 0)),
            score=int(entry.get("score", 0)),
        )
        ledger.records[record.participant_identity] = record
    return ledger


def _result_to_document(result: SessionResult | None) -> dict[str, Any] | None:
    if result is None:
        return None
    return {
        "winner_identity": result.winner_identity,
        "score": result.score,
        "mode": result.mode,
        "settled_at": result.settled_at.isoformat(),
        "transaction_ref": result.transaction_ref,
    }


def _result_from_document(document: dict[str, Any] | None) -> SessionResult | None:
    if not document:
        return None
    return SessionResult(
        winner_identity=document.get("winner_identity"),
        score=int(document.get("score", 0)),
        mode=document.get("mode", ""),
        settled_at=_parse_timestamp(document.get("settled_at")),
        transaction_ref=document.get("transaction_ref"),
    )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        parsed = datetime.fromisoformat(value)
    else:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
