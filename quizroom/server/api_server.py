"""FastAPI server that exposes quiz session endpoints and the room WebSocket."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import Depends, FastAPI, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from quizroom.constants.network_constants import (
    CLIENT_EVENT_END,
    CLIENT_EVENT_START,
    EVENT_ERROR,
    EVENT_JOINED,
)
from quizroom.constants.quiz_constants import DEFAULT_LEADERBOARD_SIZE
from quizroom.core.errors import (
    ConflictError,
    NotFoundError,
    QuizRoomError,
    SettlementError,
    TransientStorageError,
    ValidationError,
)
from quizroom.core.markdown_math_renderer import renderer
from quizroom.core.models import AnswerRecord, LeaderboardEntry, Session, SessionResult
from quizroom.core.session_engine import SessionEngine, SettlementOutcome
from quizroom.server.connection_manager import ConnectionManager

logger = logging.getLogger(__name__)

_ERROR_STATUS: list[tuple[type[QuizRoomError], int]] = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (ConflictError, 409),
    (SettlementError, 502),
    (TransientStorageError, 503),
]


class QuestionPayload(BaseModel):
    """Payload schema for one question of the answer key."""

    prompt: str
    options: list[str]
    correct_option: int


class CreateSessionPayload(BaseModel):
    """Payload schema for quiz creation."""

    session_id: str = Field(min_length=1)
    ledger_address: str = Field(min_length=1)
    name: str = Field(min_length=1)
    creator_identity: str = Field(min_length=1)
    questions: list[QuestionPayload]
    participants: list[str] = Field(default_factory=list)


class ParticipantsPayload(BaseModel):
    participants: list[str]


class AnswerPayload(BaseModel):
    """Payload schema for submitted answers."""

    session_id: str
    participant_identity: str
    question_index: int
    selected_option: int
    response_time_ms: int = 0


def _session_view(session: Session) -> dict[str, Any]:
    return {
        "session_id": session.session_id,
        "ledger_address": session.ledger_address,
        "name": session.name,
        "creator_identity": session.creator_identity,
        "participants": list(session.participants),
        "questions": renderer.render_session(session),
        "result": _result_view(session.result),
        "created_at": session.created_at.isoformat(),
    }


def _result_view(result: SessionResult | None) -> dict[str, Any] | None:
    if result is None:
        return None
    return {
        "winner_identity": result.winner_identity,
        "score": result.score,
        "mode": result.mode,
        "settled_at": result.settled_at.isoformat(),
        "transaction_ref": result.transaction_ref,
    }


def _record_view(record: AnswerRecord) -> dict[str, Any]:
    return {
        "participant_identity": record.participant_identity,
        "answers": [
            {
                "question_index": question_index,
                "selected_option": response.selected_option,
                "response_time_ms": response.response_time_ms,
            }
            for question_index, response in sorted(record.responses.items())
        ],
        "total_response_time_ms": record.total_response_time_ms,
    }


def _leaderboard_view(entries: list[LeaderboardEntry]) -> list[dict[str, Any]]:
    return [{"rank": entry.rank, "identity": entry.identity, "score": entry.score} for entry in entries]


def _settlement_view(outcome: SettlementOutcome) -> dict[str, Any]:
    return {
        "result": _result_view(outcome.result),
        "players": outcome.payload.participants,
        "answers": outcome.payload.answer_encodings,
        "scores": outcome.payload.scores,
        "leaderboard": _leaderboard_view(outcome.resolution.leaderboard),
    }


def _get_engine_dependency(engine: SessionEngine):
    def dependency() -> SessionEngine:
        return engine

    return dependency


def create_api_app(
    engine: SessionEngine,
    connections: ConnectionManager | None = None,
    cors_origins: list[str] | None = None,
    on_startup: Any = None,
    on_shutdown: Any = None,
) -> FastAPI:
    """Create a FastAPI application wired to the provided session engine."""
    connections = connections or ConnectionManager()
    engine.attach_transport(connections)
    engine_dep = _get_engine_dependency(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if on_startup is not None:
            await on_startup()
        yield
        if on_shutdown is not None:
            await on_shutdown()

    app = FastAPI(title="QuizRoom API", version="0.1.0", lifespan=lifespan)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            allow_headers=["Content-Type", "Authorization"],
        )

    @app.exception_handler(QuizRoomError)
    async def handle_quiz_error(request: Request, exc: QuizRoomError) -> JSONResponse:
        status_code = next((code for kind, code in _ERROR_STATUS if isinstance(exc, kind)), 500)
        if status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.post("/api/quiz/create", status_code=201)
    async def create_quiz(
        payload: CreateSessionPayload,
        manager: SessionEngine = Depends(engine_dep),
    ) -> dict[str, Any]:
        session = await manager.create_session(
            payload.session_id,
            payload.ledger_address,
            payload.name,
            payload.creator_identity,
            [question.model_dump() for question in payload.questions],
            payload.participants,
        )
        return _session_view(session)

    @app.get("/api/quiz/address/{ledger_address}")
    async def get_quiz_by_address(
        ledger_address: str,
        manager: SessionEngine = Depends(engine_dep),
    ) -> dict[str, Any]:
        session = await manager.get_session_by_ledger_address(ledger_address)
        return _session_view(session)

    @app.get("/api/quiz/{session_id}")
    async def get_quiz(session_id: str, manager: SessionEngine = Depends(engine_dep)) -> dict[str, Any]:
        session = await manager.get_session(session_id)
        return _session_view(session)

    @app.post("/api/quiz/{session_id}/players")
    async def add_players(
        session_id: str,
        payload: ParticipantsPayload,
        manager: SessionEngine = Depends(engine_dep),
    ) -> dict[str, Any]:
        session = await manager.add_participants(session_id, payload.participants)
        return {"session_id": session_id, "participants": list(session.participants)}

    @app.post("/api/quiz/answer", status_code=201)
    async def submit_answer(
        payload: AnswerPayload,
        manager: SessionEngine = Depends(engine_dep),
    ) -> dict[str, Any]:
        record = await manager.record_answer(
            payload.session_id,
            payload.participant_identity,
            payload.question_index,
            payload.selected_option,
            payload.response_time_ms,
        )
        return _record_view(record)

    @app.get("/api/quiz/{session_id}/answers")
    async def list_answers(session_id: str, manager: SessionEngine = Depends(engine_dep)) -> list[dict[str, Any]]:
        await manager.get_session(session_id)
        return [_record_view(record) for record in await manager.answers_for(session_id)]

    @app.post("/api/quiz/{session_id}/start")
    async def start_quiz(session_id: str, manager: SessionEngine = Depends(engine_dep)) -> dict[str, Any]:
        session = await manager.start_session(session_id)
        return {"session_id": session.session_id, "members": manager.members_of(session_id)}

    @app.post("/api/quiz/{session_id}/settle")
    async def settle_quiz(session_id: str, manager: SessionEngine = Depends(engine_dep)) -> dict[str, Any]:
        return _settlement_view(await manager.settle(session_id))

    @app.post("/api/quiz/{session_id}/end")
    async def end_quiz(session_id: str, manager: SessionEngine = Depends(engine_dep)) -> dict[str, Any]:
        return _settlement_view(await manager.end_session(session_id))

    @app.get("/api/quiz/{session_id}/winner")
    async def get_winner(session_id: str, manager: SessionEngine = Depends(engine_dep)) -> dict[str, Any]:
        result = await manager.read_winner(session_id)
        return {"session_id": session_id, "winner": _result_view(result)}

    @app.get("/api/quiz/{session_id}/leaderboard")
    async def get_leaderboard(
        session_id: str,
        limit: int = Query(default=DEFAULT_LEADERBOARD_SIZE, ge=0),
        manager: SessionEngine = Depends(engine_dep),
    ) -> dict[str, Any]:
        entries = await manager.leaderboard(session_id, limit)
        return {"session_id": session_id, "leaderboard": _leaderboard_view(entries)}

    @app.websocket("/ws/{session_id}")
    async def room_socket(websocket: WebSocket, session_id: str, identity: str = Query(min_length=1)) -> None:
        await connections.connect(websocket, session_id, identity)
        try:
            try:
                await engine.join(session_id, identity)
            except QuizRoomError as exc:
                logger.warning("%s could not join room %s: %s", identity, session_id, exc)
                await connections.send_to(websocket, EVENT_ERROR, {"detail": str(exc)})
                await websocket.close(code=1011)
                return
            await connections.send_to(websocket, EVENT_JOINED, {"session_id": session_id, "identity": identity})
            while True:
                message = await websocket.receive_json()
                event = message.get("event") if isinstance(message, dict) else None
                try:
                    if event == CLIENT_EVENT_START:
                        await engine.start_session(session_id)
                    elif event == CLIENT_EVENT_END:
                        await engine.end_session(session_id)
                    else:
                        await connections.send_to(websocket, EVENT_ERROR, {"detail": f"Unknown event {event!r}."})
                except QuizRoomError as exc:
                    await connections.send_to(websocket, EVENT_ERROR, {"detail": str(exc)})
        except WebSocketDisconnect:
            pass
        finally:
            connections.disconnect(websocket, session_id)
            if not connections.is_connected(identity):
                await engine.disconnect(identity)
            elif not connections.has_other_connections(session_id, identity):
                await engine.leave(session_id, identity)

    return app


def run_api_server(app: FastAPI, host: str, port: int, log_level: str = "info") -> None:
    """Serve the FastAPI application with uvicorn until interrupted."""
    config = uvicorn.Config(app=app, host=host, port=port, log_level=log_level)
    server = uvicorn.Server(config)
    server.run()
