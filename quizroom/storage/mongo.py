"""MongoDB store backed by motor."""

from __future__ import annotations

import logging
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from quizroom.core.errors import ConflictError, TransientStorageError
from quizroom.core.models import AnswerLedger, Session
from quizroom.storage.base import SessionStore
from quizroom.storage.documents import (
    ledger_from_document,
    ledger_to_document,
    session_from_document,
    session_to_document,
)

logger = logging.getLogger(__name__)


class MongoSessionStore(SessionStore):
    """Sessions live in ``sessions``, answers in ``answer_ledgers``, one document per session."""

    def __init__(self, client: AsyncIOMotorClient, db_name: str) -> None:
        self._client = client
        self._db = client[db_name]
        self._sessions = self._db.sessions
        self._ledgers = self._db.answer_ledgers

    @classmethod
    def from_url(cls, mongo_url: str, db_name: str) -> "MongoSessionStore":
        client = AsyncIOMotorClient(
            mongo_url,
            serverSelectionTimeoutMS=5000,
            connectTimeoutMS=5000,
            socketTimeoutMS=10000,
            retryWrites=True,
            retryReads=True,
        )
        return cls(client, db_name)

    async def prepare(self) -> None:
        try:
            await self._sessions.create_index("session_id", unique=True)
            await self._sessions.create_index("ledger_address", unique=True)
            await self._ledgers.create_index("session_id", unique=True)
        except ConnectionFailure as exc:
            raise TransientStorageError(f"MongoDB unavailable: {exc}") from exc
        logger.info("MongoDB indexes ensured")

    async def get_session(self, session_id: str) -> Session | None:
        document = await self._find_one(self._sessions, {"session_id": session_id})
        return session_from_document(document) if document else None

    async def find_session_by_ledger_address(self, ledger_address: str) -> Session | None:
        document = await self._find_one(self._sessions, {"ledger_address": ledger_address})
        return session_from_document(document) if document else None

    async def save_session(self, session: Session) -> None:
        await self._replace(self._sessions, {"session_id": session.session_id}, session_to_document(session))

    async def get_answer_ledger(self, session_id: str) -> AnswerLedger | None:
        document = await self._find_one(self._ledgers, {"session_id": session_id})
        return ledger_from_document(document) if document else None

    async def save_answer_ledger(self, session_id: str, ledger: AnswerLedger) -> None:
        await self._replace(self._ledgers, {"session_id": session_id}, ledger_to_document(ledger))

    async def list_session_ids(self) -> list[str]:
        try:
            return await self._sessions.distinct("session_id")
        except ConnectionFailure as exc:
            raise TransientStorageError(f"MongoDB unavailable: {exc}") from exc

    async def close(self) -> None:
        self._client.close()

    @staticmethod
    async def _find_one(collection: Any, query: dict[str, Any]) -> dict[str, Any] | None:
        try:
            return await collection.find_one(query, {"_id": 0})
        except ConnectionFailure as exc:
            raise TransientStorageError(f"MongoDB unavailable: {exc}") from exc

    @staticmethod
    async def _replace(collection: Any, query: dict[str, Any], document: dict[str, Any]) -> None:
        try:
            await collection.replace_one(query, document, upsert=True)
        except DuplicateKeyError as exc:
            raise ConflictError(f"Duplicate key while saving {query}: {exc}") from exc
        except ConnectionFailure as exc:
            raise TransientStorageError(f"MongoDB unavailable: {exc}") from exc
