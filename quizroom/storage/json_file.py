"""Single-file JSON store for small deployments and demos.

The whole document is rewritten on every save: it is serialized to a sibling
temporary file which then replaces the original, so a crash mid-write leaves
the previous contents intact.
"""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path
from typing import Any

from quizroom.core.errors import TransientStorageError
from quizroom.core.models import AnswerLedger, Session
from quizroom.storage.base import SessionStore
from quizroom.storage.documents import (
    ledger_from_document,
    ledger_to_document,
    session_from_document,
    session_to_document,
)


class JsonFileSessionStore(SessionStore):
    def __init__(self, file_path: Path) -> None:
        self._path = Path(file_path).resolve()
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def get_session(self, session_id: str) -> Session | None:
        document = await self._load()
        raw = document["sessions"].get(session_id)
        return session_from_document(raw) if raw is not None else None

    async def find_session_by_ledger_address(self, ledger_address: str) -> Session | None:
        document = await self._load()
        for raw in document["sessions"].values():
            if raw.get("ledger_address") == ledger_address:
                return session_from_document(raw)
        return None

    async def save_session(self, session: Session) -> None:
        async with self._write_lock:
            document = await self._load()
            document["sessions"][session.session_id] = session_to_document(session)
            await self._dump(document)

    async def get_answer_ledger(self, session_id: str) -> AnswerLedger | None:
        document = await self._load()
        raw = document["answer_ledgers"].get(session_id)
        return ledger_from_document(raw) if raw is not None else None

    async def save_answer_ledger(self, session_id: str, ledger: AnswerLedger) -> None:
        async with self._write_lock:
            document = await self._load()
            document["answer_ledgers"][session_id] = ledger_to_document(ledger)
            await self._dump(document)

    async def list_session_ids(self) -> list[str]:
        document = await self._load()
        return list(document["sessions"])

    async def _load(self) -> dict[str, Any]:
        try:
            return await asyncio.to_thread(self._read_document)
        except OSError as exc:
            raise TransientStorageError(f"Could not read {self._path}: {exc}") from exc

    async def _dump(self, document: dict[str, Any]) -> None:
        try:
            await asyncio.to_thread(self._write_document, document)
        except OSError as exc:
            raise TransientStorageError(f"Could not write {self._path}: {exc}") from exc

    def _read_document(self) -> dict[str, Any]:
        if not self._path.exists():
            return {"sessions": {}, "answer_ledgers": {}}
        document = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        document.setdefault("sessions", {})
        document.setdefault("answer_ledgers", {})
        return document

    def _write_document(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        temp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        os.replace(temp_path, self._path)
