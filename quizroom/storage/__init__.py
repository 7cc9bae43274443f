"""Swappable persistence backends for quiz sessions."""

from __future__ import annotations

from pathlib import Path

from quizroom.storage.base import SessionStore
from quizroom.storage.json_file import JsonFileSessionStore
from quizroom.storage.memory import InMemorySessionStore
from quizroom.utils.settings import Settings


def build_store(config: Settings) -> SessionStore:
    """Instantiate the backend selected by ``QUIZROOM_STORAGE_BACKEND``."""
    if config.storage_backend == "json":
        return JsonFileSessionStore(Path(config.json_store_path))
    if config.storage_backend == "mongo":
        # motor is only imported when MongoDB is actually selected
        from quizroom.storage.mongo import MongoSessionStore

        return MongoSessionStore.from_url(config.mongo_url, config.mongo_db_name)
    return InMemorySessionStore()


__all__ = ["SessionStore", "InMemorySessionStore", "JsonFileSessionStore", "build_store"]
