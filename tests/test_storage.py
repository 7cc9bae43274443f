import asyncio
import json

import pytest

from conftest import create_sample
from quizroom.core.errors import TransientStorageError
from quizroom.core.session_engine import SessionEngine
from quizroom.storage import build_store
from quizroom.storage.base import read_with_retry
from quizroom.storage.json_file import JsonFileSessionStore
from quizroom.storage.memory import InMemorySessionStore
from quizroom.utils.settings import Settings


def test_json_store_survives_reopen(tmp_path):
    path = tmp_path / "quizroom.json"

    async def write():
        engine = SessionEngine(JsonFileSessionStore(path))
        await create_sample(engine)
        await engine.record_answer("1234", "p1", 0, 1, 250)
        await engine.record_answer("1234", "p1", 1, 0, 750)
        await engine.settle("1234")

    async def read():
        store = JsonFileSessionStore(path)
        return await store.get_session("1234"), await store.get_answer_ledger("1234")

    asyncio.run(write())
    session, ledger = asyncio.run(read())

    assert session.participants == ["p1", "p2", "p3"]
    assert session.result.winner_identity == "p1"
    assert session.result.settled_at.tzinfo is not None
    record = ledger.record_for("p1")
    assert {index: response.selected_option for index, response in record.responses.items()} == {0: 1, 1: 0}
    assert record.total_response_time_ms == 1000
    assert set(json.loads(path.read_text(encoding="utf-8"))) == {"sessions", "answer_ledgers"}


def test_json_store_finds_by_ledger_address(tmp_path):
    store = JsonFileSessionStore(tmp_path / "nested" / "store.json")

    async def scenario():
        await create_sample(SessionEngine(store))
        return await store.find_session_by_ledger_address("0xquiz1234"), await store.list_session_ids()

    session, ids = asyncio.run(scenario())
    assert session.session_id == "1234"
    assert ids == ["1234"]


def test_json_store_reports_unreadable_file_as_transient(tmp_path):
    directory = tmp_path / "is-a-directory"
    directory.mkdir()
    store = JsonFileSessionStore(directory)
    with pytest.raises(TransientStorageError):
        asyncio.run(store.get_session("1234"))


def test_memory_store_hands_out_copies():
    store = InMemorySessionStore()

    async def scenario():
        await create_sample(SessionEngine(store))
        session = await store.get_session("1234")
        session.participants.append("intruder")
        return await store.get_session("1234")

    assert "intruder" not in asyncio.run(scenario()).participants


def test_read_with_retry_gives_up_after_attempts():
    calls = []

    async def failing():
        calls.append(1)
        raise TransientStorageError("down")

    with pytest.raises(TransientStorageError):
        asyncio.run(read_with_retry(failing, attempts=2, backoff_seconds=0))
    assert len(calls) == 2


def test_build_store_selects_backend(tmp_path):
    memory = build_store(Settings(QUIZROOM_STORAGE_BACKEND="memory"))
    json_store = build_store(
        Settings(QUIZROOM_STORAGE_BACKEND="json", QUIZROOM_JSON_STORE_PATH=str(tmp_path / "s.json"))
    )
    assert isinstance(memory, InMemorySessionStore)
    assert isinstance(json_store, JsonFileSessionStore)
    assert json_store.path == (tmp_path / "s.json").resolve()
