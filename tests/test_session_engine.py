import asyncio

import pytest

from conftest import YieldingStore, create_sample, sample_questions
from quizroom.core.errors import ConflictError, NotFoundError, ValidationError
from quizroom.core.session_engine import EngineOptions, SessionEngine
from quizroom.storage.memory import InMemorySessionStore


def test_create_rejects_duplicate_pin_and_address(engine):
    asyncio.run(create_sample(engine))

    with pytest.raises(ConflictError):
        asyncio.run(engine.create_session("1234", "0xother", "Again", "host", sample_questions()))
    with pytest.raises(ConflictError):
        asyncio.run(engine.create_session("9999", "0xquiz1234", "Again", "host", sample_questions()))


@pytest.mark.parametrize(
    "questions",
    [
        [],
        [{"prompt": "", "options": ["a", "b"], "correct_option": 0}],
        [{"prompt": "q", "options": ["a"], "correct_option": 0}],
        [{"prompt": "q", "options": ["a", "b"], "correct_option": 2}],
        [{"prompt": "q", "options": ["a", "b"], "correct_option": -1}],
        [{"prompt": "q", "options": ["a", ""], "correct_option": 0}],
    ],
)
def test_create_validates_answer_key(engine, questions):
    with pytest.raises(ValidationError):
        asyncio.run(engine.create_session("1234", "0xquiz", "Bad", "host", questions))


def test_create_accepts_legacy_question_keys(engine):
    session = asyncio.run(
        engine.create_session(
            "1234",
            "0xquiz",
            "Legacy",
            "host",
            [{"question": "2 + 2?", "answers": ["3", "4"], "correctAnswer": 1}],
        )
    )
    assert session.answer_key[0].prompt == "2 + 2?"
    assert session.answer_key[0].correct_option == 1


def test_lookup_by_ledger_address(engine):
    asyncio.run(create_sample(engine))
    assert asyncio.run(engine.get_session_by_ledger_address("0xquiz1234")).session_id == "1234"
    with pytest.raises(NotFoundError):
        asyncio.run(engine.get_session_by_ledger_address("0xmissing"))


def test_add_participants_deduplicates_and_broadcasts(engine, transport):
    asyncio.run(create_sample(engine, participants=("p1",)))

    session = asyncio.run(engine.add_participants("1234", ["p2", "p1", "p3"]))

    assert session.participants == ["p1", "p2", "p3"]
    assert transport.named("quiz:players")[-1] == ["p1", "p2", "p3"]


def test_add_participants_rejects_blank_identity(engine):
    asyncio.run(create_sample(engine))
    with pytest.raises(ValidationError):
        asyncio.run(engine.add_participants("1234", [" "]))


def test_join_enrolls_players_but_not_the_creator(engine, transport):
    async def scenario():
        await create_sample(engine, participants=())
        await engine.join("1234", "host")
        await engine.join("1234", "alice")
        await engine.join("1234", "alice")
        return await engine.get_session("1234")

    session = asyncio.run(scenario())

    assert engine.members_of("1234") == ["host", "alice"]
    assert session.participants == ["alice"]
    assert transport.named("quiz:players")[-1] == ["host", "alice"]


def test_creator_is_a_participant_when_configured():
    engine = SessionEngine(InMemorySessionStore(), options=EngineOptions(include_creator_as_participant=True))

    async def scenario():
        await create_sample(engine, participants=())
        return await engine.get_session("1234")

    assert asyncio.run(scenario()).participants == ["host"]


def test_joining_a_room_without_a_session_only_tracks_membership(engine):
    members = asyncio.run(engine.join("lobby", "alice"))
    assert members == ["alice"]


def test_disconnect_leaves_every_room(engine, transport):
    async def scenario():
        await engine.join("a", "alice")
        await engine.join("a", "bob")
        await engine.join("b", "alice")
        await engine.disconnect("alice")

    asyncio.run(scenario())

    assert engine.members_of("a") == ["bob"]
    assert not engine.registry.is_open("b")
    assert transport.named("quiz:players")[-1] == ["bob"]


def test_end_session_settles_announces_and_closes_room(engine, transport):
    async def scenario():
        await create_sample(engine)
        await engine.join("1234", "p1")
        await engine.start_session("1234")
        await engine.record_answer("1234", "p1", 0, 1, 100)
        return await engine.end_session("1234")

    outcome = asyncio.run(scenario())

    assert outcome.result.winner_identity == "p1"
    assert not engine.registry.is_open("1234")
    assert transport.named("quiz:started") == [{"session_id": "1234", "question_count": 2}]
    ended = transport.named("quiz:ended")[0]
    assert ended["winner"] == "p1"
    assert ended["leaderboard"][0] == {"rank": 1, "identity": "p1", "score": 1}


def test_leaderboard_limits_entries(engine):
    async def scenario():
        await create_sample(engine)
        await engine.record_answer("1234", "p2", 0, 1, 100)
        await engine.record_answer("1234", "p2", 1, 1, 100)
        await engine.record_answer("1234", "p3", 0, 1, 100)
        return await engine.leaderboard("1234", 2)

    entries = asyncio.run(scenario())
    assert [(entry.identity, entry.score) for entry in entries] == [("p2", 2), ("p3", 1)]


def test_answers_queued_behind_a_leave_are_not_lost():
    engine = SessionEngine(YieldingStore())

    async def scenario():
        await create_sample(engine)
        await engine.join("1234", "watcher")
        first = asyncio.create_task(engine.record_answer("1234", "p1", 0, 1, 100))
        leaving = asyncio.create_task(engine.leave("1234", "watcher"))
        second = asyncio.create_task(engine.record_answer("1234", "p1", 1, 1, 100))
        await leaving
        third = asyncio.create_task(engine.record_answer("1234", "p2", 0, 1, 100))
        await asyncio.gather(first, second, third)
        return {record.participant_identity: record for record in await engine.answers_for("1234")}

    records = asyncio.run(scenario())

    assert set(records["p1"].responses) == {0, 1}
    assert set(records["p2"].responses) == {0}
    assert engine.locks.active_sessions() == []


def test_concurrent_resubmissions_keep_one_response_and_a_consistent_total():
    engine = SessionEngine(YieldingStore())
    submissions = [(0, 100), (1, 200), (2, 300), (0, 400), (1, 500)]

    async def scenario():
        await create_sample(engine)
        await asyncio.gather(
            *(engine.record_answer("1234", "p1", 0, option, elapsed) for option, elapsed in submissions)
        )
        return await engine.answers_for("1234")

    (record,) = asyncio.run(scenario())

    assert list(record.responses) == [0]
    assert record.total_response_time_ms == record.responses[0].response_time_ms == 500
    assert record.responses[0].selected_option == 1


def test_answering_without_a_room_leaves_no_lock_behind(engine):
    async def scenario():
        await create_sample(engine)
        await engine.record_answer("1234", "p1", 0, 1, 100)
        await engine.leaderboard("1234")

    asyncio.run(scenario())
    assert engine.locks.active_sessions() == []
