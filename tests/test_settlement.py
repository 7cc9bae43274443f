import asyncio

import pytest

from conftest import FailingLedger, YieldingStore, create_sample
from quizroom.core.errors import ConflictError, NotFoundError, SettlementError, ValidationError
from quizroom.core.services.scoring import ScoringEngine
from quizroom.core.services.session_locks import SessionLocks
from quizroom.core.services.settlement import SettlementCoordinator, encode_answers
from quizroom.core.services.winner_resolver import WinnerResolver
from quizroom.core.session_engine import EngineOptions, SessionEngine
from quizroom.ledger.memory import InMemoryLedger
from quizroom.storage.memory import InMemorySessionStore


async def _answer_scenario_a(engine):
    await create_sample(engine)
    await engine.record_answer("1234", "p1", 0, 1, 1000)
    await engine.record_answer("1234", "p1", 1, 1, 1000)
    await engine.record_answer("1234", "p2", 0, 1, 1000)
    await engine.record_answer("1234", "p2", 1, 0, 1000)


def test_encode_answers_uses_sentinel_for_gaps():
    assert encode_answers([1, -1, 0]) == "1,-1,0"
    assert encode_answers([]) == ""


def test_local_settlement_records_winner_on_session():
    engine = SessionEngine(InMemorySessionStore())

    async def scenario():
        await _answer_scenario_a(engine)
        outcome = await engine.settle("1234")
        return outcome, await engine.get_session("1234")

    outcome, session = asyncio.run(scenario())

    assert outcome.payload.participants == ["p1", "p2", "p3"]
    assert outcome.payload.answer_encodings == ["1,1", "1,0", "-1,-1"]
    assert outcome.payload.scores == [2, 1, 0]
    assert session.result.winner_identity == "p1"
    assert session.result.score == 2
    assert session.result.mode == "local"
    assert session.result.transaction_ref is None


def test_ledger_round_trip_matches_resolver():
    ledger = InMemoryLedger()
    engine = SessionEngine(InMemorySessionStore(), ledger=ledger, options=EngineOptions(settlement_mode="ledger"))

    async def scenario():
        await _answer_scenario_a(engine)
        outcome = await engine.settle("1234")
        return outcome, await engine.read_winner("1234")

    outcome, winner = asyncio.run(scenario())

    assert winner.winner_identity == outcome.resolution.winner_identity == "p1"
    assert winner.score == outcome.resolution.score
    assert winner.transaction_ref == outcome.result.transaction_ref
    assert outcome.result.transaction_ref.startswith("0x")
    submission = ledger.submission_for("0xquiz1234")
    assert submission.scores == [2, 1, 0]


def test_failed_ledger_write_leaves_session_unsettled():
    ledger = FailingLedger()
    engine = SessionEngine(InMemorySessionStore(), ledger=ledger, options=EngineOptions(settlement_mode="ledger"))

    async def scenario():
        await _answer_scenario_a(engine)
        with pytest.raises(SettlementError):
            await engine.settle("1234")
        return await engine.get_session("1234")

    session = asyncio.run(scenario())
    assert ledger.calls == 1
    assert session.result is None


def test_resettlement_can_be_refused():
    engine = SessionEngine(InMemorySessionStore(), options=EngineOptions(allow_resettlement=False))

    async def scenario():
        await _answer_scenario_a(engine)
        await engine.settle("1234")
        await engine.settle("1234")

    with pytest.raises(ConflictError):
        asyncio.run(scenario())


def test_resettlement_replaces_previous_result_when_allowed():
    engine = SessionEngine(InMemorySessionStore())

    async def scenario():
        await _answer_scenario_a(engine)
        await engine.settle("1234")
        await engine.record_answer("1234", "p3", 0, 1, 10)
        await engine.record_answer("1234", "p3", 1, 1, 10)
        await engine.record_answer("1234", "p3", 1, 1, 10)
        return await engine.settle("1234")

    outcome = asyncio.run(scenario())
    assert outcome.payload.scores == [2, 1, 2]
    assert outcome.result.winner_identity == "p1"


def test_concurrent_settlement_is_rejected():
    store = YieldingStore()
    engine = SessionEngine(store)

    async def scenario():
        await _answer_scenario_a(engine)
        return await asyncio.gather(
            engine.settle("1234"),
            engine.settle("1234"),
            return_exceptions=True,
        )

    first, second = asyncio.run(scenario())
    assert first.result.winner_identity == "p1"
    assert isinstance(second, ConflictError)


def test_settling_unknown_session_is_not_found():
    engine = SessionEngine(InMemorySessionStore())
    with pytest.raises(NotFoundError):
        asyncio.run(engine.settle("missing"))


def test_session_without_participants_settles_without_winner():
    engine = SessionEngine(InMemorySessionStore())

    async def scenario():
        await create_sample(engine, participants=())
        return await engine.settle("1234")

    outcome = asyncio.run(scenario())
    assert outcome.result.winner_identity is None
    assert outcome.result.score == 0
    assert outcome.payload.participants == []


def test_ledger_mode_requires_a_ledger():
    with pytest.raises(ValidationError):
        SettlementCoordinator(
            InMemorySessionStore(),
            SessionLocks(),
            ScoringEngine(),
            WinnerResolver(),
            mode="ledger",
        )


class GatedLedger(InMemoryLedger):
    """Holds every submission until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def submit_result(self, ledger_address, participants, answer_encodings, scores):
        self.entered.set()
        await self.release.wait()
        return await super().submit_result(ledger_address, participants, answer_encodings, scores)


def test_answers_after_the_snapshot_are_not_settled():
    async def scenario():
        ledger = GatedLedger()
        engine = SessionEngine(InMemorySessionStore(), ledger=ledger, options=EngineOptions(settlement_mode="ledger"))
        await _answer_scenario_a(engine)
        settling = asyncio.create_task(engine.settle("1234"))
        await ledger.entered.wait()
        await engine.record_answer("1234", "p3", 0, 1, 10)
        await engine.record_answer("1234", "p3", 1, 1, 10)
        ledger.release.set()
        outcome = await settling
        return outcome, await engine.get_session("1234"), await engine.answers_for("1234"), ledger

    outcome, session, records, ledger = asyncio.run(scenario())

    assert outcome.payload.scores == [2, 1, 0]
    assert outcome.payload.answer_encodings[2] == "-1,-1"
    assert ledger.submission_for("0xquiz1234").scores == [2, 1, 0]
    assert session.result.winner_identity == "p1"
    assert session.result.score == 2
    assert {record.participant_identity for record in records} == {"p1", "p2", "p3"}
