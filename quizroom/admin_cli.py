"""Command line helpers for loading quiz definitions into the configured store."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from quizroom.core.errors import QuizRoomError
from quizroom.core.quiz_exporter import save_questions_to_file
from quizroom.core.quiz_importer import load_questions_from_file
from quizroom.core.session_engine import EngineOptions, SessionEngine
from quizroom.storage import build_store
from quizroom.storage.base import SessionStore
from quizroom.utils.logging_config import configure_logging
from quizroom.utils.settings import Settings, settings


async def import_quiz(store: SessionStore, config: Settings, args: argparse.Namespace) -> int:
    questions = load_questions_from_file(Path(args.file))
    engine = SessionEngine(store, options=EngineOptions.from_settings(config))
    session = await engine.create_session(
        args.pin,
        args.address,
        args.name,
        args.creator,
        questions,
        args.participant or (),
    )
    print(f"Imported {session.question_count()} question(s) into quiz {session.session_id}.")
    return 0


async def show_quiz(store: SessionStore, config: Settings, args: argparse.Namespace) -> int:
    engine = SessionEngine(store, options=EngineOptions.from_settings(config))
    session = await engine.get_session(args.pin)
    if args.export:
        save_questions_to_file(Path(args.export), session.answer_key)
        print(f"Exported {session.question_count()} question(s) to {args.export}.")
        return 0
    summary = {
        "session_id": session.session_id,
        "ledger_address": session.ledger_address,
        "name": session.name,
        "creator_identity": session.creator_identity,
        "participants": session.participants,
        "question_count": session.question_count(),
        "winner": session.result.winner_identity if session.result else None,
        "score": session.result.score if session.result else None,
    }
    print(json.dumps(summary, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="quizroom-admin", description="Manage stored quiz sessions")
    commands = p.add_subparsers(dest="command", required=True)

    importer = commands.add_parser("import", help="Create a quiz session from a text quiz file")
    importer.add_argument("file", help="Path to the quiz text file")
    importer.add_argument("--pin", required=True, help="Session PIN players join with")
    importer.add_argument("--address", required=True, help="Ledger address of the quiz contract")
    importer.add_argument("--name", required=True, help="Display name of the quiz")
    importer.add_argument("--creator", required=True, help="Identity of the quiz creator")
    importer.add_argument("--participant", action="append", help="Pre-register a participant (repeatable)")
    importer.set_defaults(handler=import_quiz)

    show = commands.add_parser("show", help="Print a stored quiz session")
    show.add_argument("pin", help="Session PIN")
    show.add_argument("--export", help="Write the answer key to this path instead of printing")
    show.set_defaults(handler=show_quiz)
    return p


async def run(args: argparse.Namespace, config: Settings) -> int:
    store = build_store(config)
    try:
        await store.prepare()
        return await args.handler(store, config, args)
    finally:
        await store.close()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(settings.log_level)
    try:
        return asyncio.run(run(args, settings))
    except QuizRoomError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
