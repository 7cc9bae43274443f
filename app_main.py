"""Application entry point for the QuizRoom session service."""

from __future__ import annotations

from quizroom.core.session_engine import EngineOptions, SessionEngine
from quizroom.ledger import build_ledger
from quizroom.server.api_server import create_api_app, run_api_server
from quizroom.storage import build_store
from quizroom.utils.logging_config import configure_logging
from quizroom.utils.settings import settings


def main() -> None:
    """Initialize logging, wire the engine to its collaborators and serve the API."""
    logger = configure_logging(settings.log_level)
    logger.info(
        "Starting QuizRoom (storage=%s, settlement=%s, scoring=%s)",
        settings.storage_backend,
        settings.settlement_mode,
        settings.scoring_policy,
    )

    store = build_store(settings)
    ledger = build_ledger(settings)
    engine = SessionEngine(store, ledger=ledger, options=EngineOptions.from_settings(settings))

    async def shutdown() -> None:
        if ledger is not None:
            await ledger.close()
        await store.close()

    app = create_api_app(
        engine,
        cors_origins=settings.cors_origins(),
        on_startup=store.prepare,
        on_shutdown=shutdown,
    )
    logger.info("Listening on http://%s:%s/", settings.host, settings.port)
    run_api_server(app, settings.host, settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
