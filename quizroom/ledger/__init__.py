"""Ledger collaborators used by ledger-settled deployments."""

from __future__ import annotations

import logging

from quizroom.ledger.base import LedgerClient
from quizroom.ledger.http_client import HttpLedgerClient
from quizroom.ledger.memory import InMemoryLedger
from quizroom.utils.settings import Settings

logger = logging.getLogger(__name__)


def build_ledger(config: Settings) -> LedgerClient | None:
    """Return the ledger client for ledger-settled mode, or None in local mode."""
    if config.settlement_mode != "ledger":
        return None
    if not config.ledger_base_url:
        logger.warning("LEDGER_BASE_URL is not set; results are recorded in process memory only")
        return InMemoryLedger()
    return HttpLedgerClient(
        config.ledger_base_url,
        api_token=config.ledger_api_token,
        timeout_seconds=config.ledger_timeout_seconds,
    )


__all__ = ["LedgerClient", "HttpLedgerClient", "InMemoryLedger", "build_ledger"]
