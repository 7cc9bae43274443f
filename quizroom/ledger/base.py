"""Ledger collaborator interface: the external system of record for results."""

from __future__ import annotations

from abc import ABC, abstractmethod

from quizroom.core.models import LedgerConfirmation, LedgerResult


class LedgerClient(ABC):
    """Records final answers and scores for a session and reads the winner back."""

    @abstractmethod
    async def submit_result(
        self,
        ledger_address: str,
        participants: list[str],
        answer_encodings: list[str],
        scores: list[int],
    ) -> LedgerConfirmation:
        """Write the index-aligned arrays. Raises SettlementError on failure."""
        raise NotImplementedError

    @abstractmethod
    async def read_result(self, ledger_address: str) -> LedgerResult | None:
        raise NotImplementedError

    async def close(self) -> None:
        return None
