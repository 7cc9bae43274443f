"""Ledger client that talks to a settlement relay over HTTP.

The relay owns key management and transaction signing for the quiz contract;
this client only ships the index-aligned arrays and reads the winner back.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError as PydanticValidationError

from quizroom.core.errors import SettlementError
from quizroom.core.models import LedgerConfirmation, LedgerResult
from quizroom.ledger.base import LedgerClient

logger = logging.getLogger(__name__)


class _SubmitResponse(BaseModel):
    transaction_ref: str | None = None


class _WinnerResponse(BaseModel):
    winner_identity: str | None = None
    score: int = 0


class HttpLedgerClient(LedgerClient):
    def __init__(
        self,
        base_url: str,
        *,
        api_token: str | None = None,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds, connect=5.0),
            transport=transport,
        )

    async def submit_result(
        self,
        ledger_address: str,
        participants: list[str],
        answer_encodings: list[str],
        scores: list[int],
    ) -> LedgerConfirmation:
        payload = {
            "players": participants,
            "answers": answer_encodings,
            "scores": scores,
        }
        data = await self._request("POST", f"/contracts/{ledger_address}/results", json=payload)
        try:
            parsed = _SubmitResponse.model_validate(data or {})
        except PydanticValidationError as exc:
            raise SettlementError(f"Ledger returned an unexpected confirmation: {exc}") from exc
        logger.info("Ledger confirmed result for %s (%s)", ledger_address, parsed.transaction_ref)
        return LedgerConfirmation(ledger_address=ledger_address, transaction_ref=parsed.transaction_ref)

    async def read_result(self, ledger_address: str) -> LedgerResult | None:
        data = await self._request("GET", f"/contracts/{ledger_address}/winner", allow_missing=True)
        if not data:
            return None
        try:
            parsed = _WinnerResponse.model_validate(data)
        except PydanticValidationError as exc:
            raise SettlementError(f"Ledger returned an unexpected winner payload: {exc}") from exc
        if parsed.winner_identity is None:
            return None
        return LedgerResult(winner_identity=parsed.winner_identity, score=parsed.score)

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        allow_missing: bool = False,
    ) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.TimeoutException as exc:
            logger.error("Ledger %s %s timed out: %s", method, path, exc)
            raise SettlementError(f"Ledger request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            logger.error("Ledger %s %s failed: %s", method, path, exc)
            raise SettlementError(f"Ledger request failed: {exc}") from exc

        if allow_missing and response.status_code == 404:
            return None
        if response.is_error:
            logger.error("Ledger rejected %s %s with %s: %s", method, path, response.status_code, response.text[:600])
            raise SettlementError(f"Ledger rejected the request with status {response.status_code}.")
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SettlementError("Ledger returned a non-JSON response.") from exc
