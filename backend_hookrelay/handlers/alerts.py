"""
Whale alert handler.

Logs one whale_alert per WhaleEvent and, when a webhook URL is configured,
POSTs the alerts and any retraction notices for previously alerted
transactions. A non-2xx webhook response fails the handler (HandlerError),
which the dispatch engine isolates from sibling handlers.
"""

from __future__ import annotations

from typing import Any, Sequence

import httpx

from backend_hookrelay.core.exceptions import HandlerError
from backend_hookrelay.extractors.events import DomainEvent, RetractionEvent, WhaleEvent
from backend_hookrelay.relay_logging import get_logger

logger = get_logger(__name__)

WEBHOOK_TIMEOUT_SEC = 10.0
# Cap on remembered alerted tx hashes
MAX_ALERTED_TX = 10_000


class WhaleAlertHandler:
    def __init__(
        self,
        webhook_url: str = "",
        *,
        client: httpx.AsyncClient | None = None,
        timeout_sec: float = WEBHOOK_TIMEOUT_SEC,
    ) -> None:
        """
        Args:
            webhook_url: Endpoint receiving alert JSON; empty = log only.
            client: Optional shared AsyncClient (tests inject one with a mock transport).
            timeout_sec: Per-request timeout when this handler owns its client.
        """
        self._webhook_url = webhook_url.strip()
        self._client = client
        self._timeout = timeout_sec
        self._alerted: dict[str, None] = {}

    def _remember(self, tx_hash: str) -> None:
        self._alerted[tx_hash] = None
        while len(self._alerted) > MAX_ALERTED_TX:
            self._alerted.pop(next(iter(self._alerted)))

    async def handle(
        self,
        events: Sequence[DomainEvent],
        retractions: Sequence[RetractionEvent],
    ) -> None:
        whales = [e for e in events if isinstance(e, WhaleEvent)]
        retracted = [r for r in retractions if r.tx_hash in self._alerted]
        for event in whales:
            logger.info(
                "whale_alert",
                tx_hash=event.tx_hash,
                amount=event.amount,
                from_sender=event.from_sender,
                to_account=event.to_account,
                block_height=event.block_height,
            )
        for retraction in retracted:
            logger.info(
                "whale_alert_retracted",
                tx_hash=retraction.tx_hash,
                block_height=retraction.block_height,
            )
        if self._webhook_url and (whales or retracted):
            await self._post({
                "alerts": [e.to_dict() for e in whales],
                "retractions": [r.to_dict() for r in retracted],
            })
        for retraction in retracted:
            self._alerted.pop(retraction.tx_hash, None)
        for event in whales:
            self._remember(event.tx_hash)

    async def _post(self, body: dict[str, Any]) -> None:
        try:
            if self._client is not None:
                resp = await self._client.post(self._webhook_url, json=body)
            else:
                async with httpx.AsyncClient(timeout=httpx.Timeout(self._timeout)) as client:
                    resp = await client.post(self._webhook_url, json=body)
        except httpx.HTTPError as e:
            raise HandlerError(f"whale webhook request failed: {e}") from e
        if resp.status_code >= 300:
            raise HandlerError(f"whale webhook returned HTTP {resp.status_code}")
