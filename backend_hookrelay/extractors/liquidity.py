"""
Liquidity extractor: mint → add, burn → remove.

The actor is the event's own sender field when present, else the transaction
sender. The pool is taken from pool / pool_id, or token_x and token_y.
"""

from __future__ import annotations

from typing import Any, Iterator

from backend_hookrelay.extractors.base import Extractor
from backend_hookrelay.extractors.events import EventKind, LiquidityEvent, LiquidityKind
from backend_hookrelay.ingestion.models import Transaction

TOPIC_KINDS = {
    "mint": LiquidityKind.ADD,
    "burn": LiquidityKind.REMOVE,
}


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _pool(data: dict[str, Any]) -> str | None:
    pool = _text(data.get("pool")) or _text(data.get("pool_id"))
    if pool:
        return pool
    token_x, token_y = _text(data.get("token_x")), _text(data.get("token_y"))
    if token_x and token_y:
        return f"{token_x}/{token_y}"
    return None


class LiquidityExtractor(Extractor):
    kind = EventKind.LIQUIDITY

    def _extract(self, transaction: Transaction) -> Iterator[LiquidityEvent]:
        for event in transaction.metadata.receipt_events:
            liquidity_kind = TOPIC_KINDS.get(event.topic or "")
            if liquidity_kind is None:
                continue
            actor = _text(event.data.get("sender")) or _text(transaction.metadata.sender)
            if actor is None:
                continue
            yield LiquidityEvent(
                liquidity_kind=liquidity_kind,
                actor=actor,
                block_height=transaction.block.index,
                tx_hash=transaction.hash,
                pool=_pool(event.data),
            )
