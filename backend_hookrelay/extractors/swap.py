"""
DEX swap extractor.

Scans receipt events for topic "swap" carrying numeric dx / dy and non-empty
token_x / token_y. Amounts stay in base units; display scaling is left to
presentation layers.
"""

from __future__ import annotations

from typing import Any, Iterator

from backend_hookrelay.extractors.base import Extractor
from backend_hookrelay.extractors.events import EventKind, SwapEvent
from backend_hookrelay.ingestion.models import Transaction
from backend_hookrelay.ingestion.parser import parse_int

SWAP_TOPIC = "swap"


def _token(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class SwapExtractor(Extractor):
    kind = EventKind.SWAP

    def _extract(self, transaction: Transaction) -> Iterator[SwapEvent]:
        for event in transaction.metadata.receipt_events:
            if event.topic != SWAP_TOPIC:
                continue
            data = event.data
            dx = parse_int(data.get("dx"))
            dy = parse_int(data.get("dy"))
            token_x = _token(data.get("token_x"))
            token_y = _token(data.get("token_y"))
            if dx is None or dy is None or token_x is None or token_y is None:
                continue
            yield SwapEvent(
                amount_in=dx,
                amount_out=dy,
                token_in=token_x,
                token_out=token_y,
                block_height=transaction.block.index,
                tx_hash=transaction.hash,
                sender=transaction.metadata.sender,
            )
