"""
Whale transfer extractor.

Flags credit operations whose absolute amount is at or above a threshold.
The threshold (and optional currency filter) is passed in at construction so
several configurations can coexist in one process.
"""

from __future__ import annotations

from typing import Iterator

from backend_hookrelay.extractors.base import Extractor
from backend_hookrelay.extractors.events import EventKind, WhaleEvent
from backend_hookrelay.ingestion.models import Transaction


class WhaleExtractor(Extractor):
    kind = EventKind.WHALE_TRANSFER

    def __init__(self, threshold: int, currency: str | None = None) -> None:
        """
        Args:
            threshold: Minimum abs(amount.value), in base units, that counts as a whale transfer.
            currency: Only consider credits in this currency symbol; None accepts any.
        """
        if threshold < 0:
            raise ValueError("threshold must be non-negative")
        self.threshold = threshold
        self.currency = currency

    def _extract(self, transaction: Transaction) -> Iterator[WhaleEvent]:
        for op in transaction.operations:
            if not op.is_credit or op.amount is None:
                continue
            if self.currency is not None and op.amount.currency != self.currency:
                continue
            amount = abs(op.amount.value)
            if amount < self.threshold:
                continue
            yield WhaleEvent(
                amount=amount,
                from_sender=transaction.metadata.sender,
                to_account=op.account,
                block_height=transaction.block.index,
                tx_hash=transaction.hash,
                currency=op.amount.currency,
            )
