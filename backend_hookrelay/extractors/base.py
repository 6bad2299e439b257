"""
Extractor contract: transaction in, domain events out.

Extractors are pure and never raise. Failed transactions contribute nothing;
malformed or absent fields degrade to "no event". Several extractors may run
over the same transaction, with no precedence between them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Sequence

from backend_hookrelay.extractors.events import DomainEvent, EventKind
from backend_hookrelay.ingestion.models import Transaction
from backend_hookrelay.relay_logging import get_logger

logger = get_logger(__name__)


class Extractor(ABC):
    """Base class for extractors. Subclasses implement _extract for successful transactions."""

    kind: EventKind

    @property
    def name(self) -> str:
        return self.kind.value

    def extract(self, transaction: Transaction) -> tuple[DomainEvent, ...]:
        if not transaction.success:
            return ()
        try:
            return tuple(self._extract(transaction))
        except Exception as e:
            # Upstream schema drift must not fail the batch.
            logger.warning(
                "extractor_failed",
                extractor=self.name,
                tx_hash=transaction.hash,
                error=str(e),
            )
            return ()

    @abstractmethod
    def _extract(self, transaction: Transaction) -> Iterable[DomainEvent]:
        ...


def extract_all(
    extractors: Sequence[Extractor],
    transactions: Iterable[Transaction],
) -> list[DomainEvent]:
    """Run every extractor over every transaction, in transaction order then extractor order."""
    events: list[DomainEvent] = []
    for tx in transactions:
        for extractor in extractors:
            events.extend(extractor.extract(tx))
    return events
