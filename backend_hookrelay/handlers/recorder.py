"""
In-memory event recorder.

Keeps delivered domain events grouped by transaction hash, in delivery order.
A retraction removes everything recorded for its transaction, so the ledger
always reflects the canonical chain as far as deliveries have told us.
Only the most recent max_transactions transactions (and as many retraction
notices) are kept.
"""

from __future__ import annotations

import threading
from collections import OrderedDict, deque
from typing import Sequence

from backend_hookrelay.extractors.events import DomainEvent, EventKind, RetractionEvent
from backend_hookrelay.relay_logging import get_logger

logger = get_logger(__name__)

# Cap on recorded transactions and remembered retractions
MAX_RECORDED_TX = 10_000


class EventRecorder:
    def __init__(self, name: str = "recorder", *, max_transactions: int = MAX_RECORDED_TX) -> None:
        if max_transactions < 1:
            raise ValueError("max_transactions must be >= 1")
        self.name = name
        self._max_transactions = max_transactions
        self._by_tx: OrderedDict[str, list[DomainEvent]] = OrderedDict()
        self._lock = threading.Lock()
        self.retracted: deque[RetractionEvent] = deque(maxlen=max_transactions)

    def __len__(self) -> int:
        with self._lock:
            return len(self._by_tx)

    def handle(
        self,
        events: Sequence[DomainEvent],
        retractions: Sequence[RetractionEvent],
    ) -> None:
        with self._lock:
            removed = 0
            for retraction in retractions:
                dropped = self._by_tx.pop(retraction.tx_hash, None)
                removed += len(dropped or ())
                self.retracted.append(retraction)
            for event in events:
                self._by_tx.setdefault(event.tx_hash, []).append(event)
            evicted = 0
            while len(self._by_tx) > self._max_transactions:
                self._by_tx.popitem(last=False)
                evicted += 1
        logger.info(
            "recorder_batch_applied",
            handler=self.name,
            recorded=len(events),
            retracted=len(retractions),
            removed_events=removed,
            evicted_tx=evicted,
        )

    def events(self, kind: EventKind | None = None) -> list[DomainEvent]:
        """Recorded events still standing, in delivery order."""
        with self._lock:
            flat = [e for evs in self._by_tx.values() for e in evs]
        if kind is None:
            return flat
        return [e for e in flat if e.kind == kind]

    def for_transaction(self, tx_hash: str) -> list[DomainEvent]:
        with self._lock:
            return list(self._by_tx.get(tx_hash, ()))
