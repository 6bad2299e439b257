"""
Subscription state store interface and in-memory backend.

The reconciler needs get/put per subscription with atomic (non-interleaved)
semantics per key. InMemoryStateStore is enough for a single-process
deployment; multi-instance deployments need a shared backend (SqlStateStore).
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from backend_hookrelay.reorg.models import SubscriptionState


class StateStore(Protocol):
    def get(self, subscription_id: str) -> SubscriptionState | None:
        ...

    def put(self, subscription_id: str, state: SubscriptionState) -> None:
        ...


class InMemoryStateStore:
    """Thread-safe dict-backed store. State is lost on restart."""

    def __init__(self) -> None:
        self._states: dict[str, SubscriptionState] = {}
        self._lock = threading.Lock()

    def get(self, subscription_id: str) -> SubscriptionState | None:
        with self._lock:
            return self._states.get(subscription_id)

    def put(self, subscription_id: str, state: SubscriptionState) -> None:
        with self._lock:
            self._states[subscription_id] = state

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)
