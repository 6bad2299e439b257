"""
Data models for reorg reconciliation.

SubscriptionState (confirmed tip plus a bounded history of confirmed blocks),
explainable anomaly flags, and the ReconcilePlan produced for one batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from backend_hookrelay.extractors.events import RetractionEvent
from backend_hookrelay.ingestion.models import Block, BlockIdentifier


class RollbackOrder(str, Enum):
    """How rollback blocks within one batch are ordered before processing."""

    DELIVERED = "delivered"
    OLDEST_FIRST = "oldest_first"
    NEWEST_FIRST = "newest_first"


class SyncStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    SYNCED = "synced"


class AnomalyType(str, Enum):
    ROLLBACK_AHEAD_OF_CONFIRMED = "rollback_ahead_of_confirmed"
    FORK_WITHOUT_ROLLBACK = "fork_without_rollback"
    ROLLBACK_UNORDERED = "rollback_unordered"


@dataclass(frozen=True)
class AnomalyFlag:
    """
    Non-fatal ordering violation seen while reconciling a batch.

    Processing continues; the flag is surfaced on the batch outcome so the
    caller can decide on retry or alerting.
    """

    type: AnomalyType
    message: str
    block_height: int | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "block_height": self.block_height,
            "details": self.details,
        }


@dataclass(frozen=True)
class SubscriptionState:
    """
    Confirmed position of one subscription.

    history holds recently confirmed blocks in ascending height order, at most
    one per height, including the tip when its hash is known.
    last_confirmed_hash is None after a rollback-only batch until the next
    apply block is confirmed.
    """

    subscription_id: str
    last_confirmed_height: int
    last_confirmed_hash: str | None
    history: tuple[BlockIdentifier, ...] = ()
    updated_at: int | None = None

    def hash_at(self, height: int) -> str | None:
        for block_id in self.history:
            if block_id.index == height:
                return block_id.hash
        return None

    @property
    def oldest_tracked_height(self) -> int | None:
        return self.history[0].index if self.history else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "subscription_id": self.subscription_id,
            "last_confirmed_height": self.last_confirmed_height,
            "last_confirmed_hash": self.last_confirmed_hash,
            "history": [b.to_dict() for b in self.history],
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SubscriptionState":
        return cls(
            subscription_id=data["subscription_id"],
            last_confirmed_height=int(data["last_confirmed_height"]),
            last_confirmed_hash=data.get("last_confirmed_hash"),
            history=tuple(
                BlockIdentifier(index=int(b["index"]), hash=b["hash"])
                for b in data.get("history") or []
            ),
            updated_at=data.get("updated_at"),
        )


@dataclass
class ReconcilePlan:
    """
    Result of reconciling one batch against the stored state.

    Nothing is written until the plan is committed. accepted holds the apply
    blocks whose transactions must be extracted and delivered; skipped_heights
    the duplicate apply heights absorbed under at-least-once delivery.
    """

    subscription_id: str
    previous: SubscriptionState | None
    next_state: SubscriptionState | None
    retractions: list[RetractionEvent] = field(default_factory=list)
    accepted: list[Block] = field(default_factory=list)
    skipped_heights: list[int] = field(default_factory=list)
    rolled_back_heights: list[int] = field(default_factory=list)
    anomalies: list[AnomalyFlag] = field(default_factory=list)

    @property
    def state_changed(self) -> bool:
        return self.next_state is not None and self.next_state != self.previous

    @property
    def status(self) -> SyncStatus:
        return SyncStatus.SYNCED if self.next_state is not None else SyncStatus.UNINITIALIZED
