"""
Data models for delivered batches.

Immutable dataclasses for the generic block / transaction / operation model
pushed by the chain-indexing service. Built by ingestion.parser; consumed by
the reconciler and the extractors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from backend_hookrelay.core.exceptions import StructuralError

OPERATION_CREDIT = "credit"
OPERATION_DEBIT = "debit"


@dataclass(frozen=True)
class BlockIdentifier:
    """Block height and hash. Immutable once observed."""

    index: int
    hash: str

    def to_dict(self) -> dict[str, Any]:
        return {"index": self.index, "hash": self.hash}


@dataclass(frozen=True)
class Amount:
    value: int
    """Signed value in base units."""
    currency: str | None = None
    """Currency symbol if delivered."""
    decimals: int | None = None


@dataclass(frozen=True)
class Operation:
    """Balance-level operation (credit, debit, ...)."""

    type: str
    """Lower-cased operation type."""
    account: str
    amount: Amount | None = None

    @property
    def is_credit(self) -> bool:
        return self.type == OPERATION_CREDIT


@dataclass(frozen=True)
class ReceiptEvent:
    """
    One receipt event emitted during execution.

    data holds the topic-specific payload exactly as delivered; the extractors
    validate the fields they need for their topic.
    """

    data: dict[str, Any]

    @property
    def topic(self) -> str | None:
        topic = self.data.get("topic")
        return topic if isinstance(topic, str) else None


@dataclass(frozen=True)
class TransactionMetadata:
    success: bool
    sender: str
    receipt_events: tuple[ReceiptEvent, ...] = ()


@dataclass(frozen=True)
class Transaction:
    """
    Transaction with its operations and receipt.

    block is the identifier of the enclosing block, stamped by the parser so a
    transaction can be projected into domain events on its own.
    """

    hash: str
    operations: tuple[Operation, ...]
    metadata: TransactionMetadata
    block: BlockIdentifier

    @property
    def success(self) -> bool:
        return self.metadata.success


@dataclass(frozen=True)
class Block:
    identifier: BlockIdentifier
    timestamp: int
    transactions: tuple[Transaction, ...] = ()
    parent: BlockIdentifier | None = None

    @property
    def index(self) -> int:
        return self.identifier.index

    @property
    def hash(self) -> str:
        return self.identifier.hash


@dataclass(frozen=True)
class Batch:
    """
    One delivery: rollback blocks, then apply blocks, for one subscription.

    Rollback blocks are logically un-applied before apply blocks are replayed.
    Apply block heights are non-decreasing; construction fails with
    StructuralError otherwise.
    """

    subscription_id: str
    apply: tuple[Block, ...] = ()
    rollback: tuple[Block, ...] = ()
    is_streaming: bool = False

    def __post_init__(self) -> None:
        previous: int | None = None
        for block in self.apply:
            if previous is not None and block.index < previous:
                raise StructuralError(
                    f"apply block heights must be non-decreasing ({block.index} after {previous})",
                    field="apply",
                )
            previous = block.index

    @property
    def is_empty(self) -> bool:
        return not self.apply and not self.rollback

    def apply_transactions(self) -> list[Transaction]:
        """All apply transactions in block order then transaction order."""
        return [tx for block in self.apply for tx in block.transactions]
