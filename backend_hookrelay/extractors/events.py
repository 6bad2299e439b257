"""
Domain events projected from delivered transactions.

Tagged variants keyed by EventKind. Each variant is validated once, when an
extractor builds it, so handlers can rely on every field being present.
RetractionEvent is the compensating signal emitted for rolled-back
transactions; it is not a DomainEvent.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class EventKind(str, Enum):
    SWAP = "swap"
    WHALE_TRANSFER = "whale_transfer"
    LIQUIDITY = "liquidity"


class LiquidityKind(str, Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class SwapEvent:
    """DEX swap; amounts in base units."""

    amount_in: int
    amount_out: int
    token_in: str
    token_out: str
    block_height: int
    tx_hash: str
    sender: str = ""

    kind = EventKind.SWAP

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "amount_in": self.amount_in,
            "amount_out": self.amount_out,
            "token_in": self.token_in,
            "token_out": self.token_out,
            "block_height": self.block_height,
            "tx_hash": self.tx_hash,
            "sender": self.sender,
        }


@dataclass(frozen=True)
class WhaleEvent:
    """Credit at or above the configured whale threshold."""

    amount: int
    from_sender: str
    to_account: str
    block_height: int
    tx_hash: str
    currency: str | None = None

    kind = EventKind.WHALE_TRANSFER

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "amount": self.amount,
            "from_sender": self.from_sender,
            "to_account": self.to_account,
            "block_height": self.block_height,
            "tx_hash": self.tx_hash,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class LiquidityEvent:
    """Liquidity added (mint) or removed (burn)."""

    liquidity_kind: LiquidityKind
    actor: str
    block_height: int
    tx_hash: str
    pool: str | None = None

    kind = EventKind.LIQUIDITY

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "liquidity_kind": self.liquidity_kind.value,
            "actor": self.actor,
            "block_height": self.block_height,
            "tx_hash": self.tx_hash,
            "pool": self.pool,
        }


DomainEvent = Union[SwapEvent, WhaleEvent, LiquidityEvent]


@dataclass(frozen=True)
class RetractionEvent:
    """A previously delivered transaction was rolled back; undo its effects."""

    subscription_id: str
    tx_hash: str
    block_height: int
    block_hash: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "subscription_id": self.subscription_id,
            "tx_hash": self.tx_hash,
            "block_height": self.block_height,
            "block_hash": self.block_hash,
        }
