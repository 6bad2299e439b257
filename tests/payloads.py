"""
Builders for delivery payloads (camelCase shape) used across the test suite.
"""

from __future__ import annotations

from typing import Any

SENDER = "SP2C2YFP12AJZB4MABJBAJ55XECVS7E4PMMZ89YZR"
RECIPIENT = "SP3K8BC0PPEVCV7NZ6QSRWPQ2JE9E5B6N3PA0KBR9"
TOKEN_X = "SP102V8P0F7JX67ARQ77WEA3D3CFB5XW39REDT0AM.token-wstx"
TOKEN_Y = "SP3K8BC0PPEVCV7NZ6QSRWPQ2JE9E5B6N3PA0KBR9.age000-governance-token"
WHALE_THRESHOLD = 1_000_000


def block_hash(index: int, fork: str = "a") -> str:
    return f"0x{fork}{index:063x}"


def credit(address: str, value: int, currency: str = "STX") -> dict[str, Any]:
    return {
        "type": "CREDIT",
        "account": {"address": address},
        "amount": {"value": value, "currency": {"symbol": currency, "decimals": 6}},
    }


def debit(address: str, value: int, currency: str = "STX") -> dict[str, Any]:
    return {
        "type": "DEBIT",
        "account": {"address": address},
        "amount": {"value": -value, "currency": {"symbol": currency, "decimals": 6}},
    }


def swap_event(dx: Any = 1000, dy: Any = 2500, token_x: Any = TOKEN_X, token_y: Any = TOKEN_Y) -> dict[str, Any]:
    return {"data": {"topic": "swap", "dx": dx, "dy": dy, "token_x": token_x, "token_y": token_y}}


def liquidity_event(topic: str, **fields: Any) -> dict[str, Any]:
    return {"data": {"topic": topic, **fields}}


def tx(
    tx_hash: str,
    *,
    success: bool = True,
    sender: str = SENDER,
    operations: list[dict[str, Any]] | None = None,
    events: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "identifier": {"hash": tx_hash},
        "operations": operations or [],
        "metadata": {
            "success": success,
            "sender": sender,
            "receiptEvents": events or [],
        },
    }


def block(
    index: int,
    txs: list[dict[str, Any]] | None = None,
    *,
    fork: str = "a",
    parent: dict[str, Any] | None = None,
) -> dict[str, Any]:
    out: dict[str, Any] = {
        "identifier": {"index": index, "hash": block_hash(index, fork)},
        "timestamp": 1_700_000_000 + index * 10,
        "transactions": txs or [],
    }
    if parent is not None:
        out["parent"] = parent
    return out


def batch(
    subscription_id: str,
    apply: list[dict[str, Any]] | None = None,
    rollback: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    return {
        "apply": apply or [],
        "rollback": rollback or [],
        "subscriptionId": subscription_id,
        "isStreaming": True,
    }
