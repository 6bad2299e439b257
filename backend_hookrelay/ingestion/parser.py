"""
Batch parser: pushed JSON payloads to structured Batch models.

Accepts both the camelCase delivery shape (subscriptionId, isStreaming,
metadata.receiptEvents) and the chain-indexing service's native shape
(chainhook.uuid, block_identifier, transaction_identifier,
metadata.receipt.events).

Only what reconciliation depends on is structural: the apply/rollback arrays,
the subscription identifier, block identifiers and transaction hashes. Those
raise StructuralError. Everything the extractors read degrades instead: a bad
operation or receipt event is dropped, a missing success flag counts as failed.
"""

from __future__ import annotations

from typing import Any

from backend_hookrelay.core.exceptions import StructuralError
from backend_hookrelay.ingestion.models import (
    Amount,
    Batch,
    Block,
    BlockIdentifier,
    Operation,
    ReceiptEvent,
    Transaction,
    TransactionMetadata,
)
from backend_hookrelay.relay_logging import get_logger

logger = get_logger(__name__)


def _first(obj: dict[str, Any], *keys: str) -> Any:
    """Return the value of the first key present in obj (None if none are)."""
    for key in keys:
        if key in obj:
            return obj[key]
    return None


def parse_int(value: Any) -> int | None:
    """
    Parse a base-unit integer: int, or a digit string with optional Clarity "u" prefix.

    Booleans and floats are rejected; returns None when not numeric.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip()
        if s.startswith("u"):
            s = s[1:]
        sign = 1
        if s.startswith("-"):
            sign, s = -1, s[1:]
        # isascii: str.isdigit also accepts superscripts and other non-decimal digits
        if s.isascii() and s.isdigit():
            try:
                return sign * int(s)
            except ValueError:
                # Longer than the interpreter's int string conversion limit
                return None
    return None


def _parse_block_identifier(raw: Any, path: str) -> BlockIdentifier:
    if not isinstance(raw, dict):
        raise StructuralError("block identifier must be an object", field=path)
    index = raw.get("index")
    if isinstance(index, bool) or not isinstance(index, int):
        raise StructuralError("index must be an integer", field=f"{path}.index")
    block_hash = raw.get("hash")
    if not isinstance(block_hash, str) or not block_hash:
        raise StructuralError("hash must be a non-empty string", field=f"{path}.hash")
    return BlockIdentifier(index=index, hash=block_hash)


def _parse_amount(raw: Any) -> Amount | None:
    if not isinstance(raw, dict):
        return None
    value = parse_int(raw.get("value"))
    if value is None:
        return None
    currency = raw.get("currency")
    symbol: str | None = None
    decimals: int | None = None
    if isinstance(currency, dict):
        symbol = currency.get("symbol") if isinstance(currency.get("symbol"), str) else None
        decimals = parse_int(currency.get("decimals"))
    elif isinstance(currency, str):
        symbol = currency
    return Amount(value=value, currency=symbol, decimals=decimals)


def _parse_operation(raw: Any) -> Operation | None:
    if not isinstance(raw, dict):
        return None
    op_type = raw.get("type")
    if not isinstance(op_type, str) or not op_type:
        return None
    account = raw.get("account")
    address = account.get("address") if isinstance(account, dict) else None
    if not isinstance(address, str):
        address = ""
    return Operation(
        type=op_type.strip().lower(),
        account=address,
        amount=_parse_amount(raw.get("amount")),
    )


def _receipt_event_list(metadata: dict[str, Any]) -> list[Any]:
    events = metadata.get("receiptEvents")
    if events is None:
        receipt = metadata.get("receipt")
        if isinstance(receipt, dict):
            events = receipt.get("events")
    return events if isinstance(events, list) else []


def _parse_metadata(raw: Any) -> TransactionMetadata:
    if not isinstance(raw, dict):
        return TransactionMetadata(success=False, sender="")
    receipt_events = tuple(
        ReceiptEvent(data=item["data"])
        for item in _receipt_event_list(raw)
        if isinstance(item, dict) and isinstance(item.get("data"), dict)
    )
    sender = raw.get("sender")
    return TransactionMetadata(
        success=raw.get("success") is True,
        sender=sender if isinstance(sender, str) else "",
        receipt_events=receipt_events,
    )


def _parse_transaction(raw: Any, block: BlockIdentifier, path: str) -> Transaction:
    if not isinstance(raw, dict):
        raise StructuralError("transaction must be an object", field=path)
    identifier = _first(raw, "identifier", "transaction_identifier", "transactionIdentifier")
    tx_hash = identifier.get("hash") if isinstance(identifier, dict) else None
    if not isinstance(tx_hash, str) or not tx_hash:
        raise StructuralError("transaction hash is required", field=f"{path}.identifier.hash")
    raw_ops = raw.get("operations")
    operations = tuple(
        op for op in (_parse_operation(o) for o in (raw_ops if isinstance(raw_ops, list) else []))
        if op is not None
    )
    return Transaction(
        hash=tx_hash,
        operations=operations,
        metadata=_parse_metadata(raw.get("metadata")),
        block=block,
    )


def parse_block(raw: Any, path: str = "block") -> Block:
    """Parse one block object. Raises StructuralError when its identity is unusable."""
    if not isinstance(raw, dict):
        raise StructuralError("block must be an object", field=path)
    identifier = _parse_block_identifier(
        _first(raw, "identifier", "block_identifier", "blockIdentifier"), f"{path}.identifier"
    )
    raw_parent = _first(raw, "parent", "parent_block_identifier", "parentBlockIdentifier")
    parent = None
    if raw_parent is not None:
        parent = _parse_block_identifier(raw_parent, f"{path}.parent")
    timestamp = parse_int(raw.get("timestamp"))
    raw_txs = raw.get("transactions")
    if raw_txs is None:
        raw_txs = []
    if not isinstance(raw_txs, list):
        raise StructuralError("transactions must be an array", field=f"{path}.transactions")
    transactions = tuple(
        _parse_transaction(tx, identifier, f"{path}.transactions[{i}]")
        for i, tx in enumerate(raw_txs)
    )
    return Block(
        identifier=identifier,
        timestamp=timestamp if timestamp is not None else 0,
        transactions=transactions,
        parent=parent,
    )


def _parse_block_list(payload: dict[str, Any], key: str) -> tuple[Block, ...]:
    if key not in payload:
        raise StructuralError("field is required", field=key)
    raw = payload[key]
    if not isinstance(raw, list):
        raise StructuralError("must be an array", field=key)
    return tuple(parse_block(item, f"{key}[{i}]") for i, item in enumerate(raw))


def _subscription_fields(payload: dict[str, Any]) -> tuple[Any, Any]:
    """Return (subscription id, streaming flag) from either payload shape."""
    sub_id = _first(payload, "subscriptionId", "subscription_id")
    streaming = _first(payload, "isStreaming", "is_streaming")
    hook = payload.get("chainhook")
    if isinstance(hook, dict):
        if sub_id is None:
            sub_id = hook.get("uuid")
        if streaming is None:
            streaming = hook.get("is_streaming_blocks")
    return sub_id, streaming


def parse_batch(payload: Any) -> Batch:
    """
    Parse a delivered JSON body into a Batch.

    Raises:
        StructuralError: payload is not an object, apply/rollback are absent or
            not arrays, the subscription id is missing, a block identifier or
            transaction hash is unusable, or apply heights decrease.
    """
    if not isinstance(payload, dict):
        raise StructuralError("batch must be a JSON object")
    sub_id, streaming = _subscription_fields(payload)
    if not isinstance(sub_id, str) or not sub_id.strip():
        raise StructuralError("subscription identifier is required", field="subscriptionId")
    rollback = _parse_block_list(payload, "rollback")
    apply = _parse_block_list(payload, "apply")
    batch = Batch(
        subscription_id=sub_id.strip(),
        apply=apply,
        rollback=rollback,
        is_streaming=streaming is True,
    )
    logger.debug(
        "batch_parsed",
        subscription_id=batch.subscription_id,
        apply_blocks=len(apply),
        rollback_blocks=len(rollback),
    )
    return batch
