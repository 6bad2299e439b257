"""
Ingestion package: delivered batch model and payload parser.

Turns pushed apply/rollback JSON bodies into immutable Batch objects that the
reconciler and extractors consume.
"""

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
from backend_hookrelay.ingestion.parser import parse_batch, parse_block

__all__ = [
    "Amount",
    "Batch",
    "Block",
    "BlockIdentifier",
    "Operation",
    "ReceiptEvent",
    "Transaction",
    "TransactionMetadata",
    "parse_batch",
    "parse_block",
]
