"""
Reorg reconciliation: confirmed-tip tracking, retractions for rolled-back
transactions, and duplicate-skip for at-least-once redelivery.
"""

from backend_hookrelay.reorg.models import (
    AnomalyFlag,
    AnomalyType,
    ReconcilePlan,
    RollbackOrder,
    SubscriptionState,
    SyncStatus,
)
from backend_hookrelay.reorg.reconciler import ReorgReconciler, order_rollback

__all__ = [
    "AnomalyFlag",
    "AnomalyType",
    "ReconcilePlan",
    "ReorgReconciler",
    "RollbackOrder",
    "SubscriptionState",
    "SyncStatus",
    "order_rollback",
]
