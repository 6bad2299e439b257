"""
Reorg reconciler: per-subscription confirmed-tip state machine.

States: Uninitialized (no stored state) and Synced. For each batch:

1. Rollback blocks, in the configured order, are checked against the confirmed
   tip as it stood before the batch. A block above the tip was never delivered:
   it is flagged (rollback_ahead_of_confirmed) and produces nothing. A block the
   subscription confirmed yields one RetractionEvent per transaction. The tip
   then drops below the lowest rolled-back height.
2. Apply blocks at or below the (possibly lowered) tip are duplicates of an
   at-least-once redelivery: skipped and logged. Higher blocks are accepted in
   order and advance the tip.
3. The new state is written only by commit(), after the whole plan is built.

A rollback block counts as confirmed when its (height, hash) is in the tracked
history, when it is older than the oldest tracked height (too old to verify),
or when the subscription has no state yet. A tracked height with a different
hash means the block was already rolled back or never seen; it is skipped so
replaying a reorg batch does not retract twice.
"""

from __future__ import annotations

import time
from typing import Any, Callable

from backend_hookrelay.core.exceptions import StorageError
from backend_hookrelay.database.state_store import StateStore
from backend_hookrelay.extractors.events import RetractionEvent
from backend_hookrelay.ingestion.models import Batch, Block, BlockIdentifier
from backend_hookrelay.relay_logging import bind_subscription, get_logger
from backend_hookrelay.reorg.models import (
    AnomalyFlag,
    AnomalyType,
    ReconcilePlan,
    RollbackOrder,
    SubscriptionState,
    SyncStatus,
)

logger = get_logger(__name__)

DEFAULT_HISTORY_DEPTH = 128


def order_rollback(blocks: tuple[Block, ...], order: RollbackOrder) -> list[Block]:
    """Return rollback blocks in processing order."""
    if order == RollbackOrder.OLDEST_FIRST:
        return sorted(blocks, key=lambda b: b.index)
    if order == RollbackOrder.NEWEST_FIRST:
        return sorted(blocks, key=lambda b: b.index, reverse=True)
    return list(blocks)


def _is_monotonic(heights: list[int]) -> bool:
    pairs = list(zip(heights, heights[1:]))
    return all(a <= b for a, b in pairs) or all(a >= b for a, b in pairs)


class ReorgReconciler:
    """
    Plans and commits confirmed-state transitions for batches.

    The reconciler is the only writer of SubscriptionState. Callers must hold
    the subscription's lock across plan() and commit().
    """

    def __init__(
        self,
        store: StateStore,
        *,
        rollback_order: RollbackOrder = RollbackOrder.DELIVERED,
        history_depth: int = DEFAULT_HISTORY_DEPTH,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if history_depth < 1:
            raise ValueError("history_depth must be >= 1")
        self._store = store
        self._rollback_order = rollback_order
        self._history_depth = history_depth
        self._clock = clock

    @property
    def rollback_order(self) -> RollbackOrder:
        return self._rollback_order

    def _load(self, subscription_id: str) -> SubscriptionState | None:
        try:
            return self._store.get(subscription_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"failed to read state for {subscription_id}: {e}") from e

    def status(self, subscription_id: str) -> SyncStatus:
        state = self._load(subscription_id)
        return SyncStatus.SYNCED if state is not None else SyncStatus.UNINITIALIZED

    def plan(self, batch: Batch) -> ReconcilePlan:
        """Reconcile batch against stored state without writing anything."""
        sub_id = batch.subscription_id
        log = bind_subscription(sub_id)
        previous = self._load(sub_id)
        plan = ReconcilePlan(subscription_id=sub_id, previous=previous, next_state=None)

        confirmed = previous.last_confirmed_height if previous else None
        tip_hash = previous.last_confirmed_hash if previous else None
        known = {b.index: b.hash for b in previous.history} if previous else {}
        history = dict(known)

        self._plan_rollback(batch, plan, log, confirmed, known)
        if plan.rolled_back_heights:
            lowest = min(plan.rolled_back_heights)
            history = {h: x for h, x in history.items() if h < lowest}
            if confirmed is not None:
                confirmed = min(confirmed, lowest - 1)
                tip_hash = history.get(confirmed)

        for block in batch.apply:
            if confirmed is not None and block.index <= confirmed:
                tracked = history.get(block.index)
                if tracked is not None and tracked != block.hash:
                    plan.anomalies.append(AnomalyFlag(
                        type=AnomalyType.FORK_WITHOUT_ROLLBACK,
                        message=(
                            f"Apply block {block.index} hash differs from confirmed hash "
                            "without a matching rollback"
                        ),
                        block_height=block.index,
                        details={"delivered_hash": block.hash, "confirmed_hash": tracked},
                    ))
                    log.warning("reorg_fork_without_rollback", block_height=block.index)
                plan.skipped_heights.append(block.index)
                log.info(
                    "reorg_duplicate_block_skipped",
                    block_height=block.index,
                    confirmed_height=confirmed,
                )
                continue
            if (
                block.parent is not None
                and confirmed is not None
                and tip_hash is not None
                and block.parent.index == confirmed
                and block.parent.hash != tip_hash
            ):
                plan.anomalies.append(AnomalyFlag(
                    type=AnomalyType.FORK_WITHOUT_ROLLBACK,
                    message=f"Parent of apply block {block.index} is not the confirmed tip",
                    block_height=block.index,
                    details={"parent_hash": block.parent.hash, "confirmed_hash": tip_hash},
                ))
                log.warning("reorg_parent_mismatch", block_height=block.index)
            plan.accepted.append(block)
            confirmed = block.index
            tip_hash = block.hash
            history[block.index] = block.hash

        if confirmed is None:
            plan.next_state = None
        else:
            kept = sorted(history.items())[-self._history_depth:]
            if (
                previous is not None
                and previous.last_confirmed_height == confirmed
                and previous.last_confirmed_hash == tip_hash
                and [(b.index, b.hash) for b in previous.history] == kept
            ):
                plan.next_state = previous
            else:
                plan.next_state = SubscriptionState(
                    subscription_id=sub_id,
                    last_confirmed_height=confirmed,
                    last_confirmed_hash=tip_hash,
                    history=tuple(BlockIdentifier(index=h, hash=x) for h, x in kept),
                    updated_at=int(self._clock()),
                )
        return plan

    def _plan_rollback(
        self,
        batch: Batch,
        plan: ReconcilePlan,
        log: Any,
        confirmed: int | None,
        known: dict[int, str],
    ) -> None:
        blocks = order_rollback(batch.rollback, self._rollback_order)
        heights = [b.index for b in blocks]
        if self._rollback_order == RollbackOrder.DELIVERED and not _is_monotonic(heights):
            plan.anomalies.append(AnomalyFlag(
                type=AnomalyType.ROLLBACK_UNORDERED,
                message="Rollback blocks are neither ascending nor descending by height",
                details={"heights": heights},
            ))
            log.warning("reorg_rollback_unordered", heights=heights)

        oldest = min(known) if known else None
        seen: set[tuple[int, str]] = set()
        for block in blocks:
            key = (block.index, block.hash)
            if key in seen:
                continue
            seen.add(key)
            if confirmed is not None and block.index > confirmed:
                plan.anomalies.append(AnomalyFlag(
                    type=AnomalyType.ROLLBACK_AHEAD_OF_CONFIRMED,
                    message=(
                        f"Rollback of block {block.index} above confirmed height {confirmed}"
                    ),
                    block_height=block.index,
                    details={"confirmed_height": confirmed},
                ))
                log.warning(
                    "reorg_rollback_ahead_of_confirmed",
                    block_height=block.index,
                    confirmed_height=confirmed,
                )
                continue
            tracked = known.get(block.index)
            if tracked is not None and tracked != block.hash:
                log.info("reorg_rollback_already_applied", block_height=block.index)
                continue
            if tracked is None and oldest is not None and block.index >= oldest:
                # Inside the tracked window but never confirmed: nothing was delivered.
                log.info("reorg_rollback_unknown_block", block_height=block.index)
                continue
            plan.retractions.extend(
                RetractionEvent(
                    subscription_id=plan.subscription_id,
                    tx_hash=tx.hash,
                    block_height=block.index,
                    block_hash=block.hash,
                )
                for tx in block.transactions
            )
            plan.rolled_back_heights.append(block.index)
            log.info(
                "reorg_block_rolled_back",
                block_height=block.index,
                retractions=len(block.transactions),
            )

    def commit(self, plan: ReconcilePlan) -> None:
        """Persist plan.next_state when it differs from the stored state."""
        if not plan.state_changed or plan.next_state is None:
            return
        try:
            self._store.put(plan.subscription_id, plan.next_state)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"failed to write state for {plan.subscription_id}: {e}") from e
        logger.info(
            "reorg_state_advanced",
            subscription_id=plan.subscription_id,
            previous_height=plan.previous.last_confirmed_height if plan.previous else None,
            confirmed_height=plan.next_state.last_confirmed_height,
            confirmed_hash=plan.next_state.last_confirmed_hash,
        )

    def reconcile(self, batch: Batch) -> ReconcilePlan:
        """Plan and commit in one step."""
        plan = self.plan(batch)
        self.commit(plan)
        return plan
