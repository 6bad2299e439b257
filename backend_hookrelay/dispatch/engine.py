"""
Dispatch engine: one invocation per delivered batch.

Sequence: validate shape → resolve handlers → plan reconciliation → commit
confirmed state → extract domain events from accepted apply blocks (block
order, then transaction order) → deliver events and retractions to every
resolved handler concurrently → aggregate per-handler results.

Batches for one subscription run strictly one at a time (per-subscription
asyncio.Lock held from planning through delivery, released on every exit
path). Batches for different subscriptions run concurrently; state store
calls run in the default executor. A handler failure is recorded on the
outcome and never blocks its siblings. StorageError and DispatchTimeout
propagate so the sender retries the whole batch. The deadline only covers the
steps before the commit: a timeout never leaves committed state behind
undelivered.
"""

from __future__ import annotations

import asyncio
import inspect
from collections import Counter
from typing import Any, Mapping, Sequence

from backend_hookrelay.core.exceptions import DispatchTimeout
from backend_hookrelay.dispatch.models import STATUS_ERROR, BatchOutcome, HandlerResult
from backend_hookrelay.extractors.base import Extractor
from backend_hookrelay.extractors.events import DomainEvent, RetractionEvent
from backend_hookrelay.ingestion.models import Batch, Block
from backend_hookrelay.ingestion.parser import parse_batch
from backend_hookrelay.relay_logging import bind_subscription, get_logger
from backend_hookrelay.reorg.models import ReconcilePlan
from backend_hookrelay.reorg.reconciler import ReorgReconciler
from backend_hookrelay.routing.router import HandlerBinding, SubscriptionRouter

logger = get_logger(__name__)


def _extract_for_bindings(
    bindings: Sequence[HandlerBinding],
    blocks: Sequence[Block],
) -> tuple[dict[str, tuple[DomainEvent, ...]], Counter]:
    """
    Run each distinct extractor once over every transaction of blocks.

    Returns events per binding name (transaction order, then the binding's
    extractor order) and counts per event kind.
    """
    transactions = [tx for block in blocks for tx in block.transactions]
    per_extractor: dict[int, list[tuple[DomainEvent, ...]]] = {}
    extractors: list[Extractor] = []
    for binding in bindings:
        for extractor in binding.extractors:
            if id(extractor) not in per_extractor:
                per_extractor[id(extractor)] = [extractor.extract(tx) for tx in transactions]
                extractors.append(extractor)

    counts: Counter = Counter()
    for extractor in extractors:
        for events in per_extractor[id(extractor)]:
            for event in events:
                counts[event.kind.value] += 1

    by_binding: dict[str, tuple[DomainEvent, ...]] = {}
    for binding in bindings:
        by_binding[binding.name] = tuple(
            event
            for i in range(len(transactions))
            for extractor in binding.extractors
            for event in per_extractor[id(extractor)][i]
        )
    return by_binding, counts


class DispatchEngine:
    def __init__(
        self,
        router: SubscriptionRouter,
        reconciler: ReorgReconciler,
        *,
        timeout_sec: float | None = None,
    ) -> None:
        """
        Args:
            router: Resolves subscription ids to handler bindings.
            reconciler: Owns subscription state; plans and commits transitions.
            timeout_sec: Deadline for the lock wait plus planning of one
                process() call; None disables it. Expiry raises
                DispatchTimeout before any state is written.
        """
        self._router = router
        self._reconciler = reconciler
        self._timeout = timeout_sec
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def reconciler(self) -> ReorgReconciler:
        return self._reconciler

    def _claim_lock(self, subscription_id: str) -> asyncio.Lock:
        lock = self._locks.get(subscription_id)
        if lock is None:
            lock = self._locks[subscription_id] = asyncio.Lock()
        self._lock_users[subscription_id] = self._lock_users.get(subscription_id, 0) + 1
        return lock

    def _drop_lock(self, subscription_id: str) -> None:
        """Forget the subscription's lock once no caller holds or awaits it."""
        users = self._lock_users.get(subscription_id, 0) - 1
        if users > 0:
            self._lock_users[subscription_id] = users
            return
        self._lock_users.pop(subscription_id, None)
        self._locks.pop(subscription_id, None)

    async def _before_deadline(
        self,
        awaitable: Any,
        deadline: float | None,
        batch: Batch,
        stage: str,
    ) -> Any:
        if deadline is None:
            return await awaitable
        remaining = max(deadline - asyncio.get_running_loop().time(), 0.0)
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError as e:
            logger.error(
                "dispatch_timeout",
                subscription_id=batch.subscription_id,
                stage=stage,
                timeout_sec=self._timeout,
            )
            raise DispatchTimeout(
                f"batch for {batch.subscription_id} exceeded {self._timeout}s while {stage}"
            ) from e

    async def process(self, batch: Batch | Mapping[str, Any]) -> BatchOutcome:
        """
        Process one batch end to end.

        The deadline covers waiting for the subscription lock and planning.
        Once planning succeeds the commit and every delivery run to completion,
        even if the caller is cancelled, so a committed reorg is never left
        without its retractions.

        Raises:
            StructuralError: payload shape invalid (before any state is touched).
            StorageError: subscription state could not be read or written.
            DispatchTimeout: the deadline expired; nothing was committed.
        """
        if not isinstance(batch, Batch):
            batch = parse_batch(batch)
        sub_id = batch.subscription_id
        log = bind_subscription(sub_id)
        bindings = self._router.resolve(sub_id)
        if not bindings:
            log.info(
                "dispatch_unrouted_subscription",
                apply_blocks=len(batch.apply),
                rollback_blocks=len(batch.rollback),
            )
            return BatchOutcome(subscription_id=sub_id)

        loop = asyncio.get_running_loop()
        deadline = None if self._timeout is None else loop.time() + self._timeout
        lock = self._claim_lock(sub_id)
        try:
            await self._before_deadline(lock.acquire(), deadline, batch, "waiting for lock")
        except BaseException:
            self._drop_lock(sub_id)
            raise
        try:
            # Store I/O runs off the event loop
            plan = await self._before_deadline(
                loop.run_in_executor(None, self._reconciler.plan, batch),
                deadline,
                batch,
                "planning",
            )
        except BaseException:
            lock.release()
            self._drop_lock(sub_id)
            raise
        return await asyncio.shield(self._commit_and_deliver(batch, bindings, plan, lock))

    async def _commit_and_deliver(
        self,
        batch: Batch,
        bindings: list[HandlerBinding],
        plan: ReconcilePlan,
        lock: asyncio.Lock,
    ) -> BatchOutcome:
        log = bind_subscription(batch.subscription_id)
        try:
            await asyncio.get_running_loop().run_in_executor(None, self._reconciler.commit, plan)

            outcome = BatchOutcome(subscription_id=batch.subscription_id)
            outcome.anomalies = list(plan.anomalies)
            outcome.applied_heights = [b.index for b in plan.accepted]
            outcome.skipped_heights = list(plan.skipped_heights)
            outcome.rolled_back_heights = list(plan.rolled_back_heights)
            outcome.retractions = len(plan.retractions)

            events_by_binding, counts = _extract_for_bindings(bindings, plan.accepted)
            outcome.event_counts = dict(counts)
            retractions = tuple(plan.retractions)

            results = await asyncio.gather(*(
                self._deliver(binding, events_by_binding[binding.name], retractions)
                for binding in bindings
            ))
            outcome.handler_results = {b.name: r for b, r in zip(bindings, results)}
        finally:
            lock.release()
            self._drop_lock(batch.subscription_id)

        log.info(
            "dispatch_batch_processed",
            handlers=len(bindings),
            failed_handlers=outcome.failed_handlers,
            applied=outcome.applied_heights,
            skipped=outcome.skipped_heights,
            retractions=outcome.retractions,
            event_counts=outcome.event_counts,
            anomaly=outcome.has_anomaly,
        )
        return outcome

    async def _deliver(
        self,
        binding: HandlerBinding,
        events: tuple[DomainEvent, ...],
        retractions: tuple[RetractionEvent, ...],
    ) -> HandlerResult:
        delivered = len(events) + len(retractions)
        if not delivered:
            return HandlerResult(delivered=0)
        handle = binding.handler.handle
        try:
            if inspect.iscoroutinefunction(handle):
                await handle(events, retractions)
            else:
                # Plain handlers run in the executor so they cannot block the loop
                loop = asyncio.get_running_loop()
                result = await loop.run_in_executor(None, lambda: handle(events, retractions))
                if inspect.isawaitable(result):
                    await result
        except Exception as e:
            logger.exception(
                "dispatch_handler_failed",
                handler=binding.name,
                error=str(e),
            )
            return HandlerResult(
                status=STATUS_ERROR,
                error=str(e) or type(e).__name__,
                delivered=0,
            )
        return HandlerResult(delivered=delivered)
