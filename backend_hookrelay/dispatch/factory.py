"""
Wiring: settings → router, reconciler and engine.

Every configured value (whale threshold, namespaces, rollback order, history
depth, timeout) is passed explicitly into the component that uses it.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend_hookrelay.config.settings import Settings
from backend_hookrelay.database import StateStore, create_state_store
from backend_hookrelay.dispatch.engine import DispatchEngine
from backend_hookrelay.extractors import LiquidityExtractor, SwapExtractor, WhaleExtractor
from backend_hookrelay.handlers.alerts import WhaleAlertHandler
from backend_hookrelay.handlers.recorder import EventRecorder
from backend_hookrelay.relay_logging import get_logger
from backend_hookrelay.reorg.reconciler import ReorgReconciler
from backend_hookrelay.routing.router import HandlerBinding, SubscriptionRouter

logger = get_logger(__name__)


@dataclass
class RelayRuntime:
    """Objects the API layer needs: the engine and the state store behind it."""

    engine: DispatchEngine
    store: StateStore
    router: SubscriptionRouter


def build_default_router(settings: Settings) -> SubscriptionRouter:
    """Bind the swap, whale and liquidity namespaces to their pipelines."""
    router = SubscriptionRouter()
    whale_extractor = WhaleExtractor(settings.whale_threshold, currency=settings.whale_currency)
    router.bind_prefix(
        settings.swap_namespace,
        HandlerBinding("swap_recorder", EventRecorder("swap_recorder"), (SwapExtractor(),)),
    )
    router.bind_prefix(
        settings.whale_namespace,
        HandlerBinding(
            "whale_alerts",
            WhaleAlertHandler(settings.alert_webhook_url),
            (whale_extractor,),
        ),
    )
    router.bind_prefix(
        settings.liquidity_namespace,
        HandlerBinding(
            "liquidity_recorder",
            EventRecorder("liquidity_recorder"),
            (LiquidityExtractor(),),
        ),
    )
    return router


def build_runtime(
    settings: Settings,
    *,
    store: StateStore | None = None,
    router: SubscriptionRouter | None = None,
) -> RelayRuntime:
    store = store if store is not None else create_state_store(settings.state_store_url)
    router = router if router is not None else build_default_router(settings)
    reconciler = ReorgReconciler(
        store,
        rollback_order=settings.rollback_order,
        history_depth=settings.reorg_history_depth,
    )
    engine = DispatchEngine(router, reconciler, timeout_sec=settings.process_timeout_sec)
    logger.info(
        "relay_runtime_built",
        bindings=len(router),
        rollback_order=settings.rollback_order.value,
        whale_threshold=settings.whale_threshold,
        store=type(store).__name__,
    )
    return RelayRuntime(engine=engine, store=store, router=router)
