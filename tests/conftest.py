"""
Pytest fixtures for HookRelay tests: in-memory store, reconciler, router with
recording handlers, engine, and a FastAPI TestClient wired to them.
"""

from __future__ import annotations

import pytest

from backend_hookrelay.config.settings import Settings
from backend_hookrelay.database import InMemoryStateStore
from backend_hookrelay.dispatch.engine import DispatchEngine
from backend_hookrelay.dispatch.factory import build_runtime
from backend_hookrelay.extractors import LiquidityExtractor, SwapExtractor, WhaleExtractor
from backend_hookrelay.handlers.recorder import EventRecorder
from backend_hookrelay.reorg.reconciler import ReorgReconciler
from backend_hookrelay.routing.router import HandlerBinding, SubscriptionRouter

from payloads import WHALE_THRESHOLD


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def reconciler(store):
    return ReorgReconciler(store, clock=lambda: 1_700_000_000)


@pytest.fixture
def swap_recorder():
    return EventRecorder("swap_recorder")


@pytest.fixture
def whale_recorder():
    return EventRecorder("whale_recorder")


@pytest.fixture
def router(swap_recorder, whale_recorder):
    """swap: → swap recorder; whale: → whale recorder; dex: → both, with liquidity."""
    r = SubscriptionRouter()
    swap = SwapExtractor()
    whale = WhaleExtractor(WHALE_THRESHOLD)
    r.bind_prefix("swap:", HandlerBinding("swap_recorder", swap_recorder, (swap,)))
    r.bind_prefix("whale:", HandlerBinding("whale_recorder", whale_recorder, (whale,)))
    r.bind_prefix("dex:", HandlerBinding("swap_recorder", swap_recorder, (swap, LiquidityExtractor())))
    r.bind_prefix("dex:", HandlerBinding("whale_recorder", whale_recorder, (whale,)))
    return r


@pytest.fixture
def engine(router, reconciler):
    return DispatchEngine(router, reconciler)


@pytest.fixture
def settings():
    return Settings(whale_threshold=WHALE_THRESHOLD, hook_auth_token="")


@pytest.fixture
def client(settings, store):
    """FastAPI TestClient over an app wired to the in-memory store."""
    from fastapi.testclient import TestClient

    from backend_hookrelay.api_server.server import create_app

    runtime = build_runtime(settings, store=store)
    return TestClient(create_app(settings=settings, runtime=runtime))
