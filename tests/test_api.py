"""
Tests for the FastAPI delivery endpoint, state lookup and health check.

Uses the in-memory store via conftest fixtures; failure modes are injected with
small store and handler doubles.
"""

from __future__ import annotations

import time

from fastapi.testclient import TestClient

from backend_hookrelay.api_server.server import create_app
from backend_hookrelay.config.settings import Settings
from backend_hookrelay.core.exceptions import StorageError
from backend_hookrelay.database import InMemoryStateStore
from backend_hookrelay.dispatch.factory import build_runtime
from backend_hookrelay.extractors import SwapExtractor
from backend_hookrelay.handlers import EventRecorder
from backend_hookrelay.routing.router import HandlerBinding, SubscriptionRouter
from payloads import RECIPIENT, batch, block, block_hash, credit, swap_event, tx

TOKEN = "s3cret-token"


def _client(settings, **runtime_kwargs):
    runtime = build_runtime(settings, **runtime_kwargs)
    return TestClient(create_app(settings=settings, runtime=runtime))


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_delivery_ok(client, store):
    payload = batch("swap:alex-v2", apply=[block(100, [tx("0xs1", events=[swap_event()])])])
    r = client.post("/api/events", json=payload)
    assert r.status_code == 200
    data = r.json()
    assert data == {"status": "ok", "subscription_id": "swap:alex-v2", "handlers": 1, "anomaly": False}
    assert store.get("swap:alex-v2").last_confirmed_height == 100


def test_delivery_unrouted_subscription_ok(client, store):
    r = client.post("/api/events", json=batch("mystery:feed", apply=[block(1)]))
    assert r.status_code == 200
    assert r.json()["handlers"] == 0
    assert store.get("mystery:feed") is None


def test_delivery_reports_anomaly(client):
    client.post("/api/events", json=batch("swap:alex-v2", apply=[block(100)]))
    r = client.post("/api/events", json=batch("swap:alex-v2", rollback=[block(150)]))
    assert r.status_code == 200
    assert r.json()["anomaly"] is True


def test_delivery_structural_error_400(client, store):
    payload = batch("swap:alex-v2", apply=[block(100)])
    del payload["rollback"]
    r = client.post("/api/events", json=payload)
    assert r.status_code == 400
    assert "rollback" in r.json()["detail"]
    assert store.get("swap:alex-v2") is None


def test_delivery_invalid_json_400(client):
    r = client.post("/api/events", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 400


def test_delivery_requires_token_when_configured():
    client = _client(Settings(hook_auth_token=TOKEN), store=InMemoryStateStore())
    payload = batch("swap:alex-v2", apply=[block(100)])
    assert client.post("/api/events", json=payload).status_code == 401
    wrong = {"Authorization": "Bearer nope"}
    assert client.post("/api/events", json=payload, headers=wrong).status_code == 401
    ok = {"Authorization": f"Bearer {TOKEN}"}
    assert client.post("/api/events", json=payload, headers=ok).status_code == 200
    # Bare token (no scheme) is accepted as well
    assert client.post("/api/events", json=payload, headers={"Authorization": TOKEN}).status_code == 200


class _BrokenStore:
    def get(self, subscription_id):
        raise StorageError("connection reset")

    def put(self, subscription_id, state):
        raise StorageError("connection reset")


def test_delivery_storage_error_500():
    client = _client(Settings(), store=_BrokenStore())
    r = client.post("/api/events", json=batch("swap:alex-v2", apply=[block(100)]))
    assert r.status_code == 500


class _StalledStore(InMemoryStateStore):
    def get(self, subscription_id):
        time.sleep(0.3)
        return super().get(subscription_id)


def test_delivery_timeout_503():
    """A deadline hit before commit is 503 and leaves no state behind."""
    store = _StalledStore()
    recorder = EventRecorder()
    router = SubscriptionRouter()
    router.bind_prefix("swap:", HandlerBinding("rec", recorder, (SwapExtractor(),)))
    client = _client(Settings(process_timeout_sec=0.05), store=store, router=router)
    payload = batch("swap:alex-v2", apply=[block(100, [tx("0xs1", events=[swap_event()])])])
    r = client.post("/api/events", json=payload)
    assert r.status_code == 503
    assert len(store) == 0
    assert recorder.events() == []


def test_subscription_state(client):
    client.post("/api/events", json=batch("swap:alex-v2", apply=[block(100), block(101)]))
    r = client.get("/api/subscriptions/swap:alex-v2/state")
    assert r.status_code == 200
    data = r.json()
    assert data["subscription_id"] == "swap:alex-v2"
    assert data["last_confirmed_height"] == 101
    assert data["last_confirmed_hash"] == block_hash(101)
    assert [b["index"] for b in data["history"]] == [100, 101]


def test_subscription_state_404(client):
    assert client.get("/api/subscriptions/swap:never/state").status_code == 404


def test_subscription_state_storage_error_500():
    client = _client(Settings(), store=_BrokenStore())
    assert client.get("/api/subscriptions/swap:x/state").status_code == 500


def test_delivery_non_decimal_numerics_ok(client, store):
    """Unparseable amounts and timestamps degrade instead of failing the batch."""
    bad_credit = credit(RECIPIENT, 10)
    bad_credit["amount"]["value"] = "²"
    raw_block = block(100, [tx("0xodd", operations=[bad_credit])])
    raw_block["timestamp"] = "9" * 5000
    r = client.post("/api/events", json=batch("whale:stx", apply=[raw_block]))
    assert r.status_code == 200
    assert store.get("whale:stx").last_confirmed_height == 100
