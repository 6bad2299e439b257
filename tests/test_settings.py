"""
Tests for environment-driven settings.
"""

from __future__ import annotations

import pytest

from backend_hookrelay.config.settings import DEFAULT_WHALE_THRESHOLD, load_settings
from backend_hookrelay.core.exceptions import ConfigError
from backend_hookrelay.reorg import RollbackOrder

ENV_KEYS = [
    "HOOK_AUTH_TOKEN",
    "WHALE_THRESHOLD",
    "WHALE_CURRENCY",
    "SWAP_NAMESPACE",
    "ROLLBACK_ORDER",
    "REORG_HISTORY_DEPTH",
    "STATE_STORE_URL",
    "PROCESS_TIMEOUT_SEC",
    "NETWORK",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_defaults():
    settings = load_settings()
    assert settings.whale_threshold == DEFAULT_WHALE_THRESHOLD
    assert settings.whale_currency is None
    assert settings.rollback_order == RollbackOrder.DELIVERED
    assert settings.reorg_history_depth == 128
    assert settings.swap_namespace == "swap:"
    assert settings.whale_namespace == "whale:"
    assert settings.liquidity_namespace == "liquidity:"
    assert settings.process_timeout_sec == 30.0
    assert settings.state_store_url == ""


def test_values_from_env(monkeypatch):
    monkeypatch.setenv("WHALE_THRESHOLD", "5_000_000")
    monkeypatch.setenv("WHALE_CURRENCY", "STX")
    monkeypatch.setenv("ROLLBACK_ORDER", "Newest_First")
    monkeypatch.setenv("REORG_HISTORY_DEPTH", "16")
    monkeypatch.setenv("PROCESS_TIMEOUT_SEC", "2.5")
    monkeypatch.setenv("NETWORK", "TESTNET")
    settings = load_settings()
    assert settings.whale_threshold == 5_000_000
    assert settings.whale_currency == "STX"
    assert settings.rollback_order == RollbackOrder.NEWEST_FIRST
    assert settings.reorg_history_depth == 16
    assert settings.process_timeout_sec == 2.5
    assert settings.network == "testnet"


@pytest.mark.parametrize("key,value", [
    ("WHALE_THRESHOLD", "lots"),
    ("WHALE_THRESHOLD", "-1"),
    ("ROLLBACK_ORDER", "random"),
    ("REORG_HISTORY_DEPTH", "0"),
    ("PROCESS_TIMEOUT_SEC", "soon"),
])
def test_invalid_values_raise_config_error(monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    with pytest.raises(ConfigError, match=key):
        load_settings()
