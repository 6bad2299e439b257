"""
Application settings.

Responsibilities:
- Load configuration from environment variables and the project .env file.
- Validate values and provide defaults for optional ones.
- Expose one frozen Settings object that is passed explicitly into the
  extractors, reconciler, handlers and dispatch engine at construction time.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from backend_hookrelay.config.env import env_float, env_int, env_str, load_relay_env
from backend_hookrelay.core.exceptions import ConfigError
from backend_hookrelay.reorg.models import RollbackOrder

# 100k tokens at 6 decimals (micro-units)
DEFAULT_WHALE_THRESHOLD = 100_000_000_000
DEFAULT_REORG_HISTORY_DEPTH = 128
DEFAULT_PROCESS_TIMEOUT_SEC = 30.0
DEFAULT_SWAP_NAMESPACE = "swap:"
DEFAULT_WHALE_NAMESPACE = "whale:"
DEFAULT_LIQUIDITY_NAMESPACE = "liquidity:"


@dataclass(frozen=True)
class Settings:
    """Typed service configuration."""

    hook_auth_token: str = ""
    """Bearer token expected on inbound deliveries; empty disables the check."""
    whale_threshold: int = DEFAULT_WHALE_THRESHOLD
    whale_currency: str | None = None
    """Only credits in this currency symbol count as whale transfers; None = any."""
    swap_namespace: str = DEFAULT_SWAP_NAMESPACE
    whale_namespace: str = DEFAULT_WHALE_NAMESPACE
    liquidity_namespace: str = DEFAULT_LIQUIDITY_NAMESPACE
    rollback_order: RollbackOrder = RollbackOrder.DELIVERED
    reorg_history_depth: int = DEFAULT_REORG_HISTORY_DEPTH
    state_store_url: str = ""
    """Empty = in-memory store; otherwise an SQLAlchemy URL."""
    process_timeout_sec: float = DEFAULT_PROCESS_TIMEOUT_SEC
    alert_webhook_url: str = ""
    registry_api_url: str = ""
    registry_api_key: str = ""
    callback_url: str = ""
    network: str = "mainnet"
    api_host: str = "0.0.0.0"
    api_port: int = 8000


def load_settings() -> Settings:
    """Build Settings from the environment. Raises ConfigError on invalid values."""
    load_relay_env()
    raw_order = env_str("ROLLBACK_ORDER", RollbackOrder.DELIVERED.value).lower()
    try:
        rollback_order = RollbackOrder(raw_order)
    except ValueError as e:
        allowed = ", ".join(o.value for o in RollbackOrder)
        raise ConfigError(f"ROLLBACK_ORDER must be one of {allowed}, got {raw_order!r}") from e
    return Settings(
        hook_auth_token=env_str("HOOK_AUTH_TOKEN"),
        whale_threshold=env_int("WHALE_THRESHOLD", DEFAULT_WHALE_THRESHOLD, minimum=0),
        whale_currency=env_str("WHALE_CURRENCY") or None,
        swap_namespace=env_str("SWAP_NAMESPACE", DEFAULT_SWAP_NAMESPACE),
        whale_namespace=env_str("WHALE_NAMESPACE", DEFAULT_WHALE_NAMESPACE),
        liquidity_namespace=env_str("LIQUIDITY_NAMESPACE", DEFAULT_LIQUIDITY_NAMESPACE),
        rollback_order=rollback_order,
        reorg_history_depth=env_int("REORG_HISTORY_DEPTH", DEFAULT_REORG_HISTORY_DEPTH, minimum=1),
        state_store_url=env_str("STATE_STORE_URL"),
        process_timeout_sec=env_float("PROCESS_TIMEOUT_SEC", DEFAULT_PROCESS_TIMEOUT_SEC, minimum=0.1),
        alert_webhook_url=env_str("ALERT_WEBHOOK_URL"),
        registry_api_url=env_str("REGISTRY_API_URL"),
        registry_api_key=env_str("REGISTRY_API_KEY"),
        callback_url=env_str("CALLBACK_URL"),
        network=env_str("NETWORK", "mainnet").lower(),
        api_host=env_str("API_HOST", "0.0.0.0"),
        api_port=env_int("API_PORT", 8000, minimum=1),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings (loaded once)."""
    return load_settings()
