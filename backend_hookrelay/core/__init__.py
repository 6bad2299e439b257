"""Core shared pieces: exception taxonomy."""

from backend_hookrelay.core.exceptions import (
    ConfigError,
    DispatchTimeout,
    HandlerError,
    HookRelayError,
    RegistryError,
    StorageError,
    StructuralError,
)

__all__ = [
    "ConfigError",
    "DispatchTimeout",
    "HandlerError",
    "HookRelayError",
    "RegistryError",
    "StorageError",
    "StructuralError",
]
