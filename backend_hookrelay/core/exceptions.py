"""
Application-level exceptions.

Every error the relay raises derives from HookRelayError so the API layer can
map it to a status code. Reconciliation anomalies are not exceptions: they are
recorded on the batch outcome (see backend_hookrelay.reorg.models.AnomalyFlag).
"""

from __future__ import annotations


class HookRelayError(Exception):
    """Base class for relay errors."""


class StructuralError(HookRelayError):
    """
    Malformed batch payload: a required field is missing or has the wrong shape.

    Raised before any state mutation. The sender must fix the payload; retrying
    the same body will fail the same way.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        if field:
            message = f"{field}: {message}"
        super().__init__(message)


class StorageError(HookRelayError):
    """Subscription state could not be read or written; the batch must be retried."""


class HandlerError(HookRelayError):
    """A handler failed on its events. Isolated per handler by the dispatch engine."""


class DispatchTimeout(HookRelayError):
    """Batch processing exceeded its deadline. Transient: the sender should retry."""


class ConfigError(HookRelayError):
    """Invalid configuration value."""


class RegistryError(HookRelayError):
    """Predicate registration call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
