"""Predicate registration with the external chain-indexing registry."""

from backend_hookrelay.registration.registry import (
    PredicateSpec,
    RegistrationAck,
    RegistryClient,
)

__all__ = ["PredicateSpec", "RegistrationAck", "RegistryClient"]
