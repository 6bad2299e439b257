"""
Handler contract.

A handler consumes the domain events and retractions of one batch:
    handle(events, retractions) -> None
and signals failure by raising (HandlerError or any other exception). handle
may be a plain method or a coroutine. The dispatch engine knows nothing else
about a handler.
"""

from __future__ import annotations

from typing import Any, Awaitable, Protocol, Sequence, runtime_checkable

from backend_hookrelay.extractors.events import DomainEvent, RetractionEvent


@runtime_checkable
class Handler(Protocol):
    def handle(
        self,
        events: Sequence[DomainEvent],
        retractions: Sequence[RetractionEvent],
    ) -> Awaitable[Any] | None:
        ...
