"""
Subscription router: subscription identifier → ordered handler bindings.

Subscription identifiers are opaque strings grouped by namespace prefix
(e.g. "swap:alex-v2" routes to the swap pipeline via the "swap:" prefix).
Exact and prefix bindings coexist and all matching bindings are returned.
When the same handler name is bound more than once for an identifier, the
exact binding wins, then the longest prefix.

Order of the resolved list: exact bindings in registration order, then
prefix bindings by descending prefix length, then registration order.
An identifier nothing matches resolves to an empty list; that is not an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from backend_hookrelay.extractors.base import Extractor
from backend_hookrelay.handlers.base import Handler
from backend_hookrelay.relay_logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class HandlerBinding:
    """A handler and the extractors whose events it consumes."""

    name: str
    handler: Handler
    extractors: tuple[Extractor, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class _Rule:
    pattern: str
    exact: bool
    binding: HandlerBinding
    seq: int


class SubscriptionRouter:
    def __init__(self) -> None:
        self._rules: list[_Rule] = []

    def __len__(self) -> int:
        return len(self._rules)

    def _add(self, pattern: str, exact: bool, binding: HandlerBinding) -> None:
        if not pattern:
            raise ValueError("subscription pattern must be non-empty")
        self._rules.append(_Rule(pattern, exact, binding, len(self._rules)))
        logger.debug(
            "router_binding_added",
            pattern=pattern,
            exact=exact,
            handler=binding.name,
            extractors=[e.name for e in binding.extractors],
        )

    def bind_exact(self, subscription_id: str, binding: HandlerBinding) -> None:
        """Bind a handler to exactly one subscription identifier."""
        self._add(subscription_id, True, binding)

    def bind_prefix(self, prefix: str, binding: HandlerBinding) -> None:
        """Bind a handler to every subscription identifier starting with prefix."""
        self._add(prefix, False, binding)

    def resolve(self, subscription_id: str) -> list[HandlerBinding]:
        """Return the ordered bindings for subscription_id (possibly empty)."""
        matches = [
            r for r in self._rules
            if (r.pattern == subscription_id if r.exact else subscription_id.startswith(r.pattern))
        ]
        # Exact first, then more specific prefixes; stable by registration order.
        matches.sort(key=lambda r: (not r.exact, -len(r.pattern), r.seq))
        seen: set[str] = set()
        resolved: list[HandlerBinding] = []
        for rule in matches:
            if rule.binding.name in seen:
                continue
            seen.add(rule.binding.name)
            resolved.append(rule.binding)
        return resolved
