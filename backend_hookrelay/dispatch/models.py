"""
Outcome models for one processed batch.

Per-handler results and reconciliation details are for internal observability;
the HTTP status code is the only signal returned to the sender.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from backend_hookrelay.reorg.models import AnomalyFlag

STATUS_OK = "ok"
STATUS_ERROR = "error"


@dataclass
class HandlerResult:
    status: str = STATUS_OK
    error: str | None = None
    delivered: int = 0
    """Number of domain events plus retractions handed to the handler."""

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"status": self.status, "delivered": self.delivered}
        if self.error is not None:
            out["error"] = self.error
        return out


@dataclass
class BatchOutcome:
    subscription_id: str
    handler_results: dict[str, HandlerResult] = field(default_factory=dict)
    anomalies: list[AnomalyFlag] = field(default_factory=list)
    applied_heights: list[int] = field(default_factory=list)
    skipped_heights: list[int] = field(default_factory=list)
    rolled_back_heights: list[int] = field(default_factory=list)
    retractions: int = 0
    event_counts: dict[str, int] = field(default_factory=dict)

    @property
    def has_anomaly(self) -> bool:
        return bool(self.anomalies)

    @property
    def failed_handlers(self) -> list[str]:
        return [name for name, r in self.handler_results.items() if not r.ok]

    def to_dict(self) -> dict[str, Any]:
        return {
            "subscription_id": self.subscription_id,
            "handler_results": {k: v.to_dict() for k, v in self.handler_results.items()},
            "anomaly": self.has_anomaly,
            "anomalies": [a.to_dict() for a in self.anomalies],
            "applied_heights": self.applied_heights,
            "skipped_heights": self.skipped_heights,
            "rolled_back_heights": self.rolled_back_heights,
            "retractions": self.retractions,
            "event_counts": self.event_counts,
        }
