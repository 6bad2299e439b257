"""
Dispatch package: per-batch orchestration.

Validates, routes, reconciles, extracts and delivers one batch, and reports
an aggregate BatchOutcome.
"""

from backend_hookrelay.dispatch.engine import DispatchEngine
from backend_hookrelay.dispatch.models import BatchOutcome, HandlerResult

__all__ = ["BatchOutcome", "DispatchEngine", "HandlerResult"]
