"""
Handler pipelines consuming domain events and retractions.

EventRecorder keeps a compensatable per-transaction ledger; WhaleAlertHandler
logs and optionally posts whale alerts to a webhook.
"""

from backend_hookrelay.handlers.alerts import WhaleAlertHandler
from backend_hookrelay.handlers.base import Handler
from backend_hookrelay.handlers.recorder import EventRecorder

__all__ = ["EventRecorder", "Handler", "WhaleAlertHandler"]
