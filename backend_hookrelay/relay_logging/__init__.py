"""
Structured logging for Backend HookRelay.

JSON logs with timestamp, subscription_id, event_type and anomaly details.
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_hookrelay.relay_logging.logger import bind_subscription, get_logger

__all__ = ["bind_subscription", "get_logger"]
