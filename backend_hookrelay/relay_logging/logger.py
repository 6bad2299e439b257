"""
Structured logging for the relay.

Every record carries an ISO timestamp, the level, the emitting module and an
event_type (plus subscription_id / block_height where the caller binds them),
rendered as one JSON object per line, or for a terminal with LOG_FORMAT=console.

LOG_LEVEL and LOG_FORMAT come from the environment or the project .env, read
when logging is configured on first import. This module must not import other
backend_hookrelay modules: they all import it at load time.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import structlog
from dotenv import load_dotenv

# Same .env as backend_hookrelay.config.env
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "json"


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _event_type(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def _env_logging_options() -> tuple[int, str]:
    if _ENV_PATH.is_file():
        load_dotenv(_ENV_PATH, override=False)
    level_name = (os.getenv("LOG_LEVEL") or DEFAULT_LOG_LEVEL).strip().upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    fmt = (os.getenv("LOG_FORMAT") or DEFAULT_LOG_FORMAT).strip().lower()
    return level, fmt


def configure_structlog() -> None:
    """(Re)configure structlog from LOG_LEVEL / LOG_FORMAT."""
    level, fmt = _env_logging_options()
    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _add_timestamp,
            _event_type,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Logger for a module, with logger=<name> bound.

        logger = get_logger(__name__)
        logger.info("dispatch_batch_processed", subscription_id=sub, applied=[101])
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_subscription(subscription_id: str) -> structlog.BoundLogger:
    """Relay logger with subscription_id bound to every record."""
    return get_logger("backend_hookrelay").bind(subscription_id=subscription_id)
