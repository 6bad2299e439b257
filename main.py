"""
Main entrypoint: FastAPI delivery endpoint under uvicorn.

Env: HOOK_AUTH_TOKEN, WHALE_THRESHOLD, STATE_STORE_URL, API_HOST, API_PORT, LOG_LEVEL, etc.
(see backend_hookrelay.config.settings).

Equivalent: uvicorn backend_hookrelay.api_server.app:app --host 0.0.0.0 --port 8000
"""

import os
import sys

import uvicorn

# Configure structured JSON logging before other imports that may log
from backend_hookrelay.relay_logging import get_logger

logger = get_logger("main")


def main() -> None:
    """Load settings, build the runtime eagerly (fail fast on bad config), serve."""
    from backend_hookrelay.api_server.app import create_app
    from backend_hookrelay.config.settings import get_settings
    from backend_hookrelay.core.exceptions import ConfigError, StorageError
    from backend_hookrelay.dispatch.factory import build_runtime

    try:
        settings = get_settings()
        runtime = build_runtime(settings)
    except (ConfigError, StorageError) as e:
        logger.error("main_config_error", error=str(e))
        sys.exit(1)

    app = create_app(settings=settings, runtime=runtime)
    logger.info("main_server_starting", host=settings.api_host, port=settings.api_port)
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
