#!/usr/bin/env python3
"""Start the idlink API with Logfire error tracking for startup errors."""

import sys

import logfire
import uvicorn

from idlink.config import Settings
from idlink.util.logging import setup_logging
from idlink.util.observability import configure_logfire


def main() -> int:
    """Serve the app factory and log any startup errors to Logfire."""
    settings = Settings()

    # Logging first so configuration errors below are visible
    setup_logging(settings)
    configure_logfire(settings)

    logfire.info(
        "Starting idlink API",
        environment=settings.environment,
        port=settings.port,
        token_sweep_enabled=settings.lifecycle.enabled,
    )

    try:
        # Single worker: PKCE verifiers are held in process memory between
        # authorize and callback
        uvicorn.run(
            "idlink.interface.api.app:create_app",
            factory=True,
            host="0.0.0.0",
            port=settings.port,
            workers=1,
            reload=settings.environment == "development",
            log_level="debug" if settings.debug else "info",
        )
    except Exception as e:
        logfire.error(
            "idlink API failed to start",
            error_type=type(e).__name__,
            _exc_info=sys.exc_info(),
        )
        raise

    return 0


if __name__ == "__main__":
    sys.exit(main())
