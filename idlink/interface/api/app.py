"""FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dishka import AsyncContainer
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from idlink.config import Settings
from idlink.interface.api.routes import health, oauth
from idlink.interface.error import register_error_handlers
from idlink.interface.scheduler import TokenSweepScheduler
from idlink.util.di.container import create_container, setup_di
from idlink.util.error import MissingSecretError
from idlink.util.observability import instrument_fastapi, instrument_httpx

DEFAULT_SECRET = "CHANGE_ME_IN_PRODUCTION"


def check_secrets(settings: Settings) -> None:
    """Refuse to run production with the placeholder secrets.

    Raises:
        MissingSecretError: If the encryption key or state secret is unset
    """
    if settings.environment != "production":
        return
    if settings.crypto.encryption_key == DEFAULT_SECRET:
        raise MissingSecretError("CRYPTO__ENCRYPTION_KEY", settings.environment)
    if settings.state.secret == DEFAULT_SECRET:
        raise MissingSecretError("STATE__SECRET", settings.environment)


def create_app(
    settings: Settings | None = None, container: AsyncContainer | None = None
) -> FastAPI:
    """Create FastAPI application.

    Note: Logfire should be configured before calling this function.
    In production, start_app.py handles this.

    Args:
        settings: Application settings (loaded from environment if omitted)
        container: DI container (production container if omitted; tests pass
            one built from mock providers)
    """
    settings = settings or Settings()
    check_secrets(settings)

    # Instrument httpx for outbound provider calls
    # (Logfire must be configured before instrumentation)
    instrument_httpx()

    container = container or create_container()
    scheduler = TokenSweepScheduler(container, settings.lifecycle)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()
            await container.close()

    app_instance = FastAPI(
        title="idlink",
        description="Social sign-in identity linking with encrypted provider tokens",
        version="0.1.0",
        lifespan=lifespan,
    )
    app_instance.state.token_sweep_scheduler = scheduler

    # Instrument FastAPI for automatic tracing of HTTP requests
    instrument_fastapi(app_instance)

    app_instance.add_middleware(
        CORSMiddleware,
        allow_origins=[
            settings.api.frontend_url,
            "http://localhost:3000",  # Local development
        ],
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=[
            "Authorization",
            "Content-Type",
            "Accept",
            "Origin",
            "User-Agent",
            "X-Account-Id",
        ],
        max_age=600,  # Cache preflight requests for 10 minutes
    )

    setup_di(app_instance, container)
    register_error_handlers(app_instance)

    app_instance.include_router(health.router)
    app_instance.include_router(oauth.router)

    return app_instance
