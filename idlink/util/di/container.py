"""Dependency injection container."""

from dishka import AsyncContainer, Provider, make_async_container
from dishka.integrations.fastapi import FastapiProvider, setup_dishka
from fastapi import FastAPI

from idlink.util.di import PROVIDERS, get_provider


def _production_providers() -> list[Provider]:
    return [get_provider(base, use_mock=False)() for base in PROVIDERS]


def create_container() -> AsyncContainer:
    """Build the API container: real provider clients and PostgreSQL.

    Settings are loaded from environment variables automatically.
    """
    # FastapiProvider exposes the Request to REQUEST-scoped factories
    return make_async_container(*_production_providers(), FastapiProvider())


def create_script_container() -> AsyncContainer:
    """Build the container for cron and maintenance scripts (no FastAPI)."""
    return make_async_container(*_production_providers())


def setup_di(app: FastAPI, container: AsyncContainer) -> None:
    """Attach the container to the app so DishkaRoute can resolve handlers."""
    setup_dishka(container, app)
