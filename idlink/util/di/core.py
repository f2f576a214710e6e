"""Core DI providers (non-mockable)."""

from dishka import Scope, provide

from idlink.config import (
    CryptoSettings,
    LifecycleSettings,
    ProviderSettings,
    Settings,
    StateSettings,
)
from idlink.util.di.base import ProviderBase


class ProdConfigProvider(ProviderBase):
    """Production config provider - concrete, no mocks needed.

    Settings are loaded from environment variables and .env file automatically.
    """

    @provide(scope=Scope.APP)
    def provide_settings(self) -> Settings:
        """Provide application settings from environment."""
        return Settings()

    @provide(scope=Scope.APP)
    def provide_crypto_settings(self, settings: Settings) -> CryptoSettings:
        return settings.crypto

    @provide(scope=Scope.APP)
    def provide_state_settings(self, settings: Settings) -> StateSettings:
        return settings.state

    @provide(scope=Scope.APP)
    def provide_provider_settings(self, settings: Settings) -> ProviderSettings:
        return settings.providers

    @provide(scope=Scope.APP)
    def provide_lifecycle_settings(self, settings: Settings) -> LifecycleSettings:
        return settings.lifecycle
