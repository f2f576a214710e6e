"""OAuth infrastructure providers for multi-provider authentication."""

from dishka import Scope, provide

from idlink.adapter.oauth import (
    RealAppleOAuthClient,
    RealGoogleOAuthClient,
    RealInstagramOAuthClient,
)
from idlink.config import ProviderSettings
from idlink.domain.service import OAuthClient, ProviderRegistry
from idlink.domain.value import AuthProvider
from idlink.util.di.base import ProviderBase

REAL_CLIENTS = {
    AuthProvider.GOOGLE: RealGoogleOAuthClient,
    AuthProvider.APPLE: RealAppleOAuthClient,
    AuthProvider.INSTAGRAM: RealInstagramOAuthClient,
}


class OAuthProvider(ProviderBase):
    """OAuth component base."""

    __mock_component__ = "oauth"


class ProdOAuthProvider(OAuthProvider):
    """Production OAuth provider talking to the real provider endpoints."""

    __is_mock__ = False

    @provide(scope=Scope.APP)
    def get_oauth_clients(
        self,
        provider_registry: ProviderRegistry,
        provider_settings: ProviderSettings,
    ) -> dict[AuthProvider, OAuthClient]:
        """Provide dictionary of OAuth clients by provider.

        Only providers with credentials get a client; the others are
        reported as not configured by AuthService.

        Args:
            provider_registry: Provider configuration
            provider_settings: HTTP timeout for provider calls

        Returns:
            Dictionary mapping AuthProvider to OAuthClient
        """
        return {
            provider: REAL_CLIENTS[provider](
                provider_registry.get(provider),
                timeout=provider_settings.http_timeout_seconds,
            )
            for provider in provider_registry.enabled()
        }
