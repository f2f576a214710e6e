"""Mock OAuth providers for testing."""

from dishka import Scope, provide

from idlink.adapter.oauth import (
    MockAppleOAuthClient,
    MockGoogleOAuthClient,
    MockInstagramOAuthClient,
)
from idlink.domain.service import OAuthClient
from idlink.domain.value import AuthProvider
from idlink.util.di.infrastructure.oauth import OAuthProvider


class MockOAuthProvider(OAuthProvider):
    """Mock OAuth provider using mock clients for every provider."""

    __is_mock__ = True

    @provide(scope=Scope.APP)
    def get_oauth_clients(self) -> dict[AuthProvider, OAuthClient]:
        """Provide mock OAuth clients."""
        return {
            AuthProvider.GOOGLE: MockGoogleOAuthClient(),
            AuthProvider.APPLE: MockAppleOAuthClient(),
            AuthProvider.INSTAGRAM: MockInstagramOAuthClient(),
        }
