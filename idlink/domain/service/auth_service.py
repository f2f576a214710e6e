"""Provider authentication domain service."""

import logfire

from idlink.domain.error import ProviderNotConfiguredError
from idlink.domain.value import AuthProvider, OAuthTokenPair, ProviderIdentity

from .base import Service


class OAuthClient:
    """Generic OAuth client interface for all providers.

    Implementations raise ProviderError on timeouts, transport failures and
    non-2xx responses.
    """

    async def exchange_code(
        self, code: str, code_verifier: str | None = None
    ) -> OAuthTokenPair:
        """Exchange an authorization code for tokens.

        Args:
            code: Authorization code from the OAuth callback
            code_verifier: PKCE verifier bound to the code (optional)

        Returns:
            Tokens issued by the provider
        """
        raise NotImplementedError

    async def fetch_user_info(self, tokens: OAuthTokenPair) -> ProviderIdentity:
        """Look up the identity the tokens were issued for.

        Args:
            tokens: Tokens from exchange_code

        Returns:
            Verified provider identity
        """
        raise NotImplementedError

    async def refresh(self, refresh_token: str) -> OAuthTokenPair:
        """Obtain a new access token.

        Args:
            refresh_token: Refresh token previously issued by the provider

        Returns:
            New tokens; refresh_token is None when the provider did not rotate it
        """
        raise NotImplementedError


class AuthService(Service):
    """Domain service for multi-provider authentication operations.

    Routes code exchange, user-info lookup and refresh to the client for
    each provider (Google, Apple, Instagram).
    """

    def __init__(self, oauth_clients: dict[AuthProvider, OAuthClient]) -> None:
        """Initialize auth service.

        Args:
            oauth_clients: Map of provider to OAuth client implementation
        """
        self.oauth_clients = oauth_clients

    def _client(self, provider: AuthProvider) -> OAuthClient:
        client = self.oauth_clients.get(provider)
        if not client:
            raise ProviderNotConfiguredError(provider)
        return client

    async def complete_authorization(
        self, provider: AuthProvider, code: str, code_verifier: str | None = None
    ) -> tuple[ProviderIdentity, OAuthTokenPair]:
        """Exchange a code and resolve the provider identity behind it.

        Args:
            provider: Authentication provider used
            code: Authorization code from OAuth callback
            code_verifier: PKCE verifier (optional)

        Returns:
            Tuple of (provider identity, tokens)

        Raises:
            ProviderNotConfiguredError: If no client exists for the provider
            ProviderError: If the provider call fails
        """
        client = self._client(provider)

        with logfire.span("auth_service.complete_authorization", provider=provider.value):
            tokens = await client.exchange_code(code, code_verifier)
            identity = await client.fetch_user_info(tokens)
            logfire.info(
                "Provider identity resolved",
                provider=provider.value,
                provider_user_id=identity.provider_user_id,
                has_email=identity.email is not None,
            )
            return identity, tokens

    async def refresh(self, provider: AuthProvider, refresh_token: str) -> OAuthTokenPair:
        """Refresh tokens with the provider.

        Raises:
            ProviderNotConfiguredError: If no client exists for the provider
            ProviderError: If the provider call fails
        """
        return await self._client(provider).refresh(refresh_token)
