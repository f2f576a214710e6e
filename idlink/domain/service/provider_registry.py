"""OAuth provider registry."""

from urllib.parse import urlencode

from idlink.config import ProviderSettings
from idlink.domain.error import ProviderNotConfiguredError
from idlink.domain.value import AuthProvider, PKCEChallenge, ProviderConfig

from .base import Service


class ProviderRegistry(Service):
    """Static provider configuration, read-only after construction.

    A provider is only registered when its credentials are present.
    """

    def __init__(self, provider_settings: ProviderSettings) -> None:
        """Initialize registry from settings.

        Args:
            provider_settings: Provider credentials and callback base URL
        """
        self._providers: dict[AuthProvider, ProviderConfig] = {}
        base = provider_settings.callback_base_url.rstrip("/")

        google = provider_settings.google
        if google.client_id and google.client_secret:
            self._providers[AuthProvider.GOOGLE] = ProviderConfig(
                provider=AuthProvider.GOOGLE,
                client_id=google.client_id,
                client_secret=google.client_secret,
                redirect_uri=google.redirect_uri or f"{base}/google/callback",
                scope="openid profile email",
                authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
                token_url="https://oauth2.googleapis.com/token",
                userinfo_url="https://www.googleapis.com/oauth2/v2/userinfo",
                extra_authorize_params={"access_type": "offline", "prompt": "consent"},
            )

        apple = provider_settings.apple
        if apple.client_id and apple.team_id and apple.key_id and apple.private_key:
            self._providers[AuthProvider.APPLE] = ProviderConfig(
                provider=AuthProvider.APPLE,
                client_id=apple.client_id,
                redirect_uri=apple.redirect_uri or f"{base}/apple/callback",
                scope="name email",
                authorize_url="https://appleid.apple.com/auth/authorize",
                token_url="https://appleid.apple.com/auth/token",
                extra_authorize_params={"response_mode": "form_post"},
                team_id=apple.team_id,
                key_id=apple.key_id,
                private_key=apple.private_key,
            )

        instagram = provider_settings.instagram
        if instagram.client_id and instagram.client_secret:
            self._providers[AuthProvider.INSTAGRAM] = ProviderConfig(
                provider=AuthProvider.INSTAGRAM,
                client_id=instagram.client_id,
                client_secret=instagram.client_secret,
                redirect_uri=instagram.redirect_uri or f"{base}/instagram/callback",
                scope="user_profile user_media",
                authorize_url="https://api.instagram.com/oauth/authorize",
                token_url="https://api.instagram.com/oauth/access_token",
                userinfo_url="https://graph.instagram.com/me",
            )

    def get(self, provider: AuthProvider) -> ProviderConfig:
        """Get configuration for a provider.

        Raises:
            ProviderNotConfiguredError: If the provider has no credentials
        """
        config = self._providers.get(provider)
        if config is None:
            raise ProviderNotConfiguredError(provider)
        return config

    def is_enabled(self, provider: AuthProvider) -> bool:
        return provider in self._providers

    def enabled(self) -> list[AuthProvider]:
        """Providers with credentials, in declaration order."""
        return [p for p in AuthProvider if p in self._providers]

    def authorization_url(
        self,
        provider: AuthProvider,
        state: str,
        challenge: PKCEChallenge | None = None,
    ) -> str:
        """Build the provider authorization URL.

        Args:
            provider: Provider to authorize with
            state: State token to round-trip
            challenge: PKCE challenge to bind the code to (optional)

        Returns:
            URL to redirect the user agent to

        Raises:
            ProviderNotConfiguredError: If the provider has no credentials
        """
        config = self.get(provider)
        params = {
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "response_type": "code",
            "scope": config.scope,
            "state": state,
        }
        if challenge is not None:
            params["code_challenge"] = challenge.code_challenge
            params["code_challenge_method"] = challenge.method
        params.update(config.extra_authorize_params)

        return f"{config.authorize_url}?{urlencode(params)}"
