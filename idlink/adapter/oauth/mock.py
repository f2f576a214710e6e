"""Deterministic OAuth client for tests and local development."""

from datetime import datetime, timedelta, timezone

from idlink.adapter.error import ProviderError
from idlink.domain.service.auth_service import OAuthClient
from idlink.domain.value import AuthProvider, OAuthTokenPair, ProviderIdentity


class MockOAuthClient(OAuthClient):
    """Mock OAuth client that never makes network calls.

    Codes of the form ``<provider_user_id>`` or ``<provider_user_id>:<email>``
    resolve to that identity, so tests can drive every linking branch
    through the HTTP API. The code ``error`` simulates a provider failure.
    """

    provider: AuthProvider

    def __init__(self) -> None:
        """Initialize mock client without real OAuth configuration."""
        self.fail_refresh = False
        self.rotate_refresh_token = True
        self.refresh_calls: list[str] = []

    async def exchange_code(
        self, code: str, code_verifier: str | None = None
    ) -> OAuthTokenPair:
        if code == "error":
            raise ProviderError(self.provider.value, "token exchange failed: 400", 400)
        return OAuthTokenPair(
            access_token=f"{self.provider.value}-access-{code}",
            refresh_token=f"{self.provider.value}-refresh-{code}",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
            id_token=code,
        )

    async def fetch_user_info(self, tokens: OAuthTokenPair) -> ProviderIdentity:
        code = tokens.id_token or f"mock{self.provider.value}123"
        provider_user_id, _, email = code.partition(":")
        return ProviderIdentity(
            provider=self.provider,
            provider_user_id=provider_user_id,
            email=email or None,
            display_name=f"Mock {self.provider.value.title()} User",
        )

    async def refresh(self, refresh_token: str) -> OAuthTokenPair:
        self.refresh_calls.append(refresh_token)
        if self.fail_refresh:
            raise ProviderError(self.provider.value, "refresh failed: 400", 400)
        return OAuthTokenPair(
            access_token=f"{self.provider.value}-access-refreshed",
            refresh_token=(
                f"{self.provider.value}-refresh-rotated"
                if self.rotate_refresh_token
                else None
            ),
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )
