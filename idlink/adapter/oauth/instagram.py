"""Instagram Basic Display OAuth client."""

from idlink.adapter.error import ProviderError
from idlink.adapter.oauth.base import RealOAuthClient
from idlink.adapter.oauth.mock import MockOAuthClient
from idlink.domain.service.auth_service import OAuthClient
from idlink.domain.value import AuthProvider, OAuthTokenPair, ProviderIdentity

# Long-lived tokens are refreshed against the Graph API, not the token endpoint
REFRESH_URL = "https://graph.instagram.com/refresh_access_token"


class InstagramOAuthClient(OAuthClient):
    """Base class for Instagram OAuth clients.

    Provides type distinction for dependency injection.
    """

    pass


class RealInstagramOAuthClient(RealOAuthClient, InstagramOAuthClient):
    """Instagram client.

    Instagram never shares an email address, so identities always resolve by
    provider user ID or become new accounts with a placeholder email.
    """

    async def exchange_code(
        self, code: str, code_verifier: str | None = None
    ) -> OAuthTokenPair:
        data = self._code_grant(code, None)
        data["client_secret"] = self.config.client_secret or ""

        payload = await self._post_form(self.config.token_url, data, "token exchange")
        return self._token_pair(payload)

    async def fetch_user_info(self, tokens: OAuthTokenPair) -> ProviderIdentity:
        data = await self._get_json(
            self.config.userinfo_url or "",
            "user info",
            params={"fields": "id,username", "access_token": tokens.access_token},
        )

        user_id = data.get("id")
        if not user_id:
            raise ProviderError(self.provider_name, "user info missing id")

        return ProviderIdentity(
            provider=AuthProvider.INSTAGRAM,
            provider_user_id=str(user_id),
            display_name=data.get("username"),
        )

    async def refresh(self, refresh_token: str) -> OAuthTokenPair:
        payload = await self._get_json(
            REFRESH_URL,
            "token refresh",
            params={"grant_type": "ig_refresh_token", "access_token": refresh_token},
        )
        return self._token_pair(payload)


class MockInstagramOAuthClient(MockOAuthClient, InstagramOAuthClient):
    """Mock Instagram OAuth client for testing."""

    provider = AuthProvider.INSTAGRAM
