"""Google OAuth 2.0 / OpenID Connect client."""

import logfire

from idlink.adapter.error import ProviderError
from idlink.adapter.oauth.base import RealOAuthClient
from idlink.adapter.oauth.mock import MockOAuthClient
from idlink.domain.service.auth_service import OAuthClient
from idlink.domain.value import AuthProvider, OAuthTokenPair, ProviderIdentity


class GoogleOAuthClient(OAuthClient):
    """Base class for Google OAuth clients.

    Provides type distinction for dependency injection.
    """

    pass


class RealGoogleOAuthClient(RealOAuthClient, GoogleOAuthClient):
    """Google client using the authorization code flow with PKCE."""

    async def exchange_code(
        self, code: str, code_verifier: str | None = None
    ) -> OAuthTokenPair:
        data = self._code_grant(code, code_verifier)
        data["client_secret"] = self.config.client_secret or ""

        payload = await self._post_form(self.config.token_url, data, "token exchange")
        tokens = self._token_pair(payload)
        logfire.info(
            "Google token exchange completed",
            has_refresh_token=tokens.refresh_token is not None,
        )
        return tokens

    async def fetch_user_info(self, tokens: OAuthTokenPair) -> ProviderIdentity:
        data = await self._get_json(
            self.config.userinfo_url or "",
            "user info",
            headers={"Authorization": f"Bearer {tokens.access_token}"},
        )

        user_id = data.get("id") or data.get("sub")
        if not user_id:
            raise ProviderError(self.provider_name, "user info missing id")

        return ProviderIdentity(
            provider=AuthProvider.GOOGLE,
            provider_user_id=str(user_id),
            email=data.get("email"),
            display_name=data.get("name"),
            avatar_url=data.get("picture"),
        )

    async def refresh(self, refresh_token: str) -> OAuthTokenPair:
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret or "",
        }
        payload = await self._post_form(self.config.token_url, data, "token refresh")
        return self._token_pair(payload)


class MockGoogleOAuthClient(MockOAuthClient, GoogleOAuthClient):
    """Mock Google OAuth client for testing."""

    provider = AuthProvider.GOOGLE
