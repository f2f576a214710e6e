"""Sign in with Apple client.

Apple has no user-info endpoint: the identity comes from the signed
``id_token`` returned by the token endpoint. The client secret is a
short-lived ES256 JWT signed with the team's private key.
"""

import asyncio
import time

import jwt
import logfire

from idlink.adapter.error import ProviderError
from idlink.adapter.oauth.base import HttpClientFactory, RealOAuthClient
from idlink.adapter.oauth.mock import MockOAuthClient
from idlink.domain.service.auth_service import OAuthClient
from idlink.domain.value import (
    AuthProvider,
    OAuthTokenPair,
    ProviderConfig,
    ProviderIdentity,
)

APPLE_ISSUER = "https://appleid.apple.com"
APPLE_KEYS_URL = "https://appleid.apple.com/auth/keys"
CLIENT_SECRET_TTL_SECONDS = 3600


class AppleOAuthClient(OAuthClient):
    """Base class for Apple OAuth clients.

    Provides type distinction for dependency injection.
    """

    pass


class RealAppleOAuthClient(RealOAuthClient, AppleOAuthClient):
    """Apple client using the authorization code flow."""

    def __init__(
        self,
        config: ProviderConfig,
        timeout: float = 10.0,
        http_client_factory: HttpClientFactory | None = None,
        jwks_client: jwt.PyJWKClient | None = None,
    ) -> None:
        """Initialize Apple client.

        Args:
            config: Provider endpoints, client ID, team ID, key ID, private key
            timeout: Per-request timeout in seconds
            http_client_factory: Builds the httpx client
            jwks_client: Source of Apple's id_token signing keys
        """
        super().__init__(config, timeout, http_client_factory)
        self._jwks_client = jwks_client or jwt.PyJWKClient(
            APPLE_KEYS_URL, timeout=int(timeout)
        )

    def client_secret(self) -> str:
        """Sign a client secret JWT for the token endpoint."""
        now = int(time.time())
        # Keys pasted into env vars usually carry escaped newlines
        private_key = (self.config.private_key or "").replace("\\n", "\n")
        return jwt.encode(
            {
                "iss": self.config.team_id,
                "iat": now,
                "exp": now + CLIENT_SECRET_TTL_SECONDS,
                "aud": APPLE_ISSUER,
                "sub": self.config.client_id,
            },
            private_key,
            algorithm="ES256",
            headers={"kid": self.config.key_id},
        )

    async def exchange_code(
        self, code: str, code_verifier: str | None = None
    ) -> OAuthTokenPair:
        data = self._code_grant(code, code_verifier)
        data["client_secret"] = self.client_secret()

        payload = await self._post_form(self.config.token_url, data, "token exchange")
        tokens = self._token_pair(payload)
        if not tokens.id_token:
            raise ProviderError(self.provider_name, "token response missing id_token")
        return tokens

    async def fetch_user_info(self, tokens: OAuthTokenPair) -> ProviderIdentity:
        if not tokens.id_token:
            raise ProviderError(self.provider_name, "id_token required for user info")

        try:
            signing_key = await asyncio.to_thread(
                self._jwks_client.get_signing_key_from_jwt, tokens.id_token
            )
            claims = jwt.decode(
                tokens.id_token,
                signing_key.key,
                algorithms=["RS256"],
                audience=self.config.client_id,
                issuer=APPLE_ISSUER,
            )
        except jwt.PyJWTError as e:
            logfire.error(
                "Apple id_token verification failed", error_type=type(e).__name__
            )
            raise ProviderError(self.provider_name, "invalid id_token") from e

        subject = claims.get("sub")
        if not subject:
            raise ProviderError(self.provider_name, "id_token missing sub")

        return ProviderIdentity(
            provider=AuthProvider.APPLE,
            provider_user_id=str(subject),
            email=claims.get("email"),
        )

    async def refresh(self, refresh_token: str) -> OAuthTokenPair:
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.config.client_id,
            "client_secret": self.client_secret(),
        }
        payload = await self._post_form(self.config.token_url, data, "token refresh")
        return self._token_pair(payload)


class MockAppleOAuthClient(MockOAuthClient, AppleOAuthClient):
    """Mock Apple OAuth client for testing."""

    provider = AuthProvider.APPLE
