"""Shared HTTP plumbing for provider OAuth clients."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx
import logfire

from idlink.adapter.error import ProviderError
from idlink.domain.service.auth_service import OAuthClient
from idlink.domain.value import OAuthTokenPair, ProviderConfig

HttpClientFactory = Callable[[], httpx.AsyncClient]


class RealOAuthClient(OAuthClient):
    """OAuth client talking to a provider's token and user-info endpoints.

    Every failure (timeout, transport error, non-2xx status, malformed body)
    surfaces as ProviderError. Response bodies are never logged since they
    may carry tokens.
    """

    def __init__(
        self,
        config: ProviderConfig,
        timeout: float = 10.0,
        http_client_factory: HttpClientFactory | None = None,
    ) -> None:
        """Initialize OAuth client.

        Args:
            config: Provider endpoints and credentials
            timeout: Per-request timeout in seconds
            http_client_factory: Builds the httpx client (tests pass one
                backed by httpx.MockTransport)
        """
        self.config = config
        self.timeout = timeout
        self._http_client_factory = http_client_factory

    @property
    def provider_name(self) -> str:
        return self.config.provider.value

    def _build_http_client(self) -> httpx.AsyncClient:
        if self._http_client_factory is not None:
            return self._http_client_factory()
        return httpx.AsyncClient(timeout=self.timeout)

    async def _request(
        self, method: str, url: str, operation: str, **kwargs: Any
    ) -> dict[str, Any]:
        try:
            async with self._build_http_client() as client:
                response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logfire.error(
                "Provider request timed out",
                provider=self.provider_name,
                operation=operation,
            )
            raise ProviderError(self.provider_name, f"{operation} timed out") from e
        except httpx.HTTPError as e:
            logfire.error(
                "Provider request failed",
                provider=self.provider_name,
                operation=operation,
                error_type=type(e).__name__,
            )
            raise ProviderError(
                self.provider_name, f"HTTP error during {operation}"
            ) from e

        if response.status_code >= 400:
            logfire.error(
                "Provider returned error status",
                provider=self.provider_name,
                operation=operation,
                status_code=response.status_code,
            )
            raise ProviderError(
                self.provider_name,
                f"{operation} failed: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(
                self.provider_name, f"{operation} returned invalid JSON"
            ) from e
        if not isinstance(data, dict):
            raise ProviderError(self.provider_name, f"{operation} returned unexpected body")
        return data

    async def _post_form(
        self, url: str, data: dict[str, str], operation: str
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            url,
            operation,
            data=data,
            headers={"Accept": "application/json"},
        )

    async def _get_json(
        self,
        url: str,
        operation: str,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        return await self._request("GET", url, operation, params=params, headers=headers)

    def _token_pair(self, payload: dict[str, Any]) -> OAuthTokenPair:
        """Build a token pair from a token endpoint response."""
        access_token = payload.get("access_token")
        if not access_token:
            raise ProviderError(self.provider_name, "token response missing access_token")

        expires_in = payload.get("expires_in")
        expires_at = None
        if expires_in:
            try:
                expires_at = datetime.now(timezone.utc) + timedelta(
                    seconds=int(expires_in)
                )
            except (TypeError, ValueError) as e:
                raise ProviderError(
                    self.provider_name, "token response has invalid expires_in"
                ) from e

        return OAuthTokenPair(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            expires_at=expires_at,
            id_token=payload.get("id_token"),
        )

    def _code_grant(self, code: str, code_verifier: str | None) -> dict[str, str]:
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.config.redirect_uri,
            "client_id": self.config.client_id,
        }
        if code_verifier:
            data["code_verifier"] = code_verifier
        return data
