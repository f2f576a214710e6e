"""Initiate login use case."""

from uuid import UUID

import logfire
from pydantic import BaseModel

from idlink.domain.service import ChallengeGenerator, ProviderRegistry
from idlink.domain.value import AuthProvider


class InitiateLoginRequest(BaseModel):
    """Start of an authorization code flow.

    account_id is set when a signed-in user is linking another provider;
    the state is then bound to that account.
    """

    provider: AuthProvider
    account_id: str | None = None  # UUID string


class InitiateLoginResponse(BaseModel):
    """Where to send the user agent."""

    provider: AuthProvider
    authorization_url: str
    state: str


class InitiateLoginUseCase:
    """Use case for building a provider authorization URL."""

    def __init__(
        self,
        provider_registry: ProviderRegistry,
        challenge_generator: ChallengeGenerator,
    ) -> None:
        """Initialize initiate login use case.

        Args:
            provider_registry: Provider configuration
            challenge_generator: State and PKCE issuance
        """
        self.provider_registry = provider_registry
        self.challenge_generator = challenge_generator

    async def execute(self, request: InitiateLoginRequest) -> InitiateLoginResponse:
        """Issue state and PKCE challenge, then build the authorization URL.

        Raises:
            ProviderNotConfiguredError: If the provider has no credentials
        """
        # Fail before storing a challenge nobody can redeem
        self.provider_registry.get(request.provider)

        account_hint = str(UUID(request.account_id)) if request.account_id else None
        state, challenge = await self.challenge_generator.start_authorization(
            account_hint
        )
        url = self.provider_registry.authorization_url(
            request.provider, state, challenge
        )

        logfire.info(
            "Authorization started",
            provider=request.provider.value,
            bound_to_account=account_hint is not None,
        )
        return InitiateLoginResponse(
            provider=request.provider, authorization_url=url, state=state
        )
