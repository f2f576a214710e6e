"""List linked providers use case."""

from uuid import UUID

from pydantic import BaseModel

from idlink.domain.service import (
    IdentityLinker,
    LinkedIdentitySummary,
    ProviderRegistry,
)
from idlink.domain.value import AccountId, AuthProvider


class ListProvidersRequest(BaseModel):
    """List providers request."""

    account_id: str  # UUID string


class ListProvidersResponse(BaseModel):
    """Linked identities and providers still available to link."""

    linked: list[LinkedIdentitySummary]
    available: list[AuthProvider]
    has_password: bool


class ListProvidersUseCase:
    """Use case for showing an account's sign-in methods."""

    def __init__(
        self, identity_linker: IdentityLinker, provider_registry: ProviderRegistry
    ) -> None:
        """Initialize list providers use case.

        Args:
            identity_linker: Identity linking domain service
            provider_registry: Enabled providers
        """
        self.identity_linker = identity_linker
        self.provider_registry = provider_registry

    async def execute(self, request: ListProvidersRequest) -> ListProvidersResponse:
        account_id = AccountId(UUID(request.account_id))

        account = await self.identity_linker.get_account(account_id)
        linked = await self.identity_linker.list_linked_identities(account_id)
        linked_providers = {s.provider for s in linked}

        return ListProvidersResponse(
            linked=linked,
            available=[
                p for p in self.provider_registry.enabled() if p not in linked_providers
            ],
            has_password=account.has_password,
        )
