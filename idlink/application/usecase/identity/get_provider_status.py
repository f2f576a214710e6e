"""Get provider status use case."""

from uuid import UUID

from pydantic import BaseModel

from idlink.domain.service import IdentityLinker, LinkedIdentitySummary
from idlink.domain.value import AccountId, AuthProvider


class GetProviderStatusRequest(BaseModel):
    """Get provider status request."""

    account_id: str  # UUID string
    provider: AuthProvider


class GetProviderStatusUseCase:
    """Use case for reporting one linked provider's token freshness."""

    def __init__(self, identity_linker: IdentityLinker) -> None:
        """Initialize get provider status use case.

        Args:
            identity_linker: Identity linking domain service
        """
        self.identity_linker = identity_linker

    async def execute(self, request: GetProviderStatusRequest) -> LinkedIdentitySummary:
        """Raises NotLinkedError if the provider is not linked."""
        return await self.identity_linker.get_linked_identity(
            AccountId(UUID(request.account_id)), request.provider
        )
