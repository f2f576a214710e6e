"""Unlink provider use case."""

from uuid import UUID

from pydantic import BaseModel

from idlink.domain.service import IdentityLinker
from idlink.domain.value import AccountId, AuthProvider, RequestMeta


class UnlinkProviderRequest(BaseModel):
    """Unlink provider request."""

    account_id: str  # UUID string
    provider: AuthProvider
    ip_address: str | None = None
    user_agent: str | None = None


class UnlinkProviderResponse(BaseModel):
    """Unlink provider response."""

    success: bool
    provider: AuthProvider


class UnlinkProviderUseCase:
    """Use case for removing one provider from an account."""

    def __init__(self, identity_linker: IdentityLinker) -> None:
        """Initialize unlink provider use case.

        Args:
            identity_linker: Identity linking domain service
        """
        self.identity_linker = identity_linker

    async def execute(self, request: UnlinkProviderRequest) -> UnlinkProviderResponse:
        """Unlink the provider unless it is the last sign-in method.

        Raises:
            NotLinkedError: If the provider is not linked
            WouldRemoveAllAuthMethodsError: If nothing would remain to sign in with
        """
        await self.identity_linker.safe_unlink(
            AccountId(UUID(request.account_id)),
            request.provider,
            RequestMeta(ip_address=request.ip_address, user_agent=request.user_agent),
        )
        return UnlinkProviderResponse(success=True, provider=request.provider)
