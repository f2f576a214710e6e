"""Refresh provider tokens use case."""

from uuid import UUID

from pydantic import BaseModel

from idlink.domain.service import LinkedIdentitySummary, TokenLifecycleManager
from idlink.domain.value import AccountId, AuthProvider


class RefreshTokensRequest(BaseModel):
    """Refresh tokens request."""

    account_id: str  # UUID string
    provider: AuthProvider


class RefreshTokensUseCase:
    """Use case for an on-demand refresh of one provider's tokens."""

    def __init__(self, token_lifecycle: TokenLifecycleManager) -> None:
        """Initialize refresh tokens use case.

        Args:
            token_lifecycle: Token lifecycle domain service
        """
        self.token_lifecycle = token_lifecycle

    async def execute(self, request: RefreshTokensRequest) -> LinkedIdentitySummary:
        return await self.token_lifecycle.refresh_identity(
            AccountId(UUID(request.account_id)), request.provider
        )
