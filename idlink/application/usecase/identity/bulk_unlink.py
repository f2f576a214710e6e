"""Bulk unlink use case."""

from uuid import UUID

from pydantic import BaseModel, Field

from idlink.domain.service import IdentityLinker
from idlink.domain.value import AccountId, AuthProvider, RequestMeta


class BulkUnlinkRequest(BaseModel):
    """Bulk unlink request."""

    account_id: str  # UUID string
    providers: list[AuthProvider] = Field(min_length=1)
    ip_address: str | None = None
    user_agent: str | None = None


class BulkUnlinkResponse(BaseModel):
    """Per-provider outcome of a bulk unlink."""

    succeeded: list[AuthProvider]
    failed: list[AuthProvider]
    errors: dict[str, str]


class BulkUnlinkUseCase:
    """Use case for removing several providers at once."""

    def __init__(self, identity_linker: IdentityLinker) -> None:
        """Initialize bulk unlink use case.

        Args:
            identity_linker: Identity linking domain service
        """
        self.identity_linker = identity_linker

    async def execute(self, request: BulkUnlinkRequest) -> BulkUnlinkResponse:
        """Unlink each provider independently.

        Raises:
            WouldRemoveAllAuthMethodsError: If the batch would leave no
                sign-in method (nothing is unlinked)
        """
        result = await self.identity_linker.bulk_unlink(
            AccountId(UUID(request.account_id)),
            request.providers,
            RequestMeta(ip_address=request.ip_address, user_agent=request.user_agent),
        )
        return BulkUnlinkResponse(
            succeeded=result.succeeded,
            failed=result.failed,
            errors={p.value: message for p, message in result.errors.items()},
        )
