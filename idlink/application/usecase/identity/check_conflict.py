"""Check link conflict use case."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from idlink.domain.service import IdentityLinker
from idlink.domain.value import (
    AccountId,
    AuthProvider,
    ConflictKind,
    ProviderIdentity,
)


class CheckConflictRequest(BaseModel):
    """Identity to test against the linking rules."""

    provider: AuthProvider
    provider_user_id: str
    email: str | None = None
    account_id: str | None = None  # UUID string of the acting account


class CheckConflictResponse(BaseModel):
    """Conflict pre-check result."""

    has_conflict: bool
    conflict_type: ConflictKind | None = None
    existing_account_id: str | None = None
    existing_provider_user_id: str | None = None
    linked_at: datetime | None = None


class CheckConflictUseCase:
    """Use case for checking a link before committing to it.

    Read-only: records no security events.
    """

    def __init__(self, identity_linker: IdentityLinker) -> None:
        """Initialize check conflict use case.

        Args:
            identity_linker: Identity linking domain service
        """
        self.identity_linker = identity_linker

    async def execute(self, request: CheckConflictRequest) -> CheckConflictResponse:
        identity = ProviderIdentity(
            provider=request.provider,
            provider_user_id=request.provider_user_id,
            email=request.email,
        )
        acting = AccountId(UUID(request.account_id)) if request.account_id else None

        report = await self.identity_linker.check_conflict(
            identity, request.provider, acting
        )

        return CheckConflictResponse(
            has_conflict=report.has_conflict,
            conflict_type=report.kind,
            existing_account_id=(
                str(report.existing_account_id) if report.existing_account_id else None
            ),
            existing_provider_user_id=report.existing_provider_user_id,
            linked_at=report.linked_at,
        )
