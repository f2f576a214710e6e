"""Link provider use case."""

from datetime import datetime
from uuid import UUID

import logfire
from pydantic import BaseModel

from idlink.adapter.error import ProviderError
from idlink.domain.service import (
    AuditTrail,
    AuthService,
    ChallengeGenerator,
    IdentityLinker,
)
from idlink.domain.value import (
    AccountId,
    AuthProvider,
    RequestMeta,
    SecurityEventType,
)


class LinkProviderRequest(BaseModel):
    """Callback of a flow started by a signed-in account."""

    account_id: str  # UUID string of the signed-in account
    provider: AuthProvider
    code: str
    state: str
    ip_address: str | None = None
    user_agent: str | None = None


class LinkProviderResponse(BaseModel):
    """Newly linked identity."""

    provider: AuthProvider
    provider_email: str | None
    provider_display_name: str | None
    linked_at: datetime


class LinkProviderUseCase:
    """Use case for attaching another provider to the current account."""

    def __init__(
        self,
        challenge_generator: ChallengeGenerator,
        auth_service: AuthService,
        identity_linker: IdentityLinker,
        audit_trail: AuditTrail,
    ) -> None:
        """Initialize link provider use case.

        Args:
            challenge_generator: State validation and PKCE custody
            auth_service: Code exchange and user info
            identity_linker: Linking rules
            audit_trail: Security event sink
        """
        self.challenge_generator = challenge_generator
        self.auth_service = auth_service
        self.identity_linker = identity_linker
        self.audit_trail = audit_trail

    async def execute(self, request: LinkProviderRequest) -> LinkProviderResponse:
        """Complete the flow and link the identity.

        The state must have been issued for the same account.

        Raises:
            ValidationError: If the state is invalid, replayed or bound to
                another account
            ProviderError: If the provider exchange fails
            ConflictError: If the identity is already linked anywhere
            NotFoundError: If the account does not exist
        """
        account_id = AccountId(UUID(request.account_id))
        meta = RequestMeta(ip_address=request.ip_address, user_agent=request.user_agent)

        with logfire.span(
            "link_provider.execute",
            account_id=request.account_id,
            provider=request.provider.value,
        ):
            challenge = await self.challenge_generator.consume_state(
                request.state, account_hint=str(account_id)
            )

            try:
                identity, tokens = await self.auth_service.complete_authorization(
                    request.provider,
                    request.code,
                    challenge.code_verifier if challenge else None,
                )
            except ProviderError as e:
                await self.audit_trail.record(
                    SecurityEventType.AUTHENTICATION,
                    {
                        "action": "oauth_callback_error",
                        "provider": request.provider.value,
                        "error": str(e),
                    },
                    account_id=account_id,
                    meta=meta,
                )
                raise

            linked = await self.identity_linker.link_to_current_account(
                account_id, request.provider, identity, tokens, meta
            )

            return LinkProviderResponse(
                provider=linked.provider,
                provider_email=linked.provider_email,
                provider_display_name=linked.provider_display_name,
                linked_at=linked.created_at,
            )
