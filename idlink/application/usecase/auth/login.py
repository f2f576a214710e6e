"""OAuth callback login use case."""

from datetime import datetime

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
    AuthProvider,
    LinkOutcome,
    RequestMeta,
    SecurityEventType,
)


class LoginRequest(BaseModel):
    """Login request from OAuth callback.

    These parameters come from the OAuth provider in the callback URL (or
    form body, for Apple's form_post response mode).
    """

    provider: AuthProvider
    code: str  # OAuth authorization code
    state: str  # State issued by InitiateLoginUseCase
    ip_address: str | None = None
    user_agent: str | None = None


class LoginResponse(BaseModel):
    """Account the callback resolved to."""

    account_id: str
    email: str
    display_name: str | None
    email_verified: bool
    provider: AuthProvider
    outcome: LinkOutcome
    is_new_account: bool
    token_expires_at: datetime | None


class LoginUseCase:
    """Use case for multi-provider sign-in via OAuth."""

    def __init__(
        self,
        challenge_generator: ChallengeGenerator,
        auth_service: AuthService,
        identity_linker: IdentityLinker,
        audit_trail: AuditTrail,
    ) -> None:
        """Initialize login use case.

        Args:
            challenge_generator: State validation and PKCE custody
            auth_service: Code exchange and user info
            identity_linker: Account resolution
            audit_trail: Security event sink
        """
        self.challenge_generator = challenge_generator
        self.auth_service = auth_service
        self.identity_linker = identity_linker
        self.audit_trail = audit_trail

    async def execute(self, request: LoginRequest) -> LoginResponse:
        """Execute the OAuth callback.

        Steps:
        1. Consume the state (single use) and recover its PKCE verifier
        2. Exchange the code and fetch the provider identity
        3. Resolve the identity to an account (login, link by email, or create)

        Raises:
            ValidationError: If the state is invalid, expired or replayed
            ProviderError: If the provider exchange fails
            ConflictError: If the identity cannot be linked safely
        """
        meta = RequestMeta(ip_address=request.ip_address, user_agent=request.user_agent)

        with logfire.span("login.execute", provider=request.provider.value):
            challenge = await self.challenge_generator.consume_state(request.state)

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
                    meta=meta,
                )
                raise

            result = await self.identity_linker.resolve_callback(
                request.provider, identity, tokens, meta
            )

            return LoginResponse(
                account_id=str(result.account.id),
                email=result.account.email,
                display_name=result.account.display_name,
                email_verified=result.account.email_verified,
                provider=request.provider,
                outcome=result.outcome,
                is_new_account=result.outcome == LinkOutcome.NEW_ACCOUNT,
                token_expires_at=result.linked_identity.token_expires_at,
            )
