"""Application layer DI providers."""

from dishka import Scope, provide

from idlink.application.usecase.audit import GetAuditLogsUseCase
from idlink.application.usecase.auth import (
    InitiateLoginUseCase,
    LinkProviderUseCase,
    LoginUseCase,
)
from idlink.application.usecase.identity import (
    BulkUnlinkUseCase,
    CheckConflictUseCase,
    GetProviderStatusUseCase,
    ListProvidersUseCase,
    UnlinkProviderUseCase,
)
from idlink.application.usecase.token import (
    ReencryptTokensUseCase,
    RefreshTokensUseCase,
    SweepTokensUseCase,
)
from idlink.domain.repository import LinkedIdentityRepository, StateStore
from idlink.domain.service import (
    AuditTrail,
    AuthService,
    ChallengeGenerator,
    CryptoBox,
    IdentityLinker,
    ProviderRegistry,
    TokenLifecycleManager,
)
from idlink.util.di.base import ProviderBase


class ProdApplicationProvider(ProviderBase):
    """Production application use cases provider - concrete, no mocks needed."""

    scope = Scope.REQUEST

    # Auth use cases
    @provide
    def get_initiate_login_use_case(
        self,
        provider_registry: ProviderRegistry,
        challenge_generator: ChallengeGenerator,
    ) -> InitiateLoginUseCase:
        """Provide initiate login use case."""
        return InitiateLoginUseCase(
            provider_registry=provider_registry,
            challenge_generator=challenge_generator,
        )

    @provide
    def get_login_use_case(
        self,
        challenge_generator: ChallengeGenerator,
        auth_service: AuthService,
        identity_linker: IdentityLinker,
        audit_trail: AuditTrail,
    ) -> LoginUseCase:
        """Provide login use case."""
        return LoginUseCase(
            challenge_generator=challenge_generator,
            auth_service=auth_service,
            identity_linker=identity_linker,
            audit_trail=audit_trail,
        )

    @provide
    def get_link_provider_use_case(
        self,
        challenge_generator: ChallengeGenerator,
        auth_service: AuthService,
        identity_linker: IdentityLinker,
        audit_trail: AuditTrail,
    ) -> LinkProviderUseCase:
        """Provide link provider use case."""
        return LinkProviderUseCase(
            challenge_generator=challenge_generator,
            auth_service=auth_service,
            identity_linker=identity_linker,
            audit_trail=audit_trail,
        )

    # Identity use cases
    @provide
    def get_list_providers_use_case(
        self, identity_linker: IdentityLinker, provider_registry: ProviderRegistry
    ) -> ListProvidersUseCase:
        """Provide list providers use case."""
        return ListProvidersUseCase(
            identity_linker=identity_linker, provider_registry=provider_registry
        )

    @provide
    def get_provider_status_use_case(
        self, identity_linker: IdentityLinker
    ) -> GetProviderStatusUseCase:
        """Provide get provider status use case."""
        return GetProviderStatusUseCase(identity_linker=identity_linker)

    @provide
    def get_check_conflict_use_case(
        self, identity_linker: IdentityLinker
    ) -> CheckConflictUseCase:
        """Provide check conflict use case."""
        return CheckConflictUseCase(identity_linker=identity_linker)

    @provide
    def get_unlink_provider_use_case(
        self, identity_linker: IdentityLinker
    ) -> UnlinkProviderUseCase:
        """Provide unlink provider use case."""
        return UnlinkProviderUseCase(identity_linker=identity_linker)

    @provide
    def get_bulk_unlink_use_case(
        self, identity_linker: IdentityLinker
    ) -> BulkUnlinkUseCase:
        """Provide bulk unlink use case."""
        return BulkUnlinkUseCase(identity_linker=identity_linker)

    # Token use cases
    @provide
    def get_refresh_tokens_use_case(
        self, token_lifecycle: TokenLifecycleManager
    ) -> RefreshTokensUseCase:
        """Provide refresh tokens use case."""
        return RefreshTokensUseCase(token_lifecycle=token_lifecycle)

    @provide
    def get_sweep_tokens_use_case(
        self, token_lifecycle: TokenLifecycleManager, state_store: StateStore
    ) -> SweepTokensUseCase:
        """Provide token sweep use case."""
        return SweepTokensUseCase(
            token_lifecycle=token_lifecycle, state_store=state_store
        )

    @provide
    def get_reencrypt_tokens_use_case(
        self,
        linked_identity_repository: LinkedIdentityRepository,
        crypto_box: CryptoBox,
    ) -> ReencryptTokensUseCase:
        """Provide token re-encryption use case."""
        return ReencryptTokensUseCase(
            linked_identity_repository=linked_identity_repository,
            crypto_box=crypto_box,
        )

    # Audit use cases
    @provide
    def get_audit_logs_use_case(self, audit_trail: AuditTrail) -> GetAuditLogsUseCase:
        """Provide get audit logs use case."""
        return GetAuditLogsUseCase(audit_trail=audit_trail)
