"""Domain layer DI providers."""

from dishka import Scope, provide

from idlink.config import (
    CryptoSettings,
    LifecycleSettings,
    ProviderSettings,
    StateSettings,
)
from idlink.domain.repository import (
    AccountRepository,
    ChallengeStore,
    LinkedIdentityRepository,
    SecurityLogRepository,
    StateStore,
)
from idlink.domain.service import (
    AuditTrail,
    AuthService,
    ChallengeGenerator,
    CryptoBox,
    IdentityLinker,
    OAuthClient,
    ProviderRegistry,
    TokenLifecycleManager,
)
from idlink.domain.value import AuthProvider
from idlink.util.di.base import ProviderBase


class ProdDomainProvider(ProviderBase):
    """Production domain services provider - concrete, no mocks needed.

    Stateful services are REQUEST-scoped to align with repository/session
    lifecycle. CryptoBox and ProviderRegistry hold only configuration and
    live for the whole process.
    """

    scope = Scope.REQUEST

    @provide(scope=Scope.APP)
    def get_crypto_box(self, crypto_settings: CryptoSettings) -> CryptoBox:
        """Provide token encryption (keys are derived once)."""
        return CryptoBox(crypto_settings=crypto_settings)

    @provide(scope=Scope.APP)
    def get_provider_registry(
        self, provider_settings: ProviderSettings
    ) -> ProviderRegistry:
        """Provide provider configuration registry."""
        return ProviderRegistry(provider_settings=provider_settings)

    @provide
    def get_auth_service(
        self, oauth_clients: dict[AuthProvider, OAuthClient]
    ) -> AuthService:
        """Provide multi-provider authentication domain service.

        Args:
            oauth_clients: Dictionary mapping enabled providers to their OAuth clients

        Returns:
            AuthService configured with all available OAuth clients
        """
        return AuthService(oauth_clients=oauth_clients)

    @provide
    def get_challenge_generator(
        self,
        state_settings: StateSettings,
        state_store: StateStore,
        challenge_store: ChallengeStore,
    ) -> ChallengeGenerator:
        """Provide PKCE and state service."""
        return ChallengeGenerator(
            state_settings=state_settings,
            state_store=state_store,
            challenge_store=challenge_store,
        )

    @provide
    def get_audit_trail(
        self, security_log_repository: SecurityLogRepository
    ) -> AuditTrail:
        """Provide security audit trail."""
        return AuditTrail(security_log_repository=security_log_repository)

    @provide
    def get_identity_linker(
        self,
        account_repository: AccountRepository,
        linked_identity_repository: LinkedIdentityRepository,
        crypto_box: CryptoBox,
        audit_trail: AuditTrail,
        lifecycle_settings: LifecycleSettings,
    ) -> IdentityLinker:
        """Provide identity linking domain service."""
        return IdentityLinker(
            account_repository=account_repository,
            linked_identity_repository=linked_identity_repository,
            crypto_box=crypto_box,
            audit_trail=audit_trail,
            refresh_threshold_ms=lifecycle_settings.refresh_threshold_ms,
        )

    @provide
    def get_token_lifecycle(
        self,
        linked_identity_repository: LinkedIdentityRepository,
        crypto_box: CryptoBox,
        audit_trail: AuditTrail,
        auth_service: AuthService,
        lifecycle_settings: LifecycleSettings,
    ) -> TokenLifecycleManager:
        """Provide token lifecycle domain service."""
        return TokenLifecycleManager(
            linked_identity_repository=linked_identity_repository,
            crypto_box=crypto_box,
            audit_trail=audit_trail,
            auth_service=auth_service,
            lifecycle_settings=lifecycle_settings,
        )
