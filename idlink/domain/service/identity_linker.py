"""Identity linking domain service.

Decides, for every verified provider identity, whether it signs in to an
existing account, attaches to an account with the same email, or creates a
new account. Unsafe relinks are rejected, never resolved automatically.
"""

from datetime import datetime
from uuid import uuid4

import logfire
from pydantic import Field

from idlink.domain.error import (
    ConflictError,
    DomainError,
    DuplicateAccountError,
    DuplicateIdentityError,
    NotFoundError,
    NotLinkedError,
    PersistenceError,
    ValidationError,
    WouldRemoveAllAuthMethodsError,
)
from idlink.domain.model.account import Account
from idlink.domain.model.linked_identity import LinkedIdentity
from idlink.domain.repository.account import AccountRepository
from idlink.domain.repository.linked_identity import LinkedIdentityRepository
from idlink.domain.value import (
    AccountId,
    AuthProvider,
    ConflictKind,
    LinkedIdentityId,
    LinkOutcome,
    OAuthTokenPair,
    ProviderIdentity,
    RequestMeta,
    SecurityEventType,
    TokenStatus,
)
from idlink.domain.value.common import ValueObject
from idlink.util.clock import Clock, utcnow

from .audit_service import AuditTrail
from .base import Service
from .crypto_box import CryptoBox


def placeholder_email(provider: AuthProvider, provider_user_id: str) -> str:
    """Provider-scoped address for identities that share no email."""
    return f"{provider.value}_{provider_user_id}@oauth.local"


class LinkResult(ValueObject):
    """Account a callback resolved to, and how."""

    account: Account
    outcome: LinkOutcome
    linked_identity: LinkedIdentity


class ConflictReport(ValueObject):
    """Outcome of a side-effect-free link pre-check."""

    has_conflict: bool
    kind: ConflictKind | None = None
    existing_account_id: AccountId | None = None
    existing_provider_user_id: str | None = None
    linked_at: datetime | None = None


class BulkUnlinkResult(ValueObject):
    """Per-provider outcome of a bulk unlink."""

    succeeded: list[AuthProvider] = Field(default_factory=list)
    failed: list[AuthProvider] = Field(default_factory=list)
    errors: dict[AuthProvider, str] = Field(default_factory=dict)


class LinkedIdentitySummary(ValueObject):
    """Token-free view of a linked identity."""

    provider: AuthProvider
    provider_email: str | None = None
    provider_display_name: str | None = None
    token_expires_at: datetime | None = None
    token_status: TokenStatus
    needs_refresh: bool
    created_at: datetime
    updated_at: datetime


def classify_token(
    expires_at: datetime | None, now: datetime, threshold_ms: int
) -> TokenStatus:
    """Classify a token expiry relative to now."""
    if expires_at is None:
        return TokenStatus.NO_EXPIRY
    remaining_ms = (expires_at - now).total_seconds() * 1000
    if remaining_ms <= 0:
        return TokenStatus.EXPIRED
    if remaining_ms <= threshold_ms:
        return TokenStatus.EXPIRES_SOON
    return TokenStatus.VALID


def summarize(
    identity: LinkedIdentity, now: datetime, threshold_ms: int
) -> LinkedIdentitySummary:
    """Build the token-free summary of an identity."""
    status = classify_token(identity.token_expires_at, now, threshold_ms)
    return LinkedIdentitySummary(
        provider=identity.provider,
        provider_email=identity.provider_email,
        provider_display_name=identity.provider_display_name,
        token_expires_at=identity.token_expires_at,
        token_status=status,
        needs_refresh=status in (TokenStatus.EXPIRED, TokenStatus.EXPIRES_SOON),
        created_at=identity.created_at,
        updated_at=identity.updated_at,
    )


class IdentityLinker(Service):
    """Links provider identities to local accounts.

    Guarantees:
        - (provider, provider_user_id) resolves to at most one account
        - an email match never silently replaces a different upstream identity
        - an account always keeps a password or at least one identity
          (bulk_unlink and safe_unlink)
    """

    def __init__(
        self,
        account_repository: AccountRepository,
        linked_identity_repository: LinkedIdentityRepository,
        crypto_box: CryptoBox,
        audit_trail: AuditTrail,
        refresh_threshold_ms: int = 300_000,
        clock: Clock | None = None,
    ) -> None:
        """Initialize identity linker.

        Args:
            account_repository: Account persistence port
            linked_identity_repository: Linked identity persistence port
            crypto_box: Token encryption
            audit_trail: Security event sink
            refresh_threshold_ms: Window in which a token counts as expiring
            clock: Current-time source (UTC), injectable for tests
        """
        self.account_repository = account_repository
        self.linked_identity_repository = linked_identity_repository
        self.crypto_box = crypto_box
        self.audit_trail = audit_trail
        self.refresh_threshold_ms = refresh_threshold_ms
        self.clock = clock or utcnow

    async def resolve_callback(
        self,
        provider: AuthProvider,
        identity: ProviderIdentity,
        tokens: OAuthTokenPair,
        meta: RequestMeta | None = None,
    ) -> LinkResult:
        """Resolve a verified provider identity to a local account.

        Args:
            provider: Provider that verified the identity
            identity: Identity returned by the provider
            tokens: Tokens from the code exchange
            meta: Client metadata for the audit trail

        Returns:
            The account and the branch taken

        Raises:
            ValidationError: If the identity was issued by another provider
            ConflictError: If the email belongs to an account that links this
                provider under a different provider user ID
            PersistenceError: If storage fails
        """
        if identity.provider != provider:
            raise ValidationError(
                f"Identity from {identity.provider.value} passed for {provider.value}"
            )

        with logfire.span(
            "identity_linker.resolve_callback",
            provider=provider.value,
            provider_user_id=identity.provider_user_id,
        ):
            # 1. Returning user
            existing = await self.linked_identity_repository.find_by_provider(
                provider, identity.provider_user_id
            )
            if existing:
                return await self._login_existing(existing, tokens, meta)

            # 2. Email match
            if identity.email:
                account = await self.account_repository.find_by_email(identity.email)
                if account:
                    return await self._link_to_account(
                        account, provider, identity, tokens, meta
                    )

            # 3. New account
            return await self._create_account(provider, identity, tokens, meta)

    async def _login_existing(
        self,
        linked: LinkedIdentity,
        tokens: OAuthTokenPair,
        meta: RequestMeta | None,
    ) -> LinkResult:
        account = await self.account_repository.find_by_id(linked.account_id)
        if account is None:
            raise PersistenceError(
                f"Linked identity {linked.id} references missing account"
            )

        updated = await self.linked_identity_repository.update_tokens(
            linked.id,
            self.crypto_box.encrypt(tokens.access_token),
            self._refresh_envelope(tokens, linked.encrypted_refresh_token),
            tokens.expires_at,
        )

        await self.audit_trail.record(
            SecurityEventType.AUTHENTICATION,
            {
                "action": "oauth_login_success",
                "provider": linked.provider.value,
                "provider_user_id": linked.provider_user_id,
            },
            account_id=account.id,
            meta=meta,
        )
        logfire.info(
            "OAuth login resolved to existing identity",
            account_id=str(account.id),
            provider=linked.provider.value,
        )
        return LinkResult(
            account=account, outcome=LinkOutcome.EXISTING_LOGIN, linked_identity=updated
        )

    async def _link_to_account(
        self,
        account: Account,
        provider: AuthProvider,
        identity: ProviderIdentity,
        tokens: OAuthTokenPair,
        meta: RequestMeta | None,
    ) -> LinkResult:
        current = await self.linked_identity_repository.find_by_account_and_provider(
            account.id, provider
        )
        if current:
            await self.audit_trail.record(
                SecurityEventType.ACCOUNT_CHANGE,
                {
                    "action": "oauth_account_conflict",
                    "provider": provider.value,
                    "provider_user_id": identity.provider_user_id,
                    "existing_provider_user_id": current.provider_user_id,
                    "conflict_type": ConflictKind.EMAIL_CONFLICT_DIFFERENT_PROVIDER_ID.value,
                    "resolution": "rejected",
                },
                account_id=account.id,
                meta=meta,
            )
            logfire.warn(
                "OAuth link rejected",
                account_id=str(account.id),
                provider=provider.value,
                kind=ConflictKind.EMAIL_CONFLICT_DIFFERENT_PROVIDER_ID.value,
            )
            raise ConflictError(
                ConflictKind.EMAIL_CONFLICT_DIFFERENT_PROVIDER_ID,
                provider,
                f"This {provider.value} account cannot be linked. An account with "
                f"this email already exists with a different {provider.value} ID.",
            )

        try:
            linked = await self.linked_identity_repository.create(
                self._new_identity(account.id, provider, identity, tokens)
            )
        except DuplicateIdentityError:
            return await self._recover_duplicate(provider, identity, tokens, meta)

        await self.audit_trail.record(
            SecurityEventType.ACCOUNT_CHANGE,
            {
                "action": "oauth_account_linked",
                "provider": provider.value,
                "provider_user_id": identity.provider_user_id,
            },
            account_id=account.id,
            meta=meta,
        )
        logfire.info(
            "OAuth identity linked to existing account",
            account_id=str(account.id),
            provider=provider.value,
        )
        return LinkResult(
            account=account,
            outcome=LinkOutcome.LINKED_TO_EXISTING,
            linked_identity=linked,
        )

    async def _create_account(
        self,
        provider: AuthProvider,
        identity: ProviderIdentity,
        tokens: OAuthTokenPair,
        meta: RequestMeta | None,
    ) -> LinkResult:
        now = self.clock()
        email = identity.email or placeholder_email(provider, identity.provider_user_id)
        try:
            account = await self.account_repository.create(
                Account(
                    id=AccountId(uuid4()),
                    email=email,
                    has_password=False,
                    display_name=identity.display_name,
                    email_verified=identity.email is not None,
                    created_at=now,
                    updated_at=now,
                )
            )
        except DuplicateAccountError:
            # A concurrent callback created the account for this email first
            return await self._recover_account_race(
                provider, identity, tokens, meta, email
            )

        try:
            linked = await self.linked_identity_repository.create(
                self._new_identity(account.id, provider, identity, tokens)
            )
        except DuplicateIdentityError:
            # A concurrent callback linked this identity first
            await self.account_repository.delete(account.id)
            return await self._recover_duplicate(provider, identity, tokens, meta)

        await self.audit_trail.record(
            SecurityEventType.ACCOUNT_CHANGE,
            {
                "action": "oauth_user_created",
                "provider": provider.value,
                "provider_user_id": identity.provider_user_id,
            },
            account_id=account.id,
            meta=meta,
        )
        logfire.info(
            "Account created from OAuth identity",
            account_id=str(account.id),
            provider=provider.value,
        )
        return LinkResult(
            account=account, outcome=LinkOutcome.NEW_ACCOUNT, linked_identity=linked
        )

    async def _recover_account_race(
        self,
        provider: AuthProvider,
        identity: ProviderIdentity,
        tokens: OAuthTokenPair,
        meta: RequestMeta | None,
        email: str,
    ) -> LinkResult:
        logfire.info(
            "Concurrent account creation detected, re-reading",
            provider=provider.value,
            provider_user_id=identity.provider_user_id,
        )
        winner = await self.linked_identity_repository.find_by_provider(
            provider, identity.provider_user_id
        )
        if winner:
            return await self._login_existing(winner, tokens, meta)

        account = await self.account_repository.find_by_email(email)
        if account is None:
            raise PersistenceError(
                f"Account for {provider.value} identity {identity.provider_user_id} "
                "reported as duplicate but not found"
            )
        return await self._link_to_account(account, provider, identity, tokens, meta)

    async def _recover_duplicate(
        self,
        provider: AuthProvider,
        identity: ProviderIdentity,
        tokens: OAuthTokenPair,
        meta: RequestMeta | None,
    ) -> LinkResult:
        logfire.info(
            "Concurrent link detected, resolving as existing login",
            provider=provider.value,
            provider_user_id=identity.provider_user_id,
        )
        winner = await self.linked_identity_repository.find_by_provider(
            provider, identity.provider_user_id
        )
        if winner is None:
            raise PersistenceError(
                f"{provider.value} identity {identity.provider_user_id} reported "
                "as duplicate but not found"
            )
        return await self._login_existing(winner, tokens, meta)

    def _new_identity(
        self,
        account_id: AccountId,
        provider: AuthProvider,
        identity: ProviderIdentity,
        tokens: OAuthTokenPair,
    ) -> LinkedIdentity:
        now = self.clock()
        return LinkedIdentity(
            id=LinkedIdentityId(uuid4()),
            account_id=account_id,
            provider=provider,
            provider_user_id=identity.provider_user_id,
            provider_email=identity.email,
            provider_display_name=identity.display_name,
            encrypted_access_token=self.crypto_box.encrypt(tokens.access_token),
            encrypted_refresh_token=self._refresh_envelope(tokens, None),
            token_expires_at=tokens.expires_at,
            created_at=now,
            updated_at=now,
        )

    def _refresh_envelope(
        self, tokens: OAuthTokenPair, current: str | None
    ) -> str | None:
        # Providers that do not rotate refresh tokens omit them on re-auth
        if tokens.refresh_token:
            return self.crypto_box.encrypt(tokens.refresh_token)
        return current

    async def check_conflict(
        self,
        identity: ProviderIdentity,
        provider: AuthProvider,
        acting_account_id: AccountId | None = None,
    ) -> ConflictReport:
        """Report whether linking an identity would be rejected.

        Applies the same rules as resolve_callback without changing state or
        recording events.

        Args:
            identity: Identity to check
            provider: Provider that issued it
            acting_account_id: Account that would receive the link (optional)

        Returns:
            Conflict report
        """
        with logfire.span(
            "identity_linker.check_conflict",
            provider=provider.value,
            provider_user_id=identity.provider_user_id,
        ):
            existing = await self.linked_identity_repository.find_by_provider(
                provider, identity.provider_user_id
            )
            if existing and existing.account_id != acting_account_id:
                return ConflictReport(
                    has_conflict=True,
                    kind=ConflictKind.PROVIDER_ALREADY_LINKED,
                    existing_account_id=existing.account_id,
                    existing_provider_user_id=existing.provider_user_id,
                    linked_at=existing.created_at,
                )

            if not existing and identity.email:
                account = await self.account_repository.find_by_email(identity.email)
                if account and account.id != acting_account_id:
                    current = (
                        await self.linked_identity_repository.find_by_account_and_provider(
                            account.id, provider
                        )
                    )
                    if current and current.provider_user_id != identity.provider_user_id:
                        return ConflictReport(
                            has_conflict=True,
                            kind=ConflictKind.EMAIL_CONFLICT_DIFFERENT_PROVIDER_ID,
                            existing_account_id=account.id,
                            existing_provider_user_id=current.provider_user_id,
                            linked_at=current.created_at,
                        )

            return ConflictReport(has_conflict=False)

    async def link_to_current_account(
        self,
        account_id: AccountId,
        provider: AuthProvider,
        identity: ProviderIdentity,
        tokens: OAuthTokenPair,
        meta: RequestMeta | None = None,
    ) -> LinkedIdentity:
        """Link a provider identity to an already signed-in account.

        Args:
            account_id: Signed-in account
            provider: Provider that verified the identity
            identity: Identity returned by the provider
            tokens: Tokens from the code exchange
            meta: Client metadata for the audit trail

        Returns:
            The new linked identity

        Raises:
            NotFoundError: If the account does not exist
            ConflictError: If the identity is linked anywhere already, the
                account already links this provider, or the email belongs to
                another account that links it differently
        """
        with logfire.span(
            "identity_linker.link_to_current_account",
            account_id=str(account_id),
            provider=provider.value,
        ):
            await self.get_account(account_id)

            existing = await self.linked_identity_repository.find_by_provider(
                provider, identity.provider_user_id
            )
            if existing and existing.account_id == account_id:
                raise ConflictError(
                    ConflictKind.PROVIDER_ALREADY_LINKED,
                    provider,
                    "This social account is already linked to your account",
                )

            report = await self.check_conflict(identity, provider, account_id)
            if report.has_conflict:
                if report.kind == ConflictKind.PROVIDER_ALREADY_LINKED:
                    message = "This social account is already linked to another user"
                else:
                    message = (
                        "An account with this email already exists with a "
                        f"different {provider.value} ID"
                    )
                raise ConflictError(report.kind, provider, message)

            current = await self.linked_identity_repository.find_by_account_and_provider(
                account_id, provider
            )
            if current:
                raise ConflictError(
                    ConflictKind.PROVIDER_ALREADY_LINKED,
                    provider,
                    f"Your account already has a different {provider.value} account linked",
                )

            try:
                linked = await self.linked_identity_repository.create(
                    self._new_identity(account_id, provider, identity, tokens)
                )
            except DuplicateIdentityError as e:
                raise ConflictError(
                    ConflictKind.PROVIDER_ALREADY_LINKED,
                    provider,
                    "This social account is already linked to another user",
                ) from e

            await self.audit_trail.record(
                SecurityEventType.ACCOUNT_CHANGE,
                {
                    "action": "oauth_manual_link_success",
                    "provider": provider.value,
                    "provider_user_id": identity.provider_user_id,
                },
                account_id=account_id,
                meta=meta,
            )
            return linked

    async def get_account(self, account_id: AccountId) -> Account:
        """Load an account.

        Raises:
            NotFoundError: If the account does not exist
        """
        account = await self.account_repository.find_by_id(account_id)
        if account is None:
            raise NotFoundError("Account", str(account_id))
        return account

    async def unlink_provider(self, account_id: AccountId, provider: AuthProvider) -> None:
        """Remove an account's identity for a provider.

        Does not check that the account keeps a way to sign in.

        Raises:
            NotLinkedError: If the account has no identity for the provider
        """
        linked = await self.linked_identity_repository.find_by_account_and_provider(
            account_id, provider
        )
        if linked is None:
            raise NotLinkedError(str(account_id), provider)

        await self.linked_identity_repository.delete(linked.id)
        logfire.info(
            "Provider unlinked", account_id=str(account_id), provider=provider.value
        )

    async def safe_unlink(
        self,
        account_id: AccountId,
        provider: AuthProvider,
        meta: RequestMeta | None = None,
    ) -> None:
        """Unlink a single provider, keeping at least one sign-in method.

        Args:
            account_id: Account to unlink from
            provider: Provider to unlink
            meta: Client metadata for the audit trail

        Raises:
            NotFoundError: If the account does not exist
            NotLinkedError: If the provider is not linked
            WouldRemoveAllAuthMethodsError: If this is the account's last
                sign-in method
        """
        with logfire.span(
            "identity_linker.safe_unlink",
            account_id=str(account_id),
            provider=provider.value,
        ):
            account = await self.get_account(account_id)
            linked = await self.linked_identity_repository.find_all_by_account_id(
                account_id
            )
            if not any(i.provider == provider for i in linked):
                raise NotLinkedError(str(account_id), provider)

            if not account.has_password and len(linked) <= 1:
                logfire.warn(
                    "Unlink rejected: last sign-in method",
                    account_id=str(account_id),
                    provider=provider.value,
                )
                raise WouldRemoveAllAuthMethodsError(str(account_id))

            await self.unlink_provider(account_id, provider)
            await self.audit_trail.record(
                SecurityEventType.ACCOUNT_CHANGE,
                {"action": "oauth_provider_unlinked", "provider": provider.value},
                account_id=account_id,
                meta=meta,
            )

    async def bulk_unlink(
        self,
        account_id: AccountId,
        providers: list[AuthProvider],
        meta: RequestMeta | None = None,
    ) -> BulkUnlinkResult:
        """Unlink several providers, each independently.

        The sign-in method check covers the whole batch and runs before
        anything is removed.

        Args:
            account_id: Account to unlink from
            providers: Providers to unlink
            meta: Client metadata for the audit trail

        Returns:
            Which providers were unlinked and why the others failed

        Raises:
            NotFoundError: If the account does not exist
            WouldRemoveAllAuthMethodsError: If the batch would leave the
                account without a password or identity
        """
        with logfire.span(
            "identity_linker.bulk_unlink",
            account_id=str(account_id),
            providers=[p.value for p in providers],
        ):
            account = await self.get_account(account_id)
            linked = await self.linked_identity_repository.find_all_by_account_id(
                account_id
            )
            linked_providers = {i.provider for i in linked}
            removing = linked_providers.intersection(providers)

            remaining = int(account.has_password) + (len(linked) - len(removing))
            if remaining < 1:
                logfire.warn(
                    "Bulk unlink rejected: last sign-in method",
                    account_id=str(account_id),
                )
                raise WouldRemoveAllAuthMethodsError(str(account_id))

            succeeded: list[AuthProvider] = []
            failed: list[AuthProvider] = []
            errors: dict[AuthProvider, str] = {}
            for provider in dict.fromkeys(providers):
                try:
                    await self.unlink_provider(account_id, provider)
                except DomainError as e:
                    failed.append(provider)
                    errors[provider] = str(e)
                    await self.audit_trail.record(
                        SecurityEventType.ACCOUNT_CHANGE,
                        {
                            "action": "oauth_provider_unlink_failed",
                            "provider": provider.value,
                            "error": str(e),
                        },
                        account_id=account_id,
                        meta=meta,
                    )
                    continue

                succeeded.append(provider)
                await self.audit_trail.record(
                    SecurityEventType.ACCOUNT_CHANGE,
                    {"action": "oauth_provider_unlinked", "provider": provider.value},
                    account_id=account_id,
                    meta=meta,
                )

            logfire.info(
                "Bulk unlink completed",
                account_id=str(account_id),
                succeeded=len(succeeded),
                failed=len(failed),
            )
            return BulkUnlinkResult(succeeded=succeeded, failed=failed, errors=errors)

    async def list_linked_identities(
        self, account_id: AccountId
    ) -> list[LinkedIdentitySummary]:
        """List an account's identities with token freshness, never tokens.

        Raises:
            NotFoundError: If the account does not exist
        """
        await self.get_account(account_id)
        linked = await self.linked_identity_repository.find_all_by_account_id(
            account_id
        )
        now = self.clock()
        return [summarize(i, now, self.refresh_threshold_ms) for i in linked]

    async def get_linked_identity(
        self, account_id: AccountId, provider: AuthProvider
    ) -> LinkedIdentitySummary:
        """Status of one linked provider.

        Raises:
            NotLinkedError: If the account does not link the provider
        """
        linked = await self.linked_identity_repository.find_by_account_and_provider(
            account_id, provider
        )
        if linked is None:
            raise NotLinkedError(str(account_id), provider)
        return summarize(linked, self.clock(), self.refresh_threshold_ms)
