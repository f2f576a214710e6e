"""Provider token lifecycle domain service."""

import asyncio
from datetime import datetime, timedelta

import logfire

from idlink.config import LifecycleSettings
from idlink.domain.error import NotFoundError, NotLinkedError
from idlink.domain.model.linked_identity import LinkedIdentity
from idlink.domain.repository.linked_identity import LinkedIdentityRepository
from idlink.domain.value import (
    AccountId,
    AuthProvider,
    LinkedIdentityId,
    OAuthTokenPair,
    SecurityEventType,
    TokenStatus,
)
from idlink.domain.value.common import ValueObject
from idlink.util.clock import Clock, utcnow

from .audit_service import AuditTrail
from .auth_service import AuthService
from .base import Service
from .crypto_box import CryptoBox
from .identity_linker import LinkedIdentitySummary, classify_token, summarize


class SweepReport(ValueObject):
    """Counts from one token sweep."""

    refreshed: int = 0
    expired_without_refresh: int = 0
    failed: int = 0
    errors: list[str] = []

    def merge(self, other: "SweepReport") -> "SweepReport":
        return SweepReport(
            refreshed=self.refreshed + other.refreshed,
            expired_without_refresh=self.expired_without_refresh
            + other.expired_without_refresh,
            failed=self.failed + other.failed,
            errors=self.errors + other.errors,
        )


class TokenLifecycleManager(Service):
    """Refreshes provider tokens that have expired or are about to.

    A failed refresh leaves the stale token in place and never unlinks the
    identity.
    """

    def __init__(
        self,
        linked_identity_repository: LinkedIdentityRepository,
        crypto_box: CryptoBox,
        audit_trail: AuditTrail,
        auth_service: AuthService,
        lifecycle_settings: LifecycleSettings,
        clock: Clock | None = None,
    ) -> None:
        """Initialize token lifecycle manager.

        Args:
            linked_identity_repository: Linked identity persistence port
            crypto_box: Token encryption
            audit_trail: Security event sink
            auth_service: Provider refresh calls
            lifecycle_settings: Thresholds, batch size and concurrency
            clock: Current-time source (UTC), injectable for tests
        """
        self.linked_identity_repository = linked_identity_repository
        self.crypto_box = crypto_box
        self.audit_trail = audit_trail
        self.auth_service = auth_service
        self.settings = lifecycle_settings
        self.clock = clock or utcnow

    def needs_refresh(
        self,
        expires_at: datetime | None,
        threshold_ms: int | None = None,
        now: datetime | None = None,
    ) -> bool:
        """Whether a token expires within the threshold.

        Args:
            expires_at: Token expiry (None means it never expires)
            threshold_ms: Window (defaults to configured 5 minutes)
            now: Reference time (defaults to the clock)
        """
        if expires_at is None:
            return False
        if threshold_ms is None:
            threshold_ms = self.settings.refresh_threshold_ms
        now = now or self.clock()
        return expires_at <= now + timedelta(milliseconds=threshold_ms)

    def token_status(
        self, expires_at: datetime | None, now: datetime | None = None
    ) -> TokenStatus:
        return classify_token(
            expires_at, now or self.clock(), self.settings.refresh_threshold_ms
        )

    async def run_sweep(self) -> SweepReport:
        """Sweep every identity whose token has expired.

        Expired rows are walked in pages of ``batch_size`` with a
        (token_expires_at, id) cursor, so identities that stay expired
        cannot starve the ones behind them.
        """
        now = self.clock()
        report = SweepReport()
        cursor: tuple[datetime, LinkedIdentityId] | None = None

        while True:
            page = await self.linked_identity_repository.find_expired(
                now, self.settings.batch_size, after=cursor
            )
            if not page:
                break
            report = report.merge(await self.sweep(now, page))
            if len(page) < self.settings.batch_size:
                break
            last = page[-1]
            cursor = (last.token_expires_at, last.id)

        return report

    async def sweep(
        self, now: datetime, candidates: list[LinkedIdentity]
    ) -> SweepReport:
        """Refresh every candidate whose token expired at or before now.

        Provider calls run concurrently up to the configured limit. Token
        writes and audit records are applied one at a time afterwards, since
        the repository session does not allow concurrent statements. Each
        identity succeeds or fails on its own.

        Args:
            now: Reference time
            candidates: Identities to consider

        Returns:
            Counts of refreshed, unrefreshable and failed identities
        """
        due = [
            c
            for c in candidates
            if c.token_expires_at is not None and c.token_expires_at <= now
        ]

        with logfire.span("token_lifecycle.sweep", candidates=len(due)):
            semaphore = asyncio.Semaphore(max(1, self.settings.max_concurrency))

            async def bounded(identity: LinkedIdentity) -> OAuthTokenPair | None:
                if not identity.encrypted_refresh_token:
                    return None
                async with semaphore:
                    return await self._fetch_tokens(identity)

            fetched = await asyncio.gather(
                *(bounded(c) for c in due), return_exceptions=True
            )

            outcomes = [
                await self._apply(identity, result)
                for identity, result in zip(due, fetched)
            ]

            report = SweepReport(
                refreshed=sum(1 for o, _ in outcomes if o == "refreshed"),
                expired_without_refresh=sum(1 for o, _ in outcomes if o == "expired"),
                failed=sum(1 for o, _ in outcomes if o == "failed"),
                errors=[e for _, e in outcomes if e is not None],
            )
            logfire.info(
                "Token sweep completed",
                refreshed=report.refreshed,
                expired_without_refresh=report.expired_without_refresh,
                failed=report.failed,
            )
            return report

    async def _apply(
        self,
        identity: LinkedIdentity,
        result: OAuthTokenPair | BaseException | None,
    ) -> tuple[str, str | None]:
        details = {"provider": identity.provider.value, "token_id": str(identity.id)}

        if result is None:
            await self.audit_trail.record(
                SecurityEventType.AUTHENTICATION,
                {"action": "token_expired_no_refresh", **details},
                account_id=identity.account_id,
            )
            return "expired", None

        try:
            if isinstance(result, BaseException):
                raise result
            await self._store_tokens(identity, result)
        except Exception as e:
            message = (
                f"Failed to refresh {identity.provider.value} token for account "
                f"{identity.account_id}: {type(e).__name__}: {e}"
            )
            logfire.warn(
                "Token refresh failed",
                account_id=str(identity.account_id),
                provider=identity.provider.value,
                error_type=type(e).__name__,
            )
            await self.audit_trail.record(
                SecurityEventType.AUTHENTICATION,
                {"action": "token_refresh_failed", "error": str(e), **details},
                account_id=identity.account_id,
            )
            return "failed", message

        await self.audit_trail.record(
            SecurityEventType.AUTHENTICATION,
            {"action": "token_auto_refreshed", **details},
            account_id=identity.account_id,
        )
        return "refreshed", None

    async def _fetch_tokens(self, identity: LinkedIdentity) -> OAuthTokenPair:
        refresh_token = self.crypto_box.decrypt(identity.encrypted_refresh_token)
        return await self.auth_service.refresh(identity.provider, refresh_token)

    async def _store_tokens(
        self, identity: LinkedIdentity, tokens: OAuthTokenPair
    ) -> LinkedIdentity:
        # Keep the current refresh token when the provider does not rotate it
        refresh_envelope = (
            self.crypto_box.encrypt(tokens.refresh_token)
            if tokens.refresh_token
            else identity.encrypted_refresh_token
        )
        return await self.linked_identity_repository.update_tokens(
            identity.id,
            self.crypto_box.encrypt(tokens.access_token),
            refresh_envelope,
            tokens.expires_at,
        )

    async def refresh_identity(
        self, account_id: AccountId, provider: AuthProvider
    ) -> LinkedIdentitySummary:
        """Refresh one account's tokens for a provider on demand.

        Args:
            account_id: Owning account
            provider: Provider to refresh

        Returns:
            Updated token-free summary

        Raises:
            NotLinkedError: If the provider is not linked
            NotFoundError: If no refresh token is stored
            DecryptionError: If the stored refresh token cannot be read
            ProviderError: If the provider refresh call fails
        """
        with logfire.span(
            "token_lifecycle.refresh_identity",
            account_id=str(account_id),
            provider=provider.value,
        ):
            identity = await self.linked_identity_repository.find_by_account_and_provider(
                account_id, provider
            )
            if identity is None:
                raise NotLinkedError(str(account_id), provider)
            if not identity.encrypted_refresh_token:
                raise NotFoundError("Refresh token", provider.value)

            tokens = await self._fetch_tokens(identity)
            updated = await self._store_tokens(identity, tokens)
            await self.audit_trail.record(
                SecurityEventType.AUTHENTICATION,
                {
                    "action": "token_manual_refreshed",
                    "provider": provider.value,
                    "token_id": str(identity.id),
                },
                account_id=account_id,
            )
            logfire.info(
                "Tokens refreshed", account_id=str(account_id), provider=provider.value
            )
            return summarize(updated, self.clock(), self.settings.refresh_threshold_ms)
