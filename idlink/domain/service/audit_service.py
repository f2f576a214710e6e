"""Security audit trail domain service."""

from datetime import datetime
from uuid import uuid4

import logfire

from idlink.domain.model.security_log import SecurityLogEntry
from idlink.domain.repository.security_log import (
    SecurityLogFilter,
    SecurityLogRepository,
)
from idlink.domain.value import (
    AccountId,
    AuditDetails,
    AuthProvider,
    RequestMeta,
    SecurityEventType,
    SecurityLogId,
)
from idlink.util.clock import Clock, utcnow

from .base import Service


class AuditTrail(Service):
    """Appends security events for identity-affecting decisions.

    Recording never fails the caller: a broken sink is reported through
    logfire and otherwise ignored.
    """

    def __init__(
        self, security_log_repository: SecurityLogRepository, clock: Clock | None = None
    ) -> None:
        """Initialize audit trail.

        Args:
            security_log_repository: Security log sink
            clock: Current-time source (UTC), injectable for tests
        """
        self.security_log_repository = security_log_repository
        self.clock = clock or utcnow

    async def record(
        self,
        event_type: SecurityEventType,
        details: AuditDetails,
        account_id: AccountId | None = None,
        meta: RequestMeta | None = None,
    ) -> None:
        """Append a security event.

        Args:
            event_type: Event category
            details: Structured details; must carry an ``action`` key and
                never token values
            account_id: Account the event concerns (optional)
            meta: Client IP and user agent (optional)
        """
        entry = SecurityLogEntry(
            id=SecurityLogId(uuid4()),
            event_type=event_type,
            account_id=account_id,
            details=details,
            ip_address=meta.ip_address if meta else None,
            user_agent=meta.user_agent if meta else None,
            timestamp=self.clock(),
        )

        try:
            await self.security_log_repository.append(entry)
        except Exception as e:
            logfire.error(
                "Failed to record security event",
                event_type=event_type.value,
                action=details.get("action"),
                account_id=str(account_id) if account_id else None,
                error_type=type(e).__name__,
            )
            return

        logfire.info(
            "Security event recorded",
            event_type=event_type.value,
            action=details.get("action"),
            account_id=str(account_id) if account_id else None,
        )

    async def get_logs(
        self,
        account_id: AccountId,
        provider: AuthProvider | None = None,
        event_type: SecurityEventType | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[SecurityLogEntry], int]:
        """Read back an account's security events, newest first.

        Args:
            account_id: Account whose events to read
            provider: Only events whose details name this provider
            event_type: Only this category (defaults to authentication,
                account change and access control events)
            start: Earliest timestamp (inclusive)
            end: Latest timestamp (inclusive)
            limit: Page size
            offset: Number of entries to skip

        Returns:
            Tuple of (entries, total matching count)
        """
        with logfire.span(
            "audit_trail.get_logs", account_id=str(account_id), limit=limit
        ):
            if event_type is not None:
                criteria = SecurityLogFilter(
                    account_id=account_id,
                    event_types=(event_type,),
                    provider=provider,
                    start=start,
                    end=end,
                )
            else:
                criteria = SecurityLogFilter(
                    account_id=account_id, provider=provider, start=start, end=end
                )

            entries = await self.security_log_repository.find(
                criteria, limit=limit, offset=offset
            )
            total = await self.security_log_repository.count(criteria)

            logfire.info(
                "Security events retrieved",
                account_id=str(account_id),
                count=len(entries),
                total=total,
            )
            return entries, total
