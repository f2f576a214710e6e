"""Get audit logs use case."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from idlink.domain.service import AuditTrail
from idlink.domain.value import AccountId, AuthProvider, SecurityEventType


class GetAuditLogsRequest(BaseModel):
    """Get audit logs request."""

    account_id: str  # UUID string
    provider: AuthProvider | None = None
    event_type: SecurityEventType | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    limit: int = Field(default=50, ge=1, le=200)
    offset: int = Field(default=0, ge=0)


class AuditLogItem(BaseModel):
    """One security event."""

    id: str
    event_type: SecurityEventType
    details: dict[str, Any]
    ip_address: str | None
    user_agent: str | None
    timestamp: datetime


class GetAuditLogsResponse(BaseModel):
    """Page of security events, newest first."""

    logs: list[AuditLogItem]
    total: int
    limit: int
    offset: int


class GetAuditLogsUseCase:
    """Use case for reading an account's security history."""

    def __init__(self, audit_trail: AuditTrail) -> None:
        """Initialize get audit logs use case.

        Args:
            audit_trail: Security audit domain service
        """
        self.audit_trail = audit_trail

    async def execute(self, request: GetAuditLogsRequest) -> GetAuditLogsResponse:
        entries, total = await self.audit_trail.get_logs(
            AccountId(UUID(request.account_id)),
            provider=request.provider,
            event_type=request.event_type,
            start=request.start_date,
            end=request.end_date,
            limit=request.limit,
            offset=request.offset,
        )

        return GetAuditLogsResponse(
            logs=[
                AuditLogItem(
                    id=str(entry.id),
                    event_type=entry.event_type,
                    details=entry.details,
                    ip_address=entry.ip_address,
                    user_agent=entry.user_agent,
                    timestamp=entry.timestamp,
                )
                for entry in entries
            ],
            total=total,
            limit=request.limit,
            offset=request.offset,
        )
