"""Security log entry entity."""

from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from idlink.domain.model.common import DomainModel
from idlink.domain.value import AccountId, SecurityEventType, SecurityLogId


class SecurityLogEntry(DomainModel):
    """Append-only record of an identity-affecting decision."""

    id: SecurityLogId
    event_type: SecurityEventType
    account_id: Optional[AccountId] = None
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)
