"""Security log repository interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from idlink.domain.model.security_log import SecurityLogEntry
from idlink.domain.value import AccountId, AuthProvider, SecurityEventType


@dataclass(frozen=True)
class SecurityLogFilter:
    """Criteria for reading back an account's security log."""

    account_id: AccountId
    event_types: tuple[SecurityEventType, ...] = field(
        default=(
            SecurityEventType.AUTHENTICATION,
            SecurityEventType.ACCOUNT_CHANGE,
            SecurityEventType.ACCESS_CONTROL,
        )
    )
    provider: Optional[AuthProvider] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None


class SecurityLogRepository(ABC):
    """Append-only store for security events."""

    @abstractmethod
    async def append(self, entry: SecurityLogEntry) -> None:
        """Append an entry.

        Args:
            entry: The entry to store
        """
        pass

    @abstractmethod
    async def find(
        self, criteria: SecurityLogFilter, limit: int = 50, offset: int = 0
    ) -> list[SecurityLogEntry]:
        """Find entries matching criteria, newest first.

        Args:
            criteria: Filter to apply
            limit: Page size
            offset: Number of entries to skip

        Returns:
            Matching entries
        """
        pass

    @abstractmethod
    async def count(self, criteria: SecurityLogFilter) -> int:
        """Count entries matching criteria."""
        pass
