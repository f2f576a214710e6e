"""In-memory security log repository for testing."""

from idlink.domain.model.security_log import SecurityLogEntry
from idlink.domain.repository.security_log import (
    SecurityLogFilter,
    SecurityLogRepository,
)


class InMemorySecurityLogRepository(SecurityLogRepository):
    """In-memory implementation of SecurityLogRepository for testing."""

    def __init__(self) -> None:
        self.entries: list[SecurityLogEntry] = []

    def _matching(self, criteria: SecurityLogFilter) -> list[SecurityLogEntry]:
        matches = []
        for entry in self.entries:
            if entry.account_id != criteria.account_id:
                continue
            if entry.event_type not in criteria.event_types:
                continue
            if (
                criteria.provider is not None
                and entry.details.get("provider") != criteria.provider.value
            ):
                continue
            if criteria.start is not None and entry.timestamp < criteria.start:
                continue
            if criteria.end is not None and entry.timestamp > criteria.end:
                continue
            matches.append(entry)
        return matches

    async def append(self, entry: SecurityLogEntry) -> None:
        """Append entry."""
        self.entries.append(entry)

    async def find(
        self, criteria: SecurityLogFilter, limit: int = 50, offset: int = 0
    ) -> list[SecurityLogEntry]:
        """Find entries, newest first."""
        matches = self._matching(criteria)
        matches.sort(key=lambda e: e.timestamp, reverse=True)
        return matches[offset : offset + limit]

    async def count(self, criteria: SecurityLogFilter) -> int:
        """Count matching entries."""
        return len(self._matching(criteria))
