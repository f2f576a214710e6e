"""Security log repository implementation using PostgreSQL."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from idlink.domain.model.security_log import SecurityLogEntry
from idlink.domain.repository.security_log import (
    SecurityLogFilter,
    SecurityLogRepository,
)
from idlink.persistence.mappers import row_to_security_log, security_log_to_dict
from idlink.persistence.tables import security_logs_table


def _conditions(criteria: SecurityLogFilter) -> list:
    table = security_logs_table
    conditions = [
        table.c.account_id == criteria.account_id,
        table.c.event_type.in_([t.value for t in criteria.event_types]),
    ]
    if criteria.provider is not None:
        conditions.append(table.c.details["provider"].astext == criteria.provider.value)
    if criteria.start is not None:
        conditions.append(table.c.timestamp >= criteria.start)
    if criteria.end is not None:
        conditions.append(table.c.timestamp <= criteria.end)
    return conditions


class PostgresSecurityLogRepository(SecurityLogRepository):
    """PostgreSQL implementation of SecurityLogRepository.

    Only inserts and reads; rows are never updated. Each append commits in
    its own session so events survive a rollback of the request that
    produced them (a rejected link must still leave its conflict event).
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize repository with a session factory.

        Args:
            session_factory: Factory for short-lived sessions
        """
        self.session_factory = session_factory

    async def append(self, entry: SecurityLogEntry) -> None:
        stmt = security_logs_table.insert().values(**security_log_to_dict(entry))
        async with self.session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def find(
        self, criteria: SecurityLogFilter, limit: int = 50, offset: int = 0
    ) -> list[SecurityLogEntry]:
        stmt = (
            select(security_logs_table)
            .where(*_conditions(criteria))
            .order_by(security_logs_table.c.timestamp.desc())
            .limit(limit)
            .offset(offset)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            rows = result.mappings().all()

        return [row_to_security_log(dict(row)) for row in rows]

    async def count(self, criteria: SecurityLogFilter) -> int:
        stmt = (
            select(func.count())
            .select_from(security_logs_table)
            .where(*_conditions(criteria))
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one()
