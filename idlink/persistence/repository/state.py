"""Consumed state store implementation using PostgreSQL."""

from datetime import datetime

from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from idlink.domain.repository.state import StateStore
from idlink.persistence.tables import consumed_states_table


class PostgresStateStore(StateStore):
    """PostgreSQL implementation of StateStore.

    The nonce primary key makes concurrent consumption of one state race-free.
    Marks commit in their own session: a state stays consumed even when the
    callback that consumed it fails afterwards.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize store with a session factory.

        Args:
            session_factory: Factory for short-lived sessions
        """
        self.session_factory = session_factory

    async def mark_used(self, nonce: str, expires_at: datetime) -> bool:
        stmt = (
            insert(consumed_states_table)
            .values(nonce=nonce, expires_at=expires_at)
            .on_conflict_do_nothing(index_elements=["nonce"])
            .returning(consumed_states_table.c.nonce)
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            inserted = result.first() is not None
            await session.commit()
        return inserted

    async def purge_expired(self, now: datetime) -> int:
        stmt = consumed_states_table.delete().where(
            consumed_states_table.c.expires_at < now
        )
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            await session.commit()
        return result.rowcount or 0
