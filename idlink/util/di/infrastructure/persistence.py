"""Persistence infrastructure providers."""

from collections.abc import AsyncIterator

from dishka import Scope, provide
import logfire
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from idlink.config import Settings
from idlink.domain.repository import (
    AccountRepository,
    ChallengeStore,
    LinkedIdentityRepository,
    SecurityLogRepository,
    StateStore,
)
from idlink.persistence.database import create_engine, create_session_factory
from idlink.persistence.repository import (
    PostgresAccountRepository,
    PostgresLinkedIdentityRepository,
    PostgresSecurityLogRepository,
    PostgresStateStore,
)
from idlink.persistence.repository.inmemory import InMemoryChallengeStore
from idlink.util.di.base import ProviderBase
from idlink.util.observability import instrument_sqlalchemy


class PersistenceProvider(ProviderBase):
    """Persistence component base."""

    __mock_component__ = "persistence"


class ProdPersistenceProvider(PersistenceProvider):
    """Production persistence provider using PostgreSQL."""

    __is_mock__ = False

    scope = Scope.APP

    @provide(scope=Scope.APP)
    def get_engine(self, settings: Settings) -> AsyncEngine:
        """Provide database engine."""
        engine = create_engine(settings)
        # Instrument SQLAlchemy for observability
        instrument_sqlalchemy(engine)
        return engine

    @provide(scope=Scope.APP)
    def get_session_factory(
        self, engine: AsyncEngine
    ) -> async_sessionmaker[AsyncSession]:
        """Provide session factory."""
        return create_session_factory(engine)

    @provide(scope=Scope.REQUEST)
    async def get_session(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> AsyncIterator[AsyncSession]:
        """Provide database session for request scope.

        The session is automatically committed at the end of the request
        if no exception occurred, or rolled back if an exception was raised.
        """
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
                logfire.info("Session committed")
            except Exception as e:
                logfire.warn("Session rollback", error_type=type(e).__name__)
                await session.rollback()
                raise

    @provide(scope=Scope.REQUEST)
    def get_account_repository(self, session: AsyncSession) -> AccountRepository:
        """Provide Account repository."""
        return PostgresAccountRepository(session)

    @provide(scope=Scope.REQUEST)
    def get_linked_identity_repository(
        self, session: AsyncSession
    ) -> LinkedIdentityRepository:
        """Provide LinkedIdentity repository."""
        return PostgresLinkedIdentityRepository(session)

    @provide(scope=Scope.APP)
    def get_security_log_repository(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> SecurityLogRepository:
        """Provide security log repository (commits independently of requests)."""
        return PostgresSecurityLogRepository(session_factory)

    @provide(scope=Scope.APP)
    def get_state_store(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> StateStore:
        """Provide consumed state store (commits independently of requests)."""
        return PostgresStateStore(session_factory)

    @provide(scope=Scope.APP)
    def get_challenge_store(self) -> ChallengeStore:
        """Provide PKCE challenge store.

        Held in process memory: a callback must reach the instance that
        started its flow.
        """
        return InMemoryChallengeStore()
