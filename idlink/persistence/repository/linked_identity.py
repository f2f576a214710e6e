"""LinkedIdentity repository implementation using PostgreSQL."""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select, tuple_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from idlink.domain.error import DuplicateIdentityError, NotFoundError, PersistenceError
from idlink.domain.model.linked_identity import LinkedIdentity
from idlink.domain.repository.linked_identity import LinkedIdentityRepository
from idlink.domain.value import AccountId, AuthProvider, LinkedIdentityId
from idlink.persistence.mappers import linked_identity_to_dict, row_to_linked_identity
from idlink.persistence.tables import linked_identities_table


class PostgresLinkedIdentityRepository(LinkedIdentityRepository):
    """PostgreSQL implementation of LinkedIdentityRepository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def _one(self, stmt) -> Optional[LinkedIdentity]:
        result = await self.session.execute(stmt)
        row = result.mappings().first()

        if not row:
            return None

        return row_to_linked_identity(dict(row))

    async def find_by_id(
        self, identity_id: LinkedIdentityId
    ) -> Optional[LinkedIdentity]:
        return await self._one(
            select(linked_identities_table).where(
                linked_identities_table.c.id == identity_id
            )
        )

    async def find_by_provider(
        self, provider: AuthProvider, provider_user_id: str
    ) -> Optional[LinkedIdentity]:
        return await self._one(
            select(linked_identities_table).where(
                linked_identities_table.c.provider == provider.value,
                linked_identities_table.c.provider_user_id == provider_user_id,
            )
        )

    async def find_by_account_and_provider(
        self, account_id: AccountId, provider: AuthProvider
    ) -> Optional[LinkedIdentity]:
        return await self._one(
            select(linked_identities_table).where(
                linked_identities_table.c.account_id == account_id,
                linked_identities_table.c.provider == provider.value,
            )
        )

    async def find_all_by_account_id(
        self, account_id: AccountId
    ) -> list[LinkedIdentity]:
        stmt = (
            select(linked_identities_table)
            .where(linked_identities_table.c.account_id == account_id)
            .order_by(linked_identities_table.c.created_at)
        )
        result = await self.session.execute(stmt)
        rows = result.mappings().all()

        return [row_to_linked_identity(dict(row)) for row in rows]

    async def find_expired(
        self,
        before: datetime,
        limit: int,
        after: Optional[tuple[datetime, LinkedIdentityId]] = None,
    ) -> list[LinkedIdentity]:
        table = linked_identities_table
        stmt = select(table).where(
            table.c.token_expires_at.is_not(None),
            table.c.token_expires_at <= before,
        )
        if after is not None:
            stmt = stmt.where(
                tuple_(table.c.token_expires_at, table.c.id) > tuple_(*after)
            )
        stmt = stmt.order_by(table.c.token_expires_at, table.c.id).limit(limit)
        result = await self.session.execute(stmt)
        rows = result.mappings().all()

        return [row_to_linked_identity(dict(row)) for row in rows]

    async def find_page(
        self, after: Optional[LinkedIdentityId], limit: int
    ) -> list[LinkedIdentity]:
        stmt = select(linked_identities_table)
        if after is not None:
            stmt = stmt.where(linked_identities_table.c.id > after)
        stmt = stmt.order_by(linked_identities_table.c.id).limit(limit)
        result = await self.session.execute(stmt)
        rows = result.mappings().all()

        return [row_to_linked_identity(dict(row)) for row in rows]

    async def create(self, identity: LinkedIdentity) -> LinkedIdentity:
        """Insert a new identity.

        The insert runs in a savepoint so a unique violation leaves the
        surrounding transaction usable for the caller's re-read.
        """
        stmt = linked_identities_table.insert().values(
            **linked_identity_to_dict(identity)
        )
        try:
            async with self.session.begin_nested():
                await self.session.execute(stmt)
        except IntegrityError as e:
            if "uq_provider_identity" in str(e.orig):
                raise DuplicateIdentityError(
                    identity.provider, identity.provider_user_id
                ) from e
            raise PersistenceError(
                f"Failed to link {identity.provider.value} identity"
            ) from e
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to link {identity.provider.value} identity"
            ) from e
        return identity

    async def update_tokens(
        self,
        identity_id: LinkedIdentityId,
        encrypted_access_token: str,
        encrypted_refresh_token: Optional[str],
        token_expires_at: Optional[datetime],
    ) -> LinkedIdentity:
        stmt = (
            linked_identities_table.update()
            .where(linked_identities_table.c.id == identity_id)
            .values(
                encrypted_access_token=encrypted_access_token,
                encrypted_refresh_token=encrypted_refresh_token,
                token_expires_at=token_expires_at,
                updated_at=datetime.now(timezone.utc),
            )
            .returning(*linked_identities_table.c)
        )
        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update tokens for {identity_id}") from e

        row = result.mappings().first()
        if not row:
            raise NotFoundError("LinkedIdentity", str(identity_id))

        await self.session.flush()
        return row_to_linked_identity(dict(row))

    async def delete(self, identity_id: LinkedIdentityId) -> None:
        stmt = linked_identities_table.delete().where(
            linked_identities_table.c.id == identity_id
        )
        await self.session.execute(stmt)
        await self.session.flush()
