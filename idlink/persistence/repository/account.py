"""Account repository implementation using PostgreSQL."""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from idlink.domain.error import DuplicateAccountError, PersistenceError
from idlink.domain.model.account import Account
from idlink.domain.repository.account import AccountRepository
from idlink.domain.value import AccountId
from idlink.persistence.mappers import account_to_dict, row_to_account
from idlink.persistence.tables import accounts_table


class PostgresAccountRepository(AccountRepository):
    """PostgreSQL implementation of AccountRepository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def find_by_id(self, account_id: AccountId) -> Optional[Account]:
        stmt = select(accounts_table).where(accounts_table.c.id == account_id)
        result = await self.session.execute(stmt)
        row = result.mappings().first()

        if not row:
            return None

        return row_to_account(dict(row))

    async def find_by_email(self, email: str) -> Optional[Account]:
        """Find an account by email, ignoring case."""
        stmt = select(accounts_table).where(
            func.lower(accounts_table.c.email) == email.lower()
        )
        result = await self.session.execute(stmt)
        row = result.mappings().first()

        if not row:
            return None

        return row_to_account(dict(row))

    async def create(self, account: Account) -> Account:
        """Insert a new account.

        The insert runs in a savepoint so an email collision leaves the
        surrounding transaction usable for the caller's re-read.
        """
        stmt = accounts_table.insert().values(**account_to_dict(account))
        try:
            async with self.session.begin_nested():
                await self.session.execute(stmt)
        except IntegrityError as e:
            if "uq_account_email" in str(e.orig):
                raise DuplicateAccountError(account.email) from e
            raise PersistenceError(f"Failed to create account {account.id}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create account {account.id}") from e
        return account

    async def delete(self, account_id: AccountId) -> None:
        stmt = accounts_table.delete().where(accounts_table.c.id == account_id)
        await self.session.execute(stmt)
        await self.session.flush()
