"""In-memory account repository for testing."""

from typing import Optional

from idlink.domain.error import DuplicateAccountError, PersistenceError
from idlink.domain.model.account import Account
from idlink.domain.repository.account import AccountRepository
from idlink.domain.value import AccountId


class InMemoryAccountRepository(AccountRepository):
    """In-memory implementation of AccountRepository for testing."""

    def __init__(self) -> None:
        self._accounts: dict[AccountId, Account] = {}

    async def find_by_id(self, account_id: AccountId) -> Optional[Account]:
        """Find account by ID."""
        return self._accounts.get(account_id)

    async def find_by_email(self, email: str) -> Optional[Account]:
        """Find account by email, ignoring case."""
        for account in self._accounts.values():
            if account.email.lower() == email.lower():
                return account
        return None

    async def create(self, account: Account) -> Account:
        """Insert account, enforcing unique id and email."""
        if account.id in self._accounts:
            raise PersistenceError(f"Account {account.id} already exists")
        if await self.find_by_email(account.email):
            raise DuplicateAccountError(account.email)
        self._accounts[account.id] = account
        return account

    async def delete(self, account_id: AccountId) -> None:
        """Delete account."""
        self._accounts.pop(account_id, None)
