"""Account repository interface."""

from abc import ABC, abstractmethod
from typing import Optional

from idlink.domain.model.account import Account
from idlink.domain.value import AccountId


class AccountRepository(ABC):
    """Repository for Account entity.

    Defines the contract for account persistence operations.
    Implementations live in the persistence layer.
    """

    @abstractmethod
    async def find_by_id(self, account_id: AccountId) -> Optional[Account]:
        """Find an account by ID.

        Args:
            account_id: The account's unique identifier

        Returns:
            The account if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[Account]:
        """Find an account by email address.

        Args:
            email: Email address to look up

        Returns:
            The account if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, account: Account) -> Account:
        """Insert a new account.

        Args:
            account: The account to insert

        Returns:
            The stored account

        Raises:
            PersistenceError: If the insert fails
        """
        pass

    @abstractmethod
    async def delete(self, account_id: AccountId) -> None:
        """Delete an account.

        Args:
            account_id: The account to delete
        """
        pass
