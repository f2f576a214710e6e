"""Linked identity repository interface."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from idlink.domain.model.linked_identity import LinkedIdentity
from idlink.domain.value import AccountId, AuthProvider, LinkedIdentityId


class LinkedIdentityRepository(ABC):
    """Repository for LinkedIdentity entity.

    Implementations must enforce uniqueness of (provider, provider_user_id)
    and report violations as DuplicateIdentityError.
    """

    @abstractmethod
    async def find_by_id(
        self, identity_id: LinkedIdentityId
    ) -> Optional[LinkedIdentity]:
        """Find an identity by ID.

        Args:
            identity_id: The identity's unique identifier

        Returns:
            The identity if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_by_provider(
        self, provider: AuthProvider, provider_user_id: str
    ) -> Optional[LinkedIdentity]:
        """Find an identity by provider and provider user ID.

        Args:
            provider: The authentication provider
            provider_user_id: The user's ID on that provider

        Returns:
            The identity if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_by_account_and_provider(
        self, account_id: AccountId, provider: AuthProvider
    ) -> Optional[LinkedIdentity]:
        """Find the identity an account has for a provider.

        Args:
            account_id: The owning account
            provider: The authentication provider

        Returns:
            The identity if linked, None otherwise
        """
        pass

    @abstractmethod
    async def find_all_by_account_id(
        self, account_id: AccountId
    ) -> list[LinkedIdentity]:
        """Get all identities linked to an account, oldest first.

        Args:
            account_id: The account's unique identifier

        Returns:
            List of identities (may be empty)
        """
        pass

    @abstractmethod
    async def find_expired(
        self,
        before: datetime,
        limit: int,
        after: Optional[tuple[datetime, LinkedIdentityId]] = None,
    ) -> list[LinkedIdentity]:
        """Find identities whose token expires at or before a point in time.

        Args:
            before: Cutoff (inclusive)
            limit: Maximum number of identities to return
            after: (token_expires_at, id) of the last row of the previous page

        Returns:
            Identities ordered by (token_expires_at, id), soonest first
        """
        pass

    @abstractmethod
    async def find_page(
        self, after: Optional[LinkedIdentityId], limit: int
    ) -> list[LinkedIdentity]:
        """Walk all identities in ID order.

        Args:
            after: Last ID of the previous page (None for the first page)
            limit: Page size

        Returns:
            Up to limit identities with IDs greater than after
        """
        pass

    @abstractmethod
    async def create(self, identity: LinkedIdentity) -> LinkedIdentity:
        """Insert a new identity.

        Args:
            identity: The identity to insert

        Returns:
            The stored identity

        Raises:
            DuplicateIdentityError: If (provider, provider_user_id) is already linked
            PersistenceError: If the insert fails for another reason
        """
        pass

    @abstractmethod
    async def update_tokens(
        self,
        identity_id: LinkedIdentityId,
        encrypted_access_token: str,
        encrypted_refresh_token: Optional[str],
        token_expires_at: Optional[datetime],
    ) -> LinkedIdentity:
        """Overwrite the token fields of an identity.

        Args:
            identity_id: The identity to update
            encrypted_access_token: New access token envelope
            encrypted_refresh_token: New refresh token envelope (None clears it)
            token_expires_at: New access token expiry

        Returns:
            The updated identity

        Raises:
            NotFoundError: If the identity no longer exists
        """
        pass

    @abstractmethod
    async def delete(self, identity_id: LinkedIdentityId) -> None:
        """Delete an identity.

        Args:
            identity_id: The identity to delete
        """
        pass
