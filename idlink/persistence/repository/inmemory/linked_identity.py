"""In-memory linked identity repository for testing."""

from datetime import datetime, timezone
from typing import Optional

from idlink.domain.error import DuplicateIdentityError, NotFoundError, PersistenceError
from idlink.domain.model.linked_identity import LinkedIdentity
from idlink.domain.repository.linked_identity import LinkedIdentityRepository
from idlink.domain.value import AccountId, AuthProvider, LinkedIdentityId


class InMemoryLinkedIdentityRepository(LinkedIdentityRepository):
    """In-memory implementation of LinkedIdentityRepository for testing.

    Enforces the same unique constraints as the database schema.
    """

    def __init__(self) -> None:
        self._identities: list[LinkedIdentity] = []

    async def find_by_id(
        self, identity_id: LinkedIdentityId
    ) -> Optional[LinkedIdentity]:
        """Find identity by ID."""
        for identity in self._identities:
            if identity.id == identity_id:
                return identity
        return None

    async def find_by_provider(
        self, provider: AuthProvider, provider_user_id: str
    ) -> Optional[LinkedIdentity]:
        """Find identity by provider and provider user ID."""
        for identity in self._identities:
            if (
                identity.provider == provider
                and identity.provider_user_id == provider_user_id
            ):
                return identity
        return None

    async def find_by_account_and_provider(
        self, account_id: AccountId, provider: AuthProvider
    ) -> Optional[LinkedIdentity]:
        """Find an account's identity for a provider."""
        for identity in self._identities:
            if identity.account_id == account_id and identity.provider == provider:
                return identity
        return None

    async def find_all_by_account_id(
        self, account_id: AccountId
    ) -> list[LinkedIdentity]:
        """Find all identities for an account, oldest first."""
        matches = [i for i in self._identities if i.account_id == account_id]
        matches.sort(key=lambda i: i.created_at)
        return matches

    async def find_expired(
        self,
        before: datetime,
        limit: int,
        after: Optional[tuple[datetime, LinkedIdentityId]] = None,
    ) -> list[LinkedIdentity]:
        """Find identities whose token expired at or before the cutoff."""
        matches = [
            i
            for i in self._identities
            if i.token_expires_at is not None and i.token_expires_at <= before
        ]
        if after is not None:
            matches = [i for i in matches if (i.token_expires_at, i.id) > after]
        matches.sort(key=lambda i: (i.token_expires_at, i.id))
        return matches[:limit]

    async def find_page(
        self, after: Optional[LinkedIdentityId], limit: int
    ) -> list[LinkedIdentity]:
        """Page through identities in ID order."""
        ordered = sorted(self._identities, key=lambda i: i.id)
        if after is not None:
            ordered = [i for i in ordered if i.id > after]
        return ordered[:limit]

    async def create(self, identity: LinkedIdentity) -> LinkedIdentity:
        """Insert identity, enforcing uniqueness."""
        if await self.find_by_provider(identity.provider, identity.provider_user_id):
            raise DuplicateIdentityError(identity.provider, identity.provider_user_id)
        if await self.find_by_account_and_provider(
            identity.account_id, identity.provider
        ):
            raise PersistenceError(
                f"Account already links {identity.provider.value}"
            )
        self._identities.append(identity)
        return identity

    async def update_tokens(
        self,
        identity_id: LinkedIdentityId,
        encrypted_access_token: str,
        encrypted_refresh_token: Optional[str],
        token_expires_at: Optional[datetime],
    ) -> LinkedIdentity:
        """Overwrite token fields."""
        for index, identity in enumerate(self._identities):
            if identity.id == identity_id:
                updated = identity.model_copy(
                    update={
                        "encrypted_access_token": encrypted_access_token,
                        "encrypted_refresh_token": encrypted_refresh_token,
                        "token_expires_at": token_expires_at,
                        "updated_at": datetime.now(timezone.utc),
                    }
                )
                self._identities[index] = updated
                return updated
        raise NotFoundError("LinkedIdentity", str(identity_id))

    async def delete(self, identity_id: LinkedIdentityId) -> None:
        """Delete identity."""
        self._identities = [i for i in self._identities if i.id != identity_id]
