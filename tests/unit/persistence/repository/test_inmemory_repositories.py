"""Unit tests for the in-memory repositories.

These stand in for PostgreSQL in every unit test, so they must enforce the
same constraints as the schema.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from idlink.domain.error import (
    DuplicateAccountError,
    DuplicateIdentityError,
    PersistenceError,
)
from idlink.domain.model.account import Account
from idlink.domain.model.linked_identity import LinkedIdentity
from idlink.domain.value import (
    AccountId,
    AuthProvider,
    LinkedIdentityId,
    PKCEChallenge,
)
from idlink.persistence.repository.inmemory import (
    InMemoryAccountRepository,
    InMemoryChallengeStore,
    InMemoryLinkedIdentityRepository,
    InMemoryStateStore,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def linked(
    account_id: AccountId,
    provider: AuthProvider = AuthProvider.GOOGLE,
    provider_user_id: str = "g-1",
    expires_at: datetime | None = None,
) -> LinkedIdentity:
    return LinkedIdentity(
        id=LinkedIdentityId(uuid4()),
        account_id=account_id,
        provider=provider,
        provider_user_id=provider_user_id,
        encrypted_access_token="envelope",
        token_expires_at=expires_at,
    )


class TestAccountRepository:
    """Tests for InMemoryAccountRepository."""

    @pytest.mark.asyncio
    async def test_find_by_email_ignores_case(self):
        repo = InMemoryAccountRepository()
        account = await repo.create(Account(id=AccountId(uuid4()), email="Ada@Example.com"))

        assert await repo.find_by_email("ada@example.COM") == account

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self):
        repo = InMemoryAccountRepository()
        await repo.create(Account(id=AccountId(uuid4()), email="ada@example.com"))

        with pytest.raises(DuplicateAccountError) as exc_info:
            await repo.create(Account(id=AccountId(uuid4()), email="ADA@example.com"))

        assert isinstance(exc_info.value, PersistenceError)


class TestLinkedIdentityRepository:
    """Tests for InMemoryLinkedIdentityRepository."""

    @pytest.mark.asyncio
    async def test_provider_identity_is_globally_unique(self):
        repo = InMemoryLinkedIdentityRepository()
        await repo.create(linked(AccountId(uuid4())))

        with pytest.raises(DuplicateIdentityError):
            await repo.create(linked(AccountId(uuid4())))

    @pytest.mark.asyncio
    async def test_one_identity_per_provider_per_account(self):
        repo = InMemoryLinkedIdentityRepository()
        account_id = AccountId(uuid4())
        await repo.create(linked(account_id, provider_user_id="g-1"))

        with pytest.raises(PersistenceError):
            await repo.create(linked(account_id, provider_user_id="g-2"))

    @pytest.mark.asyncio
    async def test_find_expired_orders_and_limits(self):
        repo = InMemoryLinkedIdentityRepository()
        later = await repo.create(
            linked(AccountId(uuid4()), provider_user_id="a", expires_at=NOW - timedelta(minutes=1))
        )
        earlier = await repo.create(
            linked(AccountId(uuid4()), provider_user_id="b", expires_at=NOW - timedelta(hours=1))
        )
        await repo.create(
            linked(AccountId(uuid4()), provider_user_id="c", expires_at=NOW + timedelta(hours=1))
        )
        await repo.create(linked(AccountId(uuid4()), provider_user_id="d"))

        expired = await repo.find_expired(NOW, limit=10)
        first_only = await repo.find_expired(NOW, limit=1)

        assert [i.id for i in expired] == [earlier.id, later.id]
        assert [i.id for i in first_only] == [earlier.id]

    @pytest.mark.asyncio
    async def test_find_expired_resumes_after_cursor(self):
        """Rows sharing an expiry are split by id and never repeated."""
        repo = InMemoryLinkedIdentityRepository()
        expires_at = NOW - timedelta(minutes=1)
        for n in range(3):
            await repo.create(
                linked(AccountId(uuid4()), provider_user_id=str(n), expires_at=expires_at)
            )

        first = await repo.find_expired(NOW, limit=2)
        last = first[-1]
        rest = await repo.find_expired(
            NOW, limit=2, after=(last.token_expires_at, last.id)
        )

        assert len(first) == 2
        assert len(rest) == 1
        assert rest[0].id not in {i.id for i in first}
        assert first[0].id < first[1].id < rest[0].id

    @pytest.mark.asyncio
    async def test_find_page_walks_every_identity_once(self):
        repo = InMemoryLinkedIdentityRepository()
        created = [
            await repo.create(linked(AccountId(uuid4()), provider_user_id=str(n)))
            for n in range(5)
        ]

        seen = []
        after = None
        while page := await repo.find_page(after, 2):
            seen.extend(i.id for i in page)
            after = page[-1].id

        assert sorted(seen) == sorted(i.id for i in created)
        assert len(seen) == 5

    @pytest.mark.asyncio
    async def test_update_tokens(self):
        repo = InMemoryLinkedIdentityRepository()
        identity = await repo.create(linked(AccountId(uuid4())))

        updated = await repo.update_tokens(identity.id, "new", None, NOW)

        assert updated.encrypted_access_token == "new"
        assert updated.token_expires_at == NOW
        assert (await repo.find_by_id(identity.id)).encrypted_access_token == "new"


class TestStateStores:
    """Tests for the consumed-state and challenge stores."""

    @pytest.mark.asyncio
    async def test_mark_used_once(self):
        store = InMemoryStateStore()

        assert await store.mark_used("abc", NOW) is True
        assert await store.mark_used("abc", NOW) is False

    @pytest.mark.asyncio
    async def test_purge_expired(self):
        store = InMemoryStateStore()
        await store.mark_used("old", NOW - timedelta(seconds=1))
        await store.mark_used("new", NOW + timedelta(minutes=5))

        assert await store.purge_expired(NOW) == 1
        assert await store.mark_used("old", NOW) is True
        assert await store.mark_used("new", NOW) is False

    @pytest.mark.asyncio
    async def test_challenge_pop_is_single_use(self):
        store = InMemoryChallengeStore()
        challenge = PKCEChallenge(code_verifier="v" * 43, code_challenge="c")
        await store.put("nonce", challenge, NOW + timedelta(minutes=10))

        assert await store.pop("nonce", NOW) == challenge
        assert await store.pop("nonce", NOW) is None

    @pytest.mark.asyncio
    async def test_expired_challenge_is_dropped(self):
        store = InMemoryChallengeStore()
        challenge = PKCEChallenge(code_verifier="v" * 43, code_challenge="c")
        await store.put("nonce", challenge, NOW - timedelta(seconds=1))

        assert await store.pop("nonce", NOW) is None
