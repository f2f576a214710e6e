"""Unit tests for the token maintenance use cases."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from dishka import AsyncContainer

from idlink.application.usecase.token import (
    RefreshTokensUseCase,
    ReencryptTokensUseCase,
    SweepTokensUseCase,
)
from idlink.application.usecase.token.reencrypt_tokens import ReencryptTokensRequest
from idlink.application.usecase.token.refresh_tokens import RefreshTokensRequest
from idlink.config import CryptoSettings
from idlink.domain.model.linked_identity import LinkedIdentity
from idlink.domain.repository import LinkedIdentityRepository, StateStore
from idlink.domain.service import CryptoBox
from idlink.domain.value import AccountId, AuthProvider, LinkedIdentityId
from idlink.persistence.repository.inmemory import InMemoryLinkedIdentityRepository
from tests.harness import create_env_fixture
from tests.helpers import make_legacy_envelope

# Unit test fixture
unit_env = create_env_fixture()


def identity(
    access: str,
    refresh: str | None,
    expires_at: datetime | None = None,
    provider: AuthProvider = AuthProvider.GOOGLE,
) -> LinkedIdentity:
    return LinkedIdentity(
        id=LinkedIdentityId(uuid4()),
        account_id=AccountId(uuid4()),
        provider=provider,
        provider_user_id=f"user-{uuid4().hex[:8]}",
        encrypted_access_token=access,
        encrypted_refresh_token=refresh,
        token_expires_at=expires_at,
    )


class TestSweepTokensUseCase:
    """Tests for SweepTokensUseCase."""

    @pytest.mark.asyncio
    async def test_refreshes_and_purges(self, unit_env: AsyncContainer):
        # Arrange
        crypto_box = await unit_env.get(CryptoBox)
        identities = await unit_env.get(LinkedIdentityRepository)
        state_store = await unit_env.get(StateStore)
        now = datetime.now(timezone.utc)
        await identities.create(
            identity(
                crypto_box.encrypt("access"),
                crypto_box.encrypt("refresh"),
                expires_at=now - timedelta(minutes=5),
            )
        )
        await identities.create(
            identity(
                crypto_box.encrypt("access"),
                None,
                expires_at=now - timedelta(minutes=5),
            )
        )
        await state_store.mark_used("0ld", now - timedelta(minutes=1))
        await state_store.mark_used("fresh", now + timedelta(minutes=9))
        use_case = await unit_env.get(SweepTokensUseCase)

        # Act
        response = await use_case.execute()

        # Assert
        assert response.refreshed == 1
        assert response.expired_without_refresh == 1
        assert response.failed == 0
        assert response.purged_states == 1
        assert await state_store.mark_used("fresh", now) is False


class TestRefreshTokensUseCase:
    """Tests for RefreshTokensUseCase."""

    @pytest.mark.asyncio
    async def test_refreshes_linked_provider(self, unit_env: AsyncContainer):
        # Arrange
        crypto_box = await unit_env.get(CryptoBox)
        identities = await unit_env.get(LinkedIdentityRepository)
        linked = await identities.create(
            identity(crypto_box.encrypt("access"), crypto_box.encrypt("refresh"))
        )
        use_case = await unit_env.get(RefreshTokensUseCase)

        # Act
        summary = await use_case.execute(
            RefreshTokensRequest(
                account_id=str(linked.account_id), provider=AuthProvider.GOOGLE
            )
        )

        # Assert
        stored = await identities.find_by_id(linked.id)
        assert crypto_box.decrypt(stored.encrypted_access_token) == (
            "google-access-refreshed"
        )
        assert summary.token_expires_at is not None


class TestReencryptTokensUseCase:
    """Tests for ReencryptTokensUseCase."""

    @pytest.fixture
    def repo(self) -> InMemoryLinkedIdentityRepository:
        return InMemoryLinkedIdentityRepository()

    @pytest.fixture
    def crypto_box(self) -> CryptoBox:
        return CryptoBox(
            CryptoSettings(encryption_key="new-key", previous_keys=["old-key"])
        )

    @pytest.mark.asyncio
    async def test_migrates_legacy_and_previous_key_envelopes(self, repo, crypto_box):
        # Arrange
        old_box = CryptoBox(CryptoSettings(encryption_key="old-key"))
        legacy = await repo.create(
            identity(make_legacy_envelope("new-key", "legacy-access"), None)
        )
        rotated = await repo.create(
            identity(
                old_box.encrypt("old-access"),
                old_box.encrypt("old-refresh"),
                provider=AuthProvider.APPLE,
            )
        )
        current = await repo.create(
            identity(crypto_box.encrypt("current"), None, provider=AuthProvider.INSTAGRAM)
        )
        use_case = ReencryptTokensUseCase(repo, crypto_box)

        # Act
        response = await use_case.execute(ReencryptTokensRequest(batch_size=2))

        # Assert
        assert response.scanned == 3
        assert response.reencrypted == 2
        assert response.unreadable == 0
        current_only = CryptoBox(CryptoSettings(encryption_key="new-key"))
        stored_legacy = await repo.find_by_id(legacy.id)
        stored_rotated = await repo.find_by_id(rotated.id)
        assert current_only.decrypt(stored_legacy.encrypted_access_token) == (
            "legacy-access"
        )
        assert current_only.decrypt(stored_rotated.encrypted_refresh_token) == (
            "old-refresh"
        )
        stored_current = await repo.find_by_id(current.id)
        assert stored_current.encrypted_access_token == current.encrypted_access_token

    @pytest.mark.asyncio
    async def test_dry_run_changes_nothing(self, repo, crypto_box):
        # Arrange
        old_box = CryptoBox(CryptoSettings(encryption_key="old-key"))
        linked = await repo.create(identity(old_box.encrypt("old-access"), None))
        use_case = ReencryptTokensUseCase(repo, crypto_box)

        # Act
        response = await use_case.execute(ReencryptTokensRequest(dry_run=True))

        # Assert
        assert response.reencrypted == 1
        stored = await repo.find_by_id(linked.id)
        assert stored.encrypted_access_token == linked.encrypted_access_token

    @pytest.mark.asyncio
    async def test_unreadable_rows_are_counted_and_left(self, repo, crypto_box):
        # Arrange
        stranger = CryptoBox(CryptoSettings(encryption_key="unknown-key"))
        linked = await repo.create(identity(stranger.encrypt("secret"), None))
        use_case = ReencryptTokensUseCase(repo, crypto_box)

        # Act
        response = await use_case.execute(ReencryptTokensRequest())

        # Assert
        assert response.unreadable == 1
        assert response.reencrypted == 0
        stored = await repo.find_by_id(linked.id)
        assert stored.encrypted_access_token == linked.encrypted_access_token
