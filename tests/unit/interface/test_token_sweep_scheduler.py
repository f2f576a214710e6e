"""Unit tests for TokenSweepScheduler."""

import asyncio
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from idlink.config import LifecycleSettings
from idlink.domain.model.linked_identity import LinkedIdentity
from idlink.domain.repository import LinkedIdentityRepository
from idlink.domain.service import CryptoBox
from idlink.domain.value import AccountId, AuthProvider, LinkedIdentityId
from idlink.interface.scheduler import TokenSweepScheduler
from tests.di import build_test_container


async def seed_expired(container) -> tuple[LinkedIdentityRepository, LinkedIdentity]:
    async with container() as request_container:
        repo = await request_container.get(LinkedIdentityRepository)
        crypto_box = await request_container.get(CryptoBox)
        identity = await repo.create(
            LinkedIdentity(
                id=LinkedIdentityId(uuid4()),
                account_id=AccountId(uuid4()),
                provider=AuthProvider.GOOGLE,
                provider_user_id="g-1",
                encrypted_access_token=crypto_box.encrypt("stale"),
                encrypted_refresh_token=crypto_box.encrypt("refresh"),
                token_expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
            )
        )
    return repo, identity


class TestTokenSweepScheduler:
    """Tests for TokenSweepScheduler."""

    @pytest.mark.asyncio
    async def test_disabled_does_not_start(self):
        container = build_test_container()
        scheduler = TokenSweepScheduler(container, LifecycleSettings(enabled=False))

        started = await scheduler.start()

        assert started is False
        assert scheduler.is_running is False
        await scheduler.stop()
        await container.close()

    @pytest.mark.asyncio
    async def test_run_once_refreshes_expired_tokens(self):
        # Arrange
        container = build_test_container()
        repo, identity = await seed_expired(container)
        scheduler = TokenSweepScheduler(container, LifecycleSettings())

        # Act
        await scheduler.run_once()

        # Assert
        stored = await repo.find_by_id(identity.id)
        assert stored.token_expires_at > datetime.now(timezone.utc)
        await container.close()

    @pytest.mark.asyncio
    async def test_background_task_sweeps_then_stops(self):
        # Arrange
        container = build_test_container()
        repo, identity = await seed_expired(container)
        scheduler = TokenSweepScheduler(
            container, LifecycleSettings(enabled=True, interval_seconds=3600)
        )

        # Act
        assert await scheduler.start() is True
        assert await scheduler.start() is False  # already running
        for _ in range(100):
            stored = await repo.find_by_id(identity.id)
            if stored.token_expires_at > datetime.now(timezone.utc):
                break
            await asyncio.sleep(0.02)
        await scheduler.stop()

        # Assert
        assert stored.token_expires_at > datetime.now(timezone.utc)
        assert scheduler.is_running is False
        await container.close()
