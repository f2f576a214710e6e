"""Unit tests for AuditTrail."""

from datetime import timedelta
from uuid import uuid4

import pytest

from idlink.domain.repository import SecurityLogRepository
from idlink.domain.service import AuditTrail
from idlink.domain.value import (
    AccountId,
    AuthProvider,
    RequestMeta,
    SecurityEventType,
)
from idlink.persistence.repository.inmemory import InMemorySecurityLogRepository
from tests.harness import create_env_fixture

# Unit test fixture - everything mocked, no docker needed
unit_env = create_env_fixture()


class FailingSecurityLogRepository(InMemorySecurityLogRepository):
    """Sink that is down."""

    async def append(self, entry):
        raise RuntimeError("connection refused")


class TestRecord:
    """Tests for record method."""

    @pytest.mark.asyncio
    async def test_record_appends_entry(self, unit_env):
        """Recorded events should carry details and request metadata."""
        # Arrange
        audit_trail = await unit_env.get(AuditTrail)
        repo = await unit_env.get(SecurityLogRepository)
        account_id = AccountId(uuid4())

        # Act
        await audit_trail.record(
            SecurityEventType.AUTHENTICATION,
            {"action": "oauth_login_success", "provider": "google"},
            account_id=account_id,
            meta=RequestMeta(ip_address="203.0.113.7", user_agent="pytest"),
        )

        # Assert
        assert len(repo.entries) == 1
        entry = repo.entries[0]
        assert entry.account_id == account_id
        assert entry.event_type == SecurityEventType.AUTHENTICATION
        assert entry.details["action"] == "oauth_login_success"
        assert entry.ip_address == "203.0.113.7"
        assert entry.user_agent == "pytest"

    @pytest.mark.asyncio
    async def test_record_without_account(self, unit_env):
        """Events not tied to an account are still recorded."""
        # Arrange
        audit_trail = await unit_env.get(AuditTrail)
        repo = await unit_env.get(SecurityLogRepository)

        # Act
        await audit_trail.record(
            SecurityEventType.AUTHENTICATION,
            {"action": "oauth_callback_error", "provider": "apple"},
        )

        # Assert
        assert repo.entries[0].account_id is None
        assert repo.entries[0].ip_address is None

    @pytest.mark.asyncio
    async def test_failing_sink_does_not_raise(self, clock):
        """A broken sink must never fail the operation being audited."""
        # Arrange
        audit_trail = AuditTrail(FailingSecurityLogRepository(), clock=clock)

        # Act / Assert (no exception)
        await audit_trail.record(
            SecurityEventType.ACCOUNT_CHANGE,
            {"action": "oauth_provider_unlinked", "provider": "google"},
            account_id=AccountId(uuid4()),
        )

    @pytest.mark.asyncio
    async def test_timestamp_comes_from_clock(self, clock):
        # Arrange
        repo = InMemorySecurityLogRepository()
        audit_trail = AuditTrail(repo, clock=clock)

        # Act
        await audit_trail.record(SecurityEventType.AUTHENTICATION, {"action": "x"})

        # Assert
        assert repo.entries[0].timestamp == clock.now


class TestGetLogs:
    """Tests for get_logs method."""

    @pytest.fixture
    def repo(self) -> InMemorySecurityLogRepository:
        return InMemorySecurityLogRepository()

    @pytest.fixture
    def audit_trail(self, repo, clock) -> AuditTrail:
        return AuditTrail(repo, clock=clock)

    async def _seed(self, audit_trail, clock, account_id):
        events = [
            (SecurityEventType.AUTHENTICATION, "oauth_login_success", "google"),
            (SecurityEventType.ACCOUNT_CHANGE, "oauth_account_linked", "apple"),
            (SecurityEventType.ACCOUNT_CHANGE, "oauth_provider_unlinked", "google"),
            (SecurityEventType.SUSPICIOUS_ACTIVITY, "rate_limited", "google"),
        ]
        for event_type, action, provider in events:
            await audit_trail.record(
                event_type, {"action": action, "provider": provider}, account_id
            )
            clock.advance(minutes=1)

    @pytest.mark.asyncio
    async def test_newest_first_with_default_categories(self, audit_trail, clock):
        """Suspicious activity is excluded unless asked for."""
        # Arrange
        account_id = AccountId(uuid4())
        await self._seed(audit_trail, clock, account_id)

        # Act
        entries, total = await audit_trail.get_logs(account_id)

        # Assert
        assert total == 3
        assert [e.details["action"] for e in entries] == [
            "oauth_provider_unlinked",
            "oauth_account_linked",
            "oauth_login_success",
        ]

    @pytest.mark.asyncio
    async def test_only_own_entries(self, audit_trail, clock):
        # Arrange
        mine = AccountId(uuid4())
        await self._seed(audit_trail, clock, mine)
        await self._seed(audit_trail, clock, AccountId(uuid4()))

        # Act
        entries, total = await audit_trail.get_logs(mine)

        # Assert
        assert total == 3
        assert all(e.account_id == mine for e in entries)

    @pytest.mark.asyncio
    async def test_filter_by_provider_and_event_type(self, audit_trail, clock):
        # Arrange
        account_id = AccountId(uuid4())
        await self._seed(audit_trail, clock, account_id)

        # Act
        by_provider, provider_total = await audit_trail.get_logs(
            account_id, provider=AuthProvider.GOOGLE
        )
        by_type, type_total = await audit_trail.get_logs(
            account_id, event_type=SecurityEventType.SUSPICIOUS_ACTIVITY
        )

        # Assert
        assert provider_total == 2
        assert {e.details["provider"] for e in by_provider} == {"google"}
        assert type_total == 1
        assert by_type[0].details["action"] == "rate_limited"

    @pytest.mark.asyncio
    async def test_filter_by_time_range(self, audit_trail, clock):
        # Arrange
        account_id = AccountId(uuid4())
        start = clock.now
        await self._seed(audit_trail, clock, account_id)

        # Act
        entries, total = await audit_trail.get_logs(
            account_id, start=start + timedelta(minutes=1), end=start + timedelta(minutes=1)
        )

        # Assert
        assert total == 1
        assert entries[0].details["action"] == "oauth_account_linked"

    @pytest.mark.asyncio
    async def test_paging_keeps_total(self, audit_trail, clock):
        # Arrange
        account_id = AccountId(uuid4())
        await self._seed(audit_trail, clock, account_id)

        # Act
        entries, total = await audit_trail.get_logs(account_id, limit=2, offset=2)

        # Assert
        assert total == 3
        assert [e.details["action"] for e in entries] == ["oauth_login_success"]
