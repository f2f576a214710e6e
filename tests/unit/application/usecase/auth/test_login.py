"""Unit tests for LoginUseCase."""

import pytest
from dishka import AsyncContainer

from idlink.adapter.error import ProviderError
from idlink.application.usecase.auth import InitiateLoginUseCase, LoginUseCase
from idlink.application.usecase.auth.initiate_login import InitiateLoginRequest
from idlink.application.usecase.auth.login import LoginRequest
from idlink.domain.error import ConflictError, ValidationError
from idlink.domain.repository import LinkedIdentityRepository, SecurityLogRepository
from idlink.domain.value import AuthProvider, LinkOutcome
from tests.harness import create_env_fixture

# Unit test fixture
unit_env = create_env_fixture()


async def start(unit_env: AsyncContainer, provider: AuthProvider) -> str:
    initiate = await unit_env.get(InitiateLoginUseCase)
    response = await initiate.execute(InitiateLoginRequest(provider=provider))
    return response.state


class TestLoginUseCase:
    """Tests for LoginUseCase."""

    @pytest.mark.asyncio
    async def test_first_login_creates_account(self, unit_env: AsyncContainer):
        """A new identity should create an account and link it."""
        # Arrange
        login = await unit_env.get(LoginUseCase)
        identities = await unit_env.get(LinkedIdentityRepository)
        state = await start(unit_env, AuthProvider.GOOGLE)

        # Act
        response = await login.execute(
            LoginRequest(
                provider=AuthProvider.GOOGLE,
                code="g-100:ada@example.com",
                state=state,
                ip_address="203.0.113.9",
                user_agent="pytest",
            )
        )

        # Assert
        assert response.outcome == LinkOutcome.NEW_ACCOUNT
        assert response.is_new_account is True
        assert response.email == "ada@example.com"
        assert response.email_verified is True
        assert response.display_name == "Mock Google User"
        linked = await identities.find_by_provider(AuthProvider.GOOGLE, "g-100")
        assert str(linked.account_id) == response.account_id

    @pytest.mark.asyncio
    async def test_second_login_resolves_same_account(self, unit_env: AsyncContainer):
        # Arrange
        login = await unit_env.get(LoginUseCase)
        first = await login.execute(
            LoginRequest(
                provider=AuthProvider.GOOGLE,
                code="g-100:ada@example.com",
                state=await start(unit_env, AuthProvider.GOOGLE),
            )
        )

        # Act
        second = await login.execute(
            LoginRequest(
                provider=AuthProvider.GOOGLE,
                code="g-100:ada@example.com",
                state=await start(unit_env, AuthProvider.GOOGLE),
            )
        )

        # Assert
        assert second.account_id == first.account_id
        assert second.outcome == LinkOutcome.EXISTING_LOGIN
        assert second.is_new_account is False

    @pytest.mark.asyncio
    async def test_other_provider_with_same_email_links(self, unit_env: AsyncContainer):
        """Apple sign-in with a known email attaches to the existing account."""
        # Arrange
        login = await unit_env.get(LoginUseCase)
        google = await login.execute(
            LoginRequest(
                provider=AuthProvider.GOOGLE,
                code="g-100:ada@example.com",
                state=await start(unit_env, AuthProvider.GOOGLE),
            )
        )

        # Act
        apple = await login.execute(
            LoginRequest(
                provider=AuthProvider.APPLE,
                code="a-200:ada@example.com",
                state=await start(unit_env, AuthProvider.APPLE),
            )
        )

        # Assert
        assert apple.account_id == google.account_id
        assert apple.outcome == LinkOutcome.LINKED_TO_EXISTING

    @pytest.mark.asyncio
    async def test_same_email_different_provider_id_conflicts(
        self, unit_env: AsyncContainer
    ):
        # Arrange
        login = await unit_env.get(LoginUseCase)
        await login.execute(
            LoginRequest(
                provider=AuthProvider.GOOGLE,
                code="g-100:ada@example.com",
                state=await start(unit_env, AuthProvider.GOOGLE),
            )
        )

        # Act / Assert
        with pytest.raises(ConflictError):
            await login.execute(
                LoginRequest(
                    provider=AuthProvider.GOOGLE,
                    code="g-999:ada@example.com",
                    state=await start(unit_env, AuthProvider.GOOGLE),
                )
            )

    @pytest.mark.asyncio
    async def test_replayed_state_is_rejected(self, unit_env: AsyncContainer):
        """A state can only complete one callback."""
        # Arrange
        login = await unit_env.get(LoginUseCase)
        state = await start(unit_env, AuthProvider.GOOGLE)
        await login.execute(
            LoginRequest(provider=AuthProvider.GOOGLE, code="g-100", state=state)
        )

        # Act / Assert
        with pytest.raises(ValidationError):
            await login.execute(
                LoginRequest(provider=AuthProvider.GOOGLE, code="g-100", state=state)
            )

    @pytest.mark.asyncio
    async def test_forged_state_is_rejected(self, unit_env: AsyncContainer):
        login = await unit_env.get(LoginUseCase)

        with pytest.raises(ValidationError):
            await login.execute(
                LoginRequest(provider=AuthProvider.GOOGLE, code="g-1", state="forged")
            )

    @pytest.mark.asyncio
    async def test_provider_failure_is_audited(self, unit_env: AsyncContainer):
        # Arrange
        login = await unit_env.get(LoginUseCase)
        logs = await unit_env.get(SecurityLogRepository)
        state = await start(unit_env, AuthProvider.GOOGLE)

        # Act
        with pytest.raises(ProviderError):
            await login.execute(
                LoginRequest(
                    provider=AuthProvider.GOOGLE,
                    code="error",
                    state=state,
                    ip_address="203.0.113.9",
                )
            )

        # Assert
        entry = logs.entries[-1]
        assert entry.details["action"] == "oauth_callback_error"
        assert entry.details["provider"] == "google"
        assert entry.ip_address == "203.0.113.9"
