"""Unit tests for the production secrets check."""

import pytest

from idlink.config import CryptoSettings, Settings, StateSettings
from idlink.interface.api.app import DEFAULT_SECRET, check_secrets
from idlink.util.error import MissingSecretError


class TestCheckSecrets:
    """Tests for check_secrets."""

    def test_placeholder_key_rejected_in_production(self):
        settings = Settings(
            environment="production",
            crypto=CryptoSettings(encryption_key=DEFAULT_SECRET),
            state=StateSettings(secret="real-state-secret"),
        )

        with pytest.raises(MissingSecretError) as exc_info:
            check_secrets(settings)

        assert exc_info.value.setting == "CRYPTO__ENCRYPTION_KEY"

    def test_placeholder_state_secret_rejected_in_production(self):
        settings = Settings(
            environment="production",
            crypto=CryptoSettings(encryption_key="real-key"),
            state=StateSettings(secret=DEFAULT_SECRET),
        )

        with pytest.raises(MissingSecretError, match="STATE__SECRET"):
            check_secrets(settings)

    def test_placeholders_allowed_outside_production(self):
        settings = Settings(
            environment="development",
            crypto=CryptoSettings(encryption_key=DEFAULT_SECRET),
            state=StateSettings(secret=DEFAULT_SECRET),
        )

        check_secrets(settings)
