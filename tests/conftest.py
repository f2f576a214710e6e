"""Test configuration and fixtures."""

import os

# Test defaults, applied before any Settings() is built. Real environment
# variables still win.
for _name, _value in {
    "ENVIRONMENT": "test",
    "CRYPTO__ENCRYPTION_KEY": "test-encryption-key",
    "STATE__SECRET": "test-state-secret",
    "LIFECYCLE__ENABLED": "false",
    "PROVIDERS__GOOGLE__CLIENT_ID": "google-client-id",
    "PROVIDERS__GOOGLE__CLIENT_SECRET": "google-client-secret",
    "PROVIDERS__APPLE__CLIENT_ID": "com.example.idlink",
    "PROVIDERS__APPLE__TEAM_ID": "TEAM123456",
    "PROVIDERS__APPLE__KEY_ID": "KEY1234567",
    "PROVIDERS__APPLE__PRIVATE_KEY": "not-a-real-key",
    "PROVIDERS__INSTAGRAM__CLIENT_ID": "instagram-client-id",
    "PROVIDERS__INSTAGRAM__CLIENT_SECRET": "instagram-client-secret",
}.items():
    os.environ.setdefault(_name, _value)

import pytest  # noqa: E402

from tests.helpers import FrozenClock  # noqa: E402


@pytest.fixture
def clock() -> FrozenClock:
    """Clock frozen at 2026-03-01 12:00 UTC."""
    return FrozenClock()
