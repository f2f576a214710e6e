"""Domain value objects for idlink.

Value objects are immutable and defined by their values, not identity.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import Field, field_validator

from idlink.domain.value.common import RootValueObject, ValueObject


class AuthProvider(str, Enum):
    """Supported authentication providers."""

    GOOGLE = "google"
    APPLE = "apple"
    INSTAGRAM = "instagram"


class SecurityEventType(str, Enum):
    """Category of a security log entry."""

    AUTHENTICATION = "AUTHENTICATION"
    ACCOUNT_CHANGE = "ACCOUNT_CHANGE"
    ACCESS_CONTROL = "ACCESS_CONTROL"
    SUSPICIOUS_ACTIVITY = "SUSPICIOUS_ACTIVITY"


class LinkOutcome(str, Enum):
    """How an OAuth callback was resolved to a local account."""

    EXISTING_LOGIN = "existing_login"
    NEW_ACCOUNT = "new_account"
    LINKED_TO_EXISTING = "linked_to_existing"


class ConflictKind(str, Enum):
    """Why a provider identity cannot be linked."""

    EMAIL_CONFLICT_DIFFERENT_PROVIDER_ID = "email_conflict_different_provider_id"
    PROVIDER_ALREADY_LINKED = "provider_already_linked"


class TokenStatus(str, Enum):
    """Freshness of a stored provider access token."""

    VALID = "valid"
    EXPIRES_SOON = "expires_soon"
    EXPIRED = "expired"
    NO_EXPIRY = "no_expiry"


class ProviderIdentity(ValueObject):
    """Verified user identity returned by a provider's user-info lookup."""

    provider: AuthProvider
    provider_user_id: str = Field(min_length=1)  # Stable, provider-assigned
    email: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None


class OAuthTokenPair(ValueObject):
    """Tokens returned by a code exchange or refresh.

    Token values are excluded from repr so they never reach log output.
    """

    access_token: str = Field(repr=False)
    refresh_token: str | None = Field(default=None, repr=False)
    expires_at: datetime | None = None
    id_token: str | None = Field(default=None, repr=False)  # OpenID Connect providers


class PKCEChallenge(ValueObject):
    """PKCE verifier/challenge pair for a single authorization attempt."""

    code_verifier: str = Field(repr=False)
    code_challenge: str
    method: Literal["S256"] = "S256"


class StateToken(RootValueObject[str]):
    """Anti-CSRF state parameter: ``<issued ms>.<nonce>.<account hash>``.

    The account hash part is empty when the flow is not bound to an account.
    """

    @field_validator("root")
    @classmethod
    def validate_state_format(cls, v: str) -> str:
        """Validate state has a numeric timestamp and at most three parts."""
        parts = v.split(".")
        if len(parts) < 2 or len(parts) > 3:
            raise ValueError("State must have 2 or 3 dot-separated parts")
        if not re.fullmatch(r"[0-9]+", parts[0]):
            raise ValueError("State timestamp must be numeric")
        if not re.fullmatch(r"[0-9a-f]+", parts[1]):
            raise ValueError("State nonce must be hex")
        if len(parts) == 3 and not re.fullmatch(r"[0-9a-f]*", parts[2]):
            raise ValueError("State account hash must be hex")
        return v

    @property
    def issued_at_ms(self) -> int:
        return int(self.root.split(".")[0])

    @property
    def nonce(self) -> str:
        return self.root.split(".")[1]

    @property
    def account_hash(self) -> str | None:
        parts = self.root.split(".")
        if len(parts) == 3 and parts[2]:
            return parts[2]
        return None


class RequestMeta(ValueObject):
    """Client metadata recorded alongside security events."""

    ip_address: str | None = None
    user_agent: str | None = None


class ProviderConfig(ValueObject):
    """Static OAuth configuration for one provider."""

    provider: AuthProvider
    client_id: str
    client_secret: str | None = Field(default=None, repr=False)
    redirect_uri: str
    scope: str
    authorize_url: str
    token_url: str
    userinfo_url: str | None = None  # Apple has no user-info endpoint
    extra_authorize_params: dict[str, str] = {}

    # Sign in with Apple client-secret signing material
    team_id: str | None = None
    key_id: str | None = None
    private_key: str | None = Field(default=None, repr=False)


AuditDetails = dict[str, Any]
