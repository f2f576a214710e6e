"""Domain value objects for idlink."""

from idlink.domain.value.identifiers import (
    AccountId,
    LinkedIdentityId,
    SecurityLogId,
)
from idlink.domain.value.types import (
    AuditDetails,
    AuthProvider,
    ConflictKind,
    LinkOutcome,
    OAuthTokenPair,
    PKCEChallenge,
    ProviderConfig,
    ProviderIdentity,
    RequestMeta,
    SecurityEventType,
    StateToken,
    TokenStatus,
)

__all__ = [
    # Identifiers
    "AccountId",
    "LinkedIdentityId",
    "SecurityLogId",
    # Types
    "AuditDetails",
    "AuthProvider",
    "ConflictKind",
    "LinkOutcome",
    "OAuthTokenPair",
    "PKCEChallenge",
    "ProviderConfig",
    "ProviderIdentity",
    "RequestMeta",
    "SecurityEventType",
    "StateToken",
    "TokenStatus",
]
