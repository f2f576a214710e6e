"""Domain services."""

from .audit_service import AuditTrail
from .auth_service import AuthService, OAuthClient
from .base import Service
from .challenge_service import ChallengeGenerator
from .crypto_box import CryptoBox
from .identity_linker import (
    BulkUnlinkResult,
    ConflictReport,
    IdentityLinker,
    LinkedIdentitySummary,
    LinkResult,
)
from .provider_registry import ProviderRegistry
from .token_lifecycle import SweepReport, TokenLifecycleManager

__all__ = [
    "AuditTrail",
    "AuthService",
    "BulkUnlinkResult",
    "ChallengeGenerator",
    "ConflictReport",
    "CryptoBox",
    "IdentityLinker",
    "LinkedIdentitySummary",
    "LinkResult",
    "OAuthClient",
    "ProviderRegistry",
    "Service",
    "SweepReport",
    "TokenLifecycleManager",
]
