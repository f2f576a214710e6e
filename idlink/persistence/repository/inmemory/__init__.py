"""In-memory repository implementations for testing."""

from .account import InMemoryAccountRepository
from .linked_identity import InMemoryLinkedIdentityRepository
from .security_log import InMemorySecurityLogRepository
from .state import InMemoryChallengeStore, InMemoryStateStore

__all__ = [
    "InMemoryAccountRepository",
    "InMemoryChallengeStore",
    "InMemoryLinkedIdentityRepository",
    "InMemorySecurityLogRepository",
    "InMemoryStateStore",
]
