"""Repository implementations."""

from .account import PostgresAccountRepository
from .linked_identity import PostgresLinkedIdentityRepository
from .security_log import PostgresSecurityLogRepository
from .state import PostgresStateStore

__all__ = [
    "PostgresAccountRepository",
    "PostgresLinkedIdentityRepository",
    "PostgresSecurityLogRepository",
    "PostgresStateStore",
]
