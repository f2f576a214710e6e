"""Repository interfaces for the idlink domain.

Repository interfaces are defined in the domain layer (dependency inversion).
Implementations live in the persistence layer.
"""

from idlink.domain.repository.account import AccountRepository
from idlink.domain.repository.linked_identity import LinkedIdentityRepository
from idlink.domain.repository.security_log import (
    SecurityLogFilter,
    SecurityLogRepository,
)
from idlink.domain.repository.state import ChallengeStore, StateStore

__all__ = [
    "AccountRepository",
    "ChallengeStore",
    "LinkedIdentityRepository",
    "SecurityLogFilter",
    "SecurityLogRepository",
    "StateStore",
]
