"""Domain model entities for idlink."""

from idlink.domain.model.account import Account
from idlink.domain.model.linked_identity import LinkedIdentity
from idlink.domain.model.security_log import SecurityLogEntry

__all__ = [
    "Account",
    "LinkedIdentity",
    "SecurityLogEntry",
]
