"""Strongly typed identifiers for idlink domain entities.

Using NewType for strong typing prevents mixing up different entity IDs.
"""

from typing import NewType
from uuid import UUID

AccountId = NewType("AccountId", UUID)
LinkedIdentityId = NewType("LinkedIdentityId", UUID)
SecurityLogId = NewType("SecurityLogId", UUID)
