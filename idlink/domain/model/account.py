"""Local account entity."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from idlink.domain.model.common import DomainModel
from idlink.domain.value import AccountId


class Account(DomainModel):
    """Local account that external identities are linked to.

    An account must always keep at least one way to sign in: a password
    or one or more linked identities.
    """

    id: AccountId
    email: str  # Real email, or a provider-scoped placeholder
    has_password: bool = False
    display_name: Optional[str] = None
    email_verified: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
