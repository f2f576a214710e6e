"""Linked identity entity.

Associates one external provider account with one local account.
"""

from datetime import datetime
from typing import Optional

from pydantic import Field

from idlink.domain.model.common import DomainModel
from idlink.domain.value import AccountId, AuthProvider, LinkedIdentityId


class LinkedIdentity(DomainModel):
    """External provider identity linked to a local account.

    (provider, provider_user_id) is globally unique, and an account holds
    at most one identity per provider. Tokens are stored as CryptoBox
    envelopes only.
    """

    id: LinkedIdentityId
    account_id: AccountId
    provider: AuthProvider
    provider_user_id: str
    provider_email: Optional[str] = None
    provider_display_name: Optional[str] = None
    encrypted_access_token: str = Field(repr=False)
    encrypted_refresh_token: Optional[str] = Field(default=None, repr=False)
    token_expires_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
