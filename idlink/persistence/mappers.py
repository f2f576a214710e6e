"""Mappers for converting between database rows and domain models.

Since we're using Pydantic domain models (immutable), we use manual mapping
instead of SQLAlchemy's classical imperative mapping.
"""

from typing import Any, Dict
from uuid import UUID

from idlink.domain.model import Account, LinkedIdentity, SecurityLogEntry
from idlink.domain.value import (
    AccountId,
    AuthProvider,
    LinkedIdentityId,
    SecurityEventType,
    SecurityLogId,
)


def _uuid(value: Any) -> UUID:
    return UUID(value) if isinstance(value, str) else value


def row_to_account(row: Dict[str, Any]) -> Account:
    """Convert database row to Account domain model.

    Args:
        row: Database row as dict

    Returns:
        Account domain model
    """
    return Account(
        id=AccountId(_uuid(row["id"])),
        email=row["email"],
        has_password=row["has_password"],
        display_name=row.get("display_name"),
        email_verified=row["email_verified"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def account_to_dict(account: Account) -> Dict[str, Any]:
    """Convert Account domain model to database dict."""
    return account.model_dump()


def row_to_linked_identity(row: Dict[str, Any]) -> LinkedIdentity:
    """Convert database row to LinkedIdentity domain model.

    Args:
        row: Database row as dict

    Returns:
        LinkedIdentity domain model
    """
    return LinkedIdentity(
        id=LinkedIdentityId(_uuid(row["id"])),
        account_id=AccountId(_uuid(row["account_id"])),
        provider=AuthProvider(row["provider"]),
        provider_user_id=row["provider_user_id"],
        provider_email=row.get("provider_email"),
        provider_display_name=row.get("provider_display_name"),
        encrypted_access_token=row["encrypted_access_token"],
        encrypted_refresh_token=row.get("encrypted_refresh_token"),
        token_expires_at=row.get("token_expires_at"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def linked_identity_to_dict(identity: LinkedIdentity) -> Dict[str, Any]:
    """Convert LinkedIdentity domain model to database dict."""
    data = identity.model_dump()
    data["provider"] = identity.provider.value
    return data


def row_to_security_log(row: Dict[str, Any]) -> SecurityLogEntry:
    """Convert database row to SecurityLogEntry domain model."""
    account_id = row.get("account_id")
    return SecurityLogEntry(
        id=SecurityLogId(_uuid(row["id"])),
        event_type=SecurityEventType(row["event_type"]),
        account_id=AccountId(_uuid(account_id)) if account_id else None,
        details=row.get("details") or {},
        ip_address=row.get("ip_address"),
        user_agent=row.get("user_agent"),
        timestamp=row["timestamp"],
    )


def security_log_to_dict(entry: SecurityLogEntry) -> Dict[str, Any]:
    """Convert SecurityLogEntry domain model to database dict."""
    data = entry.model_dump(mode="json")
    data["id"] = entry.id
    data["account_id"] = entry.account_id
    data["timestamp"] = entry.timestamp
    return data
