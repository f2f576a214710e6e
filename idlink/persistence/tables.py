"""SQLAlchemy table definitions for idlink.

These table definitions are used with SQLAlchemy Core.
They match the schema defined in Alembic migrations.
"""

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# Metadata object for all tables
metadata = MetaData()

# ============================================================================
# ACCOUNTS TABLE
# ============================================================================
accounts_table = Table(
    "accounts",
    metadata,
    Column("id", UUID, primary_key=True),
    Column("email", String(320), nullable=False),
    Column("has_password", Boolean, nullable=False, server_default="false"),
    Column("display_name", String(255), nullable=True),
    Column("email_verified", Boolean, nullable=False, server_default="false"),
    Column(
        "created_at", TIMESTAMP(timezone=True), nullable=False, server_default="NOW()"
    ),
    Column(
        "updated_at", TIMESTAMP(timezone=True), nullable=False, server_default="NOW()"
    ),
    UniqueConstraint("email", name="uq_account_email"),
)

# ============================================================================
# LINKED IDENTITIES TABLE
# ============================================================================
linked_identities_table = Table(
    "linked_identities",
    metadata,
    Column("id", UUID, primary_key=True),
    Column(
        "account_id",
        UUID,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("provider", String(50), nullable=False),  # 'google', 'apple', 'instagram'
    Column("provider_user_id", String(255), nullable=False),
    Column("provider_email", String(320), nullable=True),
    Column("provider_display_name", String(255), nullable=True),
    Column("encrypted_access_token", Text, nullable=False),
    Column("encrypted_refresh_token", Text, nullable=True),
    Column("token_expires_at", TIMESTAMP(timezone=True), nullable=True),
    Column(
        "created_at", TIMESTAMP(timezone=True), nullable=False, server_default="NOW()"
    ),
    Column(
        "updated_at", TIMESTAMP(timezone=True), nullable=False, server_default="NOW()"
    ),
    UniqueConstraint("provider", "provider_user_id", name="uq_provider_identity"),
    UniqueConstraint("account_id", "provider", name="uq_account_provider"),
)

Index("idx_linked_identities_account_id", linked_identities_table.c.account_id)
Index(
    "idx_linked_identities_token_expires_at",
    linked_identities_table.c.token_expires_at,
)

# ============================================================================
# SECURITY LOGS TABLE (append-only)
# ============================================================================
security_logs_table = Table(
    "security_logs",
    metadata,
    Column("id", UUID, primary_key=True),
    Column("event_type", String(50), nullable=False),
    Column("account_id", UUID, nullable=True),  # No FK: entries outlive accounts
    Column("details", JSONB, nullable=False, server_default="{}"),
    Column("ip_address", String(64), nullable=True),
    Column("user_agent", Text, nullable=True),
    Column(
        "timestamp", TIMESTAMP(timezone=True), nullable=False, server_default="NOW()"
    ),
)

Index(
    "idx_security_logs_account_timestamp",
    security_logs_table.c.account_id,
    security_logs_table.c.timestamp,
)

# ============================================================================
# CONSUMED STATES TABLE
# ============================================================================
consumed_states_table = Table(
    "consumed_states",
    metadata,
    Column("nonce", String(64), primary_key=True),
    Column("expires_at", TIMESTAMP(timezone=True), nullable=False),
)

Index("idx_consumed_states_expires_at", consumed_states_table.c.expires_at)
