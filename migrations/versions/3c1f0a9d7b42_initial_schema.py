"""initial_schema

Create the identity linking schema:
- Accounts (local accounts; email is real or a provider-scoped placeholder)
- Linked identities (one provider account per row, tokens encrypted at rest)
- Security logs (append-only audit trail)
- Consumed states (single-use OAuth state nonces)

Revision ID: 3c1f0a9d7b42
Revises:
Create Date: 2026-10-17 09:12:44.281530

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "3c1f0a9d7b42"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "accounts",
        sa.Column("id", postgresql.UUID(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column(
            "has_password", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column(
            "email_verified", sa.Boolean(), nullable=False, server_default="false"
        ),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_account_email"),
    )
    # Email lookups are case-insensitive
    op.execute("CREATE INDEX idx_accounts_email_lower ON accounts (LOWER(email))")

    op.create_table(
        "linked_identities",
        sa.Column("id", postgresql.UUID(), nullable=False),
        sa.Column("account_id", postgresql.UUID(), nullable=False),
        sa.Column("provider", sa.String(length=50), nullable=False),
        sa.Column("provider_user_id", sa.String(length=255), nullable=False),
        sa.Column("provider_email", sa.String(length=320), nullable=True),
        sa.Column("provider_display_name", sa.String(length=255), nullable=True),
        sa.Column("encrypted_access_token", sa.Text(), nullable=False),
        sa.Column("encrypted_refresh_token", sa.Text(), nullable=True),
        sa.Column(
            "token_expires_at", postgresql.TIMESTAMP(timezone=True), nullable=True
        ),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "provider", "provider_user_id", name="uq_provider_identity"
        ),
        sa.UniqueConstraint("account_id", "provider", name="uq_account_provider"),
    )
    op.create_index(
        "idx_linked_identities_account_id", "linked_identities", ["account_id"]
    )
    op.create_index(
        "idx_linked_identities_token_expires_at",
        "linked_identities",
        ["token_expires_at"],
    )

    op.create_table(
        "security_logs",
        sa.Column("id", postgresql.UUID(), nullable=False),
        sa.Column("event_type", sa.String(length=50), nullable=False),
        sa.Column("account_id", postgresql.UUID(), nullable=True),
        sa.Column(
            "details",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column(
            "timestamp",
            postgresql.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_security_logs_account_timestamp",
        "security_logs",
        ["account_id", "timestamp"],
    )

    op.create_table(
        "consumed_states",
        sa.Column("nonce", sa.String(length=64), nullable=False),
        sa.Column(
            "expires_at", postgresql.TIMESTAMP(timezone=True), nullable=False
        ),
        sa.PrimaryKeyConstraint("nonce"),
    )
    op.create_index(
        "idx_consumed_states_expires_at", "consumed_states", ["expires_at"]
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("idx_consumed_states_expires_at", table_name="consumed_states")
    op.drop_table("consumed_states")
    op.drop_index("idx_security_logs_account_timestamp", table_name="security_logs")
    op.drop_table("security_logs")
    op.drop_index(
        "idx_linked_identities_token_expires_at", table_name="linked_identities"
    )
    op.drop_index("idx_linked_identities_account_id", table_name="linked_identities")
    op.drop_table("linked_identities")
    op.execute("DROP INDEX IF EXISTS idx_accounts_email_lower")
    op.drop_table("accounts")
