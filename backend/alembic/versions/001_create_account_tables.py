"""Create accounts, usage_events and transactions tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema: accounts, their usage ledger and payment transactions.
How:   JSONB for api_keys / metadata, TIMESTAMP WITH TIME ZONE for all times.

Rollback: downgrade() drops all three tables (destructive, all data lost).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(100), nullable=False, comment="Unique login name"),
        sa.Column(
            "password_hash",
            sa.String(255),
            nullable=False,
            comment="One-way credential hash (never returned by the API)",
        ),
        sa.Column(
            "plan",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'Free'"),
            comment="Service tier: Free, Basic, Premium",
        ),
        sa.Column(
            "payment_status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'Pending'"),
            comment="Pending or Paid",
        ),
        sa.Column(
            "words_used",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Cumulative words submitted to humanize_text",
        ),
        sa.Column(
            "api_keys",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("""'{"gptZero": "", "originality": ""}'::jsonb"""),
            comment="Per-account external scorer keys",
        ),
        sa.Column(
            "joined_date",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_accounts"),
    )
    op.create_index("ix_accounts_username", "accounts", ["username"], unique=True)

    op.create_table(
        "usage_events",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("input_length", sa.Integer(), nullable=False),
        sa.Column("output_length", sa.Integer(), nullable=True),
        sa.Column("processing_time", sa.Integer(), nullable=True, comment="Milliseconds"),
        sa.Column("successful", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_usage_events"),
        sa.ForeignKeyConstraint(
            ["account_id"], ["accounts.id"], name="fk_usage_events_account", ondelete="CASCADE"
        ),
    )
    # Serves both the newest-first history and the per-account aggregates
    op.create_index(
        "idx_usage_events_account_created",
        "usage_events",
        ["account_id", "created_at"],
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("transaction_id", sa.String(50), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=False),
        sa.Column(
            "status",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'Pending'"),
            comment="Pending, Completed or Failed",
        ),
        sa.Column("plan", sa.String(20), nullable=False),
        sa.Column(
            "payment_method",
            sa.String(20),
            nullable=False,
            server_default=sa.text("'M-Pesa'"),
        ),
        sa.Column(
            "date",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_transactions"),
        sa.UniqueConstraint("transaction_id", name="uq_transactions_transaction_id"),
        sa.ForeignKeyConstraint(
            ["account_id"], ["accounts.id"], name="fk_transactions_account", ondelete="CASCADE"
        ),
    )


def downgrade() -> None:
    op.drop_table("transactions")
    op.drop_index("idx_usage_events_account_created", table_name="usage_events")
    op.drop_table("usage_events")
    op.drop_index("ix_accounts_username", table_name="accounts")
    op.drop_table("accounts")
