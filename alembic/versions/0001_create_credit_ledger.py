"""Create the credit ledger tables.

Revision ID: 0001_create_credit_ledger
Revises:
Create Date: 2026-10-18 00:00:00.000000

``credit_account`` holds one balance per account.  ``credit_usage`` is
an append-only log of every debit (positive ``credits_used``) and grant
(negative ``credits_used``) with the balance that remained afterwards.
Compatible with both PostgreSQL and SQLite.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_create_credit_ledger"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "credit_account",
        sa.Column("account_id", sa.Text(), nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("account_id", name="pk_credit_account"),
        sa.CheckConstraint("balance >= 0", name="ck_credit_account_balance_non_negative"),
    )
    op.create_table(
        "credit_usage",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("account_id", sa.Text(), nullable=False),
        sa.Column("request_id", sa.Text(), nullable=True),
        sa.Column("credits_used", sa.Integer(), nullable=False),
        sa.Column("remaining_balance", sa.Integer(), nullable=False),
        sa.Column("action", sa.Text(), nullable=False),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["account_id"], ["credit_account.account_id"], name="fk_credit_usage_account"
        ),
    )
    op.create_index("ix_credit_usage_account_id", "credit_usage", ["account_id"])


def downgrade() -> None:
    op.drop_index("ix_credit_usage_account_id", table_name="credit_usage")
    op.drop_table("credit_usage")
    op.drop_table("credit_account")
