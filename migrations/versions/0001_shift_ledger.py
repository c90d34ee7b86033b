"""shift sessions and payment transactions

Revision ID: 0001_shift_ledger
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_shift_ledger"
down_revision = None
branch_labels = None
depends_on = None


class GUID(sa.TypeDecorator):
    impl = sa.CHAR
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import UUID

            return dialect.type_descriptor(UUID(as_uuid=True))
        return dialect.type_descriptor(sa.CHAR(36))


def upgrade() -> None:
    op.create_table(
        "shift_sessions",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("cash_total_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("upi_total_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("bank_total_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("total_revenue_cents", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("cash_total_cents >= 0", name="ck_shift_sessions_cash_total_non_negative"),
        sa.CheckConstraint("upi_total_cents >= 0", name="ck_shift_sessions_upi_total_non_negative"),
        sa.CheckConstraint("bank_total_cents >= 0", name="ck_shift_sessions_bank_total_non_negative"),
        sa.CheckConstraint("total_revenue_cents >= 0", name="ck_shift_sessions_total_revenue_non_negative"),
    )
    op.create_index("ix_shift_sessions_user_id", "shift_sessions", ["user_id"])
    op.create_index("ix_shift_sessions_start_time", "shift_sessions", ["start_time"])
    # At most one row may carry is_active = true.
    op.create_index(
        "uq_shift_sessions_single_active",
        "shift_sessions",
        ["is_active"],
        unique=True,
        sqlite_where=sa.text("is_active = 1"),
        postgresql_where=sa.text("is_active IS true"),
    )

    op.create_table(
        "payment_transactions",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("session_id", GUID(), sa.ForeignKey("shift_sessions.id"), nullable=False),
        sa.Column("order_id", sa.String(length=255), nullable=False),
        sa.Column("amount_cents", sa.BigInteger(), nullable=False),
        sa.Column("payment_method", sa.String(length=16), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="completed"),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount_cents > 0", name="ck_payment_transactions_amount_positive"),
    )
    op.create_index("ix_payment_transactions_session_id", "payment_transactions", ["session_id"])
    op.create_index("ix_payment_transactions_order_id", "payment_transactions", ["order_id"])
    op.create_index(
        "ix_payment_transactions_session_timestamp",
        "payment_transactions",
        ["session_id", "timestamp"],
    )

    op.create_table(
        "idempotency_records",
        sa.Column("id", GUID(), primary_key=True),
        sa.Column("endpoint", sa.String(length=255), nullable=False),
        sa.Column("method", sa.String(length=10), nullable=False),
        sa.Column("idempotency_key", sa.String(length=255), nullable=False),
        sa.Column("request_hash", sa.String(length=64), nullable=False),
        sa.Column("state", sa.String(length=20), nullable=False),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("response_body", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("endpoint", "method", "idempotency_key", name="uq_idempotency"),
    )


def downgrade() -> None:
    op.drop_table("idempotency_records")
    op.drop_index("ix_payment_transactions_session_timestamp", table_name="payment_transactions")
    op.drop_index("ix_payment_transactions_order_id", table_name="payment_transactions")
    op.drop_index("ix_payment_transactions_session_id", table_name="payment_transactions")
    op.drop_table("payment_transactions")
    op.drop_index("uq_shift_sessions_single_active", table_name="shift_sessions")
    op.drop_index("ix_shift_sessions_start_time", table_name="shift_sessions")
    op.drop_index("ix_shift_sessions_user_id", table_name="shift_sessions")
    op.drop_table("shift_sessions")
