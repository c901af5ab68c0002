"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

Creates the booking lifecycle and earnings ledger tables:
- Bookings with payment and cancellation details
- Earnings (per-booking revenue split and withdrawal fragments)
"""

from typing import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== BOOKINGS ====================
    op.create_table(
        "bookings",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("room_id", sa.Uuid, nullable=False),
        sa.Column("guest_id", sa.Uuid, nullable=False, index=True),
        sa.Column("host_id", sa.Uuid, nullable=False, index=True),
        sa.Column("check_in", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_out", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_price", sa.Integer, nullable=False),
        sa.Column("base_price", sa.Integer, nullable=False),
        sa.Column("cleaning_fee", sa.Integer, nullable=False, server_default="0"),
        sa.Column("service_fee", sa.Integer, nullable=False, server_default="0"),
        sa.Column("tax", sa.Integer, nullable=False, server_default="0"),
        sa.Column("discount", sa.Integer, nullable=False, server_default="0"),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("paid_amount", sa.Integer),
        sa.Column("payment_reference", sa.String(100)),
        sa.Column("payment_recorded_by", sa.Uuid),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("is_cancellable", sa.Boolean, nullable=False),
        sa.Column("cancellation_deadline", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_by", sa.String(20)),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("refund_amount", sa.Integer),
        sa.Column("refund_percentage", sa.Integer),
        sa.Column("special_requests", sa.Text),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("total_price >= 0", name="ck_bookings_total_price"),
        sa.CheckConstraint("check_out > check_in", name="ck_bookings_dates"),
    )
    op.create_index("ix_bookings_room_dates", "bookings", ["room_id", "check_in", "check_out"])

    # ==================== EARNINGS ====================
    op.create_table(
        "earnings",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "booking_id",
            sa.Uuid,
            sa.ForeignKey("bookings.id", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        ),
        sa.Column("host_id", sa.Uuid, nullable=False, index=True),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("platform_fee", sa.Integer, nullable=False),
        sa.Column("host_payout", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("available_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("payout_id", sa.String(40), index=True),
        sa.Column("paid_out_at", sa.DateTime(timezone=True)),
        sa.Column("payout_method", sa.String(20)),
        sa.Column("payout_account", sa.String(100)),
        sa.Column("split_from_id", sa.Uuid, index=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("amount = platform_fee + host_payout", name="ck_earnings_split"),
        sa.CheckConstraint(
            "host_payout >= 0 AND platform_fee >= 0", name="ck_earnings_non_negative"
        ),
    )
    op.create_index(
        "uq_earnings_primary_booking",
        "earnings",
        ["booking_id"],
        unique=True,
        postgresql_where=sa.text("split_from_id IS NULL"),
    )
    op.create_index(
        "ix_earnings_host_status_date", "earnings", ["host_id", "status", "available_date"]
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("earnings")
    op.drop_table("bookings")
