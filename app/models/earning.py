"""Earning ledger database model."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, UTCDateTime


class Earning(Base):
    """One booking's revenue split, or a fragment cut from it by a withdrawal."""

    __tablename__ = "earnings"
    __table_args__ = (
        CheckConstraint("amount = platform_fee + host_payout", name="ck_earnings_split"),
        CheckConstraint("host_payout >= 0 AND platform_fee >= 0", name="ck_earnings_non_negative"),
        # At most one primary record per booking; fragments carry split_from_id
        Index(
            "uq_earnings_primary_booking",
            "booking_id",
            unique=True,
            postgresql_where=text("split_from_id IS NULL"),
            sqlite_where=text("split_from_id IS NULL"),
        ),
        Index("ix_earnings_host_status_date", "host_id", "status", "available_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    host_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Money (centavos)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    platform_fee: Mapped[int] = mapped_column(Integer, nullable=False)
    host_payout: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default="pending", nullable=False
    )  # pending, available, paid_out
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    available_date: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # Payout linkage
    payout_id: Mapped[str | None] = mapped_column(String(40), index=True)
    paid_out_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    payout_method: Mapped[str | None] = mapped_column(String(20))
    payout_account: Mapped[str | None] = mapped_column(String(100))  # masked

    split_from_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, index=True)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
