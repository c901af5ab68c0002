"""Booking database model."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base, UTCDateTime


class Booking(Base):
    """Booking model."""

    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("total_price >= 0", name="ck_bookings_total_price"),
        CheckConstraint("check_out > check_in", name="ck_bookings_dates"),
        Index("ix_bookings_room_dates", "room_id", "check_in", "check_out"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    room_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    guest_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    host_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    # Dates
    check_in: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    check_out: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)

    # Pricing (centavos)
    total_price: Mapped[int] = mapped_column(Integer, nullable=False)
    base_price: Mapped[int] = mapped_column(Integer, nullable=False)
    cleaning_fee: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    service_fee: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tax: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    discount: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Payment
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)  # card, gcash, maya, property
    payment_status: Mapped[str] = mapped_column(
        String(20), default="pending", nullable=False
    )  # pending, paid, refunded, cancelled
    paid_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    paid_amount: Mapped[int | None] = mapped_column(Integer)
    payment_reference: Mapped[str | None] = mapped_column(String(100))
    payment_recorded_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Status
    status: Mapped[str] = mapped_column(
        String(20), default="pending", nullable=False, index=True
    )  # pending, confirmed, completed, cancelled, rejected

    # Cancellation
    is_cancellable: Mapped[bool] = mapped_column(Boolean, nullable=False)
    cancellation_deadline: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    cancelled_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
    cancelled_by: Mapped[str | None] = mapped_column(String(20))  # guest, host, admin
    cancellation_reason: Mapped[str | None] = mapped_column(Text)
    refund_amount: Mapped[int | None] = mapped_column(Integer)
    refund_percentage: Mapped[int | None] = mapped_column(Integer)

    special_requests: Mapped[str | None] = mapped_column(Text)

    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(UTCDateTime)
