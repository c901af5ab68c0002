"""Booking and earning records as seen by the core.

Repositories hand out copies of these; mutating one changes nothing until it
is written back with ``update(entity, expected_version)``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """How the guest pays. Everything except PROPERTY is captured online."""

    CARD = "card"
    GCASH = "gcash"
    MAYA = "maya"
    PROPERTY = "property"

    @property
    def is_online(self) -> bool:
        return self is not PaymentMethod.PROPERTY


class CancelledBy(str, Enum):
    GUEST = "guest"
    HOST = "host"
    ADMIN = "admin"


class EarningStatus(str, Enum):
    PENDING = "pending"
    AVAILABLE = "available"
    PAID_OUT = "paid_out"


@dataclass
class PriceBreakdown:
    base_price: int
    cleaning_fee: int = 0
    service_fee: int = 0
    tax: int = 0
    discount: int = 0


@dataclass
class CancellationDetails:
    cancelled_at: datetime
    cancelled_by: CancelledBy
    reason: str
    refund_amount: int = 0
    refund_percentage: int = 0


@dataclass
class Booking:
    """A reservation of one room over a check-in/check-out interval."""

    room_id: uuid.UUID
    guest_id: uuid.UUID
    host_id: uuid.UUID
    check_in: datetime
    check_out: datetime
    total_price: int
    price_breakdown: PriceBreakdown
    payment_method: PaymentMethod
    created_at: datetime
    is_cancellable: bool
    cancellation_deadline: datetime
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    status: BookingStatus = BookingStatus.PENDING
    paid_at: datetime | None = None
    paid_amount: int | None = None
    payment_reference: str | None = None
    payment_recorded_by: uuid.UUID | None = None
    cancellation: CancellationDetails | None = None
    special_requests: str | None = None
    updated_at: datetime | None = None
    version: int = 1

    @property
    def is_terminal(self) -> bool:
        return self.status in (
            BookingStatus.COMPLETED,
            BookingStatus.CANCELLED,
            BookingStatus.REJECTED,
        )

    @property
    def nights(self) -> int:
        return (self.check_out.date() - self.check_in.date()).days


@dataclass
class Earning:
    """Ledger entry holding the host and platform shares of one booking.

    ``split_from_id`` is set on fragments cut off an available record by a
    partial withdrawal; the booking's primary record has it as None.
    """

    booking_id: uuid.UUID
    host_id: uuid.UUID
    amount: int
    platform_fee: int
    host_payout: int
    payment_method: PaymentMethod
    available_date: datetime
    created_at: datetime
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    status: EarningStatus = EarningStatus.PENDING
    payout_id: str | None = None
    paid_out_at: datetime | None = None
    payout_method: str | None = None
    payout_account: str | None = None
    split_from_id: uuid.UUID | None = None
    updated_at: datetime | None = None
    version: int = 1

    @property
    def is_fragment(self) -> bool:
        return self.split_from_id is not None
