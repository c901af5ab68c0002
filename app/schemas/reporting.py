"""Platform reporting schemas (read-only, admin)."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class RevenueTotals(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_fees: int
    total_records: int
    average_fee: int


class RevenueByMethod(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payment_method: str
    total_fees: int
    count: int


class MonthlyRevenue(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: int
    revenue: int


class PlatformRevenueResponse(BaseModel):
    """Platform fee revenue for a period."""

    model_config = ConfigDict(from_attributes=True)

    period: str
    summary: RevenueTotals
    by_payment_method: list[RevenueByMethod]
    monthly_trend: list[MonthlyRevenue]
    currency: str


class TopHostResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    host_id: UUID
    total_earnings: int
    total_platform_fee: int
    bookings_count: int


class TransactionItem(BaseModel):
    """One ledger record as seen in the admin transaction history."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    date: datetime
    booking_id: UUID
    host_id: UUID
    guest_id: UUID | None
    check_in: datetime | None
    check_out: datetime | None
    total_amount: int
    platform_fee: int
    host_payout: int
    payment_method: str
    status: str


class TransactionHistoryResponse(BaseModel):
    items: list[TransactionItem]
    total: int
    page: int
    limit: int
    total_pages: int


class HostPayoutSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    available: int
    pending: int
    paid_out: int


class HostPayoutDetailsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    host_id: UUID
    summary: HostPayoutSummary
    available_earnings: list[TransactionItem]
