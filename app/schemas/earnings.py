"""Earnings ledger response schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.domain.entities import EarningStatus, PaymentMethod


class EarningResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    host_id: UUID
    amount: int
    platform_fee: int
    host_payout: int
    status: EarningStatus
    payment_method: PaymentMethod
    available_date: datetime
    payout_id: str | None
    paid_out_at: datetime | None
    split_from_id: UUID | None
    created_at: datetime


class MonthlyTotal(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    month: int
    total: int


class EarningsSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    available: int
    pending: int
    paid_out: int
    monthly: list[MonthlyTotal]
    currency: str


class EarningListResponse(BaseModel):
    items: list[EarningResponse]
    total: int
    page: int
    limit: int
    total_pages: int


class EarningTotals(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    amount: int
    platform_fee: int
    host_payout: int
    bookings: int


class DateRangeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start: datetime
    end: datetime
    earnings: list[EarningResponse]
    totals: EarningTotals


class MonthStatement(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    month: int
    earnings: list[EarningResponse]
    totals: EarningTotals


class AnnualStatementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    host_id: UUID
    months: list[MonthStatement]
    totals: EarningTotals


class BookingEarningsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: UUID
    records: list[EarningResponse]
    totals: EarningTotals
