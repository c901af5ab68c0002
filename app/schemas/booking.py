"""Booking-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.entities import BookingStatus, CancelledBy, PaymentMethod, PaymentStatus


class PriceBreakdownSchema(BaseModel):
    """Price components in centavos. base_price is the ledger revenue base."""

    model_config = ConfigDict(from_attributes=True)

    base_price: int = Field(..., ge=0)
    cleaning_fee: int = Field(default=0, ge=0)
    service_fee: int = Field(default=0, ge=0)
    tax: int = Field(default=0, ge=0)
    discount: int = Field(default=0, ge=0)


class BookingCreate(BaseModel):
    """Schema for creating a booking."""

    room_id: UUID
    check_in: datetime
    check_out: datetime
    total_price: int = Field(..., ge=0, description="Total in centavos")
    price_breakdown: PriceBreakdownSchema | None = None
    payment_method: PaymentMethod = PaymentMethod.PROPERTY
    special_requests: str | None = Field(None, max_length=1000)

    @field_validator("check_out")
    @classmethod
    def validate_checkout(cls, v: datetime, info) -> datetime:
        check_in = info.data.get("check_in")
        if check_in and v <= check_in:
            raise ValueError("check_out must be after check_in")
        return v


class BookingReject(BaseModel):
    reason: str = Field(default="No reason provided", min_length=1, max_length=1000)


class BookingCancel(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class CancellationDetailsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    cancelled_at: datetime
    cancelled_by: CancelledBy
    reason: str
    refund_amount: int
    refund_percentage: int


class BookingResponse(BaseModel):
    """Schema for booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    room_id: UUID
    guest_id: UUID
    host_id: UUID

    check_in: datetime
    check_out: datetime
    nights: int

    total_price: int
    price_breakdown: PriceBreakdownSchema

    payment_method: PaymentMethod
    payment_status: PaymentStatus
    paid_at: datetime | None
    paid_amount: int | None
    payment_reference: str | None

    status: BookingStatus
    is_cancellable: bool
    cancellation_deadline: datetime
    cancellation: CancellationDetailsResponse | None

    special_requests: str | None
    created_at: datetime
    updated_at: datetime | None


class CancellationResponse(BaseModel):
    """Result of cancelling a booking."""

    booking: BookingResponse
    refund_amount: int
    refund_percentage: int


class CancellationPreviewResponse(BaseModel):
    """What a cancellation would do right now."""

    model_config = ConfigDict(from_attributes=True)

    can_cancel: bool
    refund_amount: int
    refund_percentage: int
    reason: str | None
    cancellation_deadline: datetime
    policy: str
