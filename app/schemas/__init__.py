"""Pydantic schemas for API validation."""

from app.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingReject,
    BookingResponse,
    CancellationPreviewResponse,
    CancellationResponse,
)
from app.schemas.earnings import (
    EarningListResponse,
    EarningResponse,
    EarningsSummaryResponse,
)
from app.schemas.payment import (
    AdminPayoutRequest,
    AdminPayoutResponse,
    PaymentReceived,
    PaymentRequest,
    WithdrawalDetailResponse,
    WithdrawalRequest,
    WithdrawalResponse,
)

__all__ = [
    # Booking
    "BookingCreate",
    "BookingReject",
    "BookingCancel",
    "BookingResponse",
    "CancellationResponse",
    "CancellationPreviewResponse",
    # Payment
    "PaymentRequest",
    "PaymentReceived",
    "WithdrawalRequest",
    "WithdrawalResponse",
    "WithdrawalDetailResponse",
    "AdminPayoutRequest",
    "AdminPayoutResponse",
    # Earnings
    "EarningResponse",
    "EarningListResponse",
    "EarningsSummaryResponse",
]
