"""Booking endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, status

from app.api.deps import CurrentActor, CurrentAdmin, Uow, get_booking_service
from app.schemas.booking import (
    BookingCancel,
    BookingCreate,
    BookingReject,
    BookingResponse,
    CancellationPreviewResponse,
    CancellationResponse,
)
from app.schemas.payment import PaymentReceived, PaymentRequest
from app.services.booking_service import BookingService

router = APIRouter()

Bookings = Annotated[BookingService, Depends(get_booking_service)]


@router.post("/", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    booking_data: BookingCreate,
    actor: CurrentActor,
    uow: Uow,
    service: Bookings,
) -> BookingResponse:
    """Request a stay in a room."""
    booking = await service.create_booking(uow, actor, booking_data)
    return BookingResponse.model_validate(booking)


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    actor: CurrentActor,
    uow: Uow,
    service: Bookings,
) -> BookingResponse:
    booking = await service.get_booking(uow, actor, booking_id)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/payment", response_model=BookingResponse)
async def capture_payment(
    booking_id: UUID,
    payment: PaymentRequest,
    actor: CurrentActor,
    uow: Uow,
    service: Bookings,
) -> BookingResponse:
    """Pay for a booking by card, GCash or Maya, or choose to pay at the property."""
    booking = await service.capture_payment(uow, actor, booking_id, payment)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/mark-paid", response_model=BookingResponse)
async def mark_payment_received(
    booking_id: UUID,
    actor: CurrentActor,
    uow: Uow,
    service: Bookings,
    data: PaymentReceived | None = None,
) -> BookingResponse:
    """Host records a payment collected at the property."""
    booking = await service.mark_payment_received(
        uow, actor, booking_id, data or PaymentReceived()
    )
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/confirm", response_model=BookingResponse)
async def confirm_booking(
    booking_id: UUID,
    actor: CurrentActor,
    uow: Uow,
    service: Bookings,
) -> BookingResponse:
    booking = await service.confirm_booking(uow, actor, booking_id)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(
    booking_id: UUID,
    actor: CurrentActor,
    uow: Uow,
    service: Bookings,
    data: BookingReject | None = None,
) -> BookingResponse:
    data = data or BookingReject()
    booking = await service.reject_booking(uow, actor, booking_id, data.reason)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    actor: CurrentActor,
    uow: Uow,
    service: Bookings,
) -> BookingResponse:
    booking = await service.complete_booking(uow, actor, booking_id)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=CancellationResponse)
async def cancel_booking(
    booking_id: UUID,
    actor: CurrentActor,
    uow: Uow,
    service: Bookings,
    data: BookingCancel | None = None,
) -> CancellationResponse:
    """Cancel a booking and apply the refund policy."""
    outcome = await service.cancel_booking(
        uow, actor, booking_id, data.reason if data else None
    )
    return CancellationResponse(
        booking=BookingResponse.model_validate(outcome.booking),
        refund_amount=outcome.refund_amount,
        refund_percentage=outcome.refund_percentage,
    )


@router.get("/{booking_id}/can-cancel", response_model=CancellationPreviewResponse)
async def preview_cancellation(
    booking_id: UUID,
    actor: CurrentActor,
    uow: Uow,
    service: Bookings,
) -> CancellationPreviewResponse:
    """Whether the caller may cancel now and what the refund would be."""
    preview = await service.preview_cancellation(uow, actor, booking_id)
    return CancellationPreviewResponse.model_validate(preview)


@router.delete("/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: UUID,
    actor: CurrentAdmin,
    uow: Uow,
    service: Bookings,
) -> None:
    await service.delete_booking(uow, actor, booking_id)
