"""Booking lifecycle operations.

Each operation loads the booking under its ``booking:{id}`` lock, checks the
state machine, writes the booking and any ledger change in one unit of work,
and only then sends notifications.
"""

import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from uuid import UUID

from app.config import settings
from app.core.clock import Clock, SystemClock
from app.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.core.locks import LocalLockManager, LockManager, booking_lock_key, room_lock_key
from app.core.permissions import Actor, require_admin
from app.domain.booking_state import (
    assert_booking_transition,
    assert_can_cancel,
    assert_can_complete,
    assert_can_confirm,
    assert_can_reject,
    cancellation_eligibility,
    derive_cancellation_window,
    party_of,
)
from app.domain.cancellation_policy import RefundQuote, compute_refund, get_policy_description
from app.domain.entities import (
    Booking,
    BookingStatus,
    CancellationDetails,
    CancelledBy,
    PaymentMethod,
    PaymentStatus,
    PriceBreakdown,
)
from app.domain.payment_state import (
    assert_payment_transition,
    payment_status_after_cancellation,
)
from app.gateways.base import PaymentGateway
from app.gateways.simulated import SimulatedGateway
from app.repositories.base import UnitOfWork
from app.schemas.booking import BookingCreate
from app.schemas.payment import PaymentReceived, PaymentRequest, PropertyPayment
from app.services.earnings_service import EarningsLedger, VoidResult
from app.services.notification_service import NotificationService
from app.services.room_catalog import RoomCatalog

logger = logging.getLogger(__name__)

DEFAULT_CANCELLATION_REASON = "No reason provided"


@dataclass
class CancellationOutcome:
    booking: Booking
    refund_amount: int
    refund_percentage: int


@dataclass
class CancellationPreview:
    can_cancel: bool
    refund_amount: int
    refund_percentage: int
    reason: str | None
    cancellation_deadline: datetime
    policy: str


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


class BookingService:
    """Service orchestrating bookings, payments and their ledger effects."""

    def __init__(
        self,
        rooms: RoomCatalog,
        ledger: EarningsLedger | None = None,
        locks: LockManager | None = None,
        clock: Clock | None = None,
        notifier: NotificationService | None = None,
        gateway: PaymentGateway | None = None,
        currency: str | None = None,
    ) -> None:
        self.rooms = rooms
        self.clock = clock or SystemClock()
        self.notifier = notifier or NotificationService()
        self.ledger = ledger or EarningsLedger(clock=self.clock, notifier=self.notifier)
        self.locks = locks or LocalLockManager()
        self.gateway = gateway or SimulatedGateway(clock=self.clock)
        self.currency = currency or settings.currency

    async def _load(self, uow: UnitOfWork, booking_id: UUID) -> Booking:
        booking = await uow.bookings.get(booking_id)
        if booking is None:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    # ==================== CREATION & PAYMENT ====================

    async def create_booking(self, uow: UnitOfWork, actor: Actor, data: BookingCreate) -> Booking:
        """Request a stay; the booking starts pending with payment pending.

        Raises:
            NotFoundError: room does not exist
            ValidationError: room unavailable, dates invalid or already booked
        """
        room = await self.rooms.get_room(data.room_id)
        if room is None:
            raise NotFoundError("Room", str(data.room_id))
        if not room.is_bookable:
            raise ValidationError("Room is not available for booking")
        if room.host_id == actor.user_id:
            raise ValidationError("You cannot book your own room")

        now = self.clock.now()
        check_in = _as_utc(data.check_in)
        check_out = _as_utc(data.check_out)
        if check_out <= check_in:
            raise ValidationError("check_out must be after check_in")
        if check_in < now:
            raise ValidationError("check_in must be in the future")
        if (room.available_from and check_in < _as_utc(room.available_from)) or (
            room.available_until and check_out > _as_utc(room.available_until)
        ):
            raise ValidationError("Selected dates are outside of room availability")

        if data.price_breakdown is not None:
            breakdown = PriceBreakdown(**data.price_breakdown.model_dump())
        else:
            breakdown = PriceBreakdown(base_price=data.total_price)

        is_cancellable, deadline = derive_cancellation_window(check_in, now)
        booking = Booking(
            room_id=room.room_id,
            guest_id=actor.user_id,
            host_id=room.host_id,
            check_in=check_in,
            check_out=check_out,
            total_price=data.total_price,
            price_breakdown=breakdown,
            payment_method=data.payment_method,
            created_at=now,
            is_cancellable=is_cancellable,
            cancellation_deadline=deadline,
            special_requests=data.special_requests,
        )

        async with self.locks.acquire(room_lock_key(room.room_id)):
            async with uow.transaction():
                conflicts = await uow.bookings.find_overlapping(room.room_id, check_in, check_out)
                if conflicts:
                    raise ValidationError(
                        "Room is already booked for the selected dates",
                        errors=[
                            {"check_in": c.check_in.isoformat(), "check_out": c.check_out.isoformat()}
                            for c in conflicts
                        ],
                    )
                booking = await uow.bookings.add(booking)

        logger.info(f"Booking {booking.id} created for room {booking.room_id}")
        await self.notifier.notify(
            NotificationService.BOOKING_CREATED,
            booking.host_id,
            {"booking_id": booking.id, "check_in": booking.check_in},
        )
        return booking

    async def capture_payment(
        self, uow: UnitOfWork, actor: Actor, booking_id: UUID, payment: PaymentRequest
    ) -> Booking:
        """Take the guest's payment.

        Online methods are charged through the gateway; the booking becomes
        paid and confirmed and its earning is recorded as available.
        Pay-at-property only records the choice; the host confirms the stay and
        marks the payment received later.
        """
        async with self.locks.acquire(booking_lock_key(booking_id)):
            async with uow.transaction():
                booking = await self._load(uow, booking_id)
                if booking.guest_id != actor.user_id:
                    raise AuthorizationError("Not authorized to process payment for this booking")
                assert_payment_transition(booking.payment_status, PaymentStatus.PAID)
                if booking.status is not BookingStatus.PENDING:
                    raise StateConflictError(
                        f"Cannot pay for a booking in {booking.status.value} status"
                    )

                now = self.clock.now()
                if isinstance(payment, PropertyPayment):
                    if booking.payment_method is not PaymentMethod.PROPERTY:
                        booking = await uow.bookings.update(
                            replace(booking, payment_method=PaymentMethod.PROPERTY, updated_at=now),
                            booking.version,
                        )
                    logger.info(f"Booking {booking.id} will be paid at the property")
                    return booking

                details = payment.model_dump(exclude={"method"})
                result = await self.gateway.charge(
                    amount=booking.total_price,
                    currency=self.currency,
                    reference_id=str(booking.id),
                    method=payment.method,
                    details=details,
                )
                if not result.success:
                    raise ValidationError(result.error_message or "Payment was declined")

                assert_booking_transition(booking.status, BookingStatus.CONFIRMED)
                paid = replace(
                    booking,
                    payment_method=PaymentMethod(payment.method),
                    payment_status=PaymentStatus.PAID,
                    status=BookingStatus.CONFIRMED,
                    paid_at=now,
                    paid_amount=booking.total_price,
                    payment_reference=result.transaction_id,
                    updated_at=now,
                )
                booking = await uow.bookings.update(paid, booking.version)
                await self.ledger.create_earning_record(uow, booking)

        logger.info(f"Payment {booking.payment_reference} captured for booking {booking.id}")
        await self.notifier.notify(
            NotificationService.PAYMENT_RECEIVED,
            booking.host_id,
            {"booking_id": booking.id, "amount": booking.paid_amount},
        )
        await self.notifier.notify(
            NotificationService.BOOKING_CONFIRMED, booking.guest_id, {"booking_id": booking.id}
        )
        return booking

    async def mark_payment_received(
        self, uow: UnitOfWork, actor: Actor, booking_id: UUID, data: PaymentReceived
    ) -> Booking:
        """Host records that a pay-at-property guest has paid.

        The earning is recorded as pending; it becomes available when the
        stay is completed.
        """
        async with self.locks.acquire(booking_lock_key(booking_id)):
            async with uow.transaction():
                booking = await self._load(uow, booking_id)
                if party_of(booking, actor) not in (CancelledBy.HOST, CancelledBy.ADMIN):
                    raise AuthorizationError("Not authorized to record payment for this booking")
                if booking.payment_method is not PaymentMethod.PROPERTY:
                    raise StateConflictError("Only pay-at-property bookings are paid to the host")
                if booking.is_terminal:
                    raise StateConflictError(
                        f"Cannot record payment for a {booking.status.value} booking"
                    )
                assert_payment_transition(booking.payment_status, PaymentStatus.PAID)

                now = self.clock.now()
                paid = replace(
                    booking,
                    payment_status=PaymentStatus.PAID,
                    paid_at=now,
                    paid_amount=data.amount if data.amount is not None else booking.total_price,
                    payment_reference=data.reference,
                    payment_recorded_by=actor.user_id,
                    updated_at=now,
                )
                booking = await uow.bookings.update(paid, booking.version)
                await self.ledger.create_earning_record(uow, booking)

        logger.info(f"Payment at property recorded for booking {booking.id} by {actor.user_id}")
        return booking

    # ==================== TRANSITIONS ====================

    async def confirm_booking(self, uow: UnitOfWork, actor: Actor, booking_id: UUID) -> Booking:
        async with self.locks.acquire(booking_lock_key(booking_id)):
            async with uow.transaction():
                booking = await self._load(uow, booking_id)
                assert_can_confirm(booking, actor)
                booking = await uow.bookings.update(
                    replace(booking, status=BookingStatus.CONFIRMED, updated_at=self.clock.now()),
                    booking.version,
                )

        logger.info(f"Booking {booking.id} confirmed by {actor.user_id}")
        await self.notifier.notify(
            NotificationService.BOOKING_CONFIRMED, booking.guest_id, {"booking_id": booking.id}
        )
        return booking

    async def complete_booking(self, uow: UnitOfWork, actor: Actor, booking_id: UUID) -> Booking:
        """Finish a confirmed stay and make its earning withdrawable.

        An unpaid pay-at-property booking is treated as paid on completion.
        """
        async with self.locks.acquire(booking_lock_key(booking_id)):
            async with uow.transaction():
                booking = await self._load(uow, booking_id)
                now = self.clock.now()
                assert_can_complete(booking, actor, now)

                completed = replace(booking, status=BookingStatus.COMPLETED, updated_at=now)
                if (
                    booking.payment_method is PaymentMethod.PROPERTY
                    and booking.payment_status is PaymentStatus.PENDING
                ):
                    completed.payment_status = PaymentStatus.PAID
                    completed.paid_at = now
                    completed.paid_amount = booking.total_price
                    completed.payment_recorded_by = actor.user_id
                booking = await uow.bookings.update(completed, booking.version)

                if booking.payment_status is PaymentStatus.PAID:
                    await self.ledger.promote_on_completion(uow, booking)
                else:
                    logger.warning(f"Booking {booking.id} completed without payment; no earning recorded")

        logger.info(f"Booking {booking.id} completed by {actor.user_id}")
        await self.notifier.notify(
            NotificationService.BOOKING_COMPLETED, booking.host_id, {"booking_id": booking.id}
        )
        return booking

    async def _call_off(
        self,
        uow: UnitOfWork,
        booking: Booking,
        party: CancelledBy,
        reason: str,
        target: BookingStatus,
    ) -> tuple[Booking, RefundQuote, VoidResult]:
        """Move a booking to cancelled or rejected, refunding and voiding earnings."""
        assert_booking_transition(booking.status, target)
        now = self.clock.now()

        quote = RefundQuote(refund_amount=0, refund_percentage=0)
        if booking.payment_status is PaymentStatus.PAID:
            quote = compute_refund(
                booking.total_price, booking.payment_status, party, booking.check_in, now
            )

        called_off = replace(
            booking,
            status=target,
            payment_status=payment_status_after_cancellation(
                booking.payment_status, quote.refund_amount
            ),
            cancellation=CancellationDetails(
                cancelled_at=now,
                cancelled_by=party,
                reason=reason,
                refund_amount=quote.refund_amount,
                refund_percentage=quote.refund_percentage,
            ),
            updated_at=now,
        )
        called_off = await uow.bookings.update(called_off, booking.version)
        voided = await self.ledger.void_for_booking(uow, called_off)
        return called_off, quote, voided

    async def reject_booking(
        self, uow: UnitOfWork, actor: Actor, booking_id: UUID, reason: str
    ) -> Booking:
        """Host or admin declines a pending booking; a paid one is refunded in full."""
        async with self.locks.acquire(booking_lock_key(booking_id)):
            async with uow.transaction():
                booking = await self._load(uow, booking_id)
                party = assert_can_reject(booking, actor)
                booking, quote, voided = await self._call_off(
                    uow, booking, party, reason or DEFAULT_CANCELLATION_REASON, BookingStatus.REJECTED
                )

        logger.info(f"Booking {booking.id} rejected by {party.value}, refund {quote.refund_amount}")
        await self.notifier.notify(
            NotificationService.BOOKING_REJECTED,
            booking.guest_id,
            {"booking_id": booking.id, "reason": reason, "refund_amount": quote.refund_amount},
        )
        await self.ledger.notify_clawback(booking, voided)
        return booking

    async def cancel_booking(
        self, uow: UnitOfWork, actor: Actor, booking_id: UUID, reason: str | None = None
    ) -> CancellationOutcome:
        """Cancel a pending or confirmed booking and apply the refund policy.

        Raises:
            AuthorizationError: actor is not the guest, the host or an admin
            StateConflictError: booking is terminal, or the actor may not cancel it now
        """
        async with self.locks.acquire(booking_lock_key(booking_id)):
            async with uow.transaction():
                booking = await self._load(uow, booking_id)
                party = assert_can_cancel(booking, actor, self.clock.now())
                booking, quote, voided = await self._call_off(
                    uow, booking, party, reason or DEFAULT_CANCELLATION_REASON, BookingStatus.CANCELLED
                )

        logger.info(
            f"Booking {booking.id} cancelled by {party.value}, "
            f"refund {quote.refund_amount} ({quote.refund_percentage}%)"
        )
        recipient = booking.host_id if party is CancelledBy.GUEST else booking.guest_id
        await self.notifier.notify(
            NotificationService.BOOKING_CANCELLED,
            recipient,
            {
                "booking_id": booking.id,
                "cancelled_by": party.value,
                "refund_amount": quote.refund_amount,
            },
        )
        await self.ledger.notify_clawback(booking, voided)
        return CancellationOutcome(
            booking=booking,
            refund_amount=quote.refund_amount,
            refund_percentage=quote.refund_percentage,
        )

    async def preview_cancellation(
        self, uow: UnitOfWork, actor: Actor, booking_id: UUID
    ) -> CancellationPreview:
        """Whether the actor could cancel now, and the refund it would give."""
        booking = await self._load(uow, booking_id)
        now = self.clock.now()
        can_cancel, reason = cancellation_eligibility(booking, actor, now)
        quote = RefundQuote(refund_amount=0, refund_percentage=0)
        party = party_of(booking, actor)
        if can_cancel and party is not None and booking.payment_status is PaymentStatus.PAID:
            quote = compute_refund(
                booking.total_price,
                booking.payment_status,
                party,
                booking.check_in,
                now,
            )
        return CancellationPreview(
            can_cancel=can_cancel,
            refund_amount=quote.refund_amount,
            refund_percentage=quote.refund_percentage,
            reason=reason,
            cancellation_deadline=booking.cancellation_deadline,
            policy=get_policy_description(),
        )

    # ==================== READ & ADMIN ====================

    async def get_booking(self, uow: UnitOfWork, actor: Actor, booking_id: UUID) -> Booking:
        booking = await self._load(uow, booking_id)
        if party_of(booking, actor) is None:
            raise AuthorizationError("Not authorized to view this booking")
        return booking

    async def delete_booking(self, uow: UnitOfWork, actor: Actor, booking_id: UUID) -> None:
        """Admin removal of a booking that is not confirmed and has no ledger records."""
        require_admin(actor)
        async with self.locks.acquire(booking_lock_key(booking_id)):
            async with uow.transaction():
                booking = await self._load(uow, booking_id)
                if booking.status is BookingStatus.CONFIRMED:
                    raise StateConflictError("Confirmed bookings cannot be deleted")
                if await uow.earnings.list_for_booking(booking.id):
                    raise StateConflictError("Booking has earning records and cannot be deleted")
                await uow.bookings.delete(booking.id)

        logger.info(f"Booking {booking_id} deleted by admin {actor.user_id}")
