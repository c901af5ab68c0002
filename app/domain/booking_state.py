"""Booking state machine.

States:
- pending: requested, awaiting host confirmation or online payment
- confirmed: accepted by the host, or paid online
- completed: stay finished (terminal)
- cancelled: withdrawn by guest, host or admin (terminal)
- rejected: declined by host or admin while pending (terminal)
"""

from datetime import datetime, timedelta

from app.core.exceptions import AuthorizationError, StateConflictError
from app.core.permissions import Actor
from app.domain.entities import Booking, BookingStatus, CancelledBy

CANCELLATION_CUTOFF = timedelta(hours=24)

BOOKING_TRANSITIONS: dict[BookingStatus, set[BookingStatus]] = {
    BookingStatus.PENDING: {
        BookingStatus.CONFIRMED,
        BookingStatus.REJECTED,
        BookingStatus.CANCELLED,
    },
    BookingStatus.CONFIRMED: {BookingStatus.COMPLETED, BookingStatus.CANCELLED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.REJECTED: set(),
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS.get(current, set())


def assert_booking_transition(current: BookingStatus, target: BookingStatus) -> None:
    if not can_transition(current, target):
        raise StateConflictError(
            f"Invalid booking transition: {current.value} → {target.value}"
        )


def derive_cancellation_window(
    check_in: datetime, created_at: datetime
) -> tuple[bool, datetime]:
    """Fix the guest cancellation window at booking time.

    Bookings made less than 24 hours before check-in can never be cancelled
    by the guest. The deadline is always 24 hours before check-in.

    Returns:
        Tuple of (is_cancellable, cancellation_deadline)
    """
    deadline = check_in - CANCELLATION_CUTOFF
    return check_in - created_at >= CANCELLATION_CUTOFF, deadline


def party_of(booking: Booking, actor: Actor) -> CancelledBy | None:
    """Which side of the booking the actor is on, if any.

    Admin wins over ownership so an admin cancelling their own stay is
    treated as a platform action.
    """
    if actor.is_admin:
        return CancelledBy.ADMIN
    if actor.user_id == booking.host_id:
        return CancelledBy.HOST
    if actor.user_id == booking.guest_id:
        return CancelledBy.GUEST
    return None


def _require_host_or_admin(booking: Booking, actor: Actor, action: str) -> CancelledBy:
    party = party_of(booking, actor)
    if party not in (CancelledBy.HOST, CancelledBy.ADMIN):
        raise AuthorizationError(f"Not authorized to {action} this booking")
    return party


def assert_can_confirm(booking: Booking, actor: Actor) -> None:
    _require_host_or_admin(booking, actor, "confirm")
    assert_booking_transition(booking.status, BookingStatus.CONFIRMED)


def assert_can_reject(booking: Booking, actor: Actor) -> CancelledBy:
    party = _require_host_or_admin(booking, actor, "reject")
    assert_booking_transition(booking.status, BookingStatus.REJECTED)
    return party


def assert_can_complete(booking: Booking, actor: Actor, now: datetime) -> None:
    party = _require_host_or_admin(booking, actor, "complete")
    if booking.status is not BookingStatus.CONFIRMED:
        raise StateConflictError(
            f"Booking cannot be completed when it's in {booking.status.value} status"
        )
    if party is CancelledBy.HOST and now < booking.check_out:
        raise StateConflictError("Booking cannot be completed before check-out")


def cancellation_eligibility(
    booking: Booking, actor: Actor, now: datetime
) -> tuple[bool, str | None]:
    """Shared by the cancellation preview and the cancellation itself.

    Returns:
        Tuple of (can_cancel, reason_if_not)
    """
    party = party_of(booking, actor)
    if party is None:
        return False, "Not authorized to cancel this booking"
    if not can_transition(booking.status, BookingStatus.CANCELLED):
        return False, f"Booking is already {booking.status.value}"
    if party is CancelledBy.ADMIN:
        return True, None
    if party is CancelledBy.HOST:
        if booking.status is not BookingStatus.PENDING:
            return False, "Hosts can only cancel bookings that are still pending"
        return True, None
    if not booking.is_cancellable:
        return False, "This booking cannot be cancelled"
    if now > booking.cancellation_deadline:
        return False, "The cancellation deadline has passed"
    return True, None


def assert_can_cancel(booking: Booking, actor: Actor, now: datetime) -> CancelledBy:
    party = party_of(booking, actor)
    if party is None:
        raise AuthorizationError("Not authorized to cancel this booking")
    allowed, reason = cancellation_eligibility(booking, actor, now)
    if not allowed:
        raise StateConflictError(reason)
    return party
