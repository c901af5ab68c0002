"""Booking payment state machine."""

from app.core.exceptions import StateConflictError
from app.domain.entities import PaymentStatus

PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.CANCELLED},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
    PaymentStatus.CANCELLED: set(),
}


def assert_payment_transition(current: PaymentStatus, target: PaymentStatus) -> None:
    allowed = PAYMENT_TRANSITIONS.get(current, set())
    if target not in allowed:
        if current is PaymentStatus.PAID and target is PaymentStatus.PAID:
            raise StateConflictError("Payment already paid")
        raise StateConflictError(
            f"Invalid payment transition: {current.value} → {target.value}"
        )


def payment_status_after_cancellation(
    current: PaymentStatus, refund_amount: int
) -> PaymentStatus:
    """Payment status once a booking is cancelled or rejected.

    Unpaid bookings have their payment cancelled; paid bookings become
    refunded when money goes back, and otherwise stay paid.
    """
    if current is PaymentStatus.PENDING:
        return PaymentStatus.CANCELLED
    if current is PaymentStatus.PAID and refund_amount > 0:
        return PaymentStatus.REFUNDED
    return current
