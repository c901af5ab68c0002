"""Cancellation policy domain logic.

Policy:
- Cancelled by host or admin: full refund, regardless of timing
- Cancelled by guest: full refund 7+ days before check-in, 50% from 3 to 7
  days, nothing inside 3 days
- Nothing is refunded unless the booking was paid
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from app.domain.entities import CancelledBy, PaymentStatus

SECONDS_PER_DAY = Decimal(86400)

# Guest refund rules: list of (days_before_checkin, refund_percentage)
# Evaluated in order - first match wins
GUEST_REFUND_RULES: list[tuple[int, Decimal]] = [
    (7, Decimal("100")),   # 7+ days before: 100% refund
    (3, Decimal("50")),    # 3-7 days before: 50% refund
]


@dataclass(frozen=True)
class RefundQuote:
    """Refund owed to the guest for a cancellation."""

    refund_amount: int
    refund_percentage: int


def days_before_check_in(check_in: datetime, now: datetime) -> Decimal:
    """Fractional days between now and check-in (negative once check-in passed)."""
    return Decimal(str((check_in - now).total_seconds())) / SECONDS_PER_DAY


def guest_refund_rate(check_in: datetime, now: datetime) -> Decimal:
    days_before = days_before_check_in(check_in, now)
    for min_days, refund_pct in GUEST_REFUND_RULES:
        if days_before >= min_days:
            return refund_pct
    return Decimal("0")


def compute_refund(
    total_price: int,
    payment_status: PaymentStatus | str,
    cancelled_by: CancelledBy | str,
    check_in: datetime,
    now: datetime,
) -> RefundQuote:
    """Calculate the refund for a cancellation.

    Used both to quote a refund before cancelling and to execute the
    cancellation, so the quote is always what gets honoured.

    Args:
        total_price: Total booking price in centavos
        payment_status: Booking payment status
        cancelled_by: Party cancelling the booking
        check_in: Booking check-in timestamp
        now: Time of cancellation

    Returns:
        RefundQuote: refund amount in centavos and whole percentage
    """
    if PaymentStatus(payment_status) is not PaymentStatus.PAID:
        return RefundQuote(refund_amount=0, refund_percentage=0)

    if CancelledBy(cancelled_by) in (CancelledBy.HOST, CancelledBy.ADMIN):
        rate = Decimal("100")
    else:
        rate = guest_refund_rate(check_in, now)

    refund_amount = int(
        (Decimal(total_price) * rate / Decimal("100")).quantize(
            Decimal("1"), rounding=ROUND_HALF_UP
        )
    )
    return RefundQuote(
        refund_amount=refund_amount,
        refund_percentage=refund_percentage(refund_amount, total_price),
    )


def refund_percentage(refund_amount: int, total_price: int) -> int:
    if total_price == 0:
        return 0
    pct = Decimal(refund_amount) * Decimal("100") / Decimal(total_price)
    return int(pct.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def get_policy_description() -> str:
    """Get human-readable policy description."""
    return (
        "Full refund if cancelled 7 or more days before check-in. "
        "50% refund if cancelled 3 to 7 days before check-in. "
        "No refund if cancelled less than 3 days before check-in. "
        "Cancellations by the host or the platform are always refunded in full."
    )
