"""Revenue split between host and platform.

All amounts are integers in centavos. The host share is applied to the gross
amount and rounded half-up; the platform keeps the remainder so the parts
always add back to the whole.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

DEFAULT_HOST_SHARE = Decimal("0.80")


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class RevenueSplit:
    amount: int
    platform_fee: int
    host_payout: int


def split_revenue(amount: int, host_share: Decimal = DEFAULT_HOST_SHARE) -> RevenueSplit:
    """Split gross revenue into host payout and platform fee.

    Args:
        amount: Gross revenue in centavos
        host_share: Fraction of the gross going to the host

    Returns:
        RevenueSplit with amount == platform_fee + host_payout
    """
    if amount < 0:
        raise ValueError("amount must be non-negative")
    host_payout = round_half_up(Decimal(amount) * host_share)
    return RevenueSplit(
        amount=amount,
        platform_fee=amount - host_payout,
        host_payout=host_payout,
    )


def prorate(split: RevenueSplit, host_payout: int) -> RevenueSplit:
    """Carve a fragment paying exactly ``host_payout`` out of a split.

    The fragment's gross is proportional to its share of the host payout.
    Subtracting the fragment from the original conserves every field exactly.

    Args:
        split: The record being split
        host_payout: Host payout the fragment must carry (0 < x < split.host_payout)

    Returns:
        RevenueSplit for the fragment
    """
    if not 0 < host_payout < split.host_payout:
        raise ValueError("fragment payout must be strictly inside the original payout")
    amount = round_half_up(
        Decimal(split.amount) * Decimal(host_payout) / Decimal(split.host_payout)
    )
    # Rounding cannot push the fragment's fee negative or past the original's
    amount = max(host_payout, min(amount, split.amount - (split.host_payout - host_payout)))
    return RevenueSplit(
        amount=amount,
        platform_fee=amount - host_payout,
        host_payout=host_payout,
    )


def subtract(split: RevenueSplit, fragment: RevenueSplit) -> RevenueSplit:
    return RevenueSplit(
        amount=split.amount - fragment.amount,
        platform_fee=split.platform_fee - fragment.platform_fee,
        host_payout=split.host_payout - fragment.host_payout,
    )
