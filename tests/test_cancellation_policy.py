"""Tests for refund computation."""

from datetime import timedelta

import pytest

from app.domain.cancellation_policy import (
    RefundQuote,
    compute_refund,
    get_policy_description,
    refund_percentage,
)
from app.domain.entities import CancelledBy, PaymentStatus
from tests.conftest import NOW


def _guest_refund(total: int, days: float) -> RefundQuote:
    return compute_refund(
        total, PaymentStatus.PAID, CancelledBy.GUEST, NOW + timedelta(days=days), NOW
    )


@pytest.mark.parametrize(
    "days,expected",
    [
        (10, RefundQuote(10000, 100)),
        (7, RefundQuote(10000, 100)),
        (5, RefundQuote(5000, 50)),
        (3, RefundQuote(5000, 50)),
        (1, RefundQuote(0, 0)),
        (-1, RefundQuote(0, 0)),
    ],
)
def test_guest_refund_thresholds(days, expected):
    assert _guest_refund(10000, days) == expected


def test_just_under_seven_days_is_half():
    quote = compute_refund(
        10000,
        PaymentStatus.PAID,
        CancelledBy.GUEST,
        NOW + timedelta(days=7) - timedelta(seconds=1),
        NOW,
    )
    assert quote.refund_percentage == 50


@pytest.mark.parametrize("party", [CancelledBy.HOST, CancelledBy.ADMIN])
def test_host_and_admin_refund_in_full(party):
    quote = compute_refund(10000, PaymentStatus.PAID, party, NOW + timedelta(hours=1), NOW)
    assert quote == RefundQuote(10000, 100)


@pytest.mark.parametrize(
    "status", [PaymentStatus.PENDING, PaymentStatus.REFUNDED, PaymentStatus.CANCELLED]
)
def test_unpaid_booking_refunds_nothing(status):
    quote = compute_refund(10000, status, CancelledBy.ADMIN, NOW + timedelta(days=30), NOW)
    assert quote == RefundQuote(0, 0)


def test_refund_never_grows_as_check_in_approaches():
    previous = None
    for hours in range(24 * 10, -24, -6):
        quote = _guest_refund(9999, hours / 24)
        if previous is not None:
            assert quote.refund_amount <= previous
        previous = quote.refund_amount


def test_half_refund_rounds_half_up():
    assert _guest_refund(9999, 4).refund_amount == 5000


def test_refund_percentage_of_free_booking_is_zero():
    assert refund_percentage(0, 0) == 0
    assert _guest_refund(0, 10) == RefundQuote(0, 0)


def test_policy_description_mentions_thresholds():
    description = get_policy_description()
    assert "7" in description
    assert "50%" in description
