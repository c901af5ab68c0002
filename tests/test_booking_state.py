"""Tests for the booking state machine and actor eligibility."""

from dataclasses import replace
from datetime import timedelta

import pytest

from app.core.exceptions import AuthorizationError, StateConflictError
from app.domain.booking_state import (
    BOOKING_TRANSITIONS,
    assert_booking_transition,
    assert_can_cancel,
    assert_can_complete,
    assert_can_confirm,
    assert_can_reject,
    can_transition,
    cancellation_eligibility,
    derive_cancellation_window,
    party_of,
)
from app.domain.entities import Booking, BookingStatus, CancelledBy, PaymentMethod, PriceBreakdown
from tests.conftest import GUEST_ID, HOST_ID, NOW


def _booking(status=BookingStatus.PENDING, days_ahead=10, is_cancellable=True) -> Booking:
    check_in = NOW + timedelta(days=days_ahead)
    return Booking(
        room_id=HOST_ID,
        guest_id=GUEST_ID,
        host_id=HOST_ID,
        check_in=check_in,
        check_out=check_in + timedelta(days=2),
        total_price=10000,
        price_breakdown=PriceBreakdown(base_price=10000),
        payment_method=PaymentMethod.CARD,
        created_at=NOW,
        is_cancellable=is_cancellable,
        cancellation_deadline=check_in - timedelta(hours=24),
        status=status,
    )


class TestTransitions:
    def test_terminal_states_have_no_exits(self):
        for status in (BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REJECTED):
            assert BOOKING_TRANSITIONS[status] == set()

    @pytest.mark.parametrize(
        "current,target",
        [
            (BookingStatus.PENDING, BookingStatus.CONFIRMED),
            (BookingStatus.PENDING, BookingStatus.REJECTED),
            (BookingStatus.PENDING, BookingStatus.CANCELLED),
            (BookingStatus.CONFIRMED, BookingStatus.COMPLETED),
            (BookingStatus.CONFIRMED, BookingStatus.CANCELLED),
        ],
    )
    def test_legal_transitions(self, current, target):
        assert can_transition(current, target)
        assert_booking_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (BookingStatus.PENDING, BookingStatus.COMPLETED),
            (BookingStatus.CONFIRMED, BookingStatus.REJECTED),
            (BookingStatus.CANCELLED, BookingStatus.CONFIRMED),
            (BookingStatus.COMPLETED, BookingStatus.CANCELLED),
            (BookingStatus.REJECTED, BookingStatus.PENDING),
        ],
    )
    def test_illegal_transitions_raise(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(StateConflictError):
            assert_booking_transition(current, target)


class TestCancellationWindow:
    def test_window_fixed_24_hours_before_check_in(self):
        check_in = NOW + timedelta(days=3)
        is_cancellable, deadline = derive_cancellation_window(check_in, NOW)
        assert is_cancellable is True
        assert deadline == check_in - timedelta(hours=24)

    def test_exactly_24_hours_is_cancellable(self):
        is_cancellable, _ = derive_cancellation_window(NOW + timedelta(hours=24), NOW)
        assert is_cancellable is True

    def test_last_minute_booking_is_not_cancellable(self):
        is_cancellable, deadline = derive_cancellation_window(NOW + timedelta(hours=23), NOW)
        assert is_cancellable is False
        assert deadline < NOW


class TestActors:
    def test_party_of(self, guest, host, admin, stranger):
        booking = _booking()
        assert party_of(booking, guest) is CancelledBy.GUEST
        assert party_of(booking, host) is CancelledBy.HOST
        assert party_of(booking, admin) is CancelledBy.ADMIN
        assert party_of(booking, stranger) is None

    def test_only_host_or_admin_confirms(self, guest, host, admin):
        booking = _booking()
        assert_can_confirm(booking, host)
        assert_can_confirm(booking, admin)
        with pytest.raises(AuthorizationError):
            assert_can_confirm(booking, guest)

    def test_reject_requires_pending(self, host):
        assert assert_can_reject(_booking(), host) is CancelledBy.HOST
        with pytest.raises(StateConflictError):
            assert_can_reject(_booking(status=BookingStatus.CONFIRMED), host)

    def test_host_completes_only_after_check_out(self, host, admin):
        booking = _booking(status=BookingStatus.CONFIRMED)
        with pytest.raises(StateConflictError):
            assert_can_complete(booking, host, NOW)
        assert_can_complete(booking, host, booking.check_out)
        assert_can_complete(booking, admin, NOW)

    def test_complete_requires_confirmed(self, admin):
        with pytest.raises(StateConflictError):
            assert_can_complete(_booking(), admin, NOW)


class TestCancellationEligibility:
    def test_guest_blocked_when_not_cancellable(self, guest):
        booking = _booking(is_cancellable=False)
        allowed, reason = cancellation_eligibility(booking, guest, NOW)
        assert allowed is False
        assert reason
        with pytest.raises(StateConflictError):
            assert_can_cancel(booking, guest, NOW)

    def test_guest_blocked_after_deadline(self, guest):
        booking = _booking(status=BookingStatus.CONFIRMED)
        deadline = booking.cancellation_deadline

        assert cancellation_eligibility(booking, guest, deadline) == (True, None)
        allowed, reason = cancellation_eligibility(booking, guest, deadline + timedelta(seconds=1))
        assert allowed is False
        assert reason == "The cancellation deadline has passed"
        with pytest.raises(StateConflictError):
            assert_can_cancel(booking, guest, booking.check_out + timedelta(days=1))

    def test_admin_ignores_deadline(self, admin):
        booking = _booking(status=BookingStatus.CONFIRMED)
        late = booking.check_out + timedelta(days=1)

        assert assert_can_cancel(booking, admin, late) is CancelledBy.ADMIN

    def test_host_only_while_pending(self, host):
        assert assert_can_cancel(_booking(), host, NOW) is CancelledBy.HOST
        with pytest.raises(StateConflictError):
            assert_can_cancel(_booking(status=BookingStatus.CONFIRMED), host, NOW)

    def test_admin_always(self, admin):
        booking = _booking(status=BookingStatus.CONFIRMED, is_cancellable=False)
        assert assert_can_cancel(booking, admin, NOW) is CancelledBy.ADMIN

    def test_stranger_is_unauthorized(self, stranger):
        allowed, _ = cancellation_eligibility(_booking(), stranger, NOW)
        assert allowed is False
        with pytest.raises(AuthorizationError):
            assert_can_cancel(_booking(), stranger, NOW)

    def test_terminal_booking_cannot_be_cancelled(self, admin):
        booking = replace(_booking(), status=BookingStatus.COMPLETED)
        allowed, reason = cancellation_eligibility(booking, admin, NOW)
        assert allowed is False
        assert "completed" in reason
