"""Tests for earning record creation, promotion, voiding and reporting."""

import asyncio
from datetime import UTC, datetime, timedelta

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.domain.entities import EarningStatus, PaymentMethod
from app.repositories.base import EarningFilter
from app.schemas.payment import PaymentReceived, PropertyPayment
from app.services.notification_service import NotificationService
from tests.conftest import HOST_ID, NOW, OTHER_HOST_ID


class TestCreateEarningRecord:
    @pytest.mark.asyncio
    async def test_online_payment_is_available_immediately(self, paid_booking, uow):
        booking = await paid_booking(total_price=11000, base_price=10000)

        earning = await uow.earnings.get_for_booking(booking.id)
        assert earning.status is EarningStatus.AVAILABLE
        assert earning.available_date == NOW
        assert earning.amount == 10000
        assert earning.host_payout == 8000
        assert earning.platform_fee == 2000
        assert earning.payment_method is PaymentMethod.CARD

    @pytest.mark.asyncio
    async def test_repeated_creation_returns_the_same_record(self, paid_booking, ledger, uow):
        booking = await paid_booking()
        first = await uow.earnings.get_for_booking(booking.id)

        again = await ledger.create_earning_record(uow, booking)

        assert again.id == first.id
        assert len(await uow.earnings.list_for_booking(booking.id)) == 1

    @pytest.mark.asyncio
    async def test_concurrent_creation_records_once(self, paid_booking, ledger, uow):
        booking = await paid_booking()

        results = await asyncio.gather(
            *(ledger.create_earning_record(uow, booking) for _ in range(5))
        )

        assert len({r.id for r in results}) == 1
        assert len(await uow.earnings.list_for_booking(booking.id)) == 1

    @pytest.mark.asyncio
    async def test_pay_at_property_is_pending_for_a_year(
        self, make_booking, booking_service, ledger, uow, host
    ):
        booking = await make_booking(payment_method=PaymentMethod.PROPERTY)
        booking = await booking_service.mark_payment_received(
            uow, host, booking.id, PaymentReceived()
        )

        earning = await uow.earnings.get_for_booking(booking.id)
        assert earning.status is EarningStatus.PENDING
        assert earning.available_date == NOW + timedelta(days=365)


class TestPromotion:
    @pytest.mark.asyncio
    async def test_pay_at_property_completion_then_withdrawal(
        self, make_booking, booking_service, allocator, clock, uow, guest, host
    ):
        booking = await make_booking(payment_method=PaymentMethod.PROPERTY, total_price=10000)
        await booking_service.capture_payment(uow, guest, booking.id, PropertyPayment())
        await booking_service.confirm_booking(uow, host, booking.id)
        await booking_service.mark_payment_received(uow, host, booking.id, PaymentReceived())
        assert (await uow.earnings.get_for_booking(booking.id)).status is EarningStatus.PENDING

        clock.set(booking.check_out + timedelta(hours=1))
        await booking_service.complete_booking(uow, host, booking.id)

        earning = await uow.earnings.get_for_booking(booking.id)
        assert earning.status is EarningStatus.AVAILABLE
        assert earning.available_date == clock.now()

        result = await allocator.process_withdrawal(uow, HOST_ID, 8000, "gcash", "09171234567")
        assert result.remaining_balance == 0
        assert (await uow.earnings.get(earning.id)).status is EarningStatus.PAID_OUT

    @pytest.mark.asyncio
    async def test_completion_without_recorded_payment_creates_available_record(
        self, make_booking, booking_service, clock, uow, host
    ):
        booking = await make_booking(payment_method=PaymentMethod.PROPERTY)
        await booking_service.confirm_booking(uow, host, booking.id)
        clock.set(booking.check_out)

        completed = await booking_service.complete_booking(uow, host, booking.id)

        assert completed.payment_status.value == "paid"
        earning = await uow.earnings.get_for_booking(booking.id)
        assert earning.status is EarningStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_promotion_leaves_available_records_alone(self, paid_booking, ledger, uow):
        booking = await paid_booking()
        before = await uow.earnings.get_for_booking(booking.id)

        after = await ledger.promote_on_completion(uow, booking)

        assert after.version == before.version
        assert after.status is EarningStatus.AVAILABLE

    @pytest.mark.asyncio
    async def test_sweep_promotes_due_records_once(self, seed_earning, ledger, uow):
        due = await seed_earning(
            400, status=EarningStatus.PENDING, available_date=NOW - timedelta(minutes=1)
        )
        later = await seed_earning(
            400, status=EarningStatus.PENDING, available_date=NOW + timedelta(days=1)
        )

        assert await ledger.promote_pending_by_date(uow) == 1
        assert await ledger.promote_pending_by_date(uow) == 0
        assert (await uow.earnings.get(due.id)).status is EarningStatus.AVAILABLE
        assert (await uow.earnings.get(later.id)).status is EarningStatus.PENDING


class TestVoid:
    @pytest.mark.asyncio
    async def test_cancellation_voids_available_record(self, paid_booking, booking_service, uow, guest):
        booking = await paid_booking(days_ahead=10)

        await booking_service.cancel_booking(uow, guest, booking.id, "Change of plans")

        assert await uow.earnings.list_for_booking(booking.id) == []

    @pytest.mark.asyncio
    async def test_paid_out_fragment_is_kept_and_clawback_requested(
        self, paid_booking, booking_service, allocator, sink, uow, guest
    ):
        booking = await paid_booking(days_ahead=10, total_price=10000)
        await allocator.process_withdrawal(uow, HOST_ID, 3000, "gcash", "09171234567")

        await booking_service.cancel_booking(uow, guest, booking.id)

        records = await uow.earnings.list_for_booking(booking.id)
        assert len(records) == 1
        assert records[0].status is EarningStatus.PAID_OUT
        assert records[0].host_payout == 3000
        clawbacks = [s for s in sink.sent if s[0] == NotificationService.EARNING_CLAWBACK_REQUIRED]
        assert len(clawbacks) == 1
        assert clawbacks[0][2]["amount"] == 3000


class TestReporting:
    @pytest.mark.asyncio
    async def test_summary_by_status_and_month(self, seed_earning, ledger, uow):
        await seed_earning(800, created_at=datetime(2026, 5, 10, tzinfo=UTC))
        await seed_earning(400, status=EarningStatus.PENDING, created_at=datetime(2026, 4, 2, tzinfo=UTC))
        await seed_earning(200, status=EarningStatus.PAID_OUT, created_at=datetime(2026, 5, 20, tzinfo=UTC))
        await seed_earning(999, host_id=OTHER_HOST_ID)

        summary = await ledger.get_summary(uow, HOST_ID)

        assert summary.total == 1400
        assert summary.available == 800
        assert summary.pending == 400
        assert summary.paid_out == 200
        assert [(m.year, m.month, m.total) for m in summary.monthly] == [
            (2026, 5, 1000),
            (2026, 4, 400),
        ]
        assert summary.currency == "PHP"

    @pytest.mark.asyncio
    async def test_list_is_paginated_newest_first(self, seed_earning, ledger, uow):
        for day in range(1, 6):
            await seed_earning(100 * day, created_at=datetime(2026, 5, day, tzinfo=UTC))

        page = await ledger.list_host_earnings(uow, HOST_ID, page=2, limit=2)

        assert page.total == 5
        assert page.total_pages == 3
        assert [e.host_payout for e in page.items] == [300, 200]

    @pytest.mark.asyncio
    async def test_list_filters_by_status(self, seed_earning, ledger, uow):
        await seed_earning(100)
        await seed_earning(200, status=EarningStatus.PENDING)

        page = await ledger.list_host_earnings(uow, HOST_ID, status=EarningStatus.PENDING)

        assert [e.host_payout for e in page.items] == [200]

    @pytest.mark.asyncio
    async def test_date_range_totals(self, seed_earning, ledger, uow):
        await seed_earning(800, amount=1000, created_at=datetime(2026, 3, 1, tzinfo=UTC))
        await seed_earning(400, amount=500, created_at=datetime(2026, 3, 15, tzinfo=UTC))
        await seed_earning(400, created_at=datetime(2026, 4, 1, tzinfo=UTC))

        report = await ledger.earnings_by_date_range(
            uow, HOST_ID, datetime(2026, 3, 1, tzinfo=UTC), datetime(2026, 3, 31, tzinfo=UTC)
        )

        assert len(report.earnings) == 2
        assert report.totals.amount == 1500
        assert report.totals.host_payout == 1200
        assert report.totals.platform_fee == 300

    @pytest.mark.asyncio
    async def test_date_range_rejects_reversed_bounds(self, ledger, uow):
        with pytest.raises(ValidationError):
            await ledger.earnings_by_date_range(uow, HOST_ID, NOW, NOW - timedelta(days=1))

    @pytest.mark.asyncio
    async def test_annual_statement_groups_by_month(self, seed_earning, ledger, uow):
        await seed_earning(800, created_at=datetime(2026, 1, 31, 23, tzinfo=UTC))
        await seed_earning(400, created_at=datetime(2026, 2, 1, tzinfo=UTC))
        await seed_earning(100, created_at=datetime(2025, 12, 31, tzinfo=UTC))

        statement = await ledger.annual_statement(uow, HOST_ID, 2026)

        assert len(statement.months) == 12
        assert statement.months[0].totals.host_payout == 800
        assert statement.months[1].totals.host_payout == 400
        assert statement.totals.host_payout == 1200

    @pytest.mark.asyncio
    @pytest.mark.parametrize("year", [1999, 2027])
    async def test_annual_statement_rejects_out_of_range_year(self, ledger, uow, year):
        with pytest.raises(ValidationError):
            await ledger.annual_statement(uow, HOST_ID, year)

    @pytest.mark.asyncio
    async def test_booking_earnings_include_fragments(self, paid_booking, allocator, ledger, uow):
        booking = await paid_booking(total_price=10000)
        await allocator.process_withdrawal(uow, HOST_ID, 1000, "gcash", "09171234567")

        result = await ledger.booking_earnings(uow, HOST_ID, booking.id)

        assert len(result.records) == 2
        assert result.totals.host_payout == 8000
        assert result.totals.amount == 10000

    @pytest.mark.asyncio
    async def test_booking_earnings_hidden_from_other_hosts(self, paid_booking, ledger, uow):
        booking = await paid_booking()
        with pytest.raises(NotFoundError):
            await ledger.booking_earnings(uow, OTHER_HOST_ID, booking.id)
        assert await uow.earnings.count(EarningFilter(booking_id=booking.id)) == 1
