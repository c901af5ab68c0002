"""Tests for admin revenue reporting."""

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from app.core.exceptions import ValidationError
from app.domain.entities import EarningStatus, PaymentMethod
from tests.conftest import GUEST_ID, HOST_ID, NOW, OTHER_HOST_ID


class TestPlatformRevenue:
    @pytest.mark.asyncio
    async def test_all_time_summary(self, seed_earning, reporting, uow):
        await seed_earning(800, amount=1000, created_at=datetime(2026, 1, 15, tzinfo=UTC))
        await seed_earning(
            400, amount=500, payment_method=PaymentMethod.GCASH,
            created_at=datetime(2026, 5, 3, tzinfo=UTC),
        )
        await seed_earning(160, amount=200, created_at=datetime(2025, 11, 1, tzinfo=UTC))

        revenue = await reporting.platform_revenue_summary(uow)

        assert revenue.summary.total_fees == 340
        assert revenue.summary.total_records == 3
        assert revenue.summary.average_fee == 113
        assert [(m.payment_method, m.total_fees, m.count) for m in revenue.by_payment_method] == [
            ("card", 240, 2),
            ("gcash", 100, 1),
        ]
        assert [(m.month, m.revenue) for m in revenue.monthly_trend] == [(1, 200), (5, 100)]
        assert revenue.currency == "PHP"

    @pytest.mark.asyncio
    async def test_month_period(self, seed_earning, reporting, uow):
        await seed_earning(800, amount=1000, created_at=NOW - timedelta(hours=1))
        await seed_earning(800, amount=1000, created_at=datetime(2026, 5, 31, tzinfo=UTC))

        revenue = await reporting.platform_revenue_summary(uow, "month")

        assert revenue.summary.total_fees == 200
        assert revenue.summary.total_records == 1

    @pytest.mark.asyncio
    async def test_empty_ledger(self, reporting, uow):
        revenue = await reporting.platform_revenue_summary(uow, "today")

        assert revenue.summary.total_fees == 0
        assert revenue.summary.average_fee == 0
        assert revenue.by_payment_method == []

    @pytest.mark.asyncio
    async def test_unknown_period(self, reporting, uow):
        with pytest.raises(ValidationError):
            await reporting.platform_revenue_summary(uow, "decade")


class TestTopHosts:
    @pytest.mark.asyncio
    async def test_ranked_by_host_payout(self, seed_earning, reporting, uow):
        await seed_earning(500, host_id=HOST_ID)
        await seed_earning(300, host_id=HOST_ID)
        await seed_earning(1000, host_id=OTHER_HOST_ID)

        ranking = await reporting.top_hosts(uow)

        assert [(h.host_id, h.total_earnings, h.bookings_count) for h in ranking] == [
            (OTHER_HOST_ID, 1000, 1),
            (HOST_ID, 800, 2),
        ]

    @pytest.mark.asyncio
    async def test_limit(self, seed_earning, reporting, uow):
        for _ in range(3):
            await seed_earning(100, host_id=uuid.uuid4())

        assert len(await reporting.top_hosts(uow, limit=2)) == 2

    @pytest.mark.asyncio
    async def test_week_is_not_a_top_host_period(self, reporting, uow):
        with pytest.raises(ValidationError):
            await reporting.top_hosts(uow, period="week")


class TestTransactionHistory:
    @pytest.mark.asyncio
    async def test_joins_booking_details(self, paid_booking, reporting, uow):
        booking = await paid_booking(total_price=10000)

        history = await reporting.transaction_history(uow)

        assert history.total == 1
        [item] = history.items
        assert item.booking_id == booking.id
        assert item.guest_id == GUEST_ID
        assert item.check_in == booking.check_in
        assert item.total_amount == 10000
        assert item.status == "available"

    @pytest.mark.asyncio
    async def test_filter_and_paginate(self, seed_earning, reporting, uow):
        for day in range(1, 6):
            await seed_earning(100, created_at=datetime(2026, 5, day, tzinfo=UTC))
        await seed_earning(100, payment_method=PaymentMethod.MAYA)

        history = await reporting.transaction_history(uow, payment_method="card", page=2, limit=2)

        assert history.total == 5
        assert history.total_pages == 3
        assert [i.date.day for i in history.items] == [3, 2]
        assert all(i.guest_id is None for i in history.items)

    @pytest.mark.asyncio
    async def test_reversed_range_rejected(self, reporting, uow):
        with pytest.raises(ValidationError):
            await reporting.transaction_history(uow, start=NOW, end=NOW - timedelta(days=1))


class TestHostPayoutDetails:
    @pytest.mark.asyncio
    async def test_balances_and_available_records(self, seed_earning, reporting, uow):
        await seed_earning(300)
        await seed_earning(200, status=EarningStatus.PENDING)
        await seed_earning(100, status=EarningStatus.PAID_OUT)

        details = await reporting.host_payout_details(uow, HOST_ID)

        assert details.summary.available == 300
        assert details.summary.pending == 200
        assert details.summary.paid_out == 100
        assert [e.host_payout for e in details.available_earnings] == [300]
