"""Platform revenue reporting (read-only queries over the earnings ledger)."""

import math
from collections import defaultdict
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from app.config import settings
from app.core.clock import Clock, SystemClock
from app.core.exceptions import ValidationError
from app.domain.entities import Earning, EarningStatus
from app.repositories.base import EarningFilter, UnitOfWork

REVENUE_PERIODS = ("all", "today", "week", "month", "year")
TOP_HOST_PERIODS = ("all", "month", "year")


@dataclass
class RevenueTotals:
    total_fees: int
    total_records: int
    average_fee: int


@dataclass
class RevenueByMethod:
    payment_method: str
    total_fees: int
    count: int


@dataclass
class MonthlyRevenue:
    month: int
    revenue: int


@dataclass
class PlatformRevenue:
    period: str
    summary: RevenueTotals
    by_payment_method: list[RevenueByMethod]
    monthly_trend: list[MonthlyRevenue]
    currency: str


@dataclass
class TopHost:
    host_id: UUID
    total_earnings: int
    total_platform_fee: int
    bookings_count: int


@dataclass
class TransactionItem:
    id: UUID
    date: datetime
    booking_id: UUID
    host_id: UUID
    guest_id: UUID | None
    check_in: datetime | None
    check_out: datetime | None
    total_amount: int
    platform_fee: int
    host_payout: int
    payment_method: str
    status: str


@dataclass
class TransactionHistory:
    items: list[TransactionItem]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class HostPayoutSummary:
    available: int
    pending: int
    paid_out: int


@dataclass
class HostPayoutDetails:
    host_id: UUID
    summary: HostPayoutSummary
    available_earnings: list[TransactionItem]


class ReportingService:
    """Read-only platform revenue reporting."""

    def __init__(self, clock: Clock | None = None, currency: str | None = None) -> None:
        self.clock = clock or SystemClock()
        self.currency = currency or settings.currency

    def _period_start(self, period: str, allowed: tuple[str, ...]) -> datetime | None:
        if period not in allowed:
            raise ValidationError(f"period must be one of: {', '.join(allowed)}")
        now = self.clock.now()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if period == "today":
            return today
        if period == "week":
            return today - timedelta(days=7)
        if period == "month":
            return today.replace(day=1)
        if period == "year":
            return today.replace(month=1, day=1)
        return None

    async def platform_revenue_summary(self, uow: UnitOfWork, period: str = "all") -> PlatformRevenue:
        """Platform fees earned in a period, split by payment method.

        The monthly trend always covers the current calendar year.
        """
        start = self._period_start(period, REVENUE_PERIODS)
        records = await uow.earnings.search(EarningFilter(created_from=start))

        total_fees = sum(r.platform_fee for r in records)
        by_method: dict[str, list[int]] = defaultdict(lambda: [0, 0])
        for record in records:
            bucket = by_method[record.payment_method.value]
            bucket[0] += record.platform_fee
            bucket[1] += 1

        year_start = datetime(self.clock.now().year, 1, 1, tzinfo=UTC)
        this_year = await uow.earnings.search(EarningFilter(created_from=year_start))
        by_month: dict[int, int] = defaultdict(int)
        for record in this_year:
            by_month[record.created_at.month] += record.platform_fee

        return PlatformRevenue(
            period=period,
            summary=RevenueTotals(
                total_fees=total_fees,
                total_records=len(records),
                average_fee=round(total_fees / len(records)) if records else 0,
            ),
            by_payment_method=[
                RevenueByMethod(payment_method=method, total_fees=fees, count=count)
                for method, (fees, count) in sorted(by_method.items())
            ],
            monthly_trend=[
                MonthlyRevenue(month=month, revenue=revenue)
                for month, revenue in sorted(by_month.items())
            ],
            currency=self.currency,
        )

    async def top_hosts(self, uow: UnitOfWork, limit: int = 10, period: str = "all") -> list[TopHost]:
        """Hosts ranked by host payout earned in the period."""
        if limit < 1:
            raise ValidationError("limit must be positive")
        start = self._period_start(period, TOP_HOST_PERIODS)
        records = await uow.earnings.search(EarningFilter(created_from=start))

        grouped: dict[UUID, list[Earning]] = defaultdict(list)
        for record in records:
            grouped[record.host_id].append(record)

        ranking = [
            TopHost(
                host_id=host_id,
                total_earnings=sum(r.host_payout for r in group),
                total_platform_fee=sum(r.platform_fee for r in group),
                bookings_count=len({r.booking_id for r in group}),
            )
            for host_id, group in grouped.items()
        ]
        ranking.sort(key=lambda h: (-h.total_earnings, str(h.host_id)))
        return ranking[:limit]

    async def _as_transactions(self, uow: UnitOfWork, records: list[Earning]) -> list[TransactionItem]:
        items = []
        bookings = {}
        for record in records:
            if record.booking_id not in bookings:
                bookings[record.booking_id] = await uow.bookings.get(record.booking_id)
            booking = bookings[record.booking_id]
            items.append(
                TransactionItem(
                    id=record.id,
                    date=record.created_at,
                    booking_id=record.booking_id,
                    host_id=record.host_id,
                    guest_id=booking.guest_id if booking else None,
                    check_in=booking.check_in if booking else None,
                    check_out=booking.check_out if booking else None,
                    total_amount=record.amount,
                    platform_fee=record.platform_fee,
                    host_payout=record.host_payout,
                    payment_method=record.payment_method.value,
                    status=record.status.value,
                )
            )
        return items

    async def transaction_history(
        self,
        uow: UnitOfWork,
        payment_method: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> TransactionHistory:
        """Ledger records newest first, with the booking's guest and dates."""
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        if start and end and start > end:
            raise ValidationError("start must not be after end")

        criteria = EarningFilter(payment_method=payment_method, created_from=start, created_to=end)
        records = await uow.earnings.search(criteria, offset=(page - 1) * limit, limit=limit)
        return TransactionHistory(
            items=await self._as_transactions(uow, records),
            total=await uow.earnings.count(criteria),
            page=page,
            limit=limit,
        )

    async def host_payout_details(self, uow: UnitOfWork, host_id: UUID) -> HostPayoutDetails:
        """A host's balances plus the records an admin payout could include."""
        records = await uow.earnings.search(EarningFilter(host_id=host_id))
        totals: dict[EarningStatus, int] = defaultdict(int)
        for record in records:
            totals[record.status] += record.host_payout

        available = await uow.earnings.list_available(host_id)
        return HostPayoutDetails(
            host_id=host_id,
            summary=HostPayoutSummary(
                available=totals[EarningStatus.AVAILABLE],
                pending=totals[EarningStatus.PENDING],
                paid_out=totals[EarningStatus.PAID_OUT],
            ),
            available_earnings=await self._as_transactions(uow, available),
        )
