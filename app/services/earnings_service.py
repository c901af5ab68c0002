"""Earnings ledger.

Turns paid bookings into host earning records, promotes them to available,
voids them when a booking is called off, and reports on them.

Money rules:
- A booking's revenue base is its price breakdown's base_price
- host_payout = round_half_up(amount * host_share), platform_fee = remainder
- Online payments are available immediately
- Pay-at-property earnings stay pending until the stay is completed
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from app.config import settings
from app.core.clock import Clock, SystemClock
from app.core.exceptions import DuplicateEarningError, NotFoundError, ValidationError
from app.domain.earning_state import assert_earning_transition, is_voidable
from app.domain.entities import Booking, Earning, EarningStatus
from app.domain.revenue_split import split_revenue
from app.repositories.base import EarningFilter, UnitOfWork
from app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


@dataclass
class MonthlyTotal:
    year: int
    month: int
    total: int


@dataclass
class EarningsSummary:
    total: int
    available: int
    pending: int
    paid_out: int
    monthly: list[MonthlyTotal]
    currency: str


@dataclass
class EarningTotals:
    amount: int = 0
    platform_fee: int = 0
    host_payout: int = 0
    bookings: int = 0

    @classmethod
    def of(cls, earnings: list[Earning]) -> "EarningTotals":
        return cls(
            amount=sum(e.amount for e in earnings),
            platform_fee=sum(e.platform_fee for e in earnings),
            host_payout=sum(e.host_payout for e in earnings),
            bookings=len({e.booking_id for e in earnings}),
        )


@dataclass
class EarningPage:
    items: list[Earning]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class DateRangeReport:
    start: datetime
    end: datetime
    earnings: list[Earning]
    totals: EarningTotals


@dataclass
class MonthStatement:
    month: int
    earnings: list[Earning] = field(default_factory=list)
    totals: EarningTotals = field(default_factory=EarningTotals)


@dataclass
class AnnualStatement:
    year: int
    host_id: UUID
    months: list[MonthStatement]
    totals: EarningTotals


@dataclass
class BookingEarnings:
    booking_id: UUID
    records: list[Earning]
    totals: EarningTotals


@dataclass
class VoidResult:
    """Records removed for a called-off booking, and those already paid out."""

    voided: list[Earning] = field(default_factory=list)
    retained_paid_out: list[Earning] = field(default_factory=list)

    @property
    def clawback_amount(self) -> int:
        return sum(e.host_payout for e in self.retained_paid_out)


class EarningsLedger:
    """Service owning the lifecycle of earning records."""

    def __init__(
        self,
        clock: Clock | None = None,
        notifier: NotificationService | None = None,
        host_share: Decimal | None = None,
        pay_at_property_hold_days: int | None = None,
        currency: str | None = None,
    ) -> None:
        self.clock = clock or SystemClock()
        self.notifier = notifier or NotificationService()
        self.host_share = host_share if host_share is not None else settings.host_share
        self.pay_at_property_hold = timedelta(
            days=pay_at_property_hold_days or settings.pay_at_property_hold_days
        )
        self.currency = currency or settings.currency

    # ==================== RECORD LIFECYCLE ====================

    def _new_record(self, booking: Booking, status: EarningStatus, now: datetime) -> Earning:
        split = split_revenue(booking.price_breakdown.base_price, self.host_share)
        if status is EarningStatus.AVAILABLE:
            available_date = now
        else:
            available_date = now + self.pay_at_property_hold
        return Earning(
            booking_id=booking.id,
            host_id=booking.host_id,
            amount=split.amount,
            platform_fee=split.platform_fee,
            host_payout=split.host_payout,
            payment_method=booking.payment_method,
            status=status,
            available_date=available_date,
            created_at=now,
        )

    async def _insert_once(self, uow: UnitOfWork, record: Earning) -> Earning:
        try:
            created = await uow.earnings.create(record)
        except DuplicateEarningError:
            existing = await uow.earnings.get_for_booking(record.booking_id)
            if existing is None:
                raise
            logger.info(f"Earning for booking {record.booking_id} already recorded")
            return existing
        logger.info(
            f"Earning {created.id} created for booking {created.booking_id}: "
            f"{created.amount} ({created.status.value})"
        )
        return created

    async def create_earning_record(self, uow: UnitOfWork, booking: Booking) -> Earning:
        """Record a booking's revenue once payment is captured or received.

        Idempotent: an existing primary record for the booking is returned
        unchanged, including when a concurrent call inserted it first.

        Args:
            uow: Unit of work
            booking: Paid booking

        Returns:
            Earning: The booking's primary record
        """
        async with uow.transaction():
            existing = await uow.earnings.get_for_booking(booking.id)
            if existing is not None:
                return existing

            status = (
                EarningStatus.AVAILABLE
                if booking.payment_method.is_online
                else EarningStatus.PENDING
            )
            return await self._insert_once(
                uow, self._new_record(booking, status, self.clock.now())
            )

    async def promote_on_completion(self, uow: UnitOfWork, booking: Booking) -> Earning:
        """Make a completed booking's earning withdrawable.

        Creates an available record directly if none exists yet.
        """
        async with uow.transaction():
            now = self.clock.now()
            record = await uow.earnings.get_for_booking(booking.id)
            if record is None:
                return await self._insert_once(
                    uow, self._new_record(booking, EarningStatus.AVAILABLE, now)
                )
            if record.status is not EarningStatus.PENDING:
                return record

            assert_earning_transition(record.status, EarningStatus.AVAILABLE)
            promoted = replace(
                record,
                status=EarningStatus.AVAILABLE,
                available_date=now,
                updated_at=now,
            )
            promoted = await uow.earnings.update(promoted, record.version)
            logger.info(f"Earning {record.id} promoted on completion of booking {booking.id}")
            return promoted

    async def promote_pending_by_date(self, uow: UnitOfWork, now: datetime | None = None) -> int:
        """Promote every pending record whose available date has passed.

        Safe to run repeatedly; available and paid-out records are untouched.

        Returns:
            int: Number of records promoted
        """
        async with uow.transaction():
            promoted = await uow.earnings.promote_due(now or self.clock.now())
        if promoted:
            logger.info(f"Promoted {promoted} pending earnings")
        return promoted

    async def void_for_booking(self, uow: UnitOfWork, booking: Booking) -> VoidResult:
        """Remove every not-yet-paid earning of a cancelled or rejected booking.

        Paid-out records (whole or fragments) cannot be undone here; they are
        returned so the caller can request a clawback.
        """
        result = VoidResult()
        async with uow.transaction():
            for record in await uow.earnings.list_for_booking(booking.id):
                if is_voidable(record.status):
                    await uow.earnings.delete(record.id, record.version)
                    result.voided.append(record)
                else:
                    result.retained_paid_out.append(record)
        if result.voided:
            logger.info(f"Voided {len(result.voided)} earnings of booking {booking.id}")
        if result.retained_paid_out:
            logger.warning(
                f"Booking {booking.id} was called off after {result.clawback_amount} "
                f"was paid out to host {booking.host_id}"
            )
        return result

    async def notify_clawback(self, booking: Booking, result: VoidResult) -> None:
        if not result.retained_paid_out:
            return
        await self.notifier.notify(
            NotificationService.EARNING_CLAWBACK_REQUIRED,
            booking.host_id,
            {
                "booking_id": booking.id,
                "amount": result.clawback_amount,
                "payout_ids": ",".join(sorted({e.payout_id or "" for e in result.retained_paid_out})),
            },
        )

    # ==================== REPORTING ====================

    async def available_balance(self, uow: UnitOfWork, host_id: UUID) -> int:
        return sum(e.host_payout for e in await uow.earnings.list_available(host_id))

    async def get_summary(self, uow: UnitOfWork, host_id: UUID) -> EarningsSummary:
        """Totals by status plus the twelve most recent months with earnings."""
        records = await uow.earnings.search(EarningFilter(host_id=host_id))
        by_status: dict[EarningStatus, int] = defaultdict(int)
        by_month: dict[tuple[int, int], int] = defaultdict(int)
        for record in records:
            by_status[record.status] += record.host_payout
            by_month[(record.created_at.year, record.created_at.month)] += record.host_payout

        monthly = [
            MonthlyTotal(year=year, month=month, total=total)
            for (year, month), total in sorted(by_month.items(), reverse=True)[:12]
        ]
        return EarningsSummary(
            total=sum(by_status.values()),
            available=by_status[EarningStatus.AVAILABLE],
            pending=by_status[EarningStatus.PENDING],
            paid_out=by_status[EarningStatus.PAID_OUT],
            monthly=monthly,
            currency=self.currency,
        )

    async def list_host_earnings(
        self,
        uow: UnitOfWork,
        host_id: UUID,
        status: EarningStatus | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> EarningPage:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        criteria = EarningFilter(host_id=host_id, status=status)
        items = await uow.earnings.search(criteria, offset=(page - 1) * limit, limit=limit)
        total = await uow.earnings.count(criteria)
        return EarningPage(items=items, total=total, page=page, limit=limit)

    async def earnings_by_date_range(
        self, uow: UnitOfWork, host_id: UUID, start: datetime, end: datetime
    ) -> DateRangeReport:
        if start > end:
            raise ValidationError("start must not be after end")
        records = await uow.earnings.search(
            EarningFilter(host_id=host_id, created_from=start, created_to=end)
        )
        return DateRangeReport(
            start=start, end=end, earnings=records, totals=EarningTotals.of(records)
        )

    async def annual_statement(self, uow: UnitOfWork, host_id: UUID, year: int) -> AnnualStatement:
        """Month-by-month statement for one calendar year (UTC)."""
        if year < 2000 or year > self.clock.now().year:
            raise ValidationError("Invalid year")

        start = datetime(year, 1, 1, tzinfo=UTC)
        end = datetime(year + 1, 1, 1, tzinfo=UTC) - timedelta(microseconds=1)
        records = await uow.earnings.search(
            EarningFilter(host_id=host_id, created_from=start, created_to=end)
        )
        records.sort(key=lambda e: e.created_at)

        months = [MonthStatement(month=m) for m in range(1, 13)]
        for record in records:
            months[record.created_at.month - 1].earnings.append(record)
        for statement in months:
            statement.totals = EarningTotals.of(statement.earnings)

        return AnnualStatement(
            year=year, host_id=host_id, months=months, totals=EarningTotals.of(records)
        )

    async def booking_earnings(
        self, uow: UnitOfWork, host_id: UUID | None, booking_id: UUID
    ) -> BookingEarnings:
        """All records of one booking; host_id None skips the ownership check."""
        records = await uow.earnings.list_for_booking(booking_id)
        if not records or (host_id is not None and records[0].host_id != host_id):
            raise NotFoundError("Earnings for booking", str(booking_id))
        return BookingEarnings(
            booking_id=booking_id, records=records, totals=EarningTotals.of(records)
        )
