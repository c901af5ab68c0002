"""SQLAlchemy-backed repositories."""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime
from typing import Any

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DuplicateEarningError, PersistenceError, StateConflictError
from app.domain.earning_state import parse_earning_status
from app.domain.entities import (
    Booking,
    BookingStatus,
    CancellationDetails,
    CancelledBy,
    Earning,
    EarningStatus,
    PaymentMethod,
    PaymentStatus,
    PriceBreakdown,
)
from app.models.booking import Booking as BookingModel
from app.models.earning import Earning as EarningModel
from app.repositories.base import EarningFilter

logger = logging.getLogger(__name__)

# Stored spellings that count as withdrawable
AVAILABLE_STATUSES = (EarningStatus.AVAILABLE.value, "ready")


@asynccontextmanager
async def translate_db_errors() -> AsyncIterator[None]:
    """Surface connectivity failures as PersistenceError."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Database unavailable: {e}")
        raise PersistenceError(type(e).__name__) from e


def _booking_from_row(row: BookingModel) -> Booking:
    cancellation = None
    if row.cancelled_at is not None:
        cancellation = CancellationDetails(
            cancelled_at=row.cancelled_at,
            cancelled_by=CancelledBy(row.cancelled_by),
            reason=row.cancellation_reason or "",
            refund_amount=row.refund_amount or 0,
            refund_percentage=row.refund_percentage or 0,
        )
    return Booking(
        id=row.id,
        room_id=row.room_id,
        guest_id=row.guest_id,
        host_id=row.host_id,
        check_in=row.check_in,
        check_out=row.check_out,
        total_price=row.total_price,
        price_breakdown=PriceBreakdown(
            base_price=row.base_price,
            cleaning_fee=row.cleaning_fee,
            service_fee=row.service_fee,
            tax=row.tax,
            discount=row.discount,
        ),
        payment_method=PaymentMethod(row.payment_method),
        payment_status=PaymentStatus(row.payment_status),
        status=BookingStatus(row.status),
        created_at=row.created_at,
        updated_at=row.updated_at,
        is_cancellable=row.is_cancellable,
        cancellation_deadline=row.cancellation_deadline,
        paid_at=row.paid_at,
        paid_amount=row.paid_amount,
        payment_reference=row.payment_reference,
        payment_recorded_by=row.payment_recorded_by,
        cancellation=cancellation,
        special_requests=row.special_requests,
        version=row.version,
    )


def _booking_values(booking: Booking) -> dict[str, Any]:
    cancellation = booking.cancellation
    return {
        "room_id": booking.room_id,
        "guest_id": booking.guest_id,
        "host_id": booking.host_id,
        "check_in": booking.check_in,
        "check_out": booking.check_out,
        "total_price": booking.total_price,
        "base_price": booking.price_breakdown.base_price,
        "cleaning_fee": booking.price_breakdown.cleaning_fee,
        "service_fee": booking.price_breakdown.service_fee,
        "tax": booking.price_breakdown.tax,
        "discount": booking.price_breakdown.discount,
        "payment_method": booking.payment_method.value,
        "payment_status": booking.payment_status.value,
        "status": booking.status.value,
        "created_at": booking.created_at,
        "updated_at": booking.updated_at,
        "is_cancellable": booking.is_cancellable,
        "cancellation_deadline": booking.cancellation_deadline,
        "paid_at": booking.paid_at,
        "paid_amount": booking.paid_amount,
        "payment_reference": booking.payment_reference,
        "payment_recorded_by": booking.payment_recorded_by,
        "cancelled_at": cancellation.cancelled_at if cancellation else None,
        "cancelled_by": cancellation.cancelled_by.value if cancellation else None,
        "cancellation_reason": cancellation.reason if cancellation else None,
        "refund_amount": cancellation.refund_amount if cancellation else None,
        "refund_percentage": cancellation.refund_percentage if cancellation else None,
        "special_requests": booking.special_requests,
    }


def _earning_from_row(row: EarningModel) -> Earning:
    return Earning(
        id=row.id,
        booking_id=row.booking_id,
        host_id=row.host_id,
        amount=row.amount,
        platform_fee=row.platform_fee,
        host_payout=row.host_payout,
        status=parse_earning_status(row.status),
        payment_method=PaymentMethod(row.payment_method),
        available_date=row.available_date,
        payout_id=row.payout_id,
        paid_out_at=row.paid_out_at,
        payout_method=row.payout_method,
        payout_account=row.payout_account,
        split_from_id=row.split_from_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        version=row.version,
    )


def _earning_values(earning: Earning) -> dict[str, Any]:
    return {
        "booking_id": earning.booking_id,
        "host_id": earning.host_id,
        "amount": earning.amount,
        "platform_fee": earning.platform_fee,
        "host_payout": earning.host_payout,
        "status": earning.status.value,
        "payment_method": earning.payment_method.value,
        "available_date": earning.available_date,
        "payout_id": earning.payout_id,
        "paid_out_at": earning.paid_out_at,
        "payout_method": earning.payout_method,
        "payout_account": earning.payout_account,
        "split_from_id": earning.split_from_id,
        "created_at": earning.created_at,
        "updated_at": earning.updated_at,
    }


class _SqlRepository:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _execute(self, stmt: Any) -> Any:
        async with translate_db_errors():
            return await self.session.execute(stmt)

    async def _scalars(self, stmt: Select) -> list[Any]:
        # Core updates bypass the identity map, so always reload attributes
        result = await self._execute(stmt.execution_options(populate_existing=True))
        return list(result.scalars().all())


class SqlAlchemyBookingRepository(_SqlRepository):
    async def get(self, booking_id: uuid.UUID) -> Booking | None:
        rows = await self._scalars(select(BookingModel).where(BookingModel.id == booking_id))
        return _booking_from_row(rows[0]) if rows else None

    async def add(self, booking: Booking) -> Booking:
        row = BookingModel(id=booking.id, version=booking.version, **_booking_values(booking))
        async with translate_db_errors():
            self.session.add(row)
            await self.session.flush()
        self.session.expunge(row)
        return replace(booking)

    async def update(self, booking: Booking, expected_version: int) -> Booking:
        values = _booking_values(booking)
        values["version"] = expected_version + 1
        result = await self._execute(
            update(BookingModel)
            .where(BookingModel.id == booking.id, BookingModel.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StateConflictError("Booking was modified by another request, please retry")
        return replace(booking, version=expected_version + 1)

    async def delete(self, booking_id: uuid.UUID) -> None:
        await self._execute(
            delete(BookingModel)
            .where(BookingModel.id == booking_id)
            .execution_options(synchronize_session=False)
        )

    async def find_overlapping(
        self, room_id: uuid.UUID, check_in: datetime, check_out: datetime
    ) -> list[Booking]:
        rows = await self._scalars(
            select(BookingModel)
            .where(
                BookingModel.room_id == room_id,
                BookingModel.status.in_(
                    (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)
                ),
                BookingModel.check_in < check_out,
                BookingModel.check_out > check_in,
            )
            .order_by(BookingModel.check_in)
        )
        return [_booking_from_row(row) for row in rows]


class SqlAlchemyEarningRepository(_SqlRepository):
    async def get(self, earning_id: uuid.UUID) -> Earning | None:
        rows = await self._scalars(select(EarningModel).where(EarningModel.id == earning_id))
        return _earning_from_row(rows[0]) if rows else None

    async def get_for_booking(self, booking_id: uuid.UUID) -> Earning | None:
        rows = await self._scalars(
            select(EarningModel).where(
                EarningModel.booking_id == booking_id,
                EarningModel.split_from_id.is_(None),
            )
        )
        return _earning_from_row(rows[0]) if rows else None

    async def list_for_booking(self, booking_id: uuid.UUID) -> list[Earning]:
        rows = await self._scalars(
            select(EarningModel)
            .where(EarningModel.booking_id == booking_id)
            .order_by(EarningModel.created_at, EarningModel.id)
        )
        return [_earning_from_row(row) for row in rows]

    async def create(self, earning: Earning) -> Earning:
        is_primary = earning.split_from_id is None
        if is_primary and await self.get_for_booking(earning.booking_id) is not None:
            raise DuplicateEarningError(earning.booking_id)

        row = EarningModel(id=earning.id, version=earning.version, **_earning_values(earning))
        try:
            async with translate_db_errors():
                # Savepoint keeps the caller's transaction usable after a lost race
                async with self.session.begin_nested():
                    self.session.add(row)
        except IntegrityError as e:
            if is_primary:
                raise DuplicateEarningError(earning.booking_id) from e
            raise
        self.session.expunge(row)
        return replace(earning)

    async def update(self, earning: Earning, expected_version: int) -> Earning:
        values = _earning_values(earning)
        values["version"] = expected_version + 1
        result = await self._execute(
            update(EarningModel)
            .where(EarningModel.id == earning.id, EarningModel.version == expected_version)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StateConflictError("Earning was modified by another request, please retry")
        return replace(earning, version=expected_version + 1)

    async def delete(self, earning_id: uuid.UUID, expected_version: int) -> None:
        result = await self._execute(
            delete(EarningModel)
            .where(EarningModel.id == earning_id, EarningModel.version == expected_version)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StateConflictError("Earning was modified by another request, please retry")

    async def list_available(self, host_id: uuid.UUID) -> list[Earning]:
        rows = await self._scalars(
            select(EarningModel)
            .where(
                EarningModel.host_id == host_id,
                EarningModel.status.in_(AVAILABLE_STATUSES),
            )
            .order_by(EarningModel.available_date, EarningModel.created_at, EarningModel.id)
        )
        return [_earning_from_row(row) for row in rows]

    async def mark_paid_out(
        self,
        host_id: uuid.UUID,
        earning_ids: list[uuid.UUID],
        payout_id: str,
        paid_out_at: datetime,
        payout_method: str | None = None,
        payout_account: str | None = None,
    ) -> int:
        if not earning_ids:
            return 0
        result = await self._execute(
            update(EarningModel)
            .where(
                EarningModel.id.in_(earning_ids),
                EarningModel.host_id == host_id,
                EarningModel.status.in_(AVAILABLE_STATUSES),
            )
            .values(
                status=EarningStatus.PAID_OUT.value,
                payout_id=payout_id,
                paid_out_at=paid_out_at,
                payout_method=payout_method,
                payout_account=payout_account,
                updated_at=paid_out_at,
                version=EarningModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def promote_due(self, now: datetime) -> int:
        result = await self._execute(
            update(EarningModel)
            .where(
                EarningModel.status == EarningStatus.PENDING.value,
                EarningModel.available_date <= now,
            )
            .values(
                status=EarningStatus.AVAILABLE.value,
                updated_at=now,
                version=EarningModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def _filtered(self, stmt: Select, criteria: EarningFilter) -> Select:
        if criteria.host_id is not None:
            stmt = stmt.where(EarningModel.host_id == criteria.host_id)
        if criteria.booking_id is not None:
            stmt = stmt.where(EarningModel.booking_id == criteria.booking_id)
        if criteria.status is EarningStatus.AVAILABLE:
            stmt = stmt.where(EarningModel.status.in_(AVAILABLE_STATUSES))
        elif criteria.status is not None:
            stmt = stmt.where(EarningModel.status == criteria.status.value)
        if criteria.payout_id is not None:
            stmt = stmt.where(EarningModel.payout_id == criteria.payout_id)
        if criteria.payment_method is not None:
            stmt = stmt.where(EarningModel.payment_method == criteria.payment_method)
        if criteria.created_from is not None:
            stmt = stmt.where(EarningModel.created_at >= criteria.created_from)
        if criteria.created_to is not None:
            stmt = stmt.where(EarningModel.created_at <= criteria.created_to)
        return stmt

    async def search(
        self, criteria: EarningFilter, offset: int = 0, limit: int | None = None
    ) -> list[Earning]:
        stmt = self._filtered(select(EarningModel), criteria).order_by(
            EarningModel.created_at.desc(), EarningModel.id
        )
        stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        rows = await self._scalars(stmt)
        return [_earning_from_row(row) for row in rows]

    async def count(self, criteria: EarningFilter) -> int:
        result = await self._execute(
            self._filtered(select(func.count()).select_from(EarningModel), criteria)
        )
        return result.scalar_one()


class SqlAlchemyUnitOfWork:
    """Unit of work over one AsyncSession.

    An AsyncSession is not safe for concurrent use; create one per request
    (see ``get_uow``).
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.bookings = SqlAlchemyBookingRepository(session)
        self.earnings = SqlAlchemyEarningRepository(session)
        self._depth = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        self._depth = 1
        try:
            yield
            async with translate_db_errors():
                await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        finally:
            self._depth = 0
