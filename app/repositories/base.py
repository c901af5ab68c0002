"""Repository interfaces consumed by the services.

Every read returns a detached copy. Writes that change an existing row are
conditional on the version the caller read; a mismatch raises
StateConflictError so the losing writer never overwrites the winner.
"""

import uuid
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from app.domain.entities import Booking, Earning, EarningStatus


@dataclass
class EarningFilter:
    """Criteria for earning searches; unset fields do not filter."""

    host_id: uuid.UUID | None = None
    booking_id: uuid.UUID | None = None
    status: EarningStatus | None = None
    payout_id: str | None = None
    payment_method: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None


class BookingRepository(Protocol):
    async def get(self, booking_id: uuid.UUID) -> Booking | None: ...

    async def add(self, booking: Booking) -> Booking: ...

    async def update(self, booking: Booking, expected_version: int) -> Booking: ...

    async def delete(self, booking_id: uuid.UUID) -> None: ...

    async def find_overlapping(
        self, room_id: uuid.UUID, check_in: datetime, check_out: datetime
    ) -> list[Booking]:
        """Pending or confirmed bookings of the room touching the interval."""
        ...


class EarningRepository(Protocol):
    async def get(self, earning_id: uuid.UUID) -> Earning | None: ...

    async def get_for_booking(self, booking_id: uuid.UUID) -> Earning | None:
        """The booking's primary record (not a split fragment)."""
        ...

    async def list_for_booking(self, booking_id: uuid.UUID) -> list[Earning]: ...

    async def create(self, earning: Earning) -> Earning:
        """Insert a record.

        Raises:
            DuplicateEarningError: a primary record already exists for the booking
        """
        ...

    async def update(self, earning: Earning, expected_version: int) -> Earning: ...

    async def delete(self, earning_id: uuid.UUID, expected_version: int) -> None:
        """Remove a record unless another writer changed it first."""
        ...

    async def list_available(self, host_id: uuid.UUID) -> list[Earning]:
        """Available records oldest first (available_date, created_at, id)."""
        ...

    async def mark_paid_out(
        self,
        host_id: uuid.UUID,
        earning_ids: list[uuid.UUID],
        payout_id: str,
        paid_out_at: datetime,
        payout_method: str | None = None,
        payout_account: str | None = None,
    ) -> int:
        """Move still-available records to paid_out; returns rows changed."""
        ...

    async def promote_due(self, now: datetime) -> int:
        """Make pending records with available_date <= now available."""
        ...

    async def search(
        self, criteria: EarningFilter, offset: int = 0, limit: int | None = None
    ) -> list[Earning]:
        """Matching records, newest first."""
        ...

    async def count(self, criteria: EarningFilter) -> int: ...


class UnitOfWork(Protocol):
    """Repositories sharing one transaction.

    ``transaction()`` commits on normal exit and rolls back every write on
    error. Nested calls join the outer transaction.
    """

    bookings: BookingRepository
    earnings: EarningRepository

    def transaction(self) -> AbstractAsyncContextManager[None]: ...
