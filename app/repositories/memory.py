"""In-memory repositories for tests and single-process local runs.

Records are stored as private copies. Writes inside ``transaction()`` are
journaled so a failing operation restores exactly what it touched.
Each asyncio task journals separately, so one unit of work can serve
concurrent operations.
"""

import copy
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from contextvars import ContextVar, Token
from datetime import datetime
from typing import Any

from app.core.exceptions import DuplicateEarningError, StateConflictError
from app.domain.entities import Booking, BookingStatus, Earning, EarningStatus
from app.repositories.base import EarningFilter


class InMemoryStore:
    """Tables shared by every unit of work created over it."""

    def __init__(self) -> None:
        self.bookings: dict[uuid.UUID, Booking] = {}
        self.earnings: dict[uuid.UUID, Earning] = {}


class _Journal:
    """Undo log kept per asyncio task, so concurrent operations never share one."""

    def __init__(self) -> None:
        self._entries: ContextVar[list[tuple[dict, uuid.UUID, Any]] | None] = ContextVar(
            f"journal_{id(self)}", default=None
        )

    @property
    def entries(self) -> list[tuple[dict, uuid.UUID, Any]] | None:
        return self._entries.get()

    def open(self) -> Token:
        return self._entries.set([])

    def close(self, token: Token) -> None:
        self._entries.reset(token)

    def write(self, table: dict, key: uuid.UUID, value: Any) -> None:
        entries = self.entries
        if entries is not None:
            entries.append((table, key, table.get(key)))
        if value is None:
            table.pop(key, None)
        else:
            table[key] = value

    def undo(self) -> None:
        for table, key, previous in reversed(self.entries or []):
            if previous is None:
                table.pop(key, None)
            else:
                table[key] = previous


class InMemoryBookingRepository:
    def __init__(self, store: InMemoryStore, journal: _Journal) -> None:
        self._table = store.bookings
        self._journal = journal

    async def get(self, booking_id: uuid.UUID) -> Booking | None:
        booking = self._table.get(booking_id)
        return copy.deepcopy(booking) if booking else None

    async def add(self, booking: Booking) -> Booking:
        if booking.id in self._table:
            raise StateConflictError(f"Booking {booking.id} already exists")
        self._journal.write(self._table, booking.id, copy.deepcopy(booking))
        return copy.deepcopy(booking)

    async def update(self, booking: Booking, expected_version: int) -> Booking:
        current = self._table.get(booking.id)
        if current is None or current.version != expected_version:
            raise StateConflictError("Booking was modified by another request, please retry")
        stored = copy.deepcopy(booking)
        stored.version = expected_version + 1
        self._journal.write(self._table, booking.id, stored)
        return copy.deepcopy(stored)

    async def delete(self, booking_id: uuid.UUID) -> None:
        if booking_id in self._table:
            self._journal.write(self._table, booking_id, None)

    async def find_overlapping(
        self, room_id: uuid.UUID, check_in: datetime, check_out: datetime
    ) -> list[Booking]:
        active = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
        matches = [
            b
            for b in self._table.values()
            if b.room_id == room_id
            and b.status in active
            and b.check_in < check_out
            and b.check_out > check_in
        ]
        return [copy.deepcopy(b) for b in sorted(matches, key=lambda b: b.check_in)]


class InMemoryEarningRepository:
    def __init__(self, store: InMemoryStore, journal: _Journal) -> None:
        self._table = store.earnings
        self._journal = journal

    async def get(self, earning_id: uuid.UUID) -> Earning | None:
        earning = self._table.get(earning_id)
        return copy.deepcopy(earning) if earning else None

    async def get_for_booking(self, booking_id: uuid.UUID) -> Earning | None:
        for earning in self._table.values():
            if earning.booking_id == booking_id and earning.split_from_id is None:
                return copy.deepcopy(earning)
        return None

    async def list_for_booking(self, booking_id: uuid.UUID) -> list[Earning]:
        matches = [e for e in self._table.values() if e.booking_id == booking_id]
        matches.sort(key=lambda e: (e.created_at, str(e.id)))
        return [copy.deepcopy(e) for e in matches]

    async def create(self, earning: Earning) -> Earning:
        if earning.split_from_id is None and any(
            e.booking_id == earning.booking_id and e.split_from_id is None
            for e in self._table.values()
        ):
            raise DuplicateEarningError(earning.booking_id)
        self._journal.write(self._table, earning.id, copy.deepcopy(earning))
        return copy.deepcopy(earning)

    async def update(self, earning: Earning, expected_version: int) -> Earning:
        current = self._table.get(earning.id)
        if current is None or current.version != expected_version:
            raise StateConflictError("Earning was modified by another request, please retry")
        stored = copy.deepcopy(earning)
        stored.version = expected_version + 1
        self._journal.write(self._table, earning.id, stored)
        return copy.deepcopy(stored)

    async def delete(self, earning_id: uuid.UUID, expected_version: int) -> None:
        current = self._table.get(earning_id)
        if current is None or current.version != expected_version:
            raise StateConflictError("Earning was modified by another request, please retry")
        self._journal.write(self._table, earning_id, None)

    async def list_available(self, host_id: uuid.UUID) -> list[Earning]:
        matches = [
            e
            for e in self._table.values()
            if e.host_id == host_id and e.status is EarningStatus.AVAILABLE
        ]
        matches.sort(key=lambda e: (e.available_date, e.created_at, str(e.id)))
        return [copy.deepcopy(e) for e in matches]

    async def mark_paid_out(
        self,
        host_id: uuid.UUID,
        earning_ids: list[uuid.UUID],
        payout_id: str,
        paid_out_at: datetime,
        payout_method: str | None = None,
        payout_account: str | None = None,
    ) -> int:
        changed = 0
        for earning_id in earning_ids:
            current = self._table.get(earning_id)
            if (
                current is None
                or current.host_id != host_id
                or current.status is not EarningStatus.AVAILABLE
            ):
                continue
            stored = copy.deepcopy(current)
            stored.status = EarningStatus.PAID_OUT
            stored.payout_id = payout_id
            stored.paid_out_at = paid_out_at
            stored.payout_method = payout_method
            stored.payout_account = payout_account
            stored.updated_at = paid_out_at
            stored.version += 1
            self._journal.write(self._table, earning_id, stored)
            changed += 1
        return changed

    async def promote_due(self, now: datetime) -> int:
        due = [
            e
            for e in self._table.values()
            if e.status is EarningStatus.PENDING and e.available_date <= now
        ]
        for current in due:
            stored = copy.deepcopy(current)
            stored.status = EarningStatus.AVAILABLE
            stored.updated_at = now
            stored.version += 1
            self._journal.write(self._table, stored.id, stored)
        return len(due)

    def _matches(self, earning: Earning, criteria: EarningFilter) -> bool:
        checks = (
            criteria.host_id is None or earning.host_id == criteria.host_id,
            criteria.booking_id is None or earning.booking_id == criteria.booking_id,
            criteria.status is None or earning.status is criteria.status,
            criteria.payout_id is None or earning.payout_id == criteria.payout_id,
            criteria.payment_method is None
            or earning.payment_method.value == criteria.payment_method,
            criteria.created_from is None or earning.created_at >= criteria.created_from,
            criteria.created_to is None or earning.created_at <= criteria.created_to,
        )
        return all(checks)

    async def search(
        self, criteria: EarningFilter, offset: int = 0, limit: int | None = None
    ) -> list[Earning]:
        matches = [e for e in self._table.values() if self._matches(e, criteria)]
        matches.sort(key=lambda e: str(e.id))
        matches.sort(key=lambda e: e.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return [copy.deepcopy(e) for e in matches[offset:end]]

    async def count(self, criteria: EarningFilter) -> int:
        return sum(1 for e in self._table.values() if self._matches(e, criteria))


class InMemoryUnitOfWork:
    """Unit of work over an InMemoryStore with an undo journal."""

    def __init__(self, store: InMemoryStore | None = None) -> None:
        self.store = store or InMemoryStore()
        self._journal = _Journal()
        self.bookings = InMemoryBookingRepository(self.store, self._journal)
        self.earnings = InMemoryEarningRepository(self.store, self._journal)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if self._journal.entries is not None:
            yield
            return

        token = self._journal.open()
        try:
            yield
        except Exception:
            self._journal.undo()
            raise
        finally:
            self._journal.close(token)
