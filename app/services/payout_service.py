"""Host withdrawals against available earnings.

A withdrawal consumes available records oldest first. Records whose whole
payout fits are paid out as they are; the first record that does not fit is
split, the fragment carrying exactly the rest of the request. Every record
paid out by one withdrawal shares its withdrawal id.
"""

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from uuid import UUID

from app.config import settings
from app.core.clock import Clock, SystemClock
from app.core.exceptions import (
    InsufficientFundsError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from app.core.idempotency import IdempotencyStore, generate_idempotency_key
from app.core.locks import LocalLockManager, LockManager, host_lock_key
from app.domain.entities import Earning, EarningStatus
from app.domain.revenue_split import RevenueSplit, prorate, subtract
from app.repositories.base import EarningFilter, UnitOfWork
from app.services.notification_service import NotificationService
from app.utils.booking_number import generate_admin_payout_id, generate_withdrawal_id
from app.utils.validators import mask_sensitive_data

logger = logging.getLogger(__name__)


@dataclass
class WithdrawalPlan:
    """Records to pay out whole, plus at most one record to split."""

    consumed: list[Earning] = field(default_factory=list)
    split_source: Earning | None = None
    fragment: RevenueSplit | None = None


@dataclass
class WithdrawalResult:
    withdrawal_id: str
    amount: int
    remaining_balance: int
    currency: str


@dataclass
class WithdrawalDetail:
    withdrawal_id: str
    host_id: UUID
    amount: int
    paid_out_at: datetime
    method: str | None
    account: str | None
    earnings: list[Earning]


@dataclass
class AdminPayoutResult:
    payout_id: str
    host_id: UUID
    total_amount: int
    earnings_count: int
    method: str
    paid_at: datetime


def plan_withdrawal(available: list[Earning], amount: int) -> WithdrawalPlan:
    """Choose records for a withdrawal, FIFO.

    Args:
        available: Available records, oldest first
        amount: Host payout to withdraw; must not exceed their total

    Returns:
        WithdrawalPlan whose consumed payouts plus fragment payout equal amount
    """
    plan = WithdrawalPlan()
    remaining = amount
    for earning in available:
        if remaining == 0:
            break
        if earning.host_payout <= remaining:
            plan.consumed.append(earning)
            remaining -= earning.host_payout
        else:
            source = RevenueSplit(earning.amount, earning.platform_fee, earning.host_payout)
            plan.split_source = earning
            plan.fragment = prorate(source, remaining)
            remaining = 0
    if remaining:
        raise ValueError("available earnings do not cover the withdrawal")
    return plan


class PayoutAllocator:
    """Service for host withdrawals and admin payouts."""

    def __init__(
        self,
        locks: LockManager | None = None,
        clock: Clock | None = None,
        notifier: NotificationService | None = None,
        idempotency: IdempotencyStore | None = None,
        currency: str | None = None,
    ) -> None:
        self.locks = locks or LocalLockManager()
        self.clock = clock or SystemClock()
        self.notifier = notifier or NotificationService()
        self.idempotency = idempotency or IdempotencyStore()
        self.currency = currency or settings.currency

    async def _split(
        self, uow: UnitOfWork, source: Earning, fragment_split: RevenueSplit, now: datetime
    ) -> Earning:
        """Cut a fragment off an available record; both stay available for now."""
        remainder = subtract(
            RevenueSplit(source.amount, source.platform_fee, source.host_payout),
            fragment_split,
        )
        reduced = replace(
            source,
            amount=remainder.amount,
            platform_fee=remainder.platform_fee,
            host_payout=remainder.host_payout,
            updated_at=now,
        )
        await uow.earnings.update(reduced, source.version)

        fragment = Earning(
            booking_id=source.booking_id,
            host_id=source.host_id,
            amount=fragment_split.amount,
            platform_fee=fragment_split.platform_fee,
            host_payout=fragment_split.host_payout,
            payment_method=source.payment_method,
            status=EarningStatus.AVAILABLE,
            available_date=source.available_date,
            created_at=source.created_at,
            split_from_id=source.id,
            updated_at=now,
        )
        return await uow.earnings.create(fragment)

    async def process_withdrawal(
        self,
        uow: UnitOfWork,
        host_id: UUID,
        amount: int,
        method: str,
        account: str,
        idempotency_key: str | None = None,
    ) -> WithdrawalResult:
        """Pay out exactly ``amount`` of the host's available earnings.

        Args:
            uow: Unit of work
            host_id: Host withdrawing
            amount: Host payout to withdraw, in centavos
            method: card, gcash or maya
            account: Destination card or mobile number (stored masked)
            idempotency_key: Client key; a repeat returns the first result
                for the same amount, method and account

        Returns:
            WithdrawalResult with the new withdrawal id and remaining balance

        Raises:
            ValidationError: amount is not positive, or the idempotency key was
                used for a different request
            InsufficientFundsError: amount exceeds the available balance
        """
        if amount <= 0:
            raise ValidationError("Withdrawal amount must be positive")

        key = None
        request = generate_idempotency_key(
            "withdrawal-request", host_id, {"amount": amount, "method": method, "account": account}
        )
        if idempotency_key:
            key = generate_idempotency_key("withdrawal", host_id, {"key": idempotency_key})

        async with self.locks.acquire(host_lock_key(host_id)):
            if key and (previous := self.idempotency.get(key)):
                if previous["request"] != request:
                    raise ValidationError(
                        "Idempotency key was already used for a different withdrawal"
                    )
                replayed = WithdrawalResult(**previous["result"])
                logger.info(f"Replaying withdrawal {replayed.withdrawal_id} for host {host_id}")
                return replayed

            async with uow.transaction():
                now = self.clock.now()
                available = await uow.earnings.list_available(host_id)
                balance = sum(e.host_payout for e in available)
                if amount > balance:
                    raise InsufficientFundsError(available_balance=balance, requested=amount)

                plan = plan_withdrawal(available, amount)
                withdrawal_id = await generate_withdrawal_id(
                    now, lambda candidate: self._payout_id_taken(uow, candidate)
                )

                earning_ids = [e.id for e in plan.consumed]
                if plan.split_source is not None and plan.fragment is not None:
                    fragment = await self._split(uow, plan.split_source, plan.fragment, now)
                    earning_ids.append(fragment.id)

                changed = await uow.earnings.mark_paid_out(
                    host_id,
                    earning_ids,
                    withdrawal_id,
                    now,
                    payout_method=method,
                    payout_account=mask_sensitive_data(account),
                )
                if changed != len(earning_ids):
                    raise StateConflictError("Earnings changed during withdrawal, please retry")

            result = WithdrawalResult(
                withdrawal_id=withdrawal_id,
                amount=amount,
                remaining_balance=balance - amount,
                currency=self.currency,
            )
            if key:
                self.idempotency.set(key, {"request": request, "result": asdict(result)})

        logger.info(
            f"Withdrawal {withdrawal_id} of {amount} for host {host_id} "
            f"across {len(earning_ids)} earnings"
        )
        await self.notifier.notify(
            NotificationService.WITHDRAWAL_PROCESSED,
            host_id,
            {"withdrawal_id": withdrawal_id, "amount": amount, "method": method},
        )
        return result

    async def _payout_id_taken(self, uow: UnitOfWork, payout_id: str) -> bool:
        return await uow.earnings.count(EarningFilter(payout_id=payout_id)) > 0

    async def get_withdrawal(
        self, uow: UnitOfWork, host_id: UUID | None, withdrawal_id: str
    ) -> WithdrawalDetail:
        """A withdrawal rebuilt from the records carrying its id.

        host_id None skips the ownership filter (admin lookups).
        """
        records = await uow.earnings.search(
            EarningFilter(host_id=host_id, payout_id=withdrawal_id)
        )
        if not records:
            raise NotFoundError("Withdrawal", withdrawal_id)
        return self._detail(withdrawal_id, records)

    async def list_withdrawals(self, uow: UnitOfWork, host_id: UUID) -> list[WithdrawalDetail]:
        """The host's withdrawals and admin payouts, newest first."""
        records = await uow.earnings.search(
            EarningFilter(host_id=host_id, status=EarningStatus.PAID_OUT)
        )
        grouped: dict[str, list[Earning]] = defaultdict(list)
        for record in records:
            if record.payout_id:
                grouped[record.payout_id].append(record)
        details = [self._detail(payout_id, group) for payout_id, group in grouped.items()]
        details.sort(key=lambda d: (d.paid_out_at, d.withdrawal_id), reverse=True)
        return details

    def _detail(self, payout_id: str, records: list[Earning]) -> WithdrawalDetail:
        first = records[0]
        return WithdrawalDetail(
            withdrawal_id=payout_id,
            host_id=first.host_id,
            amount=sum(r.host_payout for r in records),
            paid_out_at=first.paid_out_at or first.updated_at or first.created_at,
            method=first.payout_method,
            account=first.payout_account,
            earnings=records,
        )

    async def process_admin_payout(
        self,
        uow: UnitOfWork,
        host_id: UUID,
        earning_ids: list[UUID],
        method: str,
        reference: str | None = None,
    ) -> AdminPayoutResult:
        """Mark specific available records paid out under one payout id.

        Records that are not available or belong to another host are skipped.

        Raises:
            ValidationError: no record was eligible, or the reference is taken
        """
        if not earning_ids:
            raise ValidationError("At least one earning id is required")

        async with self.locks.acquire(host_lock_key(host_id)):
            async with uow.transaction():
                now = self.clock.now()
                if reference and await self._payout_id_taken(uow, reference):
                    raise ValidationError(f"Payout reference '{reference}' is already used")
                payout_id = reference or generate_admin_payout_id(now)

                changed = await uow.earnings.mark_paid_out(
                    host_id, list(dict.fromkeys(earning_ids)), payout_id, now, payout_method=method
                )
                if changed == 0:
                    raise ValidationError("No eligible earnings found for payout")
                records = await uow.earnings.search(
                    EarningFilter(host_id=host_id, payout_id=payout_id)
                )

        total = sum(r.host_payout for r in records)
        logger.info(f"Admin payout {payout_id} of {total} for host {host_id} ({changed} earnings)")
        await self.notifier.notify(
            NotificationService.PAYOUT_SENT,
            host_id,
            {"payout_id": payout_id, "amount": total, "method": method},
        )
        return AdminPayoutResult(
            payout_id=payout_id,
            host_id=host_id,
            total_amount=total,
            earnings_count=changed,
            method=method,
            paid_at=now,
        )
