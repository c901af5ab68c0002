"""Payout endpoints for hosts."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, status

from app.api.deps import CurrentHost, Uow, get_payout_allocator
from app.schemas.payment import (
    WithdrawalDetailResponse,
    WithdrawalRequest,
    WithdrawalResponse,
)
from app.services.payout_service import PayoutAllocator

router = APIRouter()

Payouts = Annotated[PayoutAllocator, Depends(get_payout_allocator)]


@router.post("/withdraw", response_model=WithdrawalResponse, status_code=status.HTTP_201_CREATED)
async def withdraw(
    request: WithdrawalRequest,
    actor: CurrentHost,
    uow: Uow,
    allocator: Payouts,
    idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key")] = None,
) -> WithdrawalResponse:
    """Withdraw part or all of the available balance.

    Repeating a request with the same Idempotency-Key returns the first result.
    """
    result = await allocator.process_withdrawal(
        uow,
        actor.user_id,
        request.amount,
        request.account.method,
        request.account.account,
        idempotency_key=idempotency_key,
    )
    return WithdrawalResponse.model_validate(result)


@router.get("/", response_model=list[WithdrawalDetailResponse])
async def list_withdrawals(
    actor: CurrentHost,
    uow: Uow,
    allocator: Payouts,
) -> list[WithdrawalDetailResponse]:
    """The caller's withdrawals, newest first."""
    withdrawals = await allocator.list_withdrawals(uow, actor.user_id)
    return [WithdrawalDetailResponse.model_validate(w) for w in withdrawals]


@router.get("/{withdrawal_id}", response_model=WithdrawalDetailResponse)
async def get_withdrawal(
    withdrawal_id: str,
    actor: CurrentHost,
    uow: Uow,
    allocator: Payouts,
) -> WithdrawalDetailResponse:
    owner = None if actor.is_admin else actor.user_id
    detail = await allocator.get_withdrawal(uow, owner, withdrawal_id)
    return WithdrawalDetailResponse.model_validate(detail)
