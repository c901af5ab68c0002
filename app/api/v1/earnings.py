"""Host earnings endpoints."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.deps import CurrentHost, Uow, get_earnings_ledger
from app.core.exceptions import ValidationError
from app.core.permissions import Actor, require_host_access
from app.domain.entities import EarningStatus
from app.schemas.earnings import (
    AnnualStatementResponse,
    BookingEarningsResponse,
    DateRangeResponse,
    EarningListResponse,
    EarningResponse,
    EarningsSummaryResponse,
)
from app.services.earnings_service import EarningsLedger

router = APIRouter()

Ledger = Annotated[EarningsLedger, Depends(get_earnings_ledger)]


def _target_host(actor: Actor, host_id: UUID | None) -> UUID:
    """Hosts read their own ledger; admins must name the host."""
    if host_id is None:
        if actor.is_admin:
            raise ValidationError("host_id is required for admin requests")
        return actor.user_id
    require_host_access(actor, host_id)
    return host_id


@router.get("/", response_model=EarningListResponse)
async def list_earnings(
    actor: CurrentHost,
    uow: Uow,
    ledger: Ledger,
    host_id: UUID | None = None,
    status_filter: EarningStatus | None = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> EarningListResponse:
    """Paginated earning records, newest first."""
    result = await ledger.list_host_earnings(
        uow, _target_host(actor, host_id), status_filter, page, limit
    )
    return EarningListResponse(
        items=[EarningResponse.model_validate(e) for e in result.items],
        total=result.total,
        page=result.page,
        limit=result.limit,
        total_pages=result.total_pages,
    )


@router.get("/summary", response_model=EarningsSummaryResponse)
async def get_earnings_summary(
    actor: CurrentHost,
    uow: Uow,
    ledger: Ledger,
    host_id: UUID | None = None,
) -> EarningsSummaryResponse:
    """Balances by status and the last twelve months with earnings."""
    summary = await ledger.get_summary(uow, _target_host(actor, host_id))
    return EarningsSummaryResponse.model_validate(summary)


@router.get("/date-range", response_model=DateRangeResponse)
async def get_earnings_by_date_range(
    actor: CurrentHost,
    uow: Uow,
    ledger: Ledger,
    start: datetime,
    end: datetime,
    host_id: UUID | None = None,
) -> DateRangeResponse:
    report = await ledger.earnings_by_date_range(uow, _target_host(actor, host_id), start, end)
    return DateRangeResponse.model_validate(report)


@router.get("/statement/{year}", response_model=AnnualStatementResponse)
async def get_annual_statement(
    year: int,
    actor: CurrentHost,
    uow: Uow,
    ledger: Ledger,
    host_id: UUID | None = None,
) -> AnnualStatementResponse:
    statement = await ledger.annual_statement(uow, _target_host(actor, host_id), year)
    return AnnualStatementResponse.model_validate(statement)


@router.get("/booking/{booking_id}", response_model=BookingEarningsResponse)
async def get_booking_earnings(
    booking_id: UUID,
    actor: CurrentHost,
    uow: Uow,
    ledger: Ledger,
) -> BookingEarningsResponse:
    """Every record of one booking, fragments included."""
    owner = None if actor.is_admin else actor.user_id
    result = await ledger.booking_earnings(uow, owner, booking_id)
    return BookingEarningsResponse.model_validate(result)
