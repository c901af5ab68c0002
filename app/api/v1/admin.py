"""Admin endpoints for the earnings ledger and platform revenue."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import (
    CurrentAdmin,
    Uow,
    get_earnings_ledger,
    get_payout_allocator,
    get_reporting_service,
)
from app.schemas.payment import AdminPayoutRequest, AdminPayoutResponse
from app.schemas.reporting import (
    HostPayoutDetailsResponse,
    PlatformRevenueResponse,
    TopHostResponse,
    TransactionHistoryResponse,
    TransactionItem,
)
from app.services.earnings_service import EarningsLedger
from app.services.payout_service import PayoutAllocator
from app.services.reporting_service import ReportingService

router = APIRouter()

Ledger = Annotated[EarningsLedger, Depends(get_earnings_ledger)]
Payouts = Annotated[PayoutAllocator, Depends(get_payout_allocator)]
Reports = Annotated[ReportingService, Depends(get_reporting_service)]


# ============ LEDGER MAINTENANCE ============


@router.post("/earnings/promote")
async def promote_pending_earnings(
    admin: CurrentAdmin,
    uow: Uow,
    ledger: Ledger,
) -> dict:
    """Run the pending-earnings sweep now instead of waiting for the scheduler."""
    promoted = await ledger.promote_pending_by_date(uow)
    return {"promoted": promoted}


@router.post("/payouts", response_model=AdminPayoutResponse, status_code=status.HTTP_201_CREATED)
async def create_admin_payout(
    request: AdminPayoutRequest,
    admin: CurrentAdmin,
    uow: Uow,
    allocator: Payouts,
) -> AdminPayoutResponse:
    """Mark specific available earnings of a host as paid out."""
    result = await allocator.process_admin_payout(
        uow, request.host_id, request.earning_ids, request.method, request.reference
    )
    return AdminPayoutResponse.model_validate(result)


# ============ REPORTING ============


@router.get("/revenue", response_model=PlatformRevenueResponse)
async def get_platform_revenue(
    admin: CurrentAdmin,
    uow: Uow,
    reports: Reports,
    period: str = Query(default="all"),
) -> PlatformRevenueResponse:
    summary = await reports.platform_revenue_summary(uow, period)
    return PlatformRevenueResponse.model_validate(summary)


@router.get("/top-hosts", response_model=list[TopHostResponse])
async def get_top_hosts(
    admin: CurrentAdmin,
    uow: Uow,
    reports: Reports,
    limit: int = Query(default=10, ge=1, le=100),
    period: str = Query(default="all"),
) -> list[TopHostResponse]:
    hosts = await reports.top_hosts(uow, limit, period)
    return [TopHostResponse.model_validate(h) for h in hosts]


@router.get("/transactions", response_model=TransactionHistoryResponse)
async def get_transactions(
    admin: CurrentAdmin,
    uow: Uow,
    reports: Reports,
    payment_method: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
) -> TransactionHistoryResponse:
    """Ledger records across all hosts, newest first."""
    history = await reports.transaction_history(uow, payment_method, start, end, page, limit)
    return TransactionHistoryResponse(
        items=[TransactionItem.model_validate(item) for item in history.items],
        total=history.total,
        page=history.page,
        limit=history.limit,
        total_pages=history.total_pages,
    )


@router.get("/hosts/{host_id}/payouts", response_model=HostPayoutDetailsResponse)
async def get_host_payout_details(
    host_id: UUID,
    admin: CurrentAdmin,
    uow: Uow,
    reports: Reports,
) -> HostPayoutDetailsResponse:
    details = await reports.host_payout_details(uow, host_id)
    return HostPayoutDetailsResponse.model_validate(details)
