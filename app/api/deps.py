"""API dependencies: the calling actor, the unit of work and the services.

Authentication happens upstream; the gateway forwards the caller as
``X-User-Id`` and ``X-User-Role`` headers.
"""

from functools import lru_cache
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import AuthenticationError
from app.core.idempotency import IdempotencyStore
from app.core.locks import LocalLockManager, LockManager, RedisLockManager
from app.core.permissions import Actor, UserRole, require_admin, require_role
from app.database import get_db
from app.repositories.base import UnitOfWork
from app.repositories.sqlalchemy import SqlAlchemyUnitOfWork
from app.services.booking_service import BookingService
from app.services.earnings_service import EarningsLedger
from app.services.notification_service import NotificationService, build_notification_service
from app.services.payout_service import PayoutAllocator
from app.services.reporting_service import ReportingService
from app.services.room_catalog import HttpRoomCatalog, InMemoryRoomCatalog, RoomCatalog


async def get_actor(
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the actor from the gateway headers."""
    if not x_user_id or not x_user_role:
        raise AuthenticationError("Missing X-User-Id or X-User-Role header")
    try:
        return Actor(user_id=UUID(x_user_id), role=UserRole(x_user_role.lower()))
    except ValueError as e:
        raise AuthenticationError("Invalid actor headers") from e


async def get_current_host(actor: Annotated[Actor, Depends(get_actor)]) -> Actor:
    """Actor must be a host (admins pass too)."""
    require_role(actor, UserRole.HOST, UserRole.ADMIN)
    return actor


async def get_current_admin(actor: Annotated[Actor, Depends(get_actor)]) -> Actor:
    require_admin(actor)
    return actor


async def get_uow(db: Annotated[AsyncSession, Depends(get_db)]) -> UnitOfWork:
    """Unit of work over the request's session."""
    return SqlAlchemyUnitOfWork(db)


# ==================== SERVICE SINGLETONS ====================


@lru_cache(maxsize=1)
def get_lock_manager() -> LockManager:
    if settings.lock_backend == "redis":
        return RedisLockManager(settings.redis_url, timeout=settings.lock_timeout_seconds)
    return LocalLockManager()


@lru_cache(maxsize=1)
def get_notifier() -> NotificationService:
    return build_notification_service()


@lru_cache(maxsize=1)
def get_room_catalog() -> RoomCatalog:
    if settings.listing_service_url:
        return HttpRoomCatalog(settings.listing_service_url)
    return InMemoryRoomCatalog()


@lru_cache(maxsize=1)
def get_earnings_ledger() -> EarningsLedger:
    return EarningsLedger(notifier=get_notifier())


@lru_cache(maxsize=1)
def get_booking_service() -> BookingService:
    return BookingService(
        rooms=get_room_catalog(),
        ledger=get_earnings_ledger(),
        locks=get_lock_manager(),
        notifier=get_notifier(),
    )


@lru_cache(maxsize=1)
def get_payout_allocator() -> PayoutAllocator:
    return PayoutAllocator(
        locks=get_lock_manager(),
        notifier=get_notifier(),
        idempotency=IdempotencyStore(),
    )


@lru_cache(maxsize=1)
def get_reporting_service() -> ReportingService:
    return ReportingService()


CurrentActor = Annotated[Actor, Depends(get_actor)]
CurrentHost = Annotated[Actor, Depends(get_current_host)]
CurrentAdmin = Annotated[Actor, Depends(get_current_admin)]
Uow = Annotated[UnitOfWork, Depends(get_uow)]
