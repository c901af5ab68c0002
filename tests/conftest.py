"""Shared fixtures: a pinned clock, in-memory persistence and wired services."""

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from app.core.clock import FixedClock
from app.core.idempotency import IdempotencyStore
from app.core.locks import LocalLockManager
from app.core.permissions import Actor, UserRole
from app.domain.entities import Earning, EarningStatus, PaymentMethod
from app.repositories.memory import InMemoryStore, InMemoryUnitOfWork
from app.schemas.booking import BookingCreate, PriceBreakdownSchema
from app.schemas.payment import CardPayment
from app.services.booking_service import BookingService
from app.services.earnings_service import EarningsLedger
from app.services.notification_service import NotificationService
from app.services.payout_service import PayoutAllocator
from app.services.reporting_service import ReportingService
from app.services.room_catalog import InMemoryRoomCatalog, RoomInfo

NOW = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)

GUEST_ID = uuid.UUID("00000000-0000-0000-0000-00000000000a")
HOST_ID = uuid.UUID("00000000-0000-0000-0000-00000000000b")
OTHER_HOST_ID = uuid.UUID("00000000-0000-0000-0000-00000000000c")
ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-00000000000d")
STRANGER_ID = uuid.UUID("00000000-0000-0000-0000-00000000000e")


def card_payment(number: str = "4111111111111111", expiry: str = "12/30") -> CardPayment:
    return CardPayment(
        card_number=number,
        expiry_date=expiry,
        cvv="123",
        cardholder_name="Juan Dela Cruz",
    )


class RecordingSink:
    """Notification sink that keeps what it was sent."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, uuid.UUID | None, dict]] = []

    async def send(self, event, recipient_id, payload) -> None:
        self.sent.append((event, recipient_id, payload))

    @property
    def events(self) -> list[str]:
        return [event for event, _, _ in self.sent]


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def uow(store) -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork(store)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def notifier(sink) -> NotificationService:
    return NotificationService(sink)


@pytest.fixture
def locks() -> LocalLockManager:
    return LocalLockManager()


@pytest.fixture
def rooms() -> InMemoryRoomCatalog:
    return InMemoryRoomCatalog()


@pytest.fixture
def ledger(clock, notifier) -> EarningsLedger:
    return EarningsLedger(
        clock=clock,
        notifier=notifier,
        host_share=Decimal("0.80"),
        pay_at_property_hold_days=365,
        currency="PHP",
    )


@pytest.fixture
def booking_service(rooms, ledger, locks, clock, notifier) -> BookingService:
    return BookingService(
        rooms=rooms,
        ledger=ledger,
        locks=locks,
        clock=clock,
        notifier=notifier,
        currency="PHP",
    )


@pytest.fixture
def allocator(locks, clock, notifier) -> PayoutAllocator:
    return PayoutAllocator(
        locks=locks,
        clock=clock,
        notifier=notifier,
        idempotency=IdempotencyStore(),
        currency="PHP",
    )


@pytest.fixture
def reporting(clock) -> ReportingService:
    return ReportingService(clock=clock, currency="PHP")


@pytest.fixture
def guest() -> Actor:
    return Actor(user_id=GUEST_ID, role=UserRole.GUEST)


@pytest.fixture
def host() -> Actor:
    return Actor(user_id=HOST_ID, role=UserRole.HOST)


@pytest.fixture
def other_host() -> Actor:
    return Actor(user_id=OTHER_HOST_ID, role=UserRole.HOST)


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id=ADMIN_ID, role=UserRole.ADMIN)


@pytest.fixture
def stranger() -> Actor:
    return Actor(user_id=STRANGER_ID, role=UserRole.GUEST)


@pytest.fixture
def make_booking(booking_service, rooms, uow, guest):
    """Create a booking in a fresh room of HOST_ID (or the given room)."""

    async def _make(
        days_ahead: float = 10,
        nights: int = 3,
        total_price: int = 10000,
        base_price: int | None = None,
        payment_method: PaymentMethod = PaymentMethod.CARD,
        room_id: uuid.UUID | None = None,
        actor: Actor | None = None,
    ):
        if room_id is None:
            room_id = rooms.add(RoomInfo(room_id=uuid.uuid4(), host_id=HOST_ID)).room_id
        check_in = NOW + timedelta(days=days_ahead)
        data = BookingCreate(
            room_id=room_id,
            check_in=check_in,
            check_out=check_in + timedelta(days=nights),
            total_price=total_price,
            price_breakdown=PriceBreakdownSchema(
                base_price=total_price if base_price is None else base_price
            ),
            payment_method=payment_method,
        )
        return await booking_service.create_booking(uow, actor or guest, data)

    return _make


@pytest.fixture
def paid_booking(make_booking, booking_service, uow, guest):
    """Create a booking and pay it by card (it becomes confirmed)."""

    async def _paid(**kwargs):
        booking = await make_booking(**kwargs)
        return await booking_service.capture_payment(uow, guest, booking.id, card_payment())

    return _paid


@pytest.fixture
def seed_earning(uow):
    """Insert an earning record directly into the ledger."""

    async def _seed(
        host_payout: int,
        amount: int | None = None,
        host_id: uuid.UUID = HOST_ID,
        status: EarningStatus = EarningStatus.AVAILABLE,
        available_date: datetime | None = None,
        created_at: datetime | None = None,
        payment_method: PaymentMethod = PaymentMethod.CARD,
    ) -> Earning:
        if amount is None:
            amount = host_payout * 5 // 4
        earning = Earning(
            booking_id=uuid.uuid4(),
            host_id=host_id,
            amount=amount,
            platform_fee=amount - host_payout,
            host_payout=host_payout,
            payment_method=payment_method,
            status=status,
            available_date=available_date or NOW,
            created_at=created_at or NOW,
        )
        async with uow.transaction():
            return await uow.earnings.create(earning)

    return _seed
