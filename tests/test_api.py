"""HTTP tests for the v1 API with in-memory services."""

import uuid
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.api.deps import (
    get_booking_service,
    get_earnings_ledger,
    get_payout_allocator,
    get_reporting_service,
    get_uow,
)
from app.main import app
from app.services.room_catalog import RoomInfo
from tests.conftest import ADMIN_ID, GUEST_ID, HOST_ID, NOW

API = "/api/v1"


def headers(user_id: uuid.UUID, role: str) -> dict[str, str]:
    return {"X-User-Id": str(user_id), "X-User-Role": role}


GUEST = headers(GUEST_ID, "guest")
HOST = headers(HOST_ID, "host")
ADMIN = headers(ADMIN_ID, "admin")

CARD = {
    "method": "card",
    "card_number": "4111 1111 1111 1111",
    "expiry_date": "12/30",
    "cvv": "123",
    "cardholder_name": "Juan Dela Cruz",
}


@pytest_asyncio.fixture
async def client(uow, booking_service, ledger, allocator, reporting):
    app.dependency_overrides[get_uow] = lambda: uow
    app.dependency_overrides[get_booking_service] = lambda: booking_service
    app.dependency_overrides[get_earnings_ledger] = lambda: ledger
    app.dependency_overrides[get_payout_allocator] = lambda: allocator
    app.dependency_overrides[get_reporting_service] = lambda: reporting
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def booking_payload(rooms):
    def _payload(days_ahead: int = 10, total_price: int = 10000, payment_method: str = "card"):
        room = rooms.add(RoomInfo(room_id=uuid.uuid4(), host_id=HOST_ID))
        check_in = NOW + timedelta(days=days_ahead)
        return {
            "room_id": str(room.room_id),
            "check_in": check_in.isoformat(),
            "check_out": (check_in + timedelta(days=2)).isoformat(),
            "total_price": total_price,
            "price_breakdown": {"base_price": total_price},
            "payment_method": payment_method,
        }

    return _payload


async def create_paid_booking(client, booking_payload, **kwargs) -> dict:
    response = await client.post(f"{API}/bookings/", json=booking_payload(**kwargs), headers=GUEST)
    assert response.status_code == 201
    booking = response.json()
    response = await client.post(
        f"{API}/bookings/{booking['id']}/payment", json=CARD, headers=GUEST
    )
    assert response.status_code == 200
    return response.json()


class TestActorHeaders:
    @pytest.mark.asyncio
    async def test_missing_headers(self, client, booking_payload):
        response = await client.post(f"{API}/bookings/", json=booking_payload())

        assert response.status_code == 401
        assert "detail" in response.json()

    @pytest.mark.asyncio
    async def test_unknown_role(self, client):
        response = await client.get(
            f"{API}/bookings/{uuid.uuid4()}", headers=headers(GUEST_ID, "superuser")
        )

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_guest_cannot_read_earnings(self, client):
        response = await client.get(f"{API}/earnings/summary", headers=GUEST)

        assert response.status_code == 403


class TestBookingEndpoints:
    @pytest.mark.asyncio
    async def test_create_pay_and_cancel(self, client, booking_payload):
        booking = await create_paid_booking(client, booking_payload)
        assert booking["status"] == "confirmed"
        assert booking["payment_status"] == "paid"
        assert booking["nights"] == 2

        preview = await client.get(f"{API}/bookings/{booking['id']}/can-cancel", headers=GUEST)
        assert preview.status_code == 200
        assert preview.json()["refund_percentage"] == 100

        response = await client.post(
            f"{API}/bookings/{booking['id']}/cancel",
            json={"reason": "Change of plans"},
            headers=GUEST,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["refund_amount"] == 10000
        assert body["booking"]["status"] == "cancelled"
        assert body["booking"]["cancellation"]["cancelled_by"] == "guest"

    @pytest.mark.asyncio
    async def test_cancel_without_body(self, client, booking_payload):
        created = await client.post(f"{API}/bookings/", json=booking_payload(), headers=GUEST)

        response = await client.post(f"{API}/bookings/{created.json()['id']}/cancel", headers=GUEST)

        assert response.status_code == 200
        assert response.json()["booking"]["cancellation"]["reason"] == "No reason provided"

    @pytest.mark.asyncio
    async def test_unknown_payment_method(self, client, booking_payload):
        created = await client.post(f"{API}/bookings/", json=booking_payload(), headers=GUEST)

        response = await client.post(
            f"{API}/bookings/{created.json()['id']}/payment",
            json={"method": "bitcoin", "wallet": "abc"},
            headers=GUEST,
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_double_payment_conflicts(self, client, booking_payload):
        booking = await create_paid_booking(client, booking_payload)

        response = await client.post(
            f"{API}/bookings/{booking['id']}/payment", json=CARD, headers=GUEST
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_booking(self, client):
        response = await client.get(f"{API}/bookings/{uuid.uuid4()}", headers=GUEST)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_host_rejects_pending_booking(self, client, booking_payload):
        created = await client.post(
            f"{API}/bookings/", json=booking_payload(payment_method="property"), headers=GUEST
        )

        response = await client.post(
            f"{API}/bookings/{created.json()['id']}/reject",
            json={"reason": "Maintenance"},
            headers=HOST,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "rejected"

    @pytest.mark.asyncio
    async def test_admin_deletes_booking(self, client, booking_payload):
        created = await client.post(f"{API}/bookings/", json=booking_payload(), headers=GUEST)
        booking_id = created.json()["id"]

        forbidden = await client.delete(f"{API}/bookings/{booking_id}", headers=HOST)
        deleted = await client.delete(f"{API}/bookings/{booking_id}", headers=ADMIN)

        assert forbidden.status_code == 403
        assert deleted.status_code == 204


class TestEarningsAndPayouts:
    @pytest.mark.asyncio
    async def test_summary_after_payment(self, client, booking_payload):
        await create_paid_booking(client, booking_payload, total_price=10000)

        response = await client.get(f"{API}/earnings/summary", headers=HOST)

        assert response.status_code == 200
        assert response.json()["available"] == 8000
        assert response.json()["currency"] == "PHP"

    @pytest.mark.asyncio
    async def test_admin_must_name_host(self, client):
        response = await client.get(f"{API}/earnings/summary", headers=ADMIN)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_withdraw_more_than_available(self, client, booking_payload):
        await create_paid_booking(client, booking_payload, total_price=10000)

        response = await client.post(
            f"{API}/payouts/withdraw",
            json={"amount": 9000, "account": {"method": "gcash", "mobile_number": "09171234567"}},
            headers=HOST,
        )

        assert response.status_code == 400
        assert response.json()["available_balance"] == 8000

    @pytest.mark.asyncio
    async def test_withdraw_with_idempotency_key(self, client, booking_payload):
        await create_paid_booking(client, booking_payload, total_price=10000)
        request = {
            "amount": 3000,
            "account": {"method": "maya", "mobile_number": "09181234567"},
        }
        replay_headers = {**HOST, "Idempotency-Key": "withdraw-1"}

        first = await client.post(f"{API}/payouts/withdraw", json=request, headers=replay_headers)
        second = await client.post(f"{API}/payouts/withdraw", json=request, headers=replay_headers)

        assert first.status_code == 201
        assert first.json() == second.json()
        assert first.json()["remaining_balance"] == 5000

        listing = await client.get(f"{API}/payouts/", headers=HOST)
        assert [w["amount"] for w in listing.json()] == [3000]
        assert listing.json()[0]["account"] == "*******4567"

    @pytest.mark.asyncio
    async def test_idempotency_key_reused_with_other_amount(self, client, booking_payload):
        await create_paid_booking(client, booking_payload, total_price=10000)
        account = {"method": "gcash", "mobile_number": "09171234567"}
        replay_headers = {**HOST, "Idempotency-Key": "withdraw-2"}

        first = await client.post(
            f"{API}/payouts/withdraw", json={"amount": 3000, "account": account}, headers=replay_headers
        )
        second = await client.post(
            f"{API}/payouts/withdraw", json={"amount": 4000, "account": account}, headers=replay_headers
        )

        assert first.status_code == 201
        assert second.status_code == 422
        listing = await client.get(f"{API}/payouts/", headers=HOST)
        assert [w["amount"] for w in listing.json()] == [3000]

    @pytest.mark.asyncio
    async def test_withdraw_rejects_bad_account(self, client):
        response = await client.post(
            f"{API}/payouts/withdraw",
            json={"amount": 100, "account": {"method": "gcash", "mobile_number": "12345"}},
            headers=HOST,
        )

        assert response.status_code == 422


class TestAdminEndpoints:
    @pytest.mark.asyncio
    async def test_host_cannot_view_revenue(self, client):
        response = await client.get(f"{API}/admin/revenue", headers=HOST)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_revenue_and_transactions(self, client, booking_payload):
        await create_paid_booking(client, booking_payload, total_price=10000)

        revenue = await client.get(f"{API}/admin/revenue", params={"period": "month"}, headers=ADMIN)
        transactions = await client.get(f"{API}/admin/transactions", headers=ADMIN)

        assert revenue.status_code == 200
        assert revenue.json()["summary"]["total_fees"] == 2000
        assert transactions.json()["total"] == 1
        assert transactions.json()["items"][0]["guest_id"] == str(GUEST_ID)

    @pytest.mark.asyncio
    async def test_invalid_period(self, client):
        response = await client.get(
            f"{API}/admin/revenue", params={"period": "fortnight"}, headers=ADMIN
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_admin_payout(self, client, booking_payload, uow):
        booking = await create_paid_booking(client, booking_payload, total_price=10000)
        earning = await uow.earnings.get_for_booking(uuid.UUID(booking["id"]))

        response = await client.post(
            f"{API}/admin/payouts",
            json={
                "host_id": str(HOST_ID),
                "earning_ids": [str(earning.id)],
                "method": "bank_transfer",
            },
            headers=ADMIN,
        )

        assert response.status_code == 201
        assert response.json()["total_amount"] == 8000

        details = await client.get(f"{API}/admin/hosts/{HOST_ID}/payouts", headers=ADMIN)
        assert details.json()["summary"]["paid_out"] == 8000


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
