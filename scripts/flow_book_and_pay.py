#!/usr/bin/env python3
"""
Booking, payment and withdrawal flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_book_and_pay.py --room-id <UUID> --host-id <UUID> --check-in 2026-12-01 --check-out 2026-12-04 --total 1000000

The room must be known to the room catalog (the listing service, or the
in-memory catalog of a local run).

Flow:
    1. Create booking (as guest)
    2. Pay by card (as guest)
    3. Complete booking (as admin)
    4. Show host earnings summary
    5. Withdraw half of the available balance (as host)
"""

import argparse
import json
import sys
import uuid

import httpx

BASE_URL = "http://localhost:8000"
TEST_CARD = {
    "method": "card",
    "card_number": "4111 1111 1111 1111",
    "expiry_date": "12/30",
    "cvv": "123",
    "cardholder_name": "Test Guest",
}


def actor_headers(user_id: str, role: str) -> dict:
    return {"X-User-Id": user_id, "X-User-Role": role}


def api_request(headers: dict, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make an API request as the given actor."""
    url = f"{BASE_URL}{endpoint}"

    if method == "GET":
        response = httpx.get(url, headers=headers, timeout=10.0, follow_redirects=True)
    elif method == "POST":
        response = httpx.post(url, headers=headers, json=data or {}, timeout=10.0, follow_redirects=True)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None):
    """Print result, optionally filtering fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    if fields:
        filtered = {k: result["data"].get(k) for k in fields if k in result["data"]}
        print(json.dumps(filtered, indent=2))
    else:
        print(json.dumps(result["data"], indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Booking, payment and withdrawal flow")
    parser.add_argument("--room-id", required=True, help="Room UUID")
    parser.add_argument("--host-id", required=True, help="UUID of the room's host")
    parser.add_argument("--check-in", required=True, help="Check-in (ISO date or datetime)")
    parser.add_argument("--check-out", required=True, help="Check-out (ISO date or datetime)")
    parser.add_argument("--total", type=int, required=True, help="Total price in centavos")
    args = parser.parse_args()

    guest = actor_headers(str(uuid.uuid4()), "guest")
    host = actor_headers(args.host_id, "host")
    admin = actor_headers(str(uuid.uuid4()), "admin")

    # Step 1: Create booking
    print_step(1, "Create booking")
    booking_result = api_request(guest, "POST", "/api/v1/bookings/", {
        "room_id": args.room_id,
        "check_in": args.check_in,
        "check_out": args.check_out,
        "total_price": args.total,
        "payment_method": "card",
    })
    if not print_result(booking_result, ["id", "total_price", "status", "payment_status", "is_cancellable"]):
        sys.exit(1)
    booking_id = booking_result["data"]["id"]

    # Step 2: Pay by card
    print_step(2, "Pay by card")
    payment_result = api_request(guest, "POST", f"/api/v1/bookings/{booking_id}/payment", TEST_CARD)
    if not print_result(payment_result, ["id", "status", "payment_status", "payment_reference"]):
        sys.exit(1)
    print("\nBooking PAID and CONFIRMED")

    # Step 3: Complete booking
    print_step(3, "Complete booking (as admin)")
    complete_result = api_request(admin, "POST", f"/api/v1/bookings/{booking_id}/complete")
    if not print_result(complete_result, ["id", "status"]):
        sys.exit(1)

    # Step 4: Earnings summary
    print_step(4, "Host earnings summary")
    summary_result = api_request(host, "GET", "/api/v1/earnings/summary")
    if not print_result(summary_result, ["total", "available", "pending", "paid_out", "currency"]):
        sys.exit(1)
    available = summary_result["data"]["available"]
    if available <= 1:
        print("\nNothing to withdraw")
        return

    # Step 5: Withdraw half
    print_step(5, "Withdraw half of the available balance")
    withdraw_result = api_request(host, "POST", "/api/v1/payouts/withdraw", {
        "amount": available // 2,
        "account": {"method": "gcash", "mobile_number": "09171234567"},
    })
    if not print_result(withdraw_result):
        sys.exit(1)

    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)
    print(f"Booking:     {booking_id}")
    print(f"Withdrawal:  {withdraw_result['data']['withdrawal_id']}")
    print(f"Remaining:   {withdraw_result['data']['remaining_balance']:,} centavos")


if __name__ == "__main__":
    main()
