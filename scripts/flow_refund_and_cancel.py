#!/usr/bin/env python3
"""
Cancellation and refund flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_refund_and_cancel.py --room-id <UUID> --check-in 2026-12-01 --check-out 2026-12-04 --total 1000000
    python scripts/flow_refund_and_cancel.py --room-id <UUID> --check-in 2026-12-01 --check-out 2026-12-04 --total 1000000 --as-host

Flow:
    1. Create booking (as guest)
    2. Pay with GCash (as guest)
    3. Preview the cancellation
    4. Cancel (as guest, or as host with --as-host while still pending)
"""

import argparse
import sys
import uuid

from flow_book_and_pay import actor_headers, api_request, print_result, print_step


def main():
    parser = argparse.ArgumentParser(description="Cancellation and refund flow")
    parser.add_argument("--room-id", required=True, help="Room UUID")
    parser.add_argument("--check-in", required=True, help="Check-in (ISO date or datetime)")
    parser.add_argument("--check-out", required=True, help="Check-out (ISO date or datetime)")
    parser.add_argument("--total", type=int, required=True, help="Total price in centavos")
    parser.add_argument("--host-id", help="Host UUID (required with --as-host)")
    parser.add_argument("--as-host", action="store_true", help="Host cancels before payment")
    parser.add_argument("--reason", default="Change of plans", help="Cancellation reason")
    args = parser.parse_args()

    if args.as_host and not args.host_id:
        parser.error("--host-id is required with --as-host")

    guest = actor_headers(str(uuid.uuid4()), "guest")

    # Step 1: Create booking
    print_step(1, "Create booking")
    booking_result = api_request(guest, "POST", "/api/v1/bookings/", {
        "room_id": args.room_id,
        "check_in": args.check_in,
        "check_out": args.check_out,
        "total_price": args.total,
        "payment_method": "gcash",
    })
    if not print_result(booking_result, ["id", "status", "is_cancellable", "cancellation_deadline"]):
        sys.exit(1)
    booking_id = booking_result["data"]["id"]

    canceller = guest
    if args.as_host:
        canceller = actor_headers(args.host_id, "host")
    else:
        # Step 2: Pay with GCash
        print_step(2, "Pay with GCash")
        payment_result = api_request(guest, "POST", f"/api/v1/bookings/{booking_id}/payment", {
            "method": "gcash",
            "mobile_number": "09171234567",
        })
        if not print_result(payment_result, ["id", "status", "payment_status"]):
            sys.exit(1)

    # Step 3: Preview
    print_step(3, "Preview cancellation")
    preview_result = api_request(canceller, "GET", f"/api/v1/bookings/{booking_id}/can-cancel")
    if not print_result(preview_result):
        sys.exit(1)
    if not preview_result["data"]["can_cancel"]:
        print(f"\nCannot cancel: {preview_result['data']['reason']}")
        return

    # Step 4: Cancel
    print_step(4, "Cancel booking")
    cancel_result = api_request(canceller, "POST", f"/api/v1/bookings/{booking_id}/cancel", {
        "reason": args.reason,
    })
    if not print_result(cancel_result, ["refund_amount", "refund_percentage"]):
        sys.exit(1)

    print("\n" + "="*60)
    print("CANCELLATION FLOW COMPLETE")
    print("="*60)
    print(f"Booking:  {booking_id}")
    print(f"Refund:   {cancel_result['data']['refund_amount']:,} centavos "
          f"({cancel_result['data']['refund_percentage']}%)")


if __name__ == "__main__":
    main()
