"""Simulated gateway for card and e-wallet payments.

No money moves. Card numbers are accepted when they look like a Visa or
Mastercard and have not expired; e-wallet payments need a valid mobile
number.
"""

import logging

from app.core.clock import Clock, SystemClock
from app.gateways.base import GatewayType, PaymentGateway, PaymentResult
from app.utils.booking_number import generate_payment_reference
from app.utils.validators import (
    card_expiry_passed,
    clean_card_number,
    mask_sensitive_data,
    validate_card_number,
    validate_ph_mobile,
)

logger = logging.getLogger(__name__)


class SimulatedGateway(PaymentGateway):
    """Gateway that approves well-formed payment details."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()

    @property
    def gateway_type(self) -> GatewayType:
        return GatewayType.SIMULATED

    async def charge(
        self,
        amount: int,
        currency: str,
        reference_id: str,
        method: str,
        details: dict,
    ) -> PaymentResult:
        if method == "card":
            if not validate_card_number(details.get("card_number", "")):
                return PaymentResult(success=False, error_message="Invalid card details")
            if card_expiry_passed(details.get("expiry_date", ""), self.clock.now()):
                return PaymentResult(success=False, error_message="Card has expired")
            account = mask_sensitive_data(clean_card_number(details["card_number"]))
        elif method in ("gcash", "maya"):
            mobile = details.get("mobile_number", "")
            if not validate_ph_mobile(mobile):
                return PaymentResult(success=False, error_message="Invalid mobile number")
            account = mask_sensitive_data(mobile)
        else:
            return PaymentResult(
                success=False, error_message=f"Unsupported payment method: {method}"
            )

        transaction_id = generate_payment_reference(method.upper())
        logger.info(
            f"Simulated {method} charge of {amount} {currency} for {reference_id} "
            f"from {account}: {transaction_id}"
        )
        return PaymentResult(
            success=True,
            transaction_id=transaction_id,
            raw_response={"method": method, "account": account, "status": "captured"},
        )
