"""Base payment gateway interface.

All gateway adapters must implement this interface.
Business logic should NOT live in adapters - only gateway communication.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class GatewayType(str, Enum):
    """Supported payment gateways."""

    SIMULATED = "simulated"


@dataclass
class PaymentResult:
    """Result of a payment operation."""

    success: bool
    transaction_id: str | None = None
    error_message: str | None = None
    raw_response: dict | None = None


class PaymentGateway(ABC):
    """Abstract base class for payment gateways."""

    @property
    @abstractmethod
    def gateway_type(self) -> GatewayType:
        """Return the gateway type."""
        pass

    @abstractmethod
    async def charge(
        self,
        amount: int,
        currency: str,
        reference_id: str,
        method: str,
        details: dict,
    ) -> PaymentResult:
        """Charge the guest.

        Args:
            amount: Amount in smallest currency unit (centavos)
            currency: Currency code (PHP)
            reference_id: Internal reference (booking id)
            method: card, gcash or maya
            details: Method-specific payment details

        Returns:
            PaymentResult with transaction details
        """
        pass
