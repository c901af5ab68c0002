"""Payment and payout request/response schemas.

Requests are tagged unions on ``method`` so each method carries exactly the
details it needs.
"""

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.utils.validators import clean_card_number

CARD_EXPIRY_REGEX = r"^(0[1-9]|1[0-2])/\d{2}$"
PH_MOBILE_REGEX = r"^09\d{9}$"


class CardPayment(BaseModel):
    method: Literal["card"] = "card"
    card_number: str
    expiry_date: str = Field(..., pattern=CARD_EXPIRY_REGEX, description="MM/YY")
    cvv: str = Field(..., pattern=r"^\d{3,4}$")
    cardholder_name: str = Field(..., min_length=1, max_length=200)

    @field_validator("card_number")
    @classmethod
    def validate_card_number(cls, v: str) -> str:
        cleaned = clean_card_number(v)
        if not cleaned.isdigit() or len(cleaned) != 16:
            raise ValueError("Card number must be 16 digits")
        return cleaned


class GCashPayment(BaseModel):
    method: Literal["gcash"] = "gcash"
    mobile_number: str = Field(..., pattern=PH_MOBILE_REGEX)


class MayaPayment(BaseModel):
    method: Literal["maya"] = "maya"
    mobile_number: str = Field(..., pattern=PH_MOBILE_REGEX)


class PropertyPayment(BaseModel):
    """Guest pays the host on arrival; nothing is charged now."""

    method: Literal["property"] = "property"


PaymentRequest = Annotated[
    CardPayment | GCashPayment | MayaPayment | PropertyPayment,
    Field(discriminator="method"),
]


class PaymentReceived(BaseModel):
    """Host records a pay-at-property payment."""

    amount: int | None = Field(None, ge=0, description="Defaults to the booking total")
    reference: str | None = Field(None, max_length=100)


class CardPayoutAccount(BaseModel):
    method: Literal["card"] = "card"
    card_number: str
    cardholder_name: str = Field(..., min_length=1, max_length=200)

    @field_validator("card_number")
    @classmethod
    def validate_card_number(cls, v: str) -> str:
        cleaned = clean_card_number(v)
        if not cleaned.isdigit() or len(cleaned) != 16:
            raise ValueError("Card number must be 16 digits")
        return cleaned

    @property
    def account(self) -> str:
        return self.card_number


class WalletPayoutAccount(BaseModel):
    method: Literal["gcash", "maya"]
    mobile_number: str = Field(..., pattern=PH_MOBILE_REGEX)
    account_name: str | None = Field(None, max_length=200)

    @property
    def account(self) -> str:
        return self.mobile_number


PayoutAccount = Annotated[
    CardPayoutAccount | WalletPayoutAccount,
    Field(discriminator="method"),
]


class WithdrawalRequest(BaseModel):
    amount: int = Field(..., gt=0, description="Host payout to withdraw, in centavos")
    account: PayoutAccount


class WithdrawalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    withdrawal_id: str
    amount: int
    remaining_balance: int
    currency: str


class WithdrawalEarningItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    booking_id: UUID
    amount: int
    platform_fee: int
    host_payout: int
    split_from_id: UUID | None


class WithdrawalDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    withdrawal_id: str
    host_id: UUID
    amount: int
    paid_out_at: datetime
    method: str | None
    account: str | None
    earnings: list[WithdrawalEarningItem]


class AdminPayoutRequest(BaseModel):
    host_id: UUID
    earning_ids: list[UUID] = Field(..., min_length=1)
    method: str = Field(..., min_length=1, max_length=20)
    reference: str | None = Field(None, min_length=1, max_length=40)


class AdminPayoutResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    payout_id: str
    host_id: UUID
    total_amount: int
    earnings_count: int
    method: str
    paid_at: datetime
