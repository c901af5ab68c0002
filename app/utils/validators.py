"""Custom validation utilities."""

import re
from datetime import datetime

PH_MOBILE_PATTERN = re.compile(r"^09\d{9}$")
CARD_NUMBER_PATTERN = re.compile(r"^\d{16}$")
CARD_EXPIRY_PATTERN = re.compile(r"^(0[1-9]|1[0-2])/(\d{2})$")
CVV_PATTERN = re.compile(r"^\d{3,4}$")


def clean_card_number(card_number: str) -> str:
    """Strip spaces and dashes from a card number."""
    return re.sub(r"[\s\-]", "", card_number)


def validate_card_number(card_number: str) -> bool:
    """Validate card number format.

    Only 16-digit Visa (4) and Mastercard (5) numbers are accepted.

    Args:
        card_number: Card number, spaces and dashes allowed

    Returns:
        bool: True if the number is accepted
    """
    cleaned = clean_card_number(card_number)
    if not CARD_NUMBER_PATTERN.match(cleaned):
        return False
    return cleaned[0] in ("4", "5")


def card_expiry_passed(expiry: str, now: datetime) -> bool:
    """Whether an MM/YY expiry is before the current month.

    A card is valid through the last day of its expiry month.
    """
    match = CARD_EXPIRY_PATTERN.match(expiry)
    if not match:
        return True
    month, year = int(match.group(1)), 2000 + int(match.group(2))
    return (year, month) < (now.year, now.month)


def validate_ph_mobile(mobile: str) -> bool:
    """Validate Philippine mobile number in local format 09XXXXXXXXX."""
    return bool(PH_MOBILE_PATTERN.match(mobile))


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """Mask sensitive data showing only last few characters.

    Args:
        data: Sensitive data to mask
        visible_chars: Number of characters to show at end

    Returns:
        str: Masked string like '********7890'
    """
    if len(data) <= visible_chars:
        return "*" * len(data)

    masked_length = len(data) - visible_chars
    return "*" * masked_length + data[-visible_chars:]
