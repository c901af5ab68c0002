"""Database models."""

from app.models.booking import Booking
from app.models.earning import Earning

__all__ = [
    "Booking",
    "Earning",
]
