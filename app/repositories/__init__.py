"""Persistence for bookings and earnings."""

from app.repositories.base import (
    BookingRepository,
    EarningFilter,
    EarningRepository,
    UnitOfWork,
)
from app.repositories.memory import InMemoryStore, InMemoryUnitOfWork
from app.repositories.sqlalchemy import SqlAlchemyUnitOfWork

__all__ = [
    "BookingRepository",
    "EarningFilter",
    "EarningRepository",
    "UnitOfWork",
    "InMemoryStore",
    "InMemoryUnitOfWork",
    "SqlAlchemyUnitOfWork",
]
