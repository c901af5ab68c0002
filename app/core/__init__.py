"""Core utilities: errors, locking, clock, idempotency."""

from app.core.clock import Clock, FixedClock, SystemClock
from app.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    DuplicateEarningError,
    InsufficientFundsError,
    NotFoundError,
    PersistenceError,
    StateConflictError,
    ValidationError,
)
from app.core.locks import LocalLockManager, LockManager, RedisLockManager

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "DuplicateEarningError",
    "InsufficientFundsError",
    "NotFoundError",
    "PersistenceError",
    "StateConflictError",
    "ValidationError",
    "LocalLockManager",
    "LockManager",
    "RedisLockManager",
]
