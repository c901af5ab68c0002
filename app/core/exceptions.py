"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.extra = extra or {}
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            extra={"errors": errors} if errors else None,
        )


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Caller could not be identified."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class StateConflictError(AppException):
    """Operation not allowed for the current state of the resource.

    Also raised when a concurrent writer changed the resource first.
    """

    def __init__(self, detail: str = "This operation is not allowed for the current booking status") -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class InsufficientFundsError(AppException):
    """Withdrawal exceeds the host's available balance."""

    def __init__(self, available_balance: int, requested: int | None = None) -> None:
        self.available_balance = available_balance
        self.requested = requested
        detail = f"Insufficient balance: {available_balance} available"
        if requested is not None:
            detail = f"Insufficient balance: requested {requested}, {available_balance} available"
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            extra={"available_balance": available_balance},
        )


class PersistenceError(AppException):
    """Storage layer unavailable."""

    def __init__(self, detail: str | None = None) -> None:
        message = "Storage is unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)


class DuplicateEarningError(Exception):
    """A primary earning record already exists for the booking.

    Raised by repositories only; the ledger turns it into "return existing".
    """

    def __init__(self, booking_id: Any) -> None:
        self.booking_id = booking_id
        super().__init__(f"Earning record already exists for booking {booking_id}")
