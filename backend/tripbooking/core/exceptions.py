# backend/tripbooking/core/exceptions.py
"""
Domain-specific exceptions for the trip booking platform.

Every error a caller can observe carries a stable ``kind`` (the class name
unless overridden) so the API layer can translate it without string matching.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    @property
    def kind(self) -> str:
        return self.code

    def to_payload(self) -> Dict[str, Any]:
        return {
            "success": False,
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
        }

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.http_status, detail=self.to_payload())


class ValidationError(DomainException):
    """Raised when input or business validation fails."""

    http_status = status.HTTP_400_BAD_REQUEST


class NotFoundError(DomainException):
    """Raised when a resource is missing or not visible to the caller."""

    http_status = status.HTTP_404_NOT_FOUND


class ForbiddenError(DomainException):
    """Raised when the actor lacks permission for an action."""

    http_status = status.HTTP_403_FORBIDDEN


class UnauthorizedError(DomainException):
    http_status = status.HTTP_401_UNAUTHORIZED


class ConflictError(DomainException):
    """Raised when a write loses to a concurrent one, e.g. the vehicle is already held for the date."""

    http_status = status.HTTP_409_CONFLICT

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=message or "Vehicle is not available for the selected date",
            details=details,
        )


class InvalidTransitionError(DomainException):
    """Raised when a booking status change is not allowed from its current status."""

    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, current: str, requested: str, message: Optional[str] = None) -> None:
        super().__init__(
            message=message or f"Cannot change booking status from {current} to {requested}",
            details={"current_status": current, "requested_status": requested},
        )


class AlreadyPaidError(DomainException):
    """Raised when a payment is attempted on a booking that no longer accepts one."""

    http_status = status.HTTP_400_BAD_REQUEST


class PaymentError(DomainException):
    """Raised when the gateway definitively declines or fails a charge."""

    http_status = status.HTTP_402_PAYMENT_REQUIRED


class PaymentIndeterminateError(DomainException):
    """Raised when the gateway outcome of a charge could not be established."""

    http_status = status.HTTP_503_SERVICE_UNAVAILABLE


class StorageUnavailableError(DomainException):
    """Raised when the database cannot be reached after reconnecting."""

    http_status = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "Storage is temporarily unavailable", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class ReconciliationRequired(DomainException):
    """
    Raised when money moved at the gateway but the local ledger could not record it.

    A reconciliation case is opened before this is raised; an operator must
    resolve the case before the booking accepts further payment attempts.
    """

    http_status = status.HTTP_502_BAD_GATEWAY


class ServiceException(DomainException):
    """Raised when a service operation fails unexpectedly."""

    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Services translate these into domain errors; they should not reach
    the API layer directly.
    """
