# backend/venuebook/core/exceptions.py
"""
Domain-specific exceptions for the venue booking backend.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

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

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException using the class status code."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when input is malformed or out of range."""

    status_code = status.HTTP_400_BAD_REQUEST


class FieldUnavailableException(ValidationException):
    """Raised when a field exists but is not open for booking."""

    def __init__(self, field_id: str, field_status: str):
        super().__init__(
            message=f"Field is currently {field_status} and cannot be booked",
            code="FIELD_UNAVAILABLE",
            details={"field_id": field_id, "field_status": field_status},
        )


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised when there's a conflict with existing data."""

    status_code = status.HTTP_409_CONFLICT


class SlotConflictException(ConflictException):
    """Raised when a requested slot overlaps an active booking."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time slot conflicts with an existing booking",
            code="SLOT_CONFLICT",
            details=details or {},
        )

    @property
    def conflicting_booking_id(self) -> Optional[str]:
        return self.details.get("booking_id")


class DuplicatePaymentException(ConflictException):
    """Raised when a booking already has a pending or verified payment."""

    def __init__(self, booking_id: str, payment_id: str, payment_status: str):
        super().__init__(
            message="This booking already has an active payment",
            code="DUPLICATE_PAYMENT",
            details={
                "booking_id": booking_id,
                "payment_id": payment_id,
                "payment_status": payment_status,
            },
        )


class SlotBusyException(ConflictException):
    """Raised when the slot lock could not be acquired in time."""

    def __init__(self, field_id: str, booking_date: str):
        super().__init__(
            message="Another booking for this field and date is in progress, please retry",
            code="SLOT_BUSY",
            details={"field_id": field_id, "booking_date": booking_date},
        )


class BookingBusyException(ConflictException):
    """Raised when another payment decision for the booking holds its lock."""

    def __init__(self, booking_id: str):
        super().__init__(
            message="Another payment action for this booking is in progress, please retry",
            code="BOOKING_BUSY",
            details={"booking_id": booking_id},
        )


class BusinessRuleException(DomainException):
    """Raised when a business rule is violated."""

    status_code = HTTP_422_UNPROCESSABLE


class StateTransitionException(BusinessRuleException):
    """Raised when an entity is asked to move to a state it cannot reach."""

    def __init__(
        self,
        message: str,
        *,
        current_status: Optional[str] = None,
        target_status: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        merged: Dict[str, Any] = dict(details or {})
        if current_status is not None:
            merged["current_status"] = current_status
        if target_status is not None:
            merged["target_status"] = target_status
        super().__init__(message=message, code="INVALID_STATE_TRANSITION", details=merged)


class ForbiddenException(DomainException):
    """Raised when user lacks permission for an action."""

    status_code = status.HTTP_403_FORBIDDEN


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
