"""Custom exception hierarchy and handlers."""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """Base application exception."""

    status_code = 400
    code = "app_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundException(AppException):
    """Raised when entity is not found."""

    status_code = 404
    code = "not_found"


class ConflictException(AppException):
    """Raised when entity conflicts with current state."""

    status_code = 409
    code = "conflict"


class UnauthorizedException(AppException):
    """Raised when identity has no rights for operation."""

    status_code = 403
    code = "forbidden"


class UnauthenticatedException(AppException):
    """Raised when no valid identity is attached to the request."""

    status_code = 401
    code = "unauthenticated"


class BusinessRuleException(AppException):
    """Raised when business rule validation fails."""

    status_code = 422
    code = "business_rule_violation"


# Booking core taxonomy. Every store/gateway failure is translated into one of these.


class BookingValidationError(BusinessRuleException):
    """Missing or malformed booking input, rejected before any side effect."""

    code = "validation_error"


class AvailabilityFetchError(AppException):
    """Occupancy could not be loaded; the calendar state is unknown."""

    status_code = 503
    code = "availability_unavailable"


class SlotConflictError(ConflictException):
    """Requested slot is already occupied."""

    code = "slot_conflict"


class BookingCreateError(ConflictException):
    """Booking store rejected the insert, usually a lost race for the slot."""

    code = "booking_create_failed"


class PaymentOrderError(AppException):
    """Payment gateway order could not be created."""

    status_code = 502
    code = "payment_order_failed"


class SignatureMismatchError(AppException):
    """Gateway callback signature did not verify."""

    status_code = 400
    code = "signature_mismatch"


class AlreadyProcessedError(ConflictException):
    """Payment callback refers to a booking that is gone or no longer pending."""

    code = "already_processed"


async def app_exception_handler(_: Request, exc: AppException) -> JSONResponse:
    """Handle custom domain exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code, "message": exc.message}},
    )


async def http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTP exceptions in unified shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": "http_error", "message": str(exc.detail)}},
    )


async def unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "internal_error", "message": "Internal server error"}},
    )


def register_exception_handlers(app) -> None:
    """Register global exception handlers."""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
