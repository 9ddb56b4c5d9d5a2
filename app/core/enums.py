"""Core enums used across modules."""

from enum import StrEnum


class RoleEnum(StrEnum):
    """Identity roles recognized by the booking core."""

    CUSTOMER = "customer"
    ADMIN = "admin"


class BookingStatusEnum(StrEnum):
    """Booking lifecycle status."""

    PENDING = "pending"
    PAID = "paid"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


OCCUPYING_BOOKING_STATUSES: frozenset[BookingStatusEnum] = frozenset(
    {
        BookingStatusEnum.PENDING,
        BookingStatusEnum.PAID,
        BookingStatusEnum.ACCEPTED,
    },
)


class SlotStateEnum(StrEnum):
    """Presentation state of one slot in a day schedule."""

    AVAILABLE = "available"
    BOOKED = "booked"
    SELECTED = "selected"
    UNKNOWN = "unknown"


class SubmissionStateEnum(StrEnum):
    """Steps of one booking submission attempt."""

    INIT = "init"
    VALIDATING = "validating"
    CREATING_BOOKING = "creating_booking"
    CREATING_ORDER = "creating_order"
    AWAITING_PAYMENT = "awaiting_payment"
    VERIFYING = "verifying"
    CONFIRMED = "confirmed"
    FAILED = "failed"


class BookingChangeTypeEnum(StrEnum):
    """Change-feed event kinds for the bookings table."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class NotificationTypeEnum(StrEnum):
    """Admin notification category."""

    PAYMENT = "payment"
