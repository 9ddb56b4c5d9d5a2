"""Booking schemas."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.core.enums import BookingStatusEnum, SubmissionStateEnum


class Location(BaseModel):
    """Shoot location picked on the map."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class BookingSubmitRequest(BaseModel):
    """Booking form payload.

    Fields are optional at the schema level so that incomplete forms reach the
    submission guard and fail there with a validation error, before any write.
    """

    package_id: UUID | None = None
    date: dt.date | None = None
    time: str | None = Field(default=None, max_length=8)
    full_name: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=255)
    mobile: str = Field(default="", max_length=32)
    location: Location | None = None


class PaymentCallback(BaseModel):
    """Gateway checkout completion payload."""

    order_id: str = Field(
        min_length=1,
        max_length=64,
        validation_alias=AliasChoices("order_id", "razorpay_order_id"),
    )
    payment_id: str = Field(
        min_length=1,
        max_length=64,
        validation_alias=AliasChoices("payment_id", "razorpay_payment_id"),
    )
    signature: str = Field(
        min_length=1,
        max_length=128,
        validation_alias=AliasChoices("signature", "razorpay_signature"),
    )


class BookingRejectRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=512)


class BookingRead(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    date: dt.date
    time: str
    status: BookingStatusEnum
    customer_ref: str
    package_id: UUID
    full_name: str
    email: str
    mobile: str
    location_lat: float
    location_lng: float
    payment_order_id: str | None
    payment_id: str | None
    paid_at: dt.datetime | None
    rejected_at: dt.datetime | None
    rejection_reason: str | None
    created_at: dt.datetime
    updated_at: dt.datetime


class PaymentOrderRead(BaseModel):
    """Checkout handoff data for the gateway widget."""

    order_id: str
    amount: int
    currency: str
    receipt: str
    key_id: str


class SubmissionRead(BaseModel):
    """Where a submission attempt stands after this request."""

    state: SubmissionStateEnum
    booking: BookingRead
    order: PaymentOrderRead | None = None
    failure_reason: str | None = None
