"""Booking API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.enums import BookingStatusEnum
from app.modules.booking.schemas import (
    BookingRead,
    BookingRejectRequest,
    BookingSubmitRequest,
    PaymentCallback,
    PaymentOrderRead,
    SubmissionRead,
)
from app.modules.booking.service import BookingService, get_booking_service
from app.modules.booking.submission import SubmissionResult
from app.modules.identity.schemas import Identity
from app.modules.identity.service import get_current_identity, get_optional_identity, require_admin
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/booking", tags=["booking"])


def _to_submission_read(result: SubmissionResult) -> SubmissionRead:
    order = None
    if result.order is not None:
        order = PaymentOrderRead(
            order_id=result.order.order_id,
            amount=result.order.amount,
            currency=result.order.currency,
            receipt=result.order.receipt,
            key_id=result.key_id or "",
        )
    return SubmissionRead(
        state=result.attempt.state,
        booking=BookingRead.model_validate(result.booking),
        order=order,
        failure_reason=result.attempt.failure_code,
    )


@router.post("/submit", response_model=SubmissionRead)
async def submit_booking(
    payload: BookingSubmitRequest,
    service: BookingService = Depends(get_booking_service),
    identity: Identity | None = Depends(get_optional_identity),
) -> SubmissionRead:
    """Reserve a slot as pending and open a payment order."""
    result = await service.submit_booking(payload, identity)
    return _to_submission_read(result)


@router.post("/{booking_id}/verify", response_model=BookingRead)
async def verify_payment(
    booking_id: UUID,
    payload: PaymentCallback,
    service: BookingService = Depends(get_booking_service),
    identity: Identity = Depends(get_current_identity),
) -> BookingRead:
    """Confirm a booking from the gateway checkout callback."""
    booking = await service.verify_payment(booking_id, payload, identity)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/cancel-payment", response_model=SubmissionRead)
async def cancel_payment(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    identity: Identity = Depends(get_current_identity),
) -> SubmissionRead:
    """Record that the customer closed the checkout."""
    result = await service.cancel_payment(booking_id, identity)
    return _to_submission_read(result)


@router.post("/{booking_id}/retry-order", response_model=SubmissionRead)
async def retry_payment_order(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    identity: Identity = Depends(get_current_identity),
) -> SubmissionRead:
    """Open a new payment order for a pending booking."""
    result = await service.retry_payment_order(booking_id, identity)
    return _to_submission_read(result)


@router.get("/my", response_model=Page[BookingRead])
async def list_my_bookings(
    status: BookingStatusEnum | None = Query(default=None),
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
    identity: Identity = Depends(get_current_identity),
) -> Page[BookingRead]:
    """List bookings for current identity."""
    items, total = await service.list_bookings(
        identity,
        status,
        pagination.limit,
        pagination.offset,
        mine_only=True,
    )
    serialized = [BookingRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("", response_model=Page[BookingRead])
async def list_bookings(
    status: BookingStatusEnum | None = Query(default=None),
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
    identity: Identity = Depends(require_admin),
) -> Page[BookingRead]:
    """List all bookings (admin only)."""
    items, total = await service.list_bookings(identity, status, pagination.limit, pagination.offset)
    serialized = [BookingRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.post("/pending/expire", response_model=int)
async def expire_pending_bookings(
    service: BookingService = Depends(get_booking_service),
    identity: Identity = Depends(require_admin),
) -> int:
    """Expire stale pending bookings (admin task endpoint)."""
    return await service.expire_stale_pending(identity)


@router.post("/{booking_id}/reject", response_model=BookingRead)
async def reject_booking(
    booking_id: UUID,
    payload: BookingRejectRequest,
    service: BookingService = Depends(get_booking_service),
    identity: Identity = Depends(require_admin),
) -> BookingRead:
    booking = await service.reject_booking(booking_id, payload, identity)
    return BookingRead.model_validate(booking)


@router.post("/{booking_id}/accept", response_model=BookingRead)
async def accept_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
    identity: Identity = Depends(require_admin),
) -> BookingRead:
    booking = await service.accept_booking(booking_id, identity)
    return BookingRead.model_validate(booking)
