"""Booking business logic layer.

``BookingService`` is the submission guard: it owns the reservation protocol
(validate, check availability, insert pending booking, create gateway order)
and the payment confirmation step. A booking only becomes ``paid`` through
``verify_payment`` after the gateway signature checks out.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Protocol
from uuid import UUID

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.core.enums import (
    OCCUPYING_BOOKING_STATUSES,
    BookingStatusEnum,
    NotificationTypeEnum,
    SubmissionStateEnum,
)
from app.core.metrics import record_submission_outcome, record_verification_outcome
from app.modules.availability.index import AvailabilityIndex, normalize_slot_label
from app.modules.availability.resolver import SlotCatalog, SlotResolver
from app.modules.availability.service import build_availability_index
from app.modules.booking.models import Booking
from app.modules.booking.repository import BookingRepository
from app.modules.booking.schemas import BookingRejectRequest, BookingSubmitRequest, PaymentCallback
from app.modules.booking.submission import SubmissionAttempt, SubmissionResult
from app.modules.identity.schemas import Identity
from app.modules.notifications.repository import NotificationsRepository
from app.modules.notifications.service import NotificationsService
from app.modules.packages.models import Package
from app.modules.packages.repository import PackagesRepository
from app.modules.payments.gateway import (
    PaymentGateway,
    RazorpayGateway,
    get_payment_gateway,
    make_receipt,
    to_minor_units,
    verify_signature,
)
from app.shared.exceptions import (
    AlreadyProcessedError,
    AppException,
    BookingCreateError,
    BookingValidationError,
    ConflictException,
    NotFoundException,
    PaymentOrderError,
    SignatureMismatchError,
    SlotConflictError,
    UnauthenticatedException,
    UnauthorizedException,
)
from app.shared.utils import utc_now

logger = logging.getLogger(__name__)
settings = get_settings()

ABANDONED_REASON = "abandoned"


class Notifier(Protocol):
    async def notify(
        self,
        booking_id: UUID,
        message: str,
        notification_type: NotificationTypeEnum = NotificationTypeEnum.PAYMENT,
    ) -> object:
        """Tell administrators about a booking event."""


class BookingService:
    """Booking domain service: submission guard, payment gate and admin rules."""

    def __init__(
        self,
        booking_repository: BookingRepository,
        packages_repository: PackagesRepository,
        availability_index: AvailabilityIndex,
        gateway: PaymentGateway,
        notifier: Notifier,
        catalog: SlotCatalog | None = None,
        *,
        payment_secret: str | None = None,
        receipt_max_length: int | None = None,
        pending_hold_minutes: int | None = None,
    ) -> None:
        self.booking_repository = booking_repository
        self.packages_repository = packages_repository
        self.availability_index = availability_index
        self.gateway = gateway
        self.notifier = notifier
        self.catalog = catalog if catalog is not None else SlotCatalog.from_settings(settings)
        self.resolver = SlotResolver(availability_index, self.catalog)
        self.payment_secret = payment_secret or settings.payment_gateway_key_secret
        self.receipt_max_length = receipt_max_length or settings.payment_receipt_max_length
        self.pending_hold_minutes = pending_hold_minutes or settings.pending_hold_minutes

    @staticmethod
    def _require_identity(identity: Identity | None) -> Identity:
        if identity is None:
            raise UnauthenticatedException("Please sign in to book a session")
        return identity

    @staticmethod
    def _validate_actor_access(booking: Booking, actor: Identity) -> None:
        if actor.is_admin or booking.customer_ref == actor.customer_ref:
            return
        raise UnauthorizedException("You cannot manage this booking")

    async def _get_booking(self, booking_id: UUID) -> Booking:
        booking = await self.booking_repository.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found")
        return booking

    async def _validate_submission(self, payload: BookingSubmitRequest) -> tuple[Package, str]:
        """Input checks run before any read or write; returns the package and slot label."""
        if payload.package_id is None:
            raise BookingValidationError("Please select a package")
        if not payload.full_name.strip():
            raise BookingValidationError("Full name is required")
        if "@" not in payload.email.strip():
            raise BookingValidationError("A valid email is required")
        if not payload.mobile.strip():
            raise BookingValidationError("Mobile number is required")
        if payload.location is None:
            raise BookingValidationError("Please pick the shoot location")
        if payload.date is None or not payload.time:
            raise BookingValidationError("Please select a date and time")
        if payload.date < utc_now().date():
            raise BookingValidationError("Cannot book a date in the past")

        slot = normalize_slot_label(payload.time)
        if slot is None or slot not in self.catalog:
            raise BookingValidationError("Selected time is not a bookable slot")

        package = await self.packages_repository.get_package_by_id(payload.package_id)
        if package is None or not package.is_active:
            raise BookingValidationError("Please select an available package")
        return package, slot

    async def _create_order(self, booking: Booking, package: Package, attempt: SubmissionAttempt) -> SubmissionResult:
        """CREATING_ORDER step; the booking stays pending if the gateway fails."""
        attempt.advance(SubmissionStateEnum.CREATING_ORDER)
        order = await self.gateway.create_order(
            to_minor_units(package.price),
            package.currency,
            make_receipt(booking.id, self.receipt_max_length),
        )

        try:
            await self.booking_repository.set_payment_order(booking, order.order_id, ordered_at=utc_now())
            await self.booking_repository.commit()
        except SQLAlchemyError as exc:
            await self.booking_repository.rollback()
            logger.exception("Could not store payment order %s for booking %s", order.order_id, booking.id)
            raise PaymentOrderError("Payment setup failed, please retry") from exc

        attempt.advance(SubmissionStateEnum.AWAITING_PAYMENT)
        return SubmissionResult(booking=booking, attempt=attempt, order=order, key_id=self.gateway.key_id)

    async def submit_booking(
        self,
        payload: BookingSubmitRequest,
        identity: Identity | None,
    ) -> SubmissionResult:
        """Run the reservation protocol up to AWAITING_PAYMENT."""
        attempt = SubmissionAttempt()
        try:
            if identity is None:
                raise BookingValidationError("Please log in to book a session")
            actor = identity
            package, slot = await self._validate_submission(payload)

            attempt.advance(SubmissionStateEnum.VALIDATING)
            await self.availability_index.load_occupancy(payload.date, payload.date)
            if self.resolver.is_booked(payload.date, slot):
                raise SlotConflictError("This time slot is already booked")

            attempt.advance(SubmissionStateEnum.CREATING_BOOKING)
            try:
                booking = await self.booking_repository.create_pending_booking(
                    booking_date=payload.date,
                    time=slot,
                    customer_ref=actor.customer_ref,
                    package_id=package.id,
                    full_name=payload.full_name.strip(),
                    email=payload.email.strip(),
                    mobile=payload.mobile.strip(),
                    location_lat=payload.location.lat,
                    location_lng=payload.location.lng,
                )
                await self.booking_repository.commit()
            except SQLAlchemyError as exc:
                await self.booking_repository.rollback()
                logger.warning("Pending booking insert rejected for %s %s: %s", payload.date, slot, exc)
                raise BookingCreateError("Could not reserve this slot, please pick another") from exc

            attempt.booking_id = booking.id
            self.availability_index.invalidate(booking.date)
            result = await self._create_order(booking, package, attempt)
        except AppException as exc:
            attempt.fail(exc.code, exc.message)
            record_submission_outcome(exc.code)
            raise

        record_submission_outcome(result.attempt.state)
        logger.info("Booking %s awaiting payment (order %s)", booking.id, result.order.order_id)
        return result

    async def retry_payment_order(self, booking_id: UUID, identity: Identity | None) -> SubmissionResult:
        """Create a fresh gateway order for a booking still waiting for payment."""
        actor = self._require_identity(identity)
        booking = await self._get_booking(booking_id)
        self._validate_actor_access(booking, actor)
        if booking.status != BookingStatusEnum.PENDING:
            raise AlreadyProcessedError("Booking is no longer awaiting payment")
        if booking.date < utc_now().date():
            raise BookingValidationError("Cannot pay for a date in the past")

        package = await self.packages_repository.get_package_by_id(booking.package_id)
        if package is None:
            raise BookingValidationError("Booked package no longer exists")

        attempt = SubmissionAttempt.resume(booking.id, SubmissionStateEnum.CREATING_BOOKING)
        try:
            result = await self._create_order(booking, package, attempt)
        except AppException as exc:
            attempt.fail(exc.code, exc.message)
            record_submission_outcome(exc.code)
            raise
        record_submission_outcome(result.attempt.state)
        return result

    async def cancel_payment(self, booking_id: UUID, identity: Identity | None) -> SubmissionResult:
        """Customer closed the checkout; the booking is left as it is."""
        actor = self._require_identity(identity)
        booking = await self._get_booking(booking_id)
        self._validate_actor_access(booking, actor)
        if booking.status != BookingStatusEnum.PENDING:
            raise AlreadyProcessedError("Booking is no longer awaiting payment")

        attempt = SubmissionAttempt.resume(booking.id)
        attempt.fail(ABANDONED_REASON, "Payment was cancelled")
        record_submission_outcome(ABANDONED_REASON)
        return SubmissionResult(booking=booking, attempt=attempt)

    async def verify_payment(
        self,
        booking_id: UUID,
        callback: PaymentCallback,
        identity: Identity | None,
    ) -> Booking:
        """Check the gateway callback and move the booking pending -> paid exactly once."""
        attempt = SubmissionAttempt.resume(booking_id)
        try:
            actor = self._require_identity(identity)
            attempt.advance(SubmissionStateEnum.VERIFYING)

            if not verify_signature(self.payment_secret, callback.order_id, callback.payment_id, callback.signature):
                raise SignatureMismatchError("Payment verification failed")

            booking = await self.booking_repository.get_booking_by_id(booking_id)
            if booking is None:
                raise AlreadyProcessedError("Booking is not awaiting payment")
            self._validate_actor_access(booking, actor)
            if booking.status != BookingStatusEnum.PENDING:
                raise AlreadyProcessedError("Booking is not awaiting payment")
            if booking.payment_order_id != callback.order_id:
                raise SignatureMismatchError("Payment does not belong to this booking")

            updated = await self.booking_repository.mark_paid(
                booking.id,
                order_id=callback.order_id,
                payment_id=callback.payment_id,
                signature=callback.signature,
                paid_at=utc_now(),
            )
            if not updated:
                raise AlreadyProcessedError("Booking is not awaiting payment")
            await self.booking_repository.commit()
            attempt.advance(SubmissionStateEnum.CONFIRMED)
        except AppException as exc:
            attempt.fail(exc.code, exc.message)
            record_verification_outcome(exc.code)
            raise

        record_verification_outcome(attempt.state)
        logger.info("Booking %s paid (payment %s)", booking_id, callback.payment_id)

        # A failed notifier rolls the session back and expires ``booking``.
        booking_date = booking.date
        message = f"Payment received for booking {booking_id} on {booking_date.isoformat()} at {booking.time}"
        await self._notify_paid(booking_id, message)
        self.availability_index.invalidate(booking_date)
        return await self._get_booking(booking_id)

    async def _notify_paid(self, booking_id: UUID, message: str) -> None:
        """Fire-and-forget admin notification; the payment is already committed."""
        try:
            await self.notifier.notify(booking_id, message, NotificationTypeEnum.PAYMENT)
        except Exception:
            logger.exception("Failed to notify admins about paid booking %s", booking_id)
            await self.booking_repository.rollback()

    async def list_bookings(
        self,
        actor: Identity,
        status: BookingStatusEnum | None,
        limit: int,
        offset: int,
        mine_only: bool = False,
    ) -> tuple[list[Booking], int]:
        """Customers see their own bookings; admins see all of them."""
        if not actor.is_admin and not mine_only:
            raise UnauthorizedException("Only admin can list all bookings")
        customer_ref = actor.customer_ref if mine_only else None
        return await self.booking_repository.list_bookings(customer_ref, status, limit, offset)

    async def reject_booking(
        self,
        booking_id: UUID,
        payload: BookingRejectRequest,
        actor: Identity,
    ) -> Booking:
        """Reject an occupying booking and free its slot."""
        if not actor.is_admin:
            raise UnauthorizedException("Only admin can reject bookings")

        booking = await self._get_booking(booking_id)
        if booking.status not in OCCUPYING_BOOKING_STATUSES:
            raise ConflictException("Booking is already rejected or expired")

        booking.status = BookingStatusEnum.REJECTED
        booking.rejected_at = utc_now()
        booking.rejection_reason = payload.reason
        await self.booking_repository.save(booking)
        self.availability_index.invalidate(booking.date)
        logger.info("Booking %s rejected by %s", booking.id, actor.customer_ref)
        return booking

    async def accept_booking(self, booking_id: UUID, actor: Identity) -> Booking:
        if not actor.is_admin:
            raise UnauthorizedException("Only admin can accept bookings")

        booking = await self._get_booking(booking_id)
        if booking.status != BookingStatusEnum.PAID:
            raise ConflictException("Only paid booking can be accepted")

        booking.status = BookingStatusEnum.ACCEPTED
        await self.booking_repository.save(booking)
        logger.info("Booking %s accepted by %s", booking.id, actor.customer_ref)
        return booking

    async def expire_stale_pending(self, actor: Identity) -> int:
        """Expire pending bookings whose checkout was never completed."""
        if not actor.is_admin:
            raise UnauthorizedException("Only admin can run pending expiration")
        return await self.expire_pending_holds()

    async def expire_pending_holds(self) -> int:
        cutoff = utc_now() - timedelta(minutes=self.pending_hold_minutes)
        stale = await self.booking_repository.find_stale_pending(cutoff)
        for booking in stale:
            booking.status = BookingStatusEnum.EXPIRED
            await self.booking_repository.save(booking)
            self.availability_index.invalidate(booking.date)
        if stale:
            logger.info("Expired %s stale pending bookings", len(stale))
        return len(stale)


def build_booking_service(session: AsyncSession, gateway: PaymentGateway) -> BookingService:
    return BookingService(
        booking_repository=BookingRepository(session),
        packages_repository=PackagesRepository(session),
        availability_index=build_availability_index(session),
        gateway=gateway,
        notifier=NotificationsService(NotificationsRepository(session)),
    )


async def get_booking_service(
    session: AsyncSession = Depends(get_db_session),
    gateway: RazorpayGateway = Depends(get_payment_gateway),
) -> BookingService:
    """Dependency provider for booking service."""
    return build_booking_service(session, gateway)
