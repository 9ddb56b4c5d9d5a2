from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

import app.modules.booking.service as booking_service_module
from app.core.enums import OCCUPYING_BOOKING_STATUSES, BookingStatusEnum, SubmissionStateEnum
from app.modules.availability.index import AvailabilityIndex
from app.modules.availability.resolver import SlotCatalog
from app.modules.booking.schemas import BookingSubmitRequest, Location, PaymentCallback
from app.modules.booking.service import BookingService
from app.modules.booking.submission import SubmissionAttempt
from app.modules.identity.schemas import Identity
from app.modules.payments.gateway import GatewayOrder, compute_signature, make_receipt
from app.shared.exceptions import (
    AlreadyProcessedError,
    AvailabilityFetchError,
    BookingCreateError,
    BookingValidationError,
    ConflictException,
    PaymentOrderError,
    SignatureMismatchError,
    SlotConflictError,
    UnauthorizedException,
)

SECRET = "s3cr3t"
FIXED_NOW = datetime(2024, 5, 30, 12, 0, tzinfo=UTC)


@dataclass
class FakePackage:
    id: UUID
    price: Decimal
    currency: str = "INR"
    is_active: bool = True


@dataclass
class FakeBooking:
    id: UUID
    date: date
    time: str
    status: BookingStatusEnum
    customer_ref: str
    package_id: UUID
    full_name: str = "Asha Rao"
    email: str = "asha@example.com"
    mobile: str = "+91 90000 00000"
    location_lat: float = 12.97
    location_lng: float = 77.59
    payment_order_id: str | None = None
    order_created_at: datetime | None = None
    payment_id: str | None = None
    payment_signature: str | None = None
    paid_at: datetime | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime = FIXED_NOW


class FakeBookingRepository:
    def __init__(self, bookings: list[FakeBooking] | None = None) -> None:
        self._bookings: dict[UUID, FakeBooking] = {booking.id: booking for booking in bookings or []}
        self.fail_reads = False
        self.reject_inserts = False
        self.commits = 0
        self.rollbacks = 0

    async def list_occupying_slots(self, range_start: date, range_end: date) -> list[tuple[date, str]]:
        if self.fail_reads:
            raise OperationalError("SELECT", {}, Exception("connection reset"))
        return [
            (booking.date, booking.time)
            for booking in self._bookings.values()
            if booking.status in OCCUPYING_BOOKING_STATUSES and range_start <= booking.date <= range_end
        ]

    async def create_pending_booking(self, *, booking_date: date, time: str, **fields) -> FakeBooking:
        taken = any(
            booking.date == booking_date and booking.time == time and booking.status in OCCUPYING_BOOKING_STATUSES
            for booking in self._bookings.values()
        )
        if self.reject_inserts or taken:
            raise IntegrityError("INSERT", {}, Exception("uq_bookings_occupied_slot"))
        booking = FakeBooking(
            id=uuid4(),
            date=booking_date,
            time=time,
            status=BookingStatusEnum.PENDING,
            **fields,
        )
        self._bookings[booking.id] = booking
        return booking

    async def get_booking_by_id(self, booking_id: UUID) -> FakeBooking | None:
        return self._bookings.get(booking_id)

    async def set_payment_order(self, booking: FakeBooking, order_id: str, *, ordered_at: datetime) -> FakeBooking:
        booking.payment_order_id = order_id
        booking.order_created_at = ordered_at
        return booking

    async def mark_paid(
        self,
        booking_id: UUID,
        *,
        order_id: str,
        payment_id: str,
        signature: str,
        paid_at: datetime,
    ) -> bool:
        booking = self._bookings.get(booking_id)
        if booking is None or booking.status != BookingStatusEnum.PENDING:
            return False
        booking.status = BookingStatusEnum.PAID
        booking.payment_order_id = order_id
        booking.payment_id = payment_id
        booking.payment_signature = signature
        booking.paid_at = paid_at
        return True

    async def save(self, booking: FakeBooking) -> FakeBooking:
        self._bookings[booking.id] = booking
        return booking

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1

    @property
    def bookings(self) -> list[FakeBooking]:
        return list(self._bookings.values())


class FakePackagesRepository:
    def __init__(self, packages: list[FakePackage]) -> None:
        self._packages = {package.id: package for package in packages}

    async def get_package_by_id(self, package_id: UUID) -> FakePackage | None:
        return self._packages.get(package_id)


@dataclass
class FakeGateway:
    key_id: str = "rzp_test_key"
    fail: bool = False
    orders: list[GatewayOrder] = field(default_factory=list)

    async def create_order(self, amount: int, currency: str, receipt: str) -> GatewayOrder:
        if self.fail:
            raise PaymentOrderError("Payment setup failed, please retry")
        order = GatewayOrder(
            order_id=f"order_{len(self.orders) + 1}",
            amount=amount,
            currency=currency,
            receipt=receipt,
        )
        self.orders.append(order)
        return order


@dataclass
class FakeNotifier:
    fail: bool = False
    messages: list[tuple[UUID, str]] = field(default_factory=list)

    async def notify(self, booking_id: UUID, message: str, notification_type=None) -> None:
        if self.fail:
            raise RuntimeError("notifications table is locked")
        self.messages.append((booking_id, message))


@dataclass
class Harness:
    service: BookingService
    repository: FakeBookingRepository
    index: AvailabilityIndex
    gateway: FakeGateway
    notifier: FakeNotifier
    package: FakePackage


@pytest.fixture(autouse=True)
def fixed_clock(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(booking_service_module, "utc_now", lambda: FIXED_NOW)


def make_harness(bookings: list[FakeBooking] | None = None, package_active: bool = True) -> Harness:
    package = FakePackage(id=uuid4(), price=Decimal("500.00"), is_active=package_active)
    repository = FakeBookingRepository(bookings)
    index = AvailabilityIndex(repository)
    gateway = FakeGateway()
    notifier = FakeNotifier()
    service = BookingService(
        booking_repository=repository,
        packages_repository=FakePackagesRepository([package]),
        availability_index=index,
        gateway=gateway,
        notifier=notifier,
        catalog=SlotCatalog(),
        payment_secret=SECRET,
        receipt_max_length=40,
        pending_hold_minutes=30,
    )
    return Harness(service, repository, index, gateway, notifier, package)


def make_request(package_id: UUID, **overrides) -> BookingSubmitRequest:
    payload = {
        "package_id": package_id,
        "date": date(2024, 6, 1),
        "time": "15:00",
        "full_name": "Asha Rao",
        "email": "asha@example.com",
        "mobile": "+91 90000 00000",
        "location": Location(lat=12.97, lng=77.59),
    }
    payload.update(overrides)
    return BookingSubmitRequest(**payload)


def signed_callback(order_id: str, payment_id: str = "pay_1") -> PaymentCallback:
    return PaymentCallback(
        order_id=order_id,
        payment_id=payment_id,
        signature=compute_signature(SECRET, order_id, payment_id),
    )


CUSTOMER = Identity(customer_ref="customer-1")


@pytest.mark.asyncio
async def test_submit_reserves_pending_booking_and_opens_order() -> None:
    harness = make_harness()

    result = await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)

    booking = result.booking
    assert result.attempt.state == SubmissionStateEnum.AWAITING_PAYMENT
    assert result.attempt.history == [
        SubmissionStateEnum.INIT,
        SubmissionStateEnum.VALIDATING,
        SubmissionStateEnum.CREATING_BOOKING,
        SubmissionStateEnum.CREATING_ORDER,
        SubmissionStateEnum.AWAITING_PAYMENT,
    ]
    assert booking.status == BookingStatusEnum.PENDING
    assert booking.customer_ref == "customer-1"
    assert booking.payment_order_id == "order_1"
    assert result.order.amount == 50000
    assert result.order.currency == "INR"
    assert result.order.receipt == make_receipt(booking.id)
    assert result.key_id == "rzp_test_key"
    assert harness.repository.commits == 2


@pytest.mark.asyncio
async def test_booked_afternoon_slot_blocks_only_that_time() -> None:
    package_id = uuid4()
    existing = FakeBooking(
        id=uuid4(),
        date=date(2024, 6, 1),
        time="14:00",
        status=BookingStatusEnum.PAID,
        customer_ref="someone-else",
        package_id=package_id,
    )
    harness = make_harness([existing])

    with pytest.raises(SlotConflictError):
        await harness.service.submit_booking(make_request(harness.package.id, time="14:00"), CUSTOMER)
    assert harness.gateway.orders == []
    assert len(harness.repository.bookings) == 1

    result = await harness.service.submit_booking(make_request(harness.package.id, time="15:00"), CUSTOMER)
    assert result.booking.time == "15:00"


@pytest.mark.asyncio
async def test_unpadded_time_is_normalized_before_conflict_check() -> None:
    existing = FakeBooking(
        id=uuid4(),
        date=date(2024, 6, 1),
        time="09:00",
        status=BookingStatusEnum.PENDING,
        customer_ref="someone-else",
        package_id=uuid4(),
    )
    harness = make_harness([existing])

    with pytest.raises(SlotConflictError):
        await harness.service.submit_booking(make_request(harness.package.id, time="9:00"), CUSTOMER)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"package_id": None},
        {"full_name": "   "},
        {"email": "not-an-email"},
        {"mobile": ""},
        {"location": None},
        {"date": None},
        {"time": None},
        {"date": date(2024, 5, 29)},
        {"time": "19:00"},
        {"time": "09:30"},
        {"package_id": uuid4()},
    ],
)
async def test_invalid_submission_fails_without_side_effects(overrides: dict) -> None:
    harness = make_harness()
    payload = make_request(harness.package.id, **overrides)

    with pytest.raises(BookingValidationError):
        await harness.service.submit_booking(payload, CUSTOMER)

    assert harness.repository.bookings == []
    assert harness.gateway.orders == []
    assert harness.index.snapshot is None


@pytest.mark.asyncio
async def test_submission_requires_identity_and_active_package() -> None:
    harness = make_harness(package_active=False)

    with pytest.raises(BookingValidationError):
        await harness.service.submit_booking(make_request(harness.package.id), None)
    with pytest.raises(BookingValidationError):
        await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)
    assert harness.repository.bookings == []


@pytest.mark.asyncio
async def test_availability_failure_blocks_submission() -> None:
    harness = make_harness()
    harness.repository.fail_reads = True

    with pytest.raises(AvailabilityFetchError):
        await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)
    assert harness.repository.bookings == []
    assert harness.gateway.orders == []


@pytest.mark.asyncio
async def test_store_rejection_becomes_booking_create_error() -> None:
    harness = make_harness()
    harness.repository.reject_inserts = True

    with pytest.raises(BookingCreateError):
        await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)
    assert harness.repository.rollbacks == 1
    assert harness.gateway.orders == []


@pytest.mark.asyncio
async def test_gateway_failure_leaves_booking_pending_and_retry_recovers() -> None:
    harness = make_harness()
    harness.gateway.fail = True

    with pytest.raises(PaymentOrderError):
        await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)

    [booking] = harness.repository.bookings
    assert booking.status == BookingStatusEnum.PENDING
    assert booking.payment_order_id is None

    harness.gateway.fail = False
    result = await harness.service.retry_payment_order(booking.id, CUSTOMER)

    assert result.attempt.state == SubmissionStateEnum.AWAITING_PAYMENT
    assert booking.payment_order_id == "order_1"


@pytest.mark.asyncio
async def test_valid_callback_marks_booking_paid_and_notifies() -> None:
    harness = make_harness()
    submitted = await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)

    booking = await harness.service.verify_payment(
        submitted.booking.id,
        signed_callback(submitted.order.order_id),
        CUSTOMER,
    )

    assert booking.status == BookingStatusEnum.PAID
    assert booking.payment_id == "pay_1"
    assert booking.paid_at == FIXED_NOW
    assert len(harness.notifier.messages) == 1
    assert "15:00" in harness.notifier.messages[0][1]


@pytest.mark.asyncio
async def test_random_callbacks_never_mark_booking_paid() -> None:
    harness = make_harness()
    submitted = await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)
    rng = random.Random(7)

    for _ in range(50):
        callback = PaymentCallback(
            order_id=rng.choice([submitted.order.order_id, f"order_{rng.randint(2, 999)}"]),
            payment_id=f"pay_{rng.randint(1, 10_000)}",
            signature=f"{rng.getrandbits(256):064x}",
        )
        with pytest.raises(SignatureMismatchError):
            await harness.service.verify_payment(submitted.booking.id, callback, CUSTOMER)

    assert submitted.booking.status == BookingStatusEnum.PENDING
    assert harness.notifier.messages == []


@pytest.mark.asyncio
async def test_signed_callback_for_another_order_is_rejected() -> None:
    harness = make_harness()
    submitted = await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)

    with pytest.raises(SignatureMismatchError):
        await harness.service.verify_payment(submitted.booking.id, signed_callback("order_999"), CUSTOMER)
    assert submitted.booking.status == BookingStatusEnum.PENDING


@pytest.mark.asyncio
async def test_replayed_callback_is_already_processed() -> None:
    harness = make_harness()
    submitted = await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)
    callback = signed_callback(submitted.order.order_id)

    await harness.service.verify_payment(submitted.booking.id, callback, CUSTOMER)
    with pytest.raises(AlreadyProcessedError):
        await harness.service.verify_payment(submitted.booking.id, callback, CUSTOMER)

    assert submitted.booking.status == BookingStatusEnum.PAID
    assert len(harness.notifier.messages) == 1


@pytest.mark.asyncio
async def test_lost_race_on_conditional_update_is_already_processed(monkeypatch: pytest.MonkeyPatch) -> None:
    harness = make_harness()
    submitted = await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)

    async def _row_already_paid(*args, **kwargs) -> bool:
        return False

    monkeypatch.setattr(harness.repository, "mark_paid", _row_already_paid)

    with pytest.raises(AlreadyProcessedError):
        await harness.service.verify_payment(
            submitted.booking.id,
            signed_callback(submitted.order.order_id),
            CUSTOMER,
        )
    assert harness.notifier.messages == []


@pytest.mark.asyncio
async def test_notifier_failure_does_not_revert_payment() -> None:
    harness = make_harness()
    submitted = await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)
    harness.notifier.fail = True

    booking = await harness.service.verify_payment(
        submitted.booking.id,
        signed_callback(submitted.order.order_id),
        CUSTOMER,
    )

    assert booking.status == BookingStatusEnum.PAID
    assert harness.repository.rollbacks == 1


@pytest.mark.asyncio
async def test_other_customer_cannot_verify_booking() -> None:
    harness = make_harness()
    submitted = await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)

    with pytest.raises(UnauthorizedException):
        await harness.service.verify_payment(
            submitted.booking.id,
            signed_callback(submitted.order.order_id),
            Identity(customer_ref="customer-2"),
        )
    assert submitted.booking.status == BookingStatusEnum.PENDING


@pytest.mark.asyncio
async def test_cancelled_checkout_fails_attempt_and_keeps_booking() -> None:
    harness = make_harness()
    submitted = await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)

    result = await harness.service.cancel_payment(submitted.booking.id, CUSTOMER)

    assert result.attempt.state == SubmissionStateEnum.FAILED
    assert result.attempt.failure_code == "abandoned"
    assert result.booking.status == BookingStatusEnum.PENDING


@pytest.mark.asyncio
async def test_only_one_of_two_submissions_for_same_slot_wins() -> None:
    harness = make_harness()
    first = await harness.service.submit_booking(make_request(harness.package.id), CUSTOMER)

    with pytest.raises(SlotConflictError):
        await harness.service.submit_booking(
            make_request(harness.package.id),
            Identity(customer_ref="customer-2"),
        )

    occupying = [booking for booking in harness.repository.bookings if booking.status in OCCUPYING_BOOKING_STATUSES]
    assert occupying == [first.booking]


def test_attempt_rejects_skipped_steps() -> None:
    attempt = SubmissionAttempt()

    with pytest.raises(ConflictException):
        attempt.advance(SubmissionStateEnum.AWAITING_PAYMENT)

    attempt.fail("validation_error", "Please select a package")
    assert attempt.is_terminal
    with pytest.raises(ConflictException):
        attempt.advance(SubmissionStateEnum.VALIDATING)
