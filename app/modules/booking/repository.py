"""Booking repository layer."""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import OCCUPYING_BOOKING_STATUSES, BookingStatusEnum
from app.modules.booking.models import Booking


class BookingRepository:
    """DB operations for booking domain.

    ``create_pending_booking`` and ``mark_paid`` are the only writes that can
    make a slot occupied or a booking paid.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_occupying_slots(self, range_start: date, range_end: date) -> list[tuple[date, str]]:
        stmt = select(Booking.date, Booking.time).where(
            Booking.date >= range_start,
            Booking.date <= range_end,
            Booking.status.in_(sorted(OCCUPYING_BOOKING_STATUSES)),
        )
        rows = (await self.session.execute(stmt)).all()
        return [(row_date, row_time) for row_date, row_time in rows]

    async def create_pending_booking(
        self,
        *,
        booking_date: date,
        time: str,
        customer_ref: str,
        package_id: UUID,
        full_name: str,
        email: str,
        mobile: str,
        location_lat: float,
        location_lng: float,
    ) -> Booking:
        booking = Booking(
            date=booking_date,
            time=time,
            status=BookingStatusEnum.PENDING,
            customer_ref=customer_ref,
            package_id=package_id,
            full_name=full_name,
            email=email,
            mobile=mobile,
            location_lat=location_lat,
            location_lng=location_lng,
        )
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        stmt = select(Booking).where(Booking.id == booking_id)
        return await self.session.scalar(stmt)

    async def set_payment_order(self, booking: Booking, order_id: str, *, ordered_at: datetime) -> Booking:
        booking.payment_order_id = order_id
        booking.order_created_at = ordered_at
        await self.session.flush()
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
        """Conditional pending -> paid update; False when the row was not pending."""
        stmt = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == BookingStatusEnum.PENDING)
            .values(
                status=BookingStatusEnum.PAID,
                payment_order_id=order_id,
                payment_id=payment_id,
                payment_signature=signature,
                paid_at=paid_at,
                updated_at=paid_at,
            )
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def list_bookings(
        self,
        customer_ref: str | None,
        status: BookingStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Booking], int]:
        base_stmt: Select[tuple[Booking]] = select(Booking)
        if customer_ref is not None:
            base_stmt = base_stmt.where(Booking.customer_ref == customer_ref)
        if status is not None:
            base_stmt = base_stmt.where(Booking.status == status)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = base_stmt.order_by(Booking.created_at.desc()).limit(limit).offset(offset)
        items = (await self.session.scalars(stmt)).all()
        return items, total

    async def find_stale_pending(self, held_before: datetime) -> list[Booking]:
        """Pending rows whose latest checkout (or creation, if none) is at or before ``held_before``."""
        stmt = select(Booking).where(
            Booking.status == BookingStatusEnum.PENDING,
            func.coalesce(Booking.order_created_at, Booking.created_at) <= held_before,
        )
        return (await self.session.scalars(stmt)).all()

    async def save(self, booking: Booking) -> Booking:
        await self.session.flush()
        return booking

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
