"""Booking ORM models."""

from __future__ import annotations

import datetime as dt
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, DateTime, Enum as SAEnum, Float, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin
from app.core.enums import BookingStatusEnum

if TYPE_CHECKING:
    from app.modules.packages.models import Package


class Booking(BaseModelMixin, Base):
    """Studio session reservation."""

    __tablename__ = "bookings"
    __table_args__ = (
        # One occupying booking per (date, time); rejected/expired rows free the slot.
        Index(
            "uq_bookings_occupied_slot",
            "date",
            "time",
            unique=True,
            postgresql_where=text("status IN ('pending', 'paid', 'accepted')"),
            sqlite_where=text("status IN ('pending', 'paid', 'accepted')"),
        ),
        Index("ix_bookings_date_status", "date", "status"),
    )

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[str] = mapped_column(String(5), nullable=False)
    status: Mapped[BookingStatusEnum] = mapped_column(
        SAEnum(BookingStatusEnum, name="booking_status_enum", native_enum=False),
        default=BookingStatusEnum.PENDING,
        nullable=False,
        index=True,
    )

    customer_ref: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    package_id: Mapped[UUID] = mapped_column(
        ForeignKey("packages.id", ondelete="RESTRICT"),
        nullable=False,
    )

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    mobile: Mapped[str] = mapped_column(String(32), nullable=False)
    location_lat: Mapped[float] = mapped_column(Float, nullable=False)
    location_lng: Mapped[float] = mapped_column(Float, nullable=False)

    payment_order_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    # Start of the current checkout; the pending hold is measured from here.
    order_created_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    payment_signature: Mapped[str | None] = mapped_column(String(128), nullable=True)
    paid_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(String(512), nullable=True)

    package: Mapped[Package] = relationship(back_populates="bookings")
