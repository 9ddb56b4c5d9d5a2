"""Availability read-side service."""

from __future__ import annotations

from datetime import date

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import get_db_session
from app.modules.availability.index import AvailabilityIndex
from app.modules.availability.resolver import SlotCatalog, SlotResolver
from app.modules.availability.schemas import (
    DayMarkerRead,
    DayScheduleRead,
    DaySlotRead,
    MonthAvailabilityRead,
    SlotCatalogRead,
)
from app.modules.booking.repository import BookingRepository
from app.shared.exceptions import BookingValidationError

settings = get_settings()


class AvailabilityService:
    """Month calendar and day grid built from a fresh index per request."""

    def __init__(self, index: AvailabilityIndex, catalog: SlotCatalog) -> None:
        self.index = index
        self.resolver = SlotResolver(index, catalog)

    def get_catalog(self) -> SlotCatalogRead:
        catalog = self.resolver.catalog
        return SlotCatalogRead(
            start_hour=catalog.start_hour,
            end_hour=catalog.end_hour,
            step_minutes=catalog.step_minutes,
            slots=list(catalog.labels()),
        )

    async def get_month(self, year: int, month: int) -> MonthAvailabilityRead:
        """Load occupancy for a month and return per-day markers."""
        if not 1 <= month <= 12:
            raise BookingValidationError("Month must be between 1 and 12")
        await self.index.load_month(year, month)
        snapshot = self.index.snapshot
        markers = self.resolver.month_markers(year, month)
        return MonthAvailabilityRead(
            year=year,
            month=month,
            loaded_at=snapshot.loaded_at,
            days=[
                DayMarkerRead(
                    day=marker.day,
                    has_booking=marker.has_booking,
                    booked_times=list(marker.booked_times),
                )
                for marker in markers
            ],
        )

    async def get_day_schedule(self, day: date, selected_time: str | None) -> DayScheduleRead:
        """Load the day's month and render its slot grid."""
        await self.index.load_month(day.year, day.month)
        return DayScheduleRead(
            day=day,
            has_booking=self.resolver.day_has_any_booking(day),
            slots=[
                DaySlotRead(slot=item.slot, state=item.state)
                for item in self.resolver.list_day_schedule(day, selected_time)
            ],
        )


def build_availability_index(session: AsyncSession) -> AvailabilityIndex:
    return AvailabilityIndex(
        BookingRepository(session),
        max_range_days=settings.availability_max_range_days,
    )


async def get_availability_service(session: AsyncSession = Depends(get_db_session)) -> AvailabilityService:
    """Dependency provider for availability service."""
    return AvailabilityService(build_availability_index(session), SlotCatalog.from_settings(settings))
