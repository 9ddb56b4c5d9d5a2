"""Availability API router."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query

from app.modules.availability.schemas import DayScheduleRead, MonthAvailabilityRead, SlotCatalogRead
from app.modules.availability.service import AvailabilityService, get_availability_service

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("/catalog", response_model=SlotCatalogRead)
async def read_slot_catalog(
    service: AvailabilityService = Depends(get_availability_service),
) -> SlotCatalogRead:
    """Return configured business-hour slots."""
    return service.get_catalog()


@router.get("/month", response_model=MonthAvailabilityRead)
async def read_month_availability(
    year: int = Query(ge=2000, le=2100),
    month: int = Query(ge=1, le=12),
    service: AvailabilityService = Depends(get_availability_service),
) -> MonthAvailabilityRead:
    """Calendar day markers for a month."""
    return await service.get_month(year, month)


@router.get("/days/{day}/schedule", response_model=DayScheduleRead)
async def read_day_schedule(
    day: date,
    selected: str | None = Query(default=None, max_length=8),
    service: AvailabilityService = Depends(get_availability_service),
) -> DayScheduleRead:
    """Slot grid for one day."""
    return await service.get_day_schedule(day, selected)
