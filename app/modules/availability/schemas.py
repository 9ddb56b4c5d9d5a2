"""Availability schemas."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel

from app.core.enums import SlotStateEnum


class SlotCatalogRead(BaseModel):
    start_hour: int
    end_hour: int
    step_minutes: int
    slots: list[str]


class DaySlotRead(BaseModel):
    slot: str
    state: SlotStateEnum


class DayScheduleRead(BaseModel):
    """Full slot grid for one day."""

    day: date
    has_booking: bool
    slots: list[DaySlotRead]


class DayMarkerRead(BaseModel):
    day: date
    has_booking: bool
    booked_times: list[str]


class MonthAvailabilityRead(BaseModel):
    """Calendar markers for one month."""

    year: int
    month: int
    loaded_at: datetime
    days: list[DayMarkerRead]
