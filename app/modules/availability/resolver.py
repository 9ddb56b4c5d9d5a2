"""Slot catalog and slot resolution over an availability snapshot."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, timedelta

from app.core.config import Settings
from app.core.enums import SlotStateEnum
from app.modules.availability.index import AvailabilityIndex, normalize_slot_label
from app.shared.exceptions import AvailabilityFetchError
from app.shared.utils import month_bounds


@dataclass(frozen=True, slots=True)
class SlotCatalog:
    """Business-day slot grid; ``end_hour`` is the last bookable start."""

    start_hour: int = 9
    end_hour: int = 18
    step_minutes: int = 60

    def __post_init__(self) -> None:
        if not 0 <= self.start_hour <= self.end_hour <= 23:
            raise ValueError("Slot catalog hours must satisfy 0 <= start <= end <= 23")
        if self.step_minutes <= 0:
            raise ValueError("Slot step must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> SlotCatalog:
        return cls(
            start_hour=settings.slot_start_hour,
            end_hour=settings.slot_end_hour,
            step_minutes=settings.slot_step_minutes,
        )

    def labels(self) -> tuple[str, ...]:
        first = self.start_hour * 60
        last = self.end_hour * 60
        return tuple(
            f"{minute // 60:02d}:{minute % 60:02d}"
            for minute in range(first, last + 1, self.step_minutes)
        )

    def __len__(self) -> int:
        return len(self.labels())

    def __contains__(self, label: object) -> bool:
        return normalize_slot_label(label) in self.labels()


@dataclass(frozen=True, slots=True)
class DaySlot:
    slot: str
    state: SlotStateEnum


@dataclass(frozen=True, slots=True)
class DayMarker:
    day: date
    has_booking: bool
    booked_times: tuple[str, ...]


class SlotResolver:
    """Answer slot questions against whatever snapshot the index holds now."""

    def __init__(self, index: AvailabilityIndex, catalog: SlotCatalog) -> None:
        self.index = index
        self.catalog = catalog

    def is_loaded(self, day: date) -> bool:
        snapshot = self.index.snapshot
        return snapshot is not None and snapshot.covers(day)

    def is_booked(self, day: date, time: str) -> bool:
        """True iff ``time`` is occupied on ``day``.

        Raises AvailabilityFetchError for dates outside the loaded range so an
        unknown calendar is never mistaken for an empty one.
        """
        snapshot = self.index.snapshot
        if snapshot is None or not snapshot.covers(day):
            raise AvailabilityFetchError(f"Availability for {day.isoformat()} is not loaded")
        label = normalize_slot_label(time)
        return label is not None and label in snapshot.slots_for(day)

    def day_has_any_booking(self, day: date) -> bool:
        snapshot = self.index.snapshot
        if snapshot is None or not snapshot.covers(day):
            return False
        return bool(snapshot.slots_for(day))

    def list_day_schedule(self, day: date, selected_time: str | None = None) -> Iterator[DaySlot]:
        """Yield every catalog slot for ``day`` tagged booked/selected/available.

        Outside the loaded range every slot is ``unknown``.
        """
        snapshot = self.index.snapshot
        loaded = snapshot is not None and snapshot.covers(day)
        booked = snapshot.slots_for(day) if loaded else frozenset()
        selected = normalize_slot_label(selected_time)

        for slot in self.catalog.labels():
            if not loaded:
                yield DaySlot(slot=slot, state=SlotStateEnum.UNKNOWN)
            elif slot in booked:
                yield DaySlot(slot=slot, state=SlotStateEnum.BOOKED)
            elif slot == selected:
                yield DaySlot(slot=slot, state=SlotStateEnum.SELECTED)
            else:
                yield DaySlot(slot=slot, state=SlotStateEnum.AVAILABLE)

    def month_markers(self, year: int, month: int) -> list[DayMarker]:
        first_day, last_day = month_bounds(year, month)
        snapshot = self.index.snapshot
        markers: list[DayMarker] = []
        day = first_day
        while day <= last_day:
            booked = snapshot.slots_for(day) if snapshot is not None and snapshot.covers(day) else frozenset()
            markers.append(
                DayMarker(day=day, has_booking=bool(booked), booked_times=tuple(sorted(booked))),
            )
            day += timedelta(days=1)
        return markers
