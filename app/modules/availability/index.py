"""Availability index: which (date, time) slots are already taken.

The index is a read-and-group projection over the booking store. It keeps one
snapshot for the active date range in memory, never persists it, and rebuilds
it on demand (month switch, change-feed trigger, after a confirmed booking).

A failed load leaves the index with *no* snapshot, so callers see "unknown"
rather than an empty, fully available calendar.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError

from app.core.enums import BookingChangeTypeEnum
from app.core.metrics import record_availability_load
from app.shared.exceptions import AvailabilityFetchError, BookingValidationError
from app.shared.utils import month_bounds, utc_now

logger = logging.getLogger(__name__)

_SLOT_LABEL_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?$")


def normalize_slot_label(value: Any) -> str | None:
    """Return canonical ``HH:MM`` label, or None when value is not a clock time."""
    if not isinstance(value, str):
        return None
    match = _SLOT_LABEL_RE.match(value.strip())
    if match is None:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return f"{hour:02d}:{minute:02d}"


class OccupancySource(Protocol):
    """Store contract: occupying (date, time) pairs inside an inclusive range."""

    async def list_occupying_slots(self, range_start: date, range_end: date) -> Iterable[tuple[Any, Any]]:
        """Return raw (date, time) rows for occupying bookings."""


@dataclass(frozen=True, slots=True)
class BookingChangeEvent:
    """One row change observed on the bookings change feed."""

    change_type: BookingChangeTypeEnum
    date: date | None


@dataclass(frozen=True, slots=True)
class AvailabilitySnapshot:
    range_start: date
    range_end: date
    occupancy: Mapping[date, frozenset[str]]
    loaded_at: datetime = field(default_factory=utc_now)

    def covers(self, day: date) -> bool:
        return self.range_start <= day <= self.range_end

    def slots_for(self, day: date) -> frozenset[str]:
        return self.occupancy.get(day, frozenset())


class AvailabilityIndex:
    """Cached occupancy for one active date range."""

    def __init__(
        self,
        source: OccupancySource,
        *,
        max_range_days: int = 62,
        now_provider: Callable[[], datetime] = utc_now,
    ) -> None:
        self.source = source
        self.max_range_days = max_range_days
        self.now_provider = now_provider
        self._snapshot: AvailabilitySnapshot | None = None
        self._active_range: tuple[date, date] | None = None

    @property
    def snapshot(self) -> AvailabilitySnapshot | None:
        return self._snapshot

    @property
    def active_range(self) -> tuple[date, date] | None:
        return self._active_range

    async def load_occupancy(self, range_start: date, range_end: date) -> Mapping[date, frozenset[str]]:
        """Load occupied slots for an inclusive range and make it the active range."""
        if range_end < range_start:
            raise BookingValidationError("Range end must not be before range start")
        if (range_end - range_start).days + 1 > self.max_range_days:
            raise BookingValidationError(
                f"Availability range must not exceed {self.max_range_days} days",
            )

        self._active_range = (range_start, range_end)
        try:
            rows = await self.source.list_occupying_slots(range_start, range_end)
        except (SQLAlchemyError, OSError) as exc:
            self._snapshot = None
            record_availability_load("error")
            logger.warning(
                "Occupancy load failed for %s..%s: %s",
                range_start,
                range_end,
                exc,
            )
            raise AvailabilityFetchError("Calendar is unavailable, please try again later") from exc

        occupancy = self._group(rows, range_start, range_end)
        self._snapshot = AvailabilitySnapshot(
            range_start=range_start,
            range_end=range_end,
            occupancy=MappingProxyType(occupancy),
            loaded_at=self.now_provider(),
        )
        record_availability_load("ok")
        return self._snapshot.occupancy

    async def load_month(self, year: int, month: int) -> Mapping[date, frozenset[str]]:
        range_start, range_end = month_bounds(year, month)
        return await self.load_occupancy(range_start, range_end)

    async def refresh(self) -> Mapping[date, frozenset[str]]:
        """Reload the active range, replacing the cached snapshot."""
        if self._active_range is None:
            raise AvailabilityFetchError("No availability range has been loaded yet")
        return await self.load_occupancy(*self._active_range)

    def invalidate(self, day: date | None = None) -> bool:
        """Drop the snapshot if it covers ``day`` (any snapshot when day is None)."""
        if self._snapshot is None:
            return False
        if day is not None and not self._snapshot.covers(day):
            return False
        self._snapshot = None
        return True

    async def handle_change(self, event: BookingChangeEvent) -> bool:
        """Change-feed trigger: refresh when the changed date is in the active range."""
        if self._active_range is None or event.date is None:
            return False
        range_start, range_end = self._active_range
        if not range_start <= event.date <= range_end:
            return False
        logger.debug("Booking %s on %s, refreshing availability", event.change_type, event.date)
        await self.refresh()
        return True

    @staticmethod
    def _group(
        rows: Iterable[tuple[Any, Any]],
        range_start: date,
        range_end: date,
    ) -> dict[date, frozenset[str]]:
        grouped: dict[date, set[str]] = {}
        skipped = 0
        for row_date, row_time in rows:
            # datetime is a date subclass; a timestamp in a date column is malformed
            if not isinstance(row_date, date) or isinstance(row_date, datetime):
                skipped += 1
                continue
            label = normalize_slot_label(row_time)
            if label is None or not range_start <= row_date <= range_end:
                skipped += 1
                continue
            grouped.setdefault(row_date, set()).add(label)

        if skipped:
            logger.warning("Skipped %d malformed booking rows while grouping occupancy", skipped)
        return {day: frozenset(times) for day, times in grouped.items()}
