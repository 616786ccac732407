"""
Slot Generation

Cuts availability windows into fixed-length candidate slots. This is a pure
function of (windows, bookings, now, lead time): it reads no store and keeps
no state, so the same call always yields the same slots.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Tuple

from .availability import TimeWindow


@dataclass(frozen=True)
class Slot:
    provider_id: str
    start: datetime
    duration_minutes: int

    @property
    def end(self) -> datetime:
        return self.start + timedelta(minutes=self.duration_minutes)


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def generate_slots(
    provider_id: str,
    windows: Iterable[TimeWindow],
    duration_minutes: int,
    lead_time_hours: float,
    now: datetime,
    booked_intervals: Iterable[Tuple[datetime, datetime]],
) -> List[Slot]:
    """
    Generate bookable slots.

    Algorithm:
        1. For each window step a cursor from window.start in increments of
           duration_minutes; a trailing partial period is dropped
        2. Drop slots starting before now + lead_time_hours
        3. Drop slots intersecting any booked [start, end) interval
        4. Return sorted by start
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")

    step = timedelta(minutes=duration_minutes)
    cutoff = now + timedelta(hours=lead_time_hours)
    booked = list(booked_intervals)

    slots = []
    for window in windows:
        cursor = window.start
        while cursor + step <= window.end:
            slot_end = cursor + step
            if cursor >= cutoff and not any(
                intervals_overlap(cursor, slot_end, b_start, b_end) for b_start, b_end in booked
            ):
                slots.append(Slot(provider_id, cursor, duration_minutes))
            cursor = slot_end

    slots.sort(key=lambda s: s.start)
    return slots
