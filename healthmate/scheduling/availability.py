"""
Availability windows

Turns a provider's availability rules into concrete windows for one date:
- Recurring rules repeat every week on their weekday (0 = Monday)
- An exception applies to exactly one calendar date and replaces the
  recurring rules for that date; an unavailable exception closes the day
"""

from dataclasses import dataclass
from datetime import datetime, date, time, timedelta
from enum import Enum
from typing import Iterable, List, Union


class RuleKind(str, Enum):
    RECURRING = "recurring"
    EXCEPTION = "exception"


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval [start, end)."""
    start: datetime
    end: datetime

    def contains(self, start: datetime, end: datetime) -> bool:
        return self.start <= start and end <= self.end


def to_time(value: Union[time, timedelta, str]) -> time:
    """
    Convert the time formats the store may hand back into datetime.time.

    Some drivers return TIME columns as a timedelta since midnight.
    """
    if isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        return (datetime.min + value).time()
    if isinstance(value, str):
        return time.fromisoformat(value)
    raise ValueError(f"Cannot convert {type(value)} to time")


def resolve_windows(rules: Iterable, target_date: date) -> List[TimeWindow]:
    """
    Windows open on target_date, merged and sorted by start.

    Algorithm:
        1. Collect the exceptions dated target_date
        2. If any exists, use exceptions exclusively; an unavailable
           exception yields no windows at all
        3. Otherwise use recurring rules whose weekday matches
        4. Merge overlapping/adjacent windows
    """
    rules = list(rules)
    exceptions = [
        r for r in rules
        if r.kind == RuleKind.EXCEPTION and r.exception_date == target_date
    ]

    if exceptions:
        if any(not r.is_available for r in exceptions):
            return []
        selected = exceptions
    else:
        weekday = target_date.weekday()
        selected = [
            r for r in rules
            if r.kind == RuleKind.RECURRING and r.weekday == weekday and r.is_available
        ]

    windows = []
    for rule in selected:
        if rule.start_time is None or rule.end_time is None:
            continue
        start = datetime.combine(target_date, to_time(rule.start_time))
        end = datetime.combine(target_date, to_time(rule.end_time))
        if start < end:
            windows.append(TimeWindow(start, end))

    return merge_windows(windows)


def merge_windows(windows: List[TimeWindow]) -> List[TimeWindow]:
    """Join overlapping or touching windows."""
    if not windows:
        return []

    ordered = sorted(windows, key=lambda w: w.start)
    merged = [ordered[0]]

    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = TimeWindow(last.start, current.end)
        else:
            merged.append(current)

    return merged
