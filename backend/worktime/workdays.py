"""Working-day arithmetic for the monthly pace calendar.

A working day is any calendar day whose weekday is not the configured
excluded weekday. Weekdays use Python's numbering (Monday = 0, Sunday = 6).
"""

from __future__ import annotations

import calendar
import datetime as dt
from typing import Tuple, Union

FRIDAY = calendar.FRIDAY

_WEEKDAY_NAMES = {name.lower(): index for index, name in enumerate(calendar.day_name)}
_WEEKDAY_ABBRS = {name.lower(): index for index, name in enumerate(calendar.day_abbr)}


class InvalidRangeError(ValueError):
    """Raised when a date range ends before it starts."""

    def __init__(self, start: dt.date, end: dt.date) -> None:
        super().__init__(f"Invalid date range: {start.isoformat()} is after {end.isoformat()}")
        self.start = start
        self.end = end


def parse_weekday(value: Union[int, str]) -> int:
    if isinstance(value, bool):
        raise ValueError(f"Unknown weekday: {value!r}")
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise ValueError(f"Weekday index out of range: {value}")
    text = str(value).strip().lower()
    if text.isdigit():
        return parse_weekday(int(text))
    if text in _WEEKDAY_NAMES:
        return _WEEKDAY_NAMES[text]
    if text in _WEEKDAY_ABBRS:
        return _WEEKDAY_ABBRS[text]
    raise ValueError(f"Unknown weekday: {value!r}")


def weekday_name(weekday: int) -> str:
    return calendar.day_name[weekday].lower()


def _check_range(start: dt.date, end: dt.date) -> None:
    if start > end:
        raise InvalidRangeError(start, end)


def excluded_weekday_count(start: dt.date, end: dt.date, excluded_weekday: int = FRIDAY) -> int:
    """Count days in ``[start, end]`` that fall on ``excluded_weekday``."""
    _check_range(start, end)
    count = 0
    current = start
    while current <= end:
        if current.weekday() == excluded_weekday:
            count += 1
        current += dt.timedelta(days=1)
    return count


def working_day_count(start: dt.date, end: dt.date, excluded_weekday: int = FRIDAY) -> int:
    """Count days in ``[start, end]`` that are not ``excluded_weekday``."""
    _check_range(start, end)
    total_days = (end - start).days + 1
    return total_days - excluded_weekday_count(start, end, excluded_weekday)


def month_bounds(day: dt.date) -> Tuple[dt.date, dt.date]:
    first = day.replace(day=1)
    last = day.replace(day=calendar.monthrange(day.year, day.month)[1])
    return first, last
