"""Local-day boundary helpers.

All timestamps are epoch milliseconds. Day boundaries are computed in the
local timezone, so a day is not always 24 hours long.
"""

from __future__ import annotations

import time
from datetime import date, datetime, timedelta


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def start_of_day_millis(day: date) -> int:
    """Epoch millis of local midnight at the start of ``day``."""
    midnight = datetime(day.year, day.month, day.day).astimezone()
    return int(midnight.timestamp() * 1000)


def day_range(day: date) -> tuple[int, int]:
    """Return ``[start, end)`` millis covering ``day``."""
    return start_of_day_millis(day), start_of_day_millis(day + timedelta(days=1))


def day_bounds_inclusive(day: date) -> tuple[int, int]:
    """Return ``[start, end]`` millis covering ``day``."""
    start, end = day_range(day)
    return start, end - 1


def to_local_date(millis: int) -> date:
    return datetime.fromtimestamp(millis / 1000).date()


def parse_date(text: str | None) -> date:
    """Parse an ISO ``YYYY-MM-DD`` string, defaulting to today."""
    if not text:
        return date.today()
    return date.fromisoformat(text)


def format_for_display(day: date, pattern: str = "%b %d, %Y") -> str:
    return day.strftime(pattern)
