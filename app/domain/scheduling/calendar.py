"""
Calendar math for weekly availability windows.

Pure functions only - no database access. Times are naive local wall-clock
values; there is no timezone normalization anywhere in scheduling.
"""

from datetime import date, datetime, time, timedelta
from typing import Iterator, Protocol

DEFAULT_STEP_MINUTES = 30


class WeeklyWindowLike(Protocol):
    start_time: str
    end_time: str


def parse_clock_time(value: str) -> time:
    """Parse a 24-hour "HH:MM" (or database "HH:MM:SS") string"""
    value = (value or "").strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"Invalid time {value!r}, expected HH:MM")


def parse_calendar_date(value: str) -> date:
    """Parse a strict YYYY-MM-DD date"""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None


def parse_local_instant(value: str) -> datetime:
    """
    Parse an ISO-8601 instant into a naive local datetime.

    A trailing "Z" or UTC offset is dropped and the wall-clock value kept,
    so "2025-03-17T10:00:00Z" and "2025-03-17T10:00:00" are the same instant.
    """
    raw = (value or "").strip()
    # Date-only strings are not instants
    if len(raw) <= 10:
        raise ValueError(f"Invalid instant {value!r}, expected ISO-8601 date and time")
    if raw.endswith("Z") or raw.endswith("z"):
        raw = raw[:-1]
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        raise ValueError(f"Invalid instant {value!r}, expected ISO-8601 date and time") from None
    return parsed.replace(tzinfo=None)


def day_of_week(target_date: date) -> int:
    """Day-of-week number with 0 = Sunday ... 6 = Saturday"""
    return target_date.isoweekday() % 7


def day_bounds(target_date: date) -> tuple[datetime, datetime]:
    """Half-open [midnight, next midnight) range for a calendar date"""
    day_start = datetime.combine(target_date, time.min)
    return day_start, day_start + timedelta(days=1)


def anchor_window(window: WeeklyWindowLike, target_date: date) -> tuple[datetime, datetime]:
    """Place a weekly window's clock times on a concrete date"""
    start = datetime.combine(target_date, parse_clock_time(window.start_time))
    end = datetime.combine(target_date, parse_clock_time(window.end_time))
    return start, end


def enumerate_slots(
    window: WeeklyWindowLike,
    target_date: date,
    duration_minutes: int,
    step_minutes: int = DEFAULT_STEP_MINUTES,
) -> Iterator[tuple[datetime, datetime]]:
    """
    Yield candidate (start, end) slots of exactly ``duration_minutes`` inside
    ``window`` on ``target_date``.

    Candidate starts advance by ``step_minutes``; when the step is shorter than
    the duration, consecutive candidates overlap. Emission stops once a slot
    would run past the window end, so nothing is yielded when the duration is
    longer than the window.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    if step_minutes <= 0:
        raise ValueError("step_minutes must be positive")

    window_start, window_end = anchor_window(window, target_date)
    duration = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=step_minutes)

    current = window_start
    while current + duration <= window_end:
        yield current, current + duration
        current += step
