"""
Overlap detection between candidate slots and existing bookings.

Intervals are half-open [start, end): a slot ending at 10:00 does not
conflict with a booking starting at 10:00.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol


class Interval(Protocol):
    start: datetime
    end: datetime


@dataclass(frozen=True)
class TimeRange:
    start: datetime
    end: datetime


@dataclass(frozen=True)
class Slot:
    """A bookable window offered for one detailer. Never persisted."""

    detailer_id: str
    start: datetime
    end: datetime


def overlaps(candidate: Interval, commitment: Interval) -> bool:
    return candidate.start < commitment.end and candidate.end > commitment.start


def has_conflict(candidate: Interval, commitments: Iterable[Interval]) -> bool:
    """True if the candidate overlaps any of the given commitments"""
    return any(overlaps(candidate, commitment) for commitment in commitments)
