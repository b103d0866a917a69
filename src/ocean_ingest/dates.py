# src/ocean_ingest/dates.py
"""
Calendar helpers for the ingestion jobs.

- split_date_range: divide [start, end] into contiguous chunks of at most N days
- yesterday: the calendar date before "now" in the reference time zone
- days_in_range: inclusive day count
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo

from .config import REFERENCE_TZ
from .errors import InvalidRange


@dataclass(frozen=True)
class DateChunk:
    """Inclusive sub-interval of dates processed as one unit of work."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def __str__(self) -> str:
        return f"{self.start.isoformat()}~{self.end.isoformat()}"


def split_date_range(start: date, end: date, chunk_days: int) -> List[DateChunk]:
    """Split [start, end] into ordered, non-overlapping chunks of <= chunk_days days."""
    if chunk_days < 1:
        raise InvalidRange(f"chunk_days must be >= 1, got {chunk_days}")
    if start > end:
        raise InvalidRange(f"start {start.isoformat()} is after end {end.isoformat()}")

    chunks: List[DateChunk] = []
    step = timedelta(days=chunk_days)
    current = start
    while current <= end:
        chunk_end = min(current + step - timedelta(days=1), end)
        chunks.append(DateChunk(start=current, end=chunk_end))
        current = chunk_end + timedelta(days=1)
    return chunks


def days_in_range(start: date, end: date) -> int:
    """Number of calendar days in [start, end]; 0 when start > end."""
    return max((end - start).days + 1, 0)


def today(now: Optional[datetime] = None, tz: str = REFERENCE_TZ) -> date:
    """Calendar date of `now` in the reference zone (naive datetimes are taken as UTC)."""
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz)).date()


def yesterday(now: Optional[datetime] = None, tz: str = REFERENCE_TZ) -> date:
    """The calendar date immediately before `now` in the reference zone."""
    return today(now, tz) - timedelta(days=1)
