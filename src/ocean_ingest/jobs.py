"""
src/ocean_ingest/jobs.py

Daily and backfill ingestion jobs.

Daily:    fetch yesterday -> aggregate -> upsert. Any failure is fatal;
          the next scheduled run fetches the same day again.
Backfill: index existing dates once -> split into chunks -> per chunk
          fetch -> aggregate -> drop existing dates -> upsert.
          A failing chunk is recorded as skipped and the run continues.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Set

from sqlalchemy.orm import Session

from . import config, crud
from .aggregate import merge_feeds, reduce_to_daily
from .dates import DateChunk, days_in_range, split_date_range, yesterday
from .schemas import DailyAggregate
from .source import OpenMeteoClient

logger = logging.getLogger(__name__)


class JobState(str, enum.Enum):
    IDLE = "idle"
    INDEXING = "indexing"
    FETCHING = "fetching"
    AGGREGATING = "aggregating"
    UPSERTING = "upserting"
    DONE = "done"
    FAILED = "failed"


def _fetch_and_aggregate(client: OpenMeteoClient, start: date, end: date) -> List[DailyAggregate]:
    feeds = client.fetch_raw(start, end)
    observations = merge_feeds(feeds.marine, feeds.weather)
    return reduce_to_daily(observations)


# ---------------------------------------------------------------------
# Daily job
# ---------------------------------------------------------------------
@dataclass
class DailyReport:
    date: date
    state: JobState = JobState.IDLE
    records_upserted: int = 0
    error_type: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state is JobState.DONE

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": self.success,
            "date": self.date.isoformat(),
            "recordsUpserted": self.records_upserted,
        }
        if self.state is JobState.FAILED:
            body["errorType"] = self.error_type
        return body


def run_daily_job(
    db: Session,
    client: OpenMeteoClient,
    now: Optional[datetime] = None,
) -> DailyReport:
    """
    Ingest exactly yesterday (reference zone).

    Any error ends the run with a FAILED report carrying the error; nothing
    is retried and nothing is partially committed.
    """
    target = yesterday(now)
    report = DailyReport(date=target)
    logger.info("[daily] starting for %s", target.isoformat())

    try:
        report.state = JobState.FETCHING
        feeds = client.fetch_raw(target, target)

        report.state = JobState.AGGREGATING
        records = reduce_to_daily(merge_feeds(feeds.marine, feeds.weather))
        # the source may hand back neighbouring hours; keep only the target day
        records = [r for r in records if r.date == target]

        if not records:
            logger.warning("[daily] no data returned for %s", target.isoformat())
            report.state = JobState.DONE
            return report

        report.state = JobState.UPSERTING
        report.records_upserted = crud.upsert_daily_records(db, records)
        report.state = JobState.DONE
    except Exception as e:
        report.state = JobState.FAILED
        report.error_type = type(e).__name__
        report.error = f"{type(e).__name__}: {e}"
        logger.exception("[daily] failed for %s", target.isoformat())
        return report

    logger.info("[daily] done: %d rows for %s", report.records_upserted, target.isoformat())
    return report


# ---------------------------------------------------------------------
# Backfill job
# ---------------------------------------------------------------------
@dataclass
class ChunkResult:
    """Outcome of one chunk: upserted (possibly 0 rows) or skipped with a reason."""

    chunk: DateChunk
    upserted: int = 0
    skipped: bool = False
    reason: Optional[str] = None

    @classmethod
    def ok(cls, chunk: DateChunk, upserted: int) -> "ChunkResult":
        return cls(chunk=chunk, upserted=upserted)

    @classmethod
    def skip(cls, chunk: DateChunk, reason: str) -> "ChunkResult":
        return cls(chunk=chunk, skipped=True, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.chunk.start.isoformat(),
            "end": self.chunk.end.isoformat(),
            "upserted": self.upserted,
            "skipped": self.skipped,
            "reason": self.reason,
        }


@dataclass
class BackfillReport:
    start: date
    end: date
    total_days: int = 0
    existing_days: int = 0
    missing_days: int = 0
    total_chunks: int = 0
    chunks: List[ChunkResult] = field(default_factory=list)
    state: JobState = JobState.IDLE

    @property
    def chunks_processed(self) -> int:
        return len(self.chunks)

    @property
    def chunks_succeeded(self) -> int:
        return sum(1 for c in self.chunks if not c.skipped)

    @property
    def chunks_skipped(self) -> int:
        return sum(1 for c in self.chunks if c.skipped)

    @property
    def records_upserted(self) -> int:
        return sum(c.upserted for c in self.chunks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.state is JobState.DONE,
            "period": {"start": self.start.isoformat(), "end": self.end.isoformat()},
            "totalDays": self.total_days,
            "existingDays": self.existing_days,
            "missingDays": self.missing_days,
            "totalChunks": self.total_chunks,
            "chunksProcessed": self.chunks_processed,
            "chunksSucceeded": self.chunks_succeeded,
            "chunksSkipped": self.chunks_skipped,
            "recordsUpserted": self.records_upserted,
            "skippedChunks": [c.to_dict() for c in self.chunks if c.skipped],
        }


def process_chunk(
    db: Session,
    client: OpenMeteoClient,
    chunk: DateChunk,
    existing: Set[date],
) -> ChunkResult:
    """Run one chunk end to end; any ingestion error becomes a skipped result."""
    try:
        records = _fetch_and_aggregate(client, chunk.start, chunk.end)
        if not records:
            logger.info("[backfill] chunk %s: no data", chunk)
            return ChunkResult.ok(chunk, 0)

        # existing rows may carry manual salinity; leave them untouched
        new_records = [
            r for r in records
            if r.date not in existing and chunk.start <= r.date <= chunk.end
        ]
        if not new_records:
            logger.info("[backfill] chunk %s: nothing new", chunk)
            return ChunkResult.ok(chunk, 0)

        upserted = crud.upsert_daily_records(db, new_records)
        logger.info("[backfill] chunk %s: %d rows upserted", chunk, upserted)
        return ChunkResult.ok(chunk, upserted)
    except Exception as e:
        logger.exception("[backfill] chunk %s skipped", chunk)
        return ChunkResult.skip(chunk, f"{type(e).__name__}: {e}")


def run_backfill_job(
    db: Session,
    client: OpenMeteoClient,
    start: date = config.BACKFILL_START_DATE,
    end: Optional[date] = None,
    chunk_days: int = config.CHUNK_DAYS,
    now: Optional[datetime] = None,
) -> BackfillReport:
    """
    Fill every missing date in [start, end] (end defaults to yesterday).

    The existing-date index is read once up front; if it fails the whole
    run fails. Chunks run sequentially with a fixed pause between them.
    """
    end = end or yesterday(now)
    report = BackfillReport(start=start, end=end)
    logger.info("[backfill] starting: %s~%s", start.isoformat(), end.isoformat())

    report.state = JobState.INDEXING
    try:
        existing = crud.existing_dates(db, start, end)
    except Exception:
        report.state = JobState.FAILED
        logger.exception("[backfill] existing-date index failed; aborting")
        raise

    report.total_days = days_in_range(start, end)
    report.existing_days = len(existing)
    report.missing_days = report.total_days - report.existing_days

    if report.missing_days <= 0:
        logger.info("[backfill] nothing missing (%d days present)", report.existing_days)
        report.missing_days = 0
        report.state = JobState.DONE
        return report

    logger.info("[backfill] missing %d/%d days", report.missing_days, report.total_days)

    chunks = split_date_range(start, end, chunk_days)
    report.total_chunks = len(chunks)

    for i, chunk in enumerate(chunks, start=1):
        logger.info("[backfill] chunk %d/%d: %s", i, len(chunks), chunk)
        report.chunks.append(process_chunk(db, client, chunk, existing))

        if i < len(chunks):
            time.sleep(config.CHUNK_DELAY_SECONDS)

    report.state = JobState.DONE
    logger.info(
        "[backfill] done: %d rows upserted, %d/%d chunks skipped",
        report.records_upserted,
        report.chunks_skipped,
        report.total_chunks,
    )
    return report
