"""
src/ocean_ingest/crud.py

Store helpers for ocean_data_daily.

- existing_dates: which dates in an interval already hold a row
- upsert_daily_records: batch insert-or-update keyed by date
- get_ocean_data: paginated read for the API, returns
    (total, rows, total_pages, offset)
"""

from __future__ import annotations  # forward refs

from datetime import date as DateType  # date type for filters
from math import ceil  # compute total pages
import logging
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session  # DB session

from .errors import StoreConstraintViolation, StoreUnavailable
from .models import OceanDataDaily, PIPELINE_COLUMNS  # ORM model
from .schemas import DailyAggregate

logger = logging.getLogger(__name__)


def existing_dates(db: Session, start: DateType, end: DateType) -> Set[DateType]:
    """Return the set of dates in [start, end] that already have a daily row."""
    stmt = select(OceanDataDaily.date).where(
        OceanDataDaily.date >= start,
        OceanDataDaily.date <= end,
    )
    try:
        found = set(db.execute(stmt).scalars().all())
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(
            f"existing-date query failed for {start.isoformat()}~{end.isoformat()}: {e}"
        ) from e

    logger.info(
        "[store] %d existing dates in %s~%s", len(found), start.isoformat(), end.isoformat()
    )
    return found


def _insert_for(db: Session):
    """Dialect-specific INSERT that supports ON CONFLICT."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite.insert
    return postgresql.insert


def upsert_daily_records(db: Session, records: Sequence[DailyAggregate]) -> int:
    """
    Upsert daily rows in one statement, keyed by date.

    Pipeline-owned columns take the incoming values. Salinity keeps the
    existing value when one is set, so a pipeline None never clobbers a
    manual entry.
    """
    if not records:  # no data to write
        return 0

    rows: List[Dict[str, Any]] = [r.model_dump() for r in records]

    insert = _insert_for(db)
    stmt = insert(OceanDataDaily).values(rows)

    set_: Dict[str, Any] = {col: stmt.excluded[col] for col in PIPELINE_COLUMNS}
    set_["salinity"] = func.coalesce(OceanDataDaily.salinity, stmt.excluded.salinity)
    set_["updated_at"] = func.now()

    stmt = stmt.on_conflict_do_update(index_elements=["date"], set_=set_)

    try:
        result = db.execute(stmt)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise StoreConstraintViolation(f"upsert rejected for {len(rows)} rows: {e.orig}") from e
    except SQLAlchemyError as e:
        db.rollback()
        raise StoreUnavailable(f"upsert failed for {len(rows)} rows: {e}") from e

    # rowcount can be -1 for some DBAPIs; fall back to the batch size.
    written = result.rowcount if result.rowcount is not None and result.rowcount >= 0 else len(rows)
    logger.info(
        "[store] upserted %d rows (%s~%s)",
        written,
        records[0].date.isoformat(),
        records[-1].date.isoformat(),
    )
    return written


def get_ocean_data(
    db: Session,  # database session
    page: int,  # 1-indexed page number
    page_size: int,  # rows per page
    start_date: Optional[DateType] = None,  # optional lower bound
    end_date: Optional[DateType] = None,  # optional upper bound
) -> Tuple[int, List[OceanDataDaily], int, int]:
    """
    Fetch paginated daily rows, newest first.
    """
    q = db.query(OceanDataDaily)  # start query on ocean_data_daily

    if start_date:
        q = q.filter(OceanDataDaily.date >= start_date)

    if end_date:
        q = q.filter(OceanDataDaily.date <= end_date)

    q = q.order_by(OceanDataDaily.date.desc())  # stable ordering

    total = q.count()  # count total rows matching filters
    total_pages = ceil(total / page_size) if page_size else 0  # compute total pages
    offset = (page - 1) * page_size  # compute offset for pagination

    rows = q.offset(offset).limit(page_size).all()  # fetch paginated rows
    return total, rows, total_pages, offset  # return pagination tuple
