# src/ocean_ingest/ingest_ocean.py
"""
Run one ingestion job from the command line.

    ocean-ingest daily
    ocean-ingest backfill [--start YYYY-MM-DD] [--end YYYY-MM-DD] [--chunk-days N]

Useful for re-running a sub-range that a backfill logged as skipped.
Reads DATABASE_URL like the API does; tables are created if missing.
Exit code is 1 when the job fails or any backfill chunk was skipped.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import date, datetime, timezone
from typing import List, Optional

from . import config
from .db import SessionLocal, ensure_tables_exist
from .jobs import run_backfill_job, run_daily_job
from .source import OpenMeteoClient

logger = logging.getLogger("ocean_ingest.cli")


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a YYYY-MM-DD date: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ocean-ingest", description=__doc__.split("\n\n")[0].strip())
    sub = parser.add_subparsers(dest="job", required=True)

    sub.add_parser("daily", help="ingest yesterday (Asia/Seoul)")

    backfill = sub.add_parser("backfill", help="fill missing dates")
    backfill.add_argument("--start", type=_parse_date, default=config.BACKFILL_START_DATE)
    backfill.add_argument("--end", type=_parse_date, default=None, help="defaults to yesterday")
    backfill.add_argument("--chunk-days", type=int, default=config.CHUNK_DAYS)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO"),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    args = build_parser().parse_args(argv)

    start = datetime.now(timezone.utc)
    logger.info("[%s] starting...", args.job)

    ensure_tables_exist()
    session = SessionLocal()
    try:
        with OpenMeteoClient() as client:
            if args.job == "daily":
                report = run_daily_job(session, client)
                failed = not report.success
            else:
                report = run_backfill_job(
                    session,
                    client,
                    start=args.start,
                    end=args.end,
                    chunk_days=args.chunk_days,
                )
                failed = report.chunks_skipped > 0
    except Exception:
        logger.exception("[%s] failed", args.job)
        return 1
    finally:
        session.close()

    end = datetime.now(timezone.utc)
    logger.info("[%s] start=%s end=%s", args.job, start.isoformat(), end.isoformat())
    print(json.dumps(report.to_dict(), indent=2), flush=True)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
