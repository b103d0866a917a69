from datetime import date
from unittest.mock import MagicMock

import pytest

from ocean_ingest import ingest_ocean
from ocean_ingest.jobs import BackfillReport, ChunkResult, DailyReport, JobState
from ocean_ingest.dates import DateChunk


@pytest.fixture
def cli(monkeypatch):
    """Stub out the database and HTTP client; return the mocked job runners."""
    monkeypatch.setattr(ingest_ocean, "ensure_tables_exist", MagicMock())
    monkeypatch.setattr(ingest_ocean, "SessionLocal", MagicMock())
    monkeypatch.setattr(ingest_ocean, "OpenMeteoClient", MagicMock())
    daily = MagicMock(return_value=DailyReport(date=date(2026, 1, 1), state=JobState.DONE, records_upserted=1))
    backfill = MagicMock()
    monkeypatch.setattr(ingest_ocean, "run_daily_job", daily)
    monkeypatch.setattr(ingest_ocean, "run_backfill_job", backfill)
    return daily, backfill


def test_parser_defaults():
    args = ingest_ocean.build_parser().parse_args(["backfill"])
    assert args.start == date(2026, 1, 1)
    assert args.end is None
    assert args.chunk_days == 30


def test_parser_rejects_bad_date():
    with pytest.raises(SystemExit):
        ingest_ocean.build_parser().parse_args(["backfill", "--start", "01/02/2026"])


def test_daily_command(cli, capsys):
    daily, _ = cli
    assert ingest_ocean.main(["daily"]) == 0
    assert daily.called
    assert '"recordsUpserted": 1' in capsys.readouterr().out


def test_backfill_command_passes_range(cli):
    _, backfill = cli
    backfill.return_value = BackfillReport(start=date(2026, 2, 1), end=date(2026, 2, 10), state=JobState.DONE)

    code = ingest_ocean.main(["backfill", "--start", "2026-02-01", "--end", "2026-02-10", "--chunk-days", "5"])

    assert code == 0
    kwargs = backfill.call_args.kwargs
    assert kwargs == {"start": date(2026, 2, 1), "end": date(2026, 2, 10), "chunk_days": 5}


def test_backfill_with_skipped_chunk_exits_nonzero(cli):
    _, backfill = cli
    chunk = DateChunk(date(2026, 2, 1), date(2026, 2, 5))
    backfill.return_value = BackfillReport(
        start=chunk.start,
        end=chunk.end,
        state=JobState.DONE,
        chunks=[ChunkResult.skip(chunk, "SourceUnavailable: timeout")],
    )

    assert ingest_ocean.main(["backfill"]) == 1


def test_job_exception_exits_nonzero(cli):
    daily, _ = cli
    daily.side_effect = RuntimeError("boom")
    assert ingest_ocean.main(["daily"]) == 1


def test_failed_daily_report_exits_nonzero(cli, capsys):
    daily, _ = cli
    daily.return_value = DailyReport(
        date=date(2026, 1, 1),
        state=JobState.FAILED,
        error_type="SourceUnavailable",
        error="SourceUnavailable: marine API returned 503",
    )

    assert ingest_ocean.main(["daily"]) == 1
    assert '"errorType": "SourceUnavailable"' in capsys.readouterr().out
