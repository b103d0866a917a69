from datetime import date
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from ocean_ingest import crud, db
from ocean_ingest.errors import SourceUnavailable, StoreUnavailable
from ocean_ingest.main import app, get_db, get_source_client, round_2
from ocean_ingest.schemas import DailyAggregate


@pytest.fixture
def api(db_session, fake_client, no_sleep):
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_source_client] = lambda: fake_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def with_secret(monkeypatch):
    monkeypatch.setenv("CRON_SECRET", "s3cret")
    return {"Authorization": "Bearer s3cret"}


@pytest.fixture
def without_secret(monkeypatch):
    monkeypatch.delenv("CRON_SECRET", raising=False)
    monkeypatch.delenv("CRON_TRUSTED_HEADER", raising=False)


def test_health(api):
    assert api.get("/health").json() == {"status": "healthy"}


@pytest.mark.parametrize("path", ["/api/cron/ocean-data", "/api/cron/ocean-data/backfill"])
def test_wrong_token_is_rejected(api, with_secret, fake_client, path):
    response = api.get(path, headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401
    assert response.json()["success"] is False
    fake_client.fetch_raw.assert_not_called()


def test_trusted_header_ignored_when_secret_configured(api, with_secret):
    response = api.get("/api/cron/ocean-data", headers={"x-vercel-cron": "1"})
    assert response.status_code == 401


def test_no_secret_fails_closed(api, without_secret, fake_client):
    assert api.get("/api/cron/ocean-data").status_code == 401
    assert api.get("/api/cron/ocean-data", headers={"Authorization": "Bearer "}).status_code == 401
    fake_client.fetch_raw.assert_not_called()


def test_no_secret_accepts_scheduler_header(api, without_secret):
    response = api.get("/api/cron/ocean-data", headers={"x-vercel-cron": "1"})

    assert response.status_code == 200
    assert response.json()["success"] is True


def test_daily_trigger_reports_rows(api, with_secret):
    response = api.get("/api/cron/ocean-data", headers=with_secret)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["recordsUpserted"] == 1
    date.fromisoformat(body["date"])


def test_daily_trigger_failure_hides_details(api, with_secret, fake_client):
    fake_client.fetch_raw.side_effect = SourceUnavailable("marine API returned 502: <html>")

    response = api.get("/api/cron/ocean-data", headers=with_secret)

    assert response.status_code == 500
    body = response.json()
    assert body == {
        "success": False,
        "error": "daily ingestion failed",
        "errorType": "SourceUnavailable",
    }


def test_daily_trigger_store_failure_is_500(api, with_secret, monkeypatch):
    def broken_upsert(db, records):
        raise StoreUnavailable("server closed the connection")

    monkeypatch.setattr(crud, "upsert_daily_records", broken_upsert)

    response = api.get("/api/cron/ocean-data", headers=with_secret)

    assert response.status_code == 500
    assert response.json()["errorType"] == "StoreUnavailable"


def test_session_dependency_comes_from_db_module():
    assert get_db is db.get_db


def test_round_2():
    assert round_2(1.2345) == 1.23
    assert round_2(None) is None
    assert round_2(30) == 30


def test_backfill_trigger_reports_counters(api, with_secret, fake_client, monkeypatch):
    monkeypatch.setattr("ocean_ingest.main.run_backfill_job", _short_backfill)

    response = api.get("/api/cron/ocean-data/backfill", headers=with_secret)

    assert response.status_code == 200
    body = response.json()
    assert body["period"] == {"start": "2026-01-01", "end": "2026-01-03"}
    assert body["totalDays"] == 3
    assert body["missingDays"] == 3
    assert body["chunksProcessed"] == 1
    assert body["recordsUpserted"] == 3


def test_backfill_trigger_index_failure_is_500(api, with_secret, monkeypatch):
    def broken_index(db, start, end):
        raise StoreUnavailable("connection refused")

    monkeypatch.setattr("ocean_ingest.jobs.crud.existing_dates", broken_index)

    response = api.get("/api/cron/ocean-data/backfill", headers=with_secret)

    assert response.status_code == 500
    assert response.json()["errorType"] == "StoreUnavailable"


def test_ocean_data_listing(api, db_session):
    crud.upsert_daily_records(
        db_session,
        [
            DailyAggregate(date=date(2026, 1, 1), sea_temperature_avg=14.123, salinity=None),
            DailyAggregate(date=date(2026, 1, 2), sea_temperature_avg=15.0, salinity=33.0),
        ],
    )

    response = api.get("/api/ocean-data", params={"page_size": 1})

    assert response.status_code == 200
    body = response.json()
    assert body["metadata"]["total_records"] == 2
    assert body["metadata"]["total_pages"] == 2
    (row,) = body["data"]
    assert row["date"] == "2026-01-02"
    assert row["salinity"] == 33.0
    assert "id" not in row


def _short_backfill(db, client):
    from ocean_ingest.jobs import run_backfill_job

    return run_backfill_job(db, client, start=date(2026, 1, 1), end=date(2026, 1, 3))
