import os
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional
from unittest.mock import MagicMock

import pytest

# db.py builds its engine at import time; point it at SQLite before any import.
os.environ.setdefault("DATABASE_URL", "sqlite://")

from sqlalchemy.orm import sessionmaker  # noqa: E402

from ocean_ingest import models  # noqa: E402,F401
from ocean_ingest.db import Base, make_engine  # noqa: E402
from ocean_ingest.source import HourlyFeed, RawFeeds  # noqa: E402


def hourly_times(start: date, end: date) -> List[datetime]:
    """24 local timestamps per day for [start, end]."""
    first = datetime(start.year, start.month, start.day)
    hours = ((end - start).days + 1) * 24
    return [first + timedelta(hours=h) for h in range(hours)]


def make_raw_feeds(
    start: date,
    end: date,
    sea_temperature: Optional[float] = 15.0,
    air_temperature: Optional[float] = 8.0,
) -> RawFeeds:
    times = hourly_times(start, end)
    n = len(times)
    marine = HourlyFeed(
        name="marine",
        times=times,
        values={
            "sea_surface_temperature": [sea_temperature] * n,
            "ocean_current_velocity": [0.3] * n,
            "ocean_current_direction": [90.0] * n,
            "wave_height": [1.2] * n,
        },
    )
    weather = HourlyFeed(
        name="weather",
        times=list(times),
        values={
            "surface_pressure": [1013.0] * n,
            "temperature_2m": [air_temperature] * n,
            "relative_humidity_2m": [70.0] * n,
        },
    )
    return RawFeeds(marine=marine, weather=weather)


def open_meteo_payload(times: List[str], **columns: list) -> Dict:
    """Body shaped like an Open-Meteo hourly response."""
    return {
        "latitude": 34.31,
        "longitude": 126.76,
        "timezone": "Asia/Seoul",
        "hourly": {"time": times, **columns},
    }


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def fake_client() -> MagicMock:
    """Source client whose fetch_raw returns full hourly coverage for any range."""
    client = MagicMock()
    client.fetch_raw.side_effect = lambda start, end: make_raw_feeds(start, end)
    return client


@pytest.fixture
def no_sleep(monkeypatch) -> List[float]:
    """Record backfill pauses instead of sleeping."""
    calls: List[float] = []
    monkeypatch.setattr("ocean_ingest.jobs.time.sleep", calls.append)
    return calls


@pytest.fixture
def make_feeds() -> Callable[..., RawFeeds]:
    return make_raw_feeds
