# src/ocean_ingest/config.py
"""
Runtime configuration and design constants.

Environment-driven values are read with os.getenv; everything else is a
fixed constant of the pipeline (location, reference zone, chunking, pacing).
"""

from __future__ import annotations

import os
from datetime import date


# -------------------------------------------------
# Location (Wando sea area)
# -------------------------------------------------
LATITUDE = 34.31
LONGITUDE = 126.76
LOCATION_NAME = "Wando"

# Day boundaries are computed in this zone, not UTC.
REFERENCE_TZ = "Asia/Seoul"

# Aging depth in metres stored on every daily row.
DEFAULT_DEPTH = 30.0


# -------------------------------------------------
# Open-Meteo endpoints
# -------------------------------------------------
MARINE_API_URL = "https://marine-api.open-meteo.com/v1/marine"
WEATHER_API_URL = "https://api.open-meteo.com/v1/forecast"
WEATHER_ARCHIVE_API_URL = "https://archive-api.open-meteo.com/v1/archive"

# Start dates older than this many days read weather from the archive.
ARCHIVE_THRESHOLD_DAYS = 7

MARINE_VARIABLES = (
    "wave_height",
    "wave_direction",
    "wave_period",
    "ocean_current_velocity",
    "ocean_current_direction",
    "sea_surface_temperature",
)

WEATHER_VARIABLES = (
    "surface_pressure",
    "temperature_2m",
    "relative_humidity_2m",
)

HTTP_TIMEOUT = float(os.getenv("OCEAN_HTTP_TIMEOUT", "30"))


# -------------------------------------------------
# Backfill
# -------------------------------------------------
BACKFILL_START_DATE = date(2026, 1, 1)
CHUNK_DAYS = 30
CHUNK_DELAY_SECONDS = 0.5


# -------------------------------------------------
# Inbound trigger auth
# -------------------------------------------------
def cron_secret() -> str:
    return os.getenv("CRON_SECRET", "").strip()


def cron_trusted_header() -> str:
    return os.getenv("CRON_TRUSTED_HEADER", "x-vercel-cron").strip().lower()
