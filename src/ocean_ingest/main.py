"""
src/ocean_ingest/main.py

FastAPI entry point for the ocean data service.

Features:
- Table creation at startup (safe to repeat)
- Scheduler-triggered daily ingestion and historical backfill
- Shared-secret auth on trigger endpoints, failing closed
- Paginated read endpoint, values rounded to 2 decimal places
- No internal DB fields or stack traces exposed
"""

from __future__ import annotations

import hmac
import os
import logging
from contextlib import asynccontextmanager
from datetime import date as DateType
from typing import Any, Generator, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from . import config, crud
from .db import ensure_tables_exist, get_db
from .jobs import run_backfill_job, run_daily_job
from .source import OpenMeteoClient


# -------------------------------------------------
# Logging configuration
# -------------------------------------------------
logger = logging.getLogger("ocean_ingest")
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)


# -------------------------------------------------
# Dependencies
# -------------------------------------------------
def get_source_client() -> Generator[OpenMeteoClient, None, None]:
    """Provide an Open-Meteo client per request."""
    client = OpenMeteoClient()
    try:
        yield client
    finally:
        client.close()


# -------------------------------------------------
# Helpers
# -------------------------------------------------
def round_2(value: Any) -> Any:
    """Round floats to 2 decimal places."""
    if isinstance(value, float):
        return round(value, 2)
    return value


def verify_cron_secret(request: Request) -> bool:
    """
    Bearer token must match CRON_SECRET. Without a configured secret only
    the scheduler's trusted header is accepted.
    """
    secret = config.cron_secret()
    if not secret:
        return request.headers.get(config.cron_trusted_header()) == "1"

    auth = request.headers.get("authorization", "")
    return hmac.compare_digest(auth.encode(), f"Bearer {secret}".encode())


def unauthorized() -> JSONResponse:
    return JSONResponse(status_code=401, content={"success": False, "error": "unauthorized"})


def failed(summary: str, error_type: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": summary, "errorType": error_type},
    )


# -------------------------------------------------
# Application lifespan (startup / shutdown)
# -------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Ensure the schema exists before serving."""
    try:
        logger.info("[startup] Ensuring tables exist...")
        ensure_tables_exist()
    except Exception:
        logger.exception("[startup] Table creation failed.")
        raise

    yield

    logger.info("[shutdown] Application shutting down.")


# -------------------------------------------------
# FastAPI app instance
# -------------------------------------------------
app = FastAPI(
    title=os.getenv("APP_TITLE", "Ocean Data API"),
    version=os.getenv("APP_VERSION", "0.1.0"),
    lifespan=lifespan,
)


# -------------------------------------------------
# CORS (development-friendly defaults)
# -------------------------------------------------
origins = os.getenv("CORS_ORIGINS", "*").split(",")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -------------------------------------------------
# Meta endpoints
# -------------------------------------------------
@app.get("/", tags=["meta"])
def root():
    return {"status": "ok", "docs": "/docs"}


@app.get("/health", tags=["meta"])
def health():
    return {"status": "healthy"}


# -------------------------------------------------
# Scheduled triggers
# -------------------------------------------------
@app.get("/api/cron/ocean-data", tags=["cron"])
def cron_daily(
    request: Request,
    db: Session = Depends(get_db),
    client: OpenMeteoClient = Depends(get_source_client),
):
    if not verify_cron_secret(request):
        logger.warning("[cron] rejected daily trigger from %s", request.client.host if request.client else "?")
        return unauthorized()

    report = run_daily_job(db, client)
    if not report.success:
        logger.error("[cron] daily ingestion failed for %s: %s", report.date.isoformat(), report.error)
        return failed("daily ingestion failed", report.error_type or "Error")

    body = report.to_dict()
    if report.records_upserted == 0:
        body["message"] = "no data collected"
    return body


@app.get("/api/cron/ocean-data/backfill", tags=["cron"])
def cron_backfill(
    request: Request,
    db: Session = Depends(get_db),
    client: OpenMeteoClient = Depends(get_source_client),
):
    if not verify_cron_secret(request):
        logger.warning("[cron] rejected backfill trigger from %s", request.client.host if request.client else "?")
        return unauthorized()

    try:
        report = run_backfill_job(db, client)
    except Exception as e:
        logger.exception("[cron] backfill failed")
        return failed("backfill failed", type(e).__name__)

    body = report.to_dict()
    if report.total_chunks == 0:
        body["message"] = "no missing data"
    return body


# -------------------------------------------------
# Daily ocean data endpoint
# -------------------------------------------------
@app.get("/api/ocean-data", tags=["ocean"])
def api_ocean_data(
    page: int = Query(1, ge=1),
    page_size: int = Query(30, ge=1, le=500),
    start_date: Optional[DateType] = Query(None),
    end_date: Optional[DateType] = Query(None),
    db: Session = Depends(get_db),
):
    total, rows, total_pages, offset = crud.get_ocean_data(
        db=db,
        page=page,
        page_size=page_size,
        start_date=start_date,
        end_date=end_date,
    )

    data = []
    for r in rows:
        data.append({
            "date": r.date.isoformat(),
            "sea_temperature_celsius": {
                "avg": round_2(r.sea_temperature_avg),
                "min": round_2(r.sea_temperature_min),
                "max": round_2(r.sea_temperature_max),
            },
            "current": {
                "velocity_avg": round_2(r.current_velocity_avg),
                "direction_dominant": round_2(r.current_direction_dominant),
            },
            "wave_height_m": {
                "avg": round_2(r.wave_height_avg),
                "max": round_2(r.wave_height_max),
            },
            "surface_pressure_hpa": round_2(r.surface_pressure_avg),
            "air_temperature_celsius": round_2(r.air_temperature_avg),
            "humidity_percent": round_2(r.humidity_avg),
            "salinity": round_2(r.salinity),
            "depth_m": round_2(r.depth),
        })

    return {
        "metadata": {
            "location": {
                "name": config.LOCATION_NAME,
                "latitude": config.LATITUDE,
                "longitude": config.LONGITUDE,
            },
            "total_records": total,
            "page": page,
            "page_size": page_size,
            "total_pages": total_pages,
        },
        "data": data,
    }


# -------------------------------------------------
# Local development entrypoint
# -------------------------------------------------
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ocean_ingest.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=False,  # keep OFF on Windows
    )
