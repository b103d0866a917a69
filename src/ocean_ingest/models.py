# src/ocean_ingest/models.py
from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, Float, Date, String, UniqueConstraint, func
from .config import DEFAULT_DEPTH, LATITUDE, LOCATION_NAME, LONGITUDE
from .db import Base


class OceanDataDaily(Base):
    __tablename__ = "ocean_data_daily"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, nullable=False, index=True)

    sea_temperature_avg = Column(Float, nullable=True)
    sea_temperature_min = Column(Float, nullable=True)
    sea_temperature_max = Column(Float, nullable=True)
    current_velocity_avg = Column(Float, nullable=True)
    current_direction_dominant = Column(Float, nullable=True)
    wave_height_avg = Column(Float, nullable=True)
    wave_height_max = Column(Float, nullable=True)
    surface_pressure_avg = Column(Float, nullable=True)
    air_temperature_avg = Column(Float, nullable=True)
    humidity_avg = Column(Float, nullable=True)

    # entered manually; the pipeline never overwrites a non-null value
    salinity = Column(Float, nullable=True)

    depth = Column(Float, nullable=False, default=DEFAULT_DEPTH)
    location_name = Column(String, nullable=False, default=LOCATION_NAME)
    latitude = Column(Float, nullable=False, default=LATITUDE)
    longitude = Column(Float, nullable=False, default=LONGITUDE)

    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("date", name="uq_ocean_data_daily_date"),
    )


# Columns owned by the pipeline, replaced on every upsert.
PIPELINE_COLUMNS = (
    "sea_temperature_avg",
    "sea_temperature_min",
    "sea_temperature_max",
    "current_velocity_avg",
    "current_direction_dominant",
    "wave_height_avg",
    "wave_height_max",
    "surface_pressure_avg",
    "air_temperature_avg",
    "humidity_avg",
    "depth",
    "location_name",
    "latitude",
    "longitude",
)
