from datetime import date, datetime

from pydantic import BaseModel

from .config import DEFAULT_DEPTH, LATITUDE, LOCATION_NAME, LONGITUDE


class HourlyObservation(BaseModel):
    """
    One hourly sample merged from the marine and weather feeds.
    Missing source values stay None, never 0.
    """

    time: datetime
    sea_temperature: float | None = None
    current_velocity: float | None = None
    current_direction: float | None = None
    wave_height: float | None = None
    wave_direction: float | None = None
    wave_period: float | None = None
    surface_pressure: float | None = None
    air_temperature: float | None = None
    humidity: float | None = None


class DailyAggregate(BaseModel):
    """
    Daily summary for one calendar date, as written to ocean_data_daily.
    Salinity is entered manually elsewhere; the pipeline always sends None.
    """

    date: date
    sea_temperature_avg: float | None = None
    sea_temperature_min: float | None = None
    sea_temperature_max: float | None = None
    current_velocity_avg: float | None = None
    current_direction_dominant: float | None = None
    wave_height_avg: float | None = None
    wave_height_max: float | None = None
    surface_pressure_avg: float | None = None
    air_temperature_avg: float | None = None
    humidity_avg: float | None = None
    salinity: float | None = None
    depth: float = DEFAULT_DEPTH
    location_name: str = LOCATION_NAME
    latitude: float = LATITUDE
    longitude: float = LONGITUDE
