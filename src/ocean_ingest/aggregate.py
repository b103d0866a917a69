# src/ocean_ingest/aggregate.py
"""
Hourly -> daily aggregation.

merge_feeds: outer-join the marine and weather feeds on exact timestamp
reduce_to_daily: one DailyAggregate per calendar date present in the input

Pure functions: no I/O and no dependency on the current time.
"""

from __future__ import annotations

from collections import Counter, OrderedDict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .config import DEFAULT_DEPTH
from .schemas import DailyAggregate, HourlyObservation
from .source import HourlyFeed


# feed variable -> HourlyObservation field
MARINE_FIELDS = {
    "sea_surface_temperature": "sea_temperature",
    "ocean_current_velocity": "current_velocity",
    "ocean_current_direction": "current_direction",
    "wave_height": "wave_height",
    "wave_direction": "wave_direction",
    "wave_period": "wave_period",
}

WEATHER_FIELDS = {
    "surface_pressure": "surface_pressure",
    "temperature_2m": "air_temperature",
    "relative_humidity_2m": "humidity",
}


def merge_feeds(marine: HourlyFeed, weather: HourlyFeed) -> List[HourlyObservation]:
    """
    Outer-join two feeds by timestamp, sorted by time.

    A timestamp present in only one feed keeps the other feed's fields None.
    """
    rows: Dict[datetime, Dict[str, Optional[float]]] = {}

    for feed, mapping in ((marine, MARINE_FIELDS), (weather, WEATHER_FIELDS)):
        for i, ts in enumerate(feed.times):
            row = rows.setdefault(ts, {})
            for variable, field_name in mapping.items():
                row[field_name] = feed.value(variable, i)

    return [HourlyObservation(time=ts, **rows[ts]) for ts in sorted(rows)]


def _round(value: Optional[float]) -> Optional[float]:
    return None if value is None else round(value, 2)


def summarize(values: Iterable[Optional[float]]) -> Tuple[Optional[float], Optional[float], Optional[float]]:
    """(avg, min, max) over non-null values; all None when there are none."""
    valid = [v for v in values if v is not None]
    if not valid:
        return None, None, None
    return _round(sum(valid) / len(valid)), _round(min(valid)), _round(max(valid))


def dominant_direction(directions: Iterable[Optional[float]]) -> Optional[float]:
    """Most frequent non-null direction; ties go to the value seen first."""
    valid = [d for d in directions if d is not None]
    if not valid:
        return None
    counts = Counter(valid)
    best = max(counts.values())
    # first occurrence in input order among the most frequent
    for d in valid:
        if counts[d] == best:
            return d
    return None


def _daily_record(day: date, hours: Sequence[HourlyObservation], depth: float) -> DailyAggregate:
    sea_avg, sea_min, sea_max = summarize(h.sea_temperature for h in hours)
    wave_avg, _, wave_max = summarize(h.wave_height for h in hours)

    return DailyAggregate(
        date=day,
        sea_temperature_avg=sea_avg,
        sea_temperature_min=sea_min,
        sea_temperature_max=sea_max,
        current_velocity_avg=summarize(h.current_velocity for h in hours)[0],
        current_direction_dominant=dominant_direction(h.current_direction for h in hours),
        wave_height_avg=wave_avg,
        wave_height_max=wave_max,
        surface_pressure_avg=summarize(h.surface_pressure for h in hours)[0],
        air_temperature_avg=summarize(h.air_temperature for h in hours)[0],
        humidity_avg=summarize(h.humidity for h in hours)[0],
        salinity=None,
        depth=depth,
    )


def reduce_to_daily(
    observations: Iterable[HourlyObservation],
    depth: float = DEFAULT_DEPTH,
) -> List[DailyAggregate]:
    """Group observations by their own calendar date and summarize each group, sorted by date."""
    groups: "OrderedDict[date, List[HourlyObservation]]" = OrderedDict()
    for obs in observations:
        groups.setdefault(obs.time.date(), []).append(obs)

    return [_daily_record(day, groups[day], depth) for day in sorted(groups)]
