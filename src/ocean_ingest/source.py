"""
src/ocean_ingest/source.py

Open-Meteo client for the raw hourly marine and weather feeds.

Each fetch issues two GET requests for the same date interval:
- marine-api: waves, currents, sea surface temperature
- forecast (or archive for older ranges): pressure, air temperature, humidity

No retries and no caching; the jobs decide what a failure means.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence

import httpx

from . import config
from .dates import today
from .errors import SourceMalformed, SourceUnavailable

logger = logging.getLogger(__name__)


@dataclass
class HourlyFeed:
    """One feed's hourly time axis plus a value column per variable."""

    name: str
    times: List[datetime]
    values: Dict[str, List[Optional[float]]] = field(default_factory=dict)

    def value(self, variable: str, index: int) -> Optional[float]:
        column = self.values.get(variable)
        if column is None or index >= len(column):
            return None
        return column[index]

    def __len__(self) -> int:
        return len(self.times)


@dataclass
class RawFeeds:
    marine: HourlyFeed
    weather: HourlyFeed


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    # NaN -> None
    return None if number != number else number


def parse_feed(name: str, payload: Any, variables: Sequence[str]) -> HourlyFeed:
    """
    Turn an Open-Meteo JSON body into an HourlyFeed.

    Raises SourceMalformed when hourly.time is missing or unparsable.
    Missing variables or short columns become None entries.
    """
    hourly = payload.get("hourly") if isinstance(payload, dict) else None
    if not isinstance(hourly, dict) or not isinstance(hourly.get("time"), list):
        raise SourceMalformed(f"{name} payload has no hourly time axis")

    try:
        times = [datetime.fromisoformat(str(t)) for t in hourly["time"]]
    except ValueError as exc:
        raise SourceMalformed(f"{name} payload has an unparsable time value: {exc}") from exc

    values: Dict[str, List[Optional[float]]] = {}
    for variable in variables:
        column = hourly.get(variable)
        if not isinstance(column, list):
            continue
        values[variable] = [_to_float(v) for v in column]

    return HourlyFeed(name=name, times=times, values=values)


class OpenMeteoClient:
    """
    Fetch raw hourly feeds for the fixed coordinate.

    Pass an httpx.Client to control transport/timeouts (tests use MockTransport);
    otherwise the client owns one and closes it on close().
    """

    def __init__(
        self,
        http: Optional[httpx.Client] = None,
        latitude: float = config.LATITUDE,
        longitude: float = config.LONGITUDE,
        timezone: str = config.REFERENCE_TZ,
    ) -> None:
        self._owns_http = http is None
        self.http = http or httpx.Client(timeout=config.HTTP_TIMEOUT)
        self.latitude = latitude
        self.longitude = longitude
        self.timezone = timezone

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "OpenMeteoClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _params(self, variables: Sequence[str], start: date, end: date) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "hourly": ",".join(variables),
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "timezone": self.timezone,
        }

    def weather_url(self, start: date, reference_day: Optional[date] = None) -> str:
        """Forecast endpoint for recent ranges, archive endpoint for older ones."""
        reference_day = reference_day or today(tz=self.timezone)
        if (reference_day - start).days > config.ARCHIVE_THRESHOLD_DAYS:
            return config.WEATHER_ARCHIVE_API_URL
        return config.WEATHER_API_URL

    def _get_json(self, name: str, url: str, params: Dict[str, Any]) -> Any:
        try:
            response = self.http.get(url, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:200]
            raise SourceUnavailable(
                f"{name} API returned {exc.response.status_code}: {body}"
            ) from exc
        except httpx.HTTPError as exc:
            raise SourceUnavailable(f"{name} API request failed: {exc}") from exc
        except ValueError as exc:
            raise SourceUnavailable(f"{name} API returned a non-JSON body") from exc

    def fetch_raw(self, start: date, end: date) -> RawFeeds:
        """Fetch both feeds for [start, end]; both must succeed."""
        logger.info("[source] fetching %s~%s", start.isoformat(), end.isoformat())

        marine_payload = self._get_json(
            "marine",
            config.MARINE_API_URL,
            self._params(config.MARINE_VARIABLES, start, end),
        )
        weather_payload = self._get_json(
            "weather",
            self.weather_url(start),
            self._params(config.WEATHER_VARIABLES, start, end),
        )

        marine = parse_feed("marine", marine_payload, config.MARINE_VARIABLES)
        weather = parse_feed("weather", weather_payload, config.WEATHER_VARIABLES)
        logger.info(
            "[source] received marine=%d weather=%d hourly samples", len(marine), len(weather)
        )
        return RawFeeds(marine=marine, weather=weather)
