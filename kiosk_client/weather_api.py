"""Thin wrappers around the third-party weather, sun and radar endpoints.

Every fetcher performs a single GET and either returns a normalized payload
or raises :class:`FetchError` carrying a human readable message.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional

import requests

from .errors import FetchError
from .models import Coordinates, RadarData, RadarFrame, SunTimes

LOGGER = logging.getLogger(__name__)

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
SUNRISE_SUNSET_URL = "https://api.sunrise-sunset.org/json"
RADAR_MAPS_URL = "https://api.rainviewer.com/public/weather-maps.json"
LEGACY_RADAR_MAPS_URL = "https://api.rainviewer.com/public/maps.json"
DEFAULT_RADAR_HOST = "https://tilecache.rainviewer.com"
REVERSE_GEO_URL = "https://us1.locationiq.com/v1/reverse"

REQUEST_TIMEOUT = 10

CURRENT_FIELDS = "temperature_2m,relative_humidity_2m,precipitation,wind_speed_10m,weather_code,cloud_cover"
HOURLY_FIELDS = "temperature_2m,precipitation_probability,precipitation,wind_speed_10m"
DAILY_FIELDS = (
    "temperature_2m_max,temperature_2m_min,precipitation_probability_max,"
    "precipitation_sum,wind_speed_10m_max,weather_code"
)


def _get_json(url: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """GET a JSON document, turning every failure into a FetchError"""
    try:
        response = requests.get(url, params=params, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        raise FetchError(str(e), status_code=status) from e
    except requests.exceptions.RequestException as e:
        raise FetchError(str(e)) from e
    except ValueError as e:
        raise FetchError(f"Invalid JSON from {url}") from e


def _forecast(coords: Coordinates, **params) -> Dict[str, Any]:
    query = {
        "latitude": coords.latitude,
        "longitude": coords.longitude,
        "timezone": "auto",
        "wind_speed_unit": "ms",
    }
    query.update(params)
    data = _get_json(FORECAST_URL, query)
    if not isinstance(data, dict):
        raise FetchError("No response")
    return data


def fetch_current_weather(coords: Coordinates) -> Dict[str, Any]:
    """Fetch current conditions from Open-Meteo"""
    LOGGER.debug("Fetching current weather for %s", coords)
    return _forecast(coords, current=CURRENT_FIELDS)


def fetch_hourly_weather(coords: Coordinates) -> Dict[str, Any]:
    """Fetch today's hourly series from Open-Meteo"""
    LOGGER.debug("Fetching hourly weather for %s", coords)
    return _forecast(coords, hourly=HOURLY_FIELDS, forecast_days=1)


def fetch_daily_weather(coords: Coordinates) -> Dict[str, Any]:
    """Fetch the five day forecast from Open-Meteo"""
    LOGGER.debug("Fetching daily weather for %s", coords)
    return _forecast(coords, daily=DAILY_FIELDS, forecast_days=5)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp, accepting a trailing `Z`"""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        LOGGER.warning("Unparseable timestamp: %s", value)
        return None


def fetch_sun_times(coords: Coordinates) -> SunTimes:
    """Fetch today's sunrise and sunset for the coordinates.

    Returns the both-None pair when the service answers without results.
    """
    data = _get_json(
        SUNRISE_SUNSET_URL,
        {"lat": coords.latitude, "lng": coords.longitude, "formatted": 0},
    )
    results = data.get("results") if isinstance(data, dict) else None
    if not results:
        return SunTimes()
    sunrise = parse_timestamp(results.get("sunrise"))
    sunset = parse_timestamp(results.get("sunset"))
    if sunrise is None or sunset is None:
        return SunTimes()
    return SunTimes(sunrise, sunset)


def _fetch_legacy_radar_frames() -> RadarData:
    data = _get_json(LEGACY_RADAR_MAPS_URL)
    frames = []
    if isinstance(data, list):
        for timestamp in data:
            # bool is an int subclass but never a timestamp
            if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool):
                frames.append(RadarFrame(time=int(timestamp), path=f"/v2/radar/{int(timestamp)}"))
    return RadarData(host=DEFAULT_RADAR_HOST, frames=frames)


def fetch_radar_frames() -> RadarData:
    """Fetch radar frame metadata for the precipitation overlay.

    Tries the current metadata endpoint first and falls back to the legacy
    flat timestamp list when it fails or has no past frames. A failure of the
    legacy endpoint propagates unchanged.
    """
    try:
        data = _get_json(RADAR_MAPS_URL)
    except FetchError as e:
        LOGGER.warning("weather-maps endpoint failed, falling back to maps.json: %s", e)
        return _fetch_legacy_radar_frames()

    data = data if isinstance(data, dict) else {}
    host = data.get("host") or DEFAULT_RADAR_HOST
    past = (data.get("radar") or {}).get("past") or []
    if isinstance(past, list):
        frames = [
            RadarFrame(time=frame.get("time"), path=frame["path"])
            for frame in past
            if isinstance(frame, dict) and frame.get("path")
        ]
        if frames:
            return RadarData(host=host, frames=frames)

    LOGGER.info("No radar frames in weather-maps.json, falling back to maps.json")
    return _fetch_legacy_radar_frames()


def fetch_location_name(coords: Coordinates, api_key: str) -> Optional[str]:
    """Reverse geocode coordinates into a short place name"""
    data = _get_json(
        REVERSE_GEO_URL,
        {"key": api_key, "lat": coords.latitude, "lon": coords.longitude, "format": "json"},
    )
    address = data.get("address") if isinstance(data, dict) else None
    if not address:
        return None
    place = address.get("city") or address.get("town") or address.get("village") or address.get("county")
    region = address.get("state") or address.get("country")
    parts = [p for p in (place, region) if p]
    return ", ".join(parts) if parts else None
