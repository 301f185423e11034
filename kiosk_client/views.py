"""View models for the dashboard page.

``build_view`` turns a state snapshot into the plain, JSON-serializable dict
the dashboard template and ``GET /state`` render. Everything unit- or
format-dependent is resolved here so the page only has to place strings.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .conversions import (
    convert_length,
    convert_speed,
    convert_temp,
    format_clock,
    format_countdown,
    format_cpu_temp,
    format_fan_speed,
    speed_label,
)
from .models import WEATHER_KINDS, STATUS_ERROR
from .modes import is_daylight

HOURS_TO_SHOW = 24
FORECAST_DAYS_TO_SHOW = 4

MAPBOX_TILE_URL = "https://api.mapbox.com/styles/v1/mapbox/{style}/tiles/{{z}}/{{x}}/{{y}}?access_token={key}"
RADAR_TILE_SUFFIX = "/512/{z}/{x}/{y}/6/1_1.png"

WEATHER_ERROR_LINES = ("Could not retrieve weather data.", "Is your weather API key valid?")


def describe_weather_code(code: Optional[int], is_day: bool = True) -> Tuple[str, str]:
    """Convert a WMO weather code to a (description, icon name) pair"""
    if code == 0:
        return "Clear sky", "day-sunny" if is_day else "night-clear"
    elif code == 1:
        return "Mainly clear", "day-cloudy" if is_day else "night-alt-cloudy"
    elif code == 2:
        return "Partly cloudy", "day-sunny-overcast" if is_day else "night-alt-cloudy"
    elif code == 3:
        return "Overcast", "cloudy"
    elif code in [45, 48]:
        return "Fog", "fog"
    elif code in [51, 53, 55]:
        return "Drizzle", "rain-mix"
    elif code in [56, 57]:
        return "Freezing drizzle", "rain-mix"
    elif code in [61, 63, 65, 66, 67, 80, 81, 82]:
        desc = {
            61: "Light rain", 63: "Moderate rain", 65: "Heavy rain",
            66: "Freezing rain", 67: "Freezing rain",
        }.get(code, "Rain showers")
        return desc, "day-rain" if is_day else "night-rain"
    elif code in [71, 73, 75, 77]:
        desc = {71: "Light snow", 73: "Moderate snow", 75: "Heavy snow", 77: "Snow grains"}[code]
        return desc, "snow"
    elif code in [85, 86]:
        return "Snow showers", "snow"
    elif code == 95:
        return "Thunderstorm", "thunderstorm"
    elif code in [96, 99]:
        return "Thunderstorm with hail", "thunderstorm"
    else:
        return "Unknown", "day-sunny" if is_day else "night-clear"


def _parse_local(value: str) -> Optional[datetime]:
    try:
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None


def _pick(series: Dict[str, List[Any]], key: str, index: int):
    values = series.get(key) or []
    return values[index] if index < len(values) else None


def _current_view(payload: Optional[Dict[str, Any]], prefs, daylight: bool) -> Optional[Dict[str, Any]]:
    current = (payload or {}).get("current")
    if not current:
        return None
    description, icon = describe_weather_code(current.get("weather_code"), daylight)
    precipitation = current.get("precipitation")
    cloud_cover = current.get("cloud_cover")
    humidity = current.get("relative_humidity_2m")
    return {
        "temperature": convert_temp(current.get("temperature_2m"), prefs.temp_unit),
        "description": description,
        "icon": icon,
        "precipitation": convert_length(precipitation or 0, prefs.length_unit),
        "precipitation_unit": prefs.length_unit,
        "raining": bool(precipitation and precipitation > 0),
        "cloud_cover": int(cloud_cover) if cloud_cover is not None else None,
        "humidity": int(humidity) if humidity is not None else None,
        "wind_speed": convert_speed(current.get("wind_speed_10m"), prefs.speed_unit),
        "wind_unit": speed_label(prefs.speed_unit),
    }


def _hourly_view(payload: Optional[Dict[str, Any]], prefs) -> List[Dict[str, Any]]:
    hourly = (payload or {}).get("hourly") or {}
    rows = []
    for index, raw_time in enumerate((hourly.get("time") or [])[:HOURS_TO_SHOW]):
        moment = _parse_local(raw_time)
        rows.append({
            "time": format_clock(moment, prefs.clock_time) if moment else raw_time,
            "temperature": convert_temp(_pick(hourly, "temperature_2m", index), prefs.temp_unit),
            "wind_speed": convert_speed(_pick(hourly, "wind_speed_10m", index), prefs.speed_unit),
            "precipitation_probability": _pick(hourly, "precipitation_probability", index),
            "precipitation": convert_length(_pick(hourly, "precipitation", index), prefs.length_unit),
        })
    return rows


def _daily_view(payload: Optional[Dict[str, Any]], prefs) -> List[Dict[str, Any]]:
    daily = (payload or {}).get("daily") or {}
    rows = []
    for index, raw_date in enumerate((daily.get("time") or [])[:FORECAST_DAYS_TO_SHOW]):
        moment = _parse_local(raw_date)
        description, icon = describe_weather_code(_pick(daily, "weather_code", index), True)
        rows.append({
            "day": moment.strftime("%a") if moment else raw_date,
            "high": convert_temp(_pick(daily, "temperature_2m_max", index), prefs.temp_unit),
            "low": convert_temp(_pick(daily, "temperature_2m_min", index), prefs.temp_unit),
            "precipitation_probability": _pick(daily, "precipitation_probability_max", index),
            "precipitation": convert_length(_pick(daily, "precipitation_sum", index), prefs.length_unit),
            "wind_speed": convert_speed(_pick(daily, "wind_speed_10m_max", index), prefs.speed_unit),
            "description": description,
            "icon": icon,
        })
    return rows


def _map_view(snapshot: Dict[str, Any]) -> Dict[str, Any]:
    key = snapshot.get("map_api_key")
    style = "dark-v10" if snapshot["dark_mode"] else "light-v10"
    radar = snapshot.get("radar")
    frame = radar.latest if radar else None
    center = snapshot.get("map_geo")
    pan_to = snapshot.get("pan_to_coords")
    return {
        "available": bool(key),
        "tile_url": MAPBOX_TILE_URL.format(style=style, key=key) if key else None,
        "radar_tile_url": f"{radar.host}{frame.path}{RADAR_TILE_SUFFIX}" if frame else None,
        "radar_time": frame.time if frame else None,
        "center": center.to_dict() if center else None,
        "pan_to": pan_to.to_dict() if pan_to else None,
        "marker_visible": snapshot["marker_visible"],
        "animate": snapshot["animate_weather_map"],
    }


def build_view(snapshot: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Build the dashboard view model from an ``AppState.snapshot()``"""
    now = now or snapshot["now"]
    prefs = snapshot["preferences"]
    sun_times = snapshot["sun_times"]
    daylight = is_daylight(sun_times, now)
    weather = snapshot["weather"]

    status = {
        kind: {"status": weather[kind].status, "error_message": weather[kind].error_message}
        for kind in WEATHER_KINDS
    }
    current_failed = weather["current"].status == STATUS_ERROR
    system_info = snapshot.get("system_info") or {}

    return {
        "render_mode": snapshot["render_mode"].value,
        "theme": "dark" if snapshot["dark_mode"] else "light",
        "dark_mode": snapshot["dark_mode"],
        "auto_dark_mode": snapshot["auto_dark_mode"],
        "mouse_hide": prefs.mouse_hide,
        "clock": {
            "time": format_clock(now, prefs.clock_time),
            "date": f"{now.strftime('%A').upper()} {now.strftime('%B').upper()} {now.day}",
            "sunrise": sun_times.sunrise.astimezone(now.tzinfo).strftime("%H:%M") if sun_times.sunrise else "",
            "sunset": sun_times.sunset.astimezone(now.tzinfo).strftime("%H:%M") if sun_times.sunset else "",
        },
        "location_name": snapshot.get("location_name"),
        "current": _current_view(weather["current"].payload, prefs, daylight),
        "hourly": _hourly_view(weather["hourly"].payload, prefs),
        "daily": _daily_view(weather["daily"].payload, prefs),
        "weather_error": list(WEATHER_ERROR_LINES) if current_failed else None,
        "status": status,
        "map": _map_view(snapshot),
        "screensaver": {
            "active": snapshot["screensaver_active"],
            "enabled": snapshot["screensaver_enabled"],
            "type": prefs.screensaver_type,
            "countdown": format_countdown(snapshot["seconds_until_screensaver"]),
            "ends_in": format_countdown(snapshot["seconds_until_screensaver_end"]),
        },
        "system_info": {
            "cpu_temp": format_cpu_temp(system_info.get("cpuTemp")),
            "fan_speed": format_fan_speed(system_info.get("fanSpeed")),
            "disk_space": system_info.get("diskSpace") or "--",
        },
        "settings": {
            "open": snapshot["settings_menu_open"],
            "weather_api_key": snapshot.get("weather_api_key"),
            "map_api_key": snapshot.get("map_api_key"),
            "reverse_geo_api_key": snapshot.get("reverse_geo_api_key"),
            "custom_lat": snapshot.get("custom_lat"),
            "custom_lon": snapshot.get("custom_lon"),
            "temp_unit": prefs.temp_unit,
            "speed_unit": prefs.speed_unit,
            "length_unit": prefs.length_unit,
            "clock_time": prefs.clock_time,
            "screensaver_timeout": prefs.screensaver_timeout,
            "screensaver_duration": prefs.screensaver_duration,
        },
    }
