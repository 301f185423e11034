"""Shared dashboard state.

``AppState`` is the single source of truth for everything the dashboard
shows. The orchestrator, the mode timers and the UI app all hold a reference
to the same instance; they read it through :meth:`AppState.snapshot` and change
it through the named mutators or :meth:`AppState.dispatch`.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from . import geolocation, weather_api
from .conversions import CLOCK_TIMES, LENGTH_UNITS, SPEED_UNITS, TEMP_UNITS
from .errors import (
    FetchError,
    GeolocationError,
    MissingApiKeyError,
    MissingCoordinatesError,
    SettingsSaveError,
    UnknownActionError,
)
from .models import WEATHER_KINDS, Coordinates, RadarData, SunTimes, WeatherSnapshot
from .modes import (
    ACTIVITY_EVENTS,
    DarkModeMachine,
    DarkModeType,
    RenderMode,
    ScreensaverMachine,
    night_clock_active,
    resolve_render_mode,
)
from .preferences import (
    CLOCK_UNIT_STORAGE_KEY,
    LENGTH_UNIT_STORAGE_KEY,
    MOUSE_HIDE_STORAGE_KEY,
    SCREENSAVER_DURATION_KEY,
    SCREENSAVER_ENABLED_KEY,
    SCREENSAVER_TIMEOUT_KEY,
    SCREENSAVER_TYPE_KEY,
    SCREENSAVER_TYPES,
    SPEED_UNIT_STORAGE_KEY,
    TEMP_UNIT_STORAGE_KEY,
    PreferenceStore,
    Preferences,
    bool_to_storage,
    load_preferences,
    parse_bool,
)
from .scheduler import ThreadScheduler

LOGGER = logging.getLogger(__name__)

_WEATHER_FETCHERS = {
    "current": "fetch_current_weather",
    "hourly": "fetch_hourly_weather",
    "daily": "fetch_daily_weather",
}

Listener = Callable[[frozenset], None]


def local_now() -> datetime:
    return datetime.now().astimezone()


def _payload_value(payload: Optional[Dict[str, Any]], key: str):
    if not payload or key not in payload:
        raise ValueError(f"Missing '{key}' in action payload")
    return payload[key]


def _payload_coords(payload: Optional[Dict[str, Any]]) -> Coordinates:
    coords = Coordinates.from_dict(payload) if isinstance(payload, dict) else None
    if coords is None:
        raise ValueError("Missing 'latitude' or 'longitude' in action payload")
    return coords


def _payload_bool(payload: Optional[Dict[str, Any]], key: str) -> bool:
    value = _payload_value(payload, key)
    if isinstance(value, str):
        return parse_bool(value)
    return bool(value)


def _as_coords(value) -> Optional[Coordinates]:
    if value is None or isinstance(value, Coordinates):
        return value
    return Coordinates.from_dict(value)


class AppState:
    """Process-wide dashboard state container"""

    def __init__(self, settings_client, preference_store: PreferenceStore,
                 scheduler=None, clock: Callable[[], datetime] = local_now):
        self.settings_client = settings_client
        self.preference_store = preference_store
        self.scheduler = scheduler or ThreadScheduler()
        self.clock = clock

        self._lock = threading.RLock()
        self._listeners: List[Listener] = []

        self.weather_api_key: Optional[str] = None
        self.map_api_key: Optional[str] = None
        self.reverse_geo_api_key: Optional[str] = None
        self.custom_lat: Optional[str] = None
        self.custom_lon: Optional[str] = None

        self.browser_geo: Optional[Coordinates] = None
        self.map_geo: Optional[Coordinates] = None
        self.pan_to_coords: Optional[Coordinates] = None
        self.location_name: Optional[str] = None

        self.marker_visible = True
        self.animate_weather_map = False
        self.settings_menu_open = False

        self.preferences = Preferences()
        self.sun_times = SunTimes()
        self.radar: Optional[RadarData] = None
        self.system_info: Optional[Dict[str, Any]] = None

        self._weather: Dict[str, WeatherSnapshot] = {kind: WeatherSnapshot() for kind in WEATHER_KINDS}
        # per-kind request generation; results from superseded requests are dropped
        self._generation: Dict[str, int] = {kind: 0 for kind in WEATHER_KINDS}

        self._dark_mode = DarkModeMachine(dark_mode=True, mode=DarkModeType.AUTO)
        self._screensaver = ScreensaverMachine(last_activity=self.clock())
        self._screensaver_timer = None
        self._screensaver_ends_at: Optional[datetime] = None
        self._night_clock = False

        self._actions: Dict[str, Callable[[Optional[Dict[str, Any]]], Any]] = {
            "set_map_position": lambda p: self.set_map_position(_payload_coords(p)),
            "reset_map_position": lambda p: self.reset_map_position(),
            "clear_pan_to_coords": lambda p: self.clear_pan_to_coords(),
            "toggle_marker": lambda p: self.toggle_marker(),
            "toggle_animate_weather_map": lambda p: self.toggle_animate_weather_map(),
            "toggle_settings_menu_open": lambda p: self.toggle_settings_menu_open(),
            "set_settings_menu_open": lambda p: self.set_settings_menu_open(_payload_bool(p, "open")),
            "toggle_dark_mode": lambda p: self.toggle_dark_mode(),
            "toggle_dark_mode_type": lambda p: self.toggle_dark_mode_type(),
            "save_temp_unit": lambda p: self.save_temp_unit(_payload_value(p, "value")),
            "save_speed_unit": lambda p: self.save_speed_unit(_payload_value(p, "value")),
            "save_length_unit": lambda p: self.save_length_unit(_payload_value(p, "value")),
            "save_clock_time": lambda p: self.save_clock_time(_payload_value(p, "value")),
            "save_mouse_hide": lambda p: self.save_mouse_hide(_payload_value(p, "value")),
            "save_screensaver_enabled": lambda p: self.save_screensaver_enabled(_payload_value(p, "value")),
            "save_screensaver_timeout": lambda p: self.save_screensaver_timeout(_payload_value(p, "value")),
            "save_screensaver_duration": lambda p: self.save_screensaver_duration(_payload_value(p, "value")),
            "save_screensaver_type": lambda p: self.save_screensaver_type(_payload_value(p, "value")),
            "save_settings": self._save_settings_action,
            "record_activity": lambda p: self.record_activity((p or {}).get("event", "mousemove")),
            "deactivate_screensaver": lambda p: self.deactivate_screensaver(),
        }

    # ----------------------------------------------------------------
    # subscription / dispatch
    # ----------------------------------------------------------------
    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a function that unregisters it"""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def _notify(self, changed: Iterable[str]) -> None:
        changed = frozenset(changed)
        if not changed:
            return
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(changed)
            except Exception:
                LOGGER.exception("State listener %r failed", listener)

    def _set(self, **fields) -> frozenset:
        changed = set()
        with self._lock:
            for name, value in fields.items():
                if getattr(self, name) != value:
                    setattr(self, name, value)
                    changed.add(name)
        self._notify(changed)
        return frozenset(changed)

    @property
    def actions(self) -> Tuple[str, ...]:
        return tuple(sorted(self._actions))

    def dispatch(self, action: str, payload: Optional[Dict[str, Any]] = None):
        """Run a named mutator with an optional JSON-style payload"""
        handler = self._actions.get(action)
        if handler is None:
            raise UnknownActionError(f"Unknown action: {action}")
        LOGGER.debug("Dispatching %s %s", action, payload)
        return handler(payload)

    # ----------------------------------------------------------------
    # read access
    # ----------------------------------------------------------------
    def weather(self, kind: str) -> WeatherSnapshot:
        with self._lock:
            return self._weather[kind].copy()

    @property
    def dark_mode(self) -> bool:
        return self._dark_mode.dark_mode

    @property
    def auto_dark_mode(self) -> bool:
        return self._dark_mode.auto

    @property
    def screensaver_active(self) -> bool:
        return self._screensaver.active

    @property
    def last_activity_time(self) -> datetime:
        return self._screensaver.last_activity

    @property
    def night_clock_active(self) -> bool:
        return self._night_clock

    @property
    def render_mode(self) -> RenderMode:
        with self._lock:
            return resolve_render_mode(self._night_clock, self._screensaver.active)

    def _seconds_until_screensaver_end(self, now: datetime) -> int:
        if not self._screensaver.active or self._screensaver_ends_at is None:
            return 0
        return max(0, int((self._screensaver_ends_at - now).total_seconds()))

    def time_until_screensaver(self) -> int:
        """Seconds left before the screensaver starts (0 when disabled or active)"""
        with self._lock:
            return self._screensaver.seconds_until_active(self.clock())

    def snapshot(self) -> Dict[str, Any]:
        """Consistent copy of every value the views need"""
        with self._lock:
            return {
                "now": self.clock(),
                "weather_api_key": self.weather_api_key,
                "map_api_key": self.map_api_key,
                "reverse_geo_api_key": self.reverse_geo_api_key,
                "custom_lat": self.custom_lat,
                "custom_lon": self.custom_lon,
                "browser_geo": self.browser_geo,
                "map_geo": self.map_geo,
                "pan_to_coords": self.pan_to_coords,
                "location_name": self.location_name,
                "marker_visible": self.marker_visible,
                "animate_weather_map": self.animate_weather_map,
                "settings_menu_open": self.settings_menu_open,
                "preferences": replace(self.preferences),
                "weather": {kind: snap.copy() for kind, snap in self._weather.items()},
                "sun_times": self.sun_times,
                "radar": RadarData(self.radar.host, list(self.radar.frames)) if self.radar else None,
                "system_info": dict(self.system_info) if self.system_info else None,
                "dark_mode": self._dark_mode.dark_mode,
                "auto_dark_mode": self._dark_mode.auto,
                "screensaver_active": self._screensaver.active,
                "screensaver_enabled": self._screensaver.enabled,
                "last_activity_time": self._screensaver.last_activity,
                "seconds_until_screensaver": self._screensaver.seconds_until_active(self.clock()),
                "seconds_until_screensaver_end": self._seconds_until_screensaver_end(self.clock()),
                "night_clock_active": self._night_clock,
                "render_mode": resolve_render_mode(self._night_clock, self._screensaver.active),
            }

    # ----------------------------------------------------------------
    # settings document
    # ----------------------------------------------------------------
    def _required_key(self, field: str, attr: str, reason: str, open_settings: bool) -> str:
        settings = self.settings_client.get_settings()
        key = (settings or {}).get(field)
        if not key:
            if open_settings:
                self._set(settings_menu_open=True)
            raise MissingApiKeyError(reason)
        self._set(**{attr: key})
        return key

    def get_weather_api_key(self) -> str:
        return self._required_key("weatherApiKey", "weather_api_key", "Weather API key missing", True)

    def get_map_api_key(self) -> str:
        return self._required_key("mapApiKey", "map_api_key", "Map API key missing!", True)

    def get_reverse_geo_api_key(self) -> str:
        # optional key: a missing one never opens the settings panel
        return self._required_key("reverseGeoApiKey", "reverse_geo_api_key",
                                  "Reverse geolocation API key missing!", False)

    def get_custom_lat_lon(self) -> Tuple[Optional[str], Optional[str]]:
        """Read the custom starting coordinates from the settings document"""
        settings = self.settings_client.get_settings()
        if settings is None:
            LOGGER.warning("Could not read settings for custom starting coordinates")
            return None, None
        lat = settings.get("startingLat")
        lon = settings.get("startingLon")
        fields = {}
        if lat not in (None, ""):
            fields["custom_lat"] = str(lat)
        if lon not in (None, ""):
            fields["custom_lon"] = str(lon)
        self._set(**fields)
        return fields.get("custom_lat"), fields.get("custom_lon")

    def get_browser_geo(self) -> Coordinates:
        """Resolve the starting coordinates.

        Custom coordinates from the settings document win; otherwise the
        settings server's geolocation lookup is used.
        """
        coords = None
        lat, lon = self.get_custom_lat_lon()
        if lat and lon:
            try:
                coords = Coordinates(float(lat), float(lon))
            except ValueError:
                LOGGER.warning("Ignoring invalid custom coordinates %r, %r", lat, lon)
        if coords is None:
            coords = geolocation.get_coords_from_api(self.settings_client)
        if coords is None:
            raise GeolocationError("Could not get browser geolocation data")
        LOGGER.info("Starting coordinates: %s, %s", coords.latitude, coords.longitude)
        self._set(browser_geo=coords, map_geo=coords)
        return coords

    def save_settings_to_json(self, maps_key=None, weather_key=None, geo_key=None, lat=None, lon=None):
        """Replace the settings document on the server and mirror it in memory"""
        document = {
            "weatherApiKey": weather_key,
            "mapApiKey": maps_key,
            "reverseGeoApiKey": geo_key,
            "startingLat": lat,
            "startingLon": lon,
        }
        result = self.settings_client.replace_settings(document)
        if result is None:
            raise SettingsSaveError("Could not save settings")
        self._set(
            map_api_key=maps_key,
            weather_api_key=weather_key,
            reverse_geo_api_key=geo_key,
            custom_lat=lat,
            custom_lon=lon,
        )
        return result

    def _save_settings_action(self, payload):
        payload = payload or {}
        result = self.save_settings_to_json(
            maps_key=payload.get("mapsKey"),
            weather_key=payload.get("weatherKey"),
            geo_key=payload.get("geoKey"),
            lat=payload.get("lat"),
            lon=payload.get("lon"),
        )
        self.set_settings_menu_open(False)
        return result

    # ----------------------------------------------------------------
    # weather data
    # ----------------------------------------------------------------
    def _update_weather(self, kind: str, coords) -> Dict[str, Any]:
        coords = _as_coords(coords)
        with self._lock:
            snap = self._weather[kind]
            snap.error = False
            snap.error_message = None
            if coords is None:
                snap.error = True
            self._generation[kind] += 1
            generation = self._generation[kind]
        self._notify({f"{kind}_weather"})
        if coords is None:
            raise MissingCoordinatesError()

        fetch = getattr(weather_api, _WEATHER_FETCHERS[kind])
        try:
            payload = fetch(coords)
        except FetchError as e:
            with self._lock:
                stale = generation != self._generation[kind]
                if not stale:
                    snap = self._weather[kind]
                    snap.error = True
                    if e.message:
                        snap.error_message = e.message
            if stale:
                LOGGER.debug("Dropping stale %s weather failure", kind)
            else:
                LOGGER.warning("Failed to update %s weather: %s", kind, e.message)
                self._notify({f"{kind}_weather"})
            raise

        with self._lock:
            stale = generation != self._generation[kind]
            if not stale:
                snap = self._weather[kind]
                snap.payload = payload
                snap.error = False
                snap.error_message = None
        if stale:
            LOGGER.debug("Dropping stale %s weather response", kind)
        else:
            self._notify({f"{kind}_weather"})
        return payload

    def update_current_weather_data(self, coords) -> Dict[str, Any]:
        return self._update_weather("current", coords)

    def update_hourly_weather_data(self, coords) -> Dict[str, Any]:
        return self._update_weather("hourly", coords)

    def update_daily_weather_data(self, coords) -> Dict[str, Any]:
        return self._update_weather("daily", coords)

    def update_sunrise_sunset(self, coords) -> SunTimes:
        coords = _as_coords(coords)
        if coords is None:
            self._set(sun_times=SunTimes())
            self.update_auto_dark_mode()
            raise MissingCoordinatesError()
        try:
            sun_times = weather_api.fetch_sun_times(coords)
        except FetchError:
            self._set(sun_times=SunTimes())
            self.update_auto_dark_mode()
            raise
        self._set(sun_times=sun_times)
        self.update_auto_dark_mode()
        return sun_times

    def update_radar_frames(self) -> RadarData:
        try:
            radar = weather_api.fetch_radar_frames()
        except FetchError as e:
            LOGGER.warning("timestamp fetch error: %s", e.message)
            raise
        LOGGER.debug("Got radar frames: %d", len(radar.frames))
        self._set(radar=radar)
        return radar

    def update_location_name(self, coords) -> Optional[str]:
        coords = _as_coords(coords)
        if coords is None:
            raise MissingCoordinatesError()
        if not self.reverse_geo_api_key:
            try:
                self.get_reverse_geo_api_key()
            except MissingApiKeyError as e:
                LOGGER.info("Skipping location name lookup: %s", e)
                return None
        name = weather_api.fetch_location_name(coords, self.reverse_geo_api_key)
        changed = False
        with self._lock:
            stale = coords != self.map_geo
            if not stale:
                changed = name != self.location_name
                self.location_name = name
        if stale:
            LOGGER.debug("Dropping location name for superseded coordinates %s", coords)
        elif changed:
            self._notify({"location_name"})
        return name

    def update_system_info(self) -> Optional[Dict[str, Any]]:
        info = self.settings_client.get_system_info()
        if info is None:
            LOGGER.debug("System info unavailable")
            return None
        self._set(system_info=info)
        return info

    # ----------------------------------------------------------------
    # map
    # ----------------------------------------------------------------
    def set_map_position(self, coords) -> None:
        """Move the map (and every location dependent fetch) to ``coords``"""
        coords = _as_coords(coords)
        self._set(map_geo=coords, pan_to_coords=coords)

    def reset_map_position(self) -> None:
        self.set_map_position(self.browser_geo)

    def clear_pan_to_coords(self) -> None:
        self._set(pan_to_coords=None)

    def toggle_marker(self) -> bool:
        with self._lock:
            value = not self.marker_visible
        self._set(marker_visible=value)
        return value

    def toggle_animate_weather_map(self) -> bool:
        with self._lock:
            value = not self.animate_weather_map
        self._set(animate_weather_map=value)
        return value

    def toggle_settings_menu_open(self) -> bool:
        with self._lock:
            value = not self.settings_menu_open
        self._set(settings_menu_open=value)
        return value

    def set_settings_menu_open(self, value: bool) -> None:
        self._set(settings_menu_open=bool(value))

    # ----------------------------------------------------------------
    # preferences
    # ----------------------------------------------------------------
    def _save_preference(self, attr: str, storage_key: str, value, stored: str,
                         apply: Optional[Callable[[Any], None]] = None) -> None:
        # memory changes only after the write succeeds
        with self._lock:
            self.preference_store.set_item(storage_key, stored)
            self.preferences = replace(self.preferences, **{attr: value})
            if apply is not None:
                apply(value)
        self._notify({"preferences"})

    @staticmethod
    def _check_choice(value: str, choices, what: str) -> str:
        if value not in choices:
            raise ValueError(f"Unknown {what}: {value!r}")
        return value

    def save_temp_unit(self, value: str) -> None:
        self._check_choice(value, TEMP_UNITS, "temperature unit")
        self._save_preference("temp_unit", TEMP_UNIT_STORAGE_KEY, value, value)

    def save_speed_unit(self, value: str) -> None:
        self._check_choice(value, SPEED_UNITS, "speed unit")
        self._save_preference("speed_unit", SPEED_UNIT_STORAGE_KEY, value, value)

    def save_length_unit(self, value: str) -> None:
        self._check_choice(value, LENGTH_UNITS, "length unit")
        self._save_preference("length_unit", LENGTH_UNIT_STORAGE_KEY, value, value)

    def save_clock_time(self, value: str) -> None:
        value = str(value)
        self._check_choice(value, CLOCK_TIMES, "clock format")
        self._save_preference("clock_time", CLOCK_UNIT_STORAGE_KEY, value, value)

    def save_mouse_hide(self, value) -> None:
        if isinstance(value, str):
            try:
                value = parse_bool(value)
            except ValueError as e:
                LOGGER.warning("saveMouseHide: %s", e)
                return
        value = bool(value)
        self._save_preference("mouse_hide", MOUSE_HIDE_STORAGE_KEY, value, bool_to_storage(value))

    def save_screensaver_enabled(self, value) -> None:
        if isinstance(value, str):
            value = parse_bool(value)
        value = bool(value)
        self._save_preference("screensaver_enabled", SCREENSAVER_ENABLED_KEY, value, bool_to_storage(value),
                              apply=lambda v: setattr(self._screensaver, "enabled", v))

    def save_screensaver_timeout(self, value) -> None:
        minutes = int(value)
        if minutes < 1:
            raise ValueError("Screensaver timeout must be at least one minute")
        self._save_preference("screensaver_timeout", SCREENSAVER_TIMEOUT_KEY, minutes, str(minutes),
                              apply=lambda v: setattr(self._screensaver, "timeout", v))

    def save_screensaver_duration(self, value) -> None:
        minutes = int(value)
        if minutes < 1:
            raise ValueError("Screensaver duration must be at least one minute")
        self._save_preference("screensaver_duration", SCREENSAVER_DURATION_KEY, minutes, str(minutes),
                              apply=lambda v: setattr(self._screensaver, "duration", v))

    def save_screensaver_type(self, value: str) -> None:
        self._check_choice(value, SCREENSAVER_TYPES, "screensaver type")
        self._save_preference("screensaver_type", SCREENSAVER_TYPE_KEY, value, value)

    def load_stored_data(self) -> Preferences:
        """Seed preferences from the local store (defaults for anything missing)"""
        prefs = load_preferences(self.preference_store)
        with self._lock:
            self.preferences = prefs
            self._screensaver.enabled = prefs.screensaver_enabled
            self._screensaver.timeout = prefs.screensaver_timeout
            self._screensaver.duration = prefs.screensaver_duration
        self._notify({"preferences"})
        return prefs

    # ----------------------------------------------------------------
    # dark mode
    # ----------------------------------------------------------------
    def update_auto_dark_mode(self) -> bool:
        with self._lock:
            before = self._dark_mode.dark_mode
            value = self._dark_mode.recompute(self.sun_times, self.clock())
        if value != before:
            LOGGER.info("Auto dark mode: %s", "dark" if value else "light")
            self._notify({"dark_mode"})
        return value

    def toggle_dark_mode(self) -> bool:
        with self._lock:
            value = self._dark_mode.toggle()
        self._notify({"dark_mode"})
        return value

    def toggle_dark_mode_type(self) -> DarkModeType:
        with self._lock:
            mode = self._dark_mode.toggle_type(self.sun_times, self.clock())
        LOGGER.info("Dark mode type: %s", mode.value)
        self._notify({"dark_mode", "auto_dark_mode"})
        return mode

    # ----------------------------------------------------------------
    # screensaver / night clock
    # ----------------------------------------------------------------
    def _cancel_screensaver_timer(self) -> None:
        if self._screensaver_timer is not None:
            self._screensaver_timer.cancel()
            self._screensaver_timer = None
        self._screensaver_ends_at = None

    def _schedule_screensaver_end(self) -> None:
        with self._lock:
            self._cancel_screensaver_timer()
            delay = self._screensaver.duration * 60
            self._screensaver_ends_at = self.clock() + timedelta(seconds=delay)
            self._screensaver_timer = self.scheduler.call_later(
                delay, self.deactivate_screensaver, name="screensaver-end"
            )

    def record_activity(self, event_type: str = "mousemove") -> None:
        """Register user input; ends an active screensaver"""
        if event_type not in ACTIVITY_EVENTS:
            raise ValueError(f"Unknown activity event: {event_type!r}")
        with self._lock:
            ended = self._screensaver.record_activity(self.clock())
            if ended:
                self._cancel_screensaver_timer()
        if ended:
            LOGGER.info("Screensaver dismissed by %s", event_type)
        self._notify({"last_activity_time", "screensaver_active"} if ended else {"last_activity_time"})

    def activate_screensaver(self) -> None:
        with self._lock:
            self._screensaver.activate()
        self._schedule_screensaver_end()
        LOGGER.info("Screensaver activated")
        self._notify({"screensaver_active"})

    def deactivate_screensaver(self) -> None:
        with self._lock:
            self._screensaver.deactivate(self.clock())
            self._cancel_screensaver_timer()
        self._notify({"screensaver_active", "last_activity_time"})

    def check_screensaver(self) -> bool:
        """Start the screensaver when the idle timeout has been reached"""
        with self._lock:
            started = self._screensaver.check_inactivity(self.clock())
        if started:
            self._schedule_screensaver_end()
            LOGGER.info("Screensaver activated after inactivity")
            self._notify({"screensaver_active"})
        return started

    def update_night_clock(self) -> bool:
        value = night_clock_active(self.clock())
        with self._lock:
            changed = value != self._night_clock
            self._night_clock = value
        if changed:
            LOGGER.info("Night clock %s", "on" if value else "off")
            self._notify({"night_clock_active"})
        return value
