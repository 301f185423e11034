"""Background polling for the dashboard.

``PollingOrchestrator`` keeps one repeating task per weather kind for the
current map coordinates and restarts them whenever the coordinates change.
Radar and system info polls are not tied to a location and run for as long
as the orchestrator does. ``AmbientTimers`` drives the dark mode, screensaver
and night clock checks.
"""
from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

from .errors import KioskError
from .models import Coordinates

LOGGER = logging.getLogger(__name__)

CURRENT_WEATHER_INTERVAL = 3 * 60
HOURLY_WEATHER_INTERVAL = 60 * 60
DAILY_WEATHER_INTERVAL = 24 * 60 * 60
RADAR_INTERVAL = 3 * 60
SYSTEM_INFO_INTERVAL = 5

DARK_MODE_INTERVAL = 60
SCREENSAVER_CHECK_INTERVAL = 60
NIGHT_CLOCK_INTERVAL = 30


def _guarded(label: str, fn: Callable, *args) -> None:
    # expected failures (network, missing config) are already reflected in the
    # state; log them without a traceback and let the next tick retry
    try:
        fn(*args)
    except KioskError as e:
        LOGGER.warning("%s failed: %s", label, e)


class PollingOrchestrator:
    """Owns every data polling task of the dashboard"""

    def __init__(self, state, scheduler=None):
        self.state = state
        self.scheduler = scheduler or state.scheduler
        self._lock = threading.RLock()
        self._running = False
        self._coords: Optional[Coordinates] = None
        self._location_tasks: Dict[str, object] = {}
        self._global_tasks: Dict[str, object] = {}
        self._unsubscribe = None

    @property
    def coordinates(self) -> Optional[Coordinates]:
        return self._coords

    @property
    def running(self) -> bool:
        return self._running

    def live_tasks(self) -> Dict[str, object]:
        """Currently scheduled tasks by name"""
        with self._lock:
            tasks = dict(self._global_tasks)
            tasks.update(self._location_tasks)
        return {name: task for name, task in tasks.items() if task.active}

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._global_tasks["radar"] = self.scheduler.call_every(
                RADAR_INTERVAL, self._poll_radar, name="radar", immediate=True
            )
            self._global_tasks["system_info"] = self.scheduler.call_every(
                SYSTEM_INFO_INTERVAL, self._poll_system_info, name="system_info", immediate=True
            )
            self._unsubscribe = self.state.subscribe(self._on_state_change)
        LOGGER.info("Polling started")
        self.set_coordinates(self.state.map_geo)

    def stop(self) -> None:
        with self._lock:
            self._running = False
            if self._unsubscribe is not None:
                self._unsubscribe()
                self._unsubscribe = None
            self._cancel_location_tasks()
            for task in self._global_tasks.values():
                task.cancel()
            self._global_tasks.clear()
            self._coords = None
        LOGGER.info("Polling stopped")

    def _on_state_change(self, changed) -> None:
        if "map_geo" in changed:
            self.set_coordinates(self.state.map_geo)

    def _cancel_location_tasks(self) -> None:
        for task in self._location_tasks.values():
            task.cancel()
        self._location_tasks.clear()

    def set_coordinates(self, coords: Optional[Coordinates]) -> None:
        """Restart the location-bound tasks for ``coords``.

        Unchanged coordinates leave the running tasks alone. ``None`` cancels
        them and nothing is scheduled until real coordinates arrive.
        """
        with self._lock:
            if not self._running:
                return
            if coords == self._coords and (coords is None or self._location_tasks):
                return
            self._cancel_location_tasks()
            self._coords = coords
            if coords is None:
                LOGGER.info("No coordinates yet, location polling suspended")
                return

            LOGGER.info("Polling weather for %s, %s", coords.latitude, coords.longitude)
            schedule = self.scheduler.call_every
            self._location_tasks = {
                "current": schedule(CURRENT_WEATHER_INTERVAL, lambda: self._poll_current(coords),
                                    name="current", immediate=True),
                "hourly": schedule(HOURLY_WEATHER_INTERVAL, lambda: self._poll_hourly(coords),
                                   name="hourly", immediate=True),
                "daily": schedule(DAILY_WEATHER_INTERVAL, lambda: self._poll_daily(coords),
                                  name="daily", immediate=True),
                "location_name": self.scheduler.call_later(
                    0, lambda: self._lookup_location(coords), name="location_name"
                ),
            }

    def _poll_current(self, coords: Coordinates) -> None:
        _guarded("Current weather update", self.state.update_current_weather_data, coords)

    def _poll_hourly(self, coords: Coordinates) -> None:
        _guarded("Hourly weather update", self.state.update_hourly_weather_data, coords)
        _guarded("Sunrise/sunset update", self.state.update_sunrise_sunset, coords)

    def _poll_daily(self, coords: Coordinates) -> None:
        _guarded("Daily weather update", self.state.update_daily_weather_data, coords)

    def _lookup_location(self, coords: Coordinates) -> None:
        _guarded("Location name lookup", self.state.update_location_name, coords)

    def _poll_radar(self) -> None:
        _guarded("Radar update", self.state.update_radar_frames)

    def _poll_system_info(self) -> None:
        self.state.update_system_info()


class AmbientTimers:
    """Periodic dark mode, screensaver and night clock checks"""

    def __init__(self, state, scheduler=None):
        self.state = state
        self.scheduler = scheduler or state.scheduler
        self._tasks = []

    def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            self.scheduler.call_every(DARK_MODE_INTERVAL, self.state.update_auto_dark_mode,
                                      name="dark_mode", immediate=True),
            self.scheduler.call_every(SCREENSAVER_CHECK_INTERVAL, self.state.check_screensaver,
                                      name="screensaver", immediate=True),
            self.scheduler.call_every(NIGHT_CLOCK_INTERVAL, self.state.update_night_clock,
                                      name="night_clock", immediate=True),
        ]

    def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        self._tasks = []
