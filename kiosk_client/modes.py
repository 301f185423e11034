"""Day/night, screensaver and night clock state machines.

The three machines are independent of each other; :func:`resolve_render_mode`
is the only place where they are composed.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from .models import SunTimes

NIGHT_CLOCK_START_HOUR = 22
NIGHT_CLOCK_END_HOUR = 6

ACTIVITY_EVENTS = frozenset({"mousemove", "mousedown", "keydown", "touchstart", "wheel"})


class DarkModeType(str, Enum):
    AUTO = "auto"
    MANUAL = "manual"


class ScreensaverState(str, Enum):
    IDLE_TRACKING = "idle-tracking"
    ACTIVE = "active"


class RenderMode(str, Enum):
    NORMAL = "normal"
    SCREENSAVER = "screensaver"
    NIGHT_CLOCK = "night-clock"


def is_daylight(sun_times: Optional[SunTimes], now: datetime) -> bool:
    """True between sunrise and sunset; also True when sun times are unknown"""
    if sun_times is None or not sun_times.known:
        return True
    return sun_times.sunrise < now < sun_times.sunset


def night_clock_active(now: datetime) -> bool:
    return now.hour >= NIGHT_CLOCK_START_HOUR or now.hour < NIGHT_CLOCK_END_HOUR


def resolve_render_mode(night_clock: bool, screensaver_active: bool) -> RenderMode:
    """Pick the full-screen mode: night clock beats screensaver beats the dashboard"""
    if night_clock:
        return RenderMode.NIGHT_CLOCK
    if screensaver_active:
        return RenderMode.SCREENSAVER
    return RenderMode.NORMAL


class DarkModeMachine:
    """Dark mode either derived from sun times (auto) or set by hand (manual)"""

    def __init__(self, dark_mode: bool = True, mode: DarkModeType = DarkModeType.AUTO):
        self.dark_mode = dark_mode
        self.mode = mode

    @property
    def auto(self) -> bool:
        return self.mode is DarkModeType.AUTO

    def recompute(self, sun_times: Optional[SunTimes], now: datetime) -> bool:
        if self.auto:
            self.dark_mode = not is_daylight(sun_times, now)
        return self.dark_mode

    def toggle(self) -> bool:
        # direct toggling only applies to manual mode
        if not self.auto:
            self.dark_mode = not self.dark_mode
        return self.dark_mode

    def toggle_type(self, sun_times: Optional[SunTimes], now: datetime) -> DarkModeType:
        if self.auto:
            self.mode = DarkModeType.MANUAL
        else:
            self.mode = DarkModeType.AUTO
            self.recompute(sun_times, now)
        return self.mode


class ScreensaverMachine:
    """Idle-timeout screensaver.

    ``timeout`` and ``duration`` are in minutes. The machine only decides
    transitions; scheduling the automatic return after ``duration`` is left to
    the owner.
    """

    def __init__(self, last_activity: datetime, enabled: bool = True, timeout: int = 60, duration: int = 3):
        self.enabled = enabled
        self.timeout = timeout
        self.duration = duration
        self.last_activity = last_activity
        self.state = ScreensaverState.IDLE_TRACKING

    @property
    def active(self) -> bool:
        return self.state is ScreensaverState.ACTIVE

    def record_activity(self, now: datetime) -> bool:
        """Reset the idle clock; returns True when this ended an active screensaver"""
        self.last_activity = now
        if self.active:
            self.state = ScreensaverState.IDLE_TRACKING
            return True
        return False

    def check_inactivity(self, now: datetime) -> bool:
        """Enter ACTIVE once the idle time reaches the timeout; True on transition"""
        if not self.enabled or self.active:
            return False
        if now - self.last_activity >= timedelta(minutes=self.timeout):
            self.activate()
            return True
        return False

    def activate(self) -> None:
        self.state = ScreensaverState.ACTIVE

    def deactivate(self, now: datetime) -> None:
        self.state = ScreensaverState.IDLE_TRACKING
        self.last_activity = now

    def seconds_until_active(self, now: datetime) -> int:
        if not self.enabled or self.active:
            return 0
        remaining = timedelta(minutes=self.timeout) - (now - self.last_activity)
        return max(0, int(remaining.total_seconds()))
