"""Pytest configuration and shared fakes.

Makes the project root importable so ``import app`` and ``import kiosk_client``
work from any directory, and provides a virtual-time scheduler, a fake clock
and an in-memory settings client so no test touches the network or sleeps.
"""

import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Project root = parent directory of this tests/ folder
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from kiosk_client.app_state import AppState  # noqa: E402
from kiosk_client.preferences import PreferenceStore  # noqa: E402


class FakeClock:
    def __init__(self, start):
        self.current = start

    def __call__(self):
        return self.current

    def advance(self, seconds):
        self.current += timedelta(seconds=seconds)

    def set(self, moment):
        self.current = moment


class ManualTask:
    def __init__(self, fn, name, due, interval=None):
        self.fn = fn
        self.name = name
        self.due = due
        self.interval = interval
        self.calls = 0
        self.cancelled = False

    @property
    def active(self):
        if self.cancelled:
            return False
        return self.interval is not None or self.calls == 0

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Scheduler with virtual time; tasks only run inside ``advance``"""

    def __init__(self, clock=None):
        self.clock = clock
        self.now = 0.0
        self.tasks = []
        self.errors = []

    def call_every(self, interval, fn, name=None, immediate=False):
        due = self.now if immediate else self.now + interval
        task = ManualTask(fn, name, due, interval)
        self.tasks.append(task)
        return task

    def call_later(self, delay, fn, name=None):
        task = ManualTask(fn, name, self.now + delay)
        self.tasks.append(task)
        return task

    def live(self, name=None):
        return [t for t in self.tasks if t.active and (name is None or t.name == name)]

    def _move_to(self, moment):
        if self.clock is not None and moment > self.now:
            self.clock.advance(moment - self.now)
        self.now = moment

    def advance(self, seconds=0):
        target = self.now + seconds
        while True:
            due = [t for t in self.tasks if t.active and t.due <= target]
            if not due:
                break
            task = min(due, key=lambda t: t.due)
            self._move_to(task.due)
            task.calls += 1
            if task.interval is not None:
                task.due += task.interval
            try:
                task.fn()
            except Exception as e:  # mirrors the real timers, which log and keep going
                self.errors.append(e)
        self._move_to(target)


class FakeSettingsClient:
    """In-memory stand-in for SettingsAPIClient"""

    def __init__(self, settings=None, system_info=None, geolocation=None, available=True):
        self.settings = dict(settings or {})
        self.system_info = system_info
        self.geolocation = geolocation
        self.available = available
        self.replaced = []
        self.minimize_result = {'ok': True}

    def get_settings(self):
        return dict(self.settings) if self.available else None

    def replace_settings(self, document):
        if not self.available:
            return None
        self.replaced.append(document)
        self.settings = dict(document)
        return dict(document)

    def get_system_info(self):
        return self.system_info if self.available else None

    def get_geolocation(self):
        return self.geolocation if self.available else None

    def minimize_window(self):
        return self.minimize_result

    def health_check(self):
        return self.available


NOON = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    return FakeClock(NOON)


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def settings_client():
    return FakeSettingsClient(settings={
        'weatherApiKey': 'weather-key',
        'mapApiKey': 'map-key',
        'reverseGeoApiKey': 'geo-key',
        'startingLat': None,
        'startingLon': None,
    })


@pytest.fixture
def preference_store(tmp_path):
    return PreferenceStore(str(tmp_path / 'preferences.json'))


@pytest.fixture
def state(settings_client, preference_store, scheduler, clock):
    return AppState(settings_client, preference_store, scheduler=scheduler, clock=clock)
