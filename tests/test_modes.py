from datetime import datetime, timedelta, timezone

import pytest

from kiosk_client.models import SunTimes
from kiosk_client.modes import (
    DarkModeMachine,
    DarkModeType,
    RenderMode,
    ScreensaverMachine,
    ScreensaverState,
    is_daylight,
    night_clock_active,
    resolve_render_mode,
)

UTC = timezone.utc
SUNRISE = datetime(2026, 6, 15, 6, 0, tzinfo=UTC)
SUNSET = datetime(2026, 6, 15, 20, 0, tzinfo=UTC)
SUN = SunTimes(SUNRISE, SUNSET)


def test_is_daylight():
    assert is_daylight(SUN, datetime(2026, 6, 15, 12, 0, tzinfo=UTC))
    assert not is_daylight(SUN, datetime(2026, 6, 15, 22, 0, tzinfo=UTC))
    # boundaries are exclusive
    assert not is_daylight(SUN, SUNRISE)
    assert not is_daylight(SUN, SUNSET)


def test_unknown_sun_times_mean_daylight():
    night = datetime(2026, 6, 15, 23, 0, tzinfo=UTC)
    assert is_daylight(SunTimes(), night)
    assert is_daylight(None, night)


def test_auto_dark_mode_follows_sun():
    machine = DarkModeMachine()
    assert machine.recompute(SUN, datetime(2026, 6, 15, 12, 0, tzinfo=UTC)) is False
    assert machine.recompute(SUN, datetime(2026, 6, 15, 21, 0, tzinfo=UTC)) is True


def test_toggle_only_applies_in_manual_mode():
    machine = DarkModeMachine(dark_mode=True, mode=DarkModeType.AUTO)
    assert machine.toggle() is True

    machine.toggle_type(SUN, datetime(2026, 6, 15, 12, 0, tzinfo=UTC))
    assert machine.mode is DarkModeType.MANUAL
    assert machine.dark_mode is True
    assert machine.toggle() is False


def test_switching_back_to_auto_recomputes():
    machine = DarkModeMachine(dark_mode=True, mode=DarkModeType.MANUAL)
    machine.toggle_type(SUN, datetime(2026, 6, 15, 12, 0, tzinfo=UTC))
    assert machine.auto
    assert machine.dark_mode is False


def test_screensaver_activates_after_timeout():
    start = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)
    machine = ScreensaverMachine(last_activity=start, timeout=1)

    assert machine.check_inactivity(start + timedelta(seconds=59)) is False
    assert machine.check_inactivity(start + timedelta(seconds=60)) is True
    assert machine.state is ScreensaverState.ACTIVE
    # a second check does not re-enter
    assert machine.check_inactivity(start + timedelta(seconds=120)) is False


def test_activity_leaves_active_state():
    start = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)
    machine = ScreensaverMachine(last_activity=start, timeout=1)
    machine.activate()

    later = start + timedelta(minutes=5)
    assert machine.record_activity(later) is True
    assert machine.state is ScreensaverState.IDLE_TRACKING
    assert machine.last_activity == later
    assert machine.record_activity(later) is False


def test_disabled_screensaver_never_activates():
    start = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)
    machine = ScreensaverMachine(last_activity=start, enabled=False, timeout=1)
    assert machine.check_inactivity(start + timedelta(hours=3)) is False
    assert machine.seconds_until_active(start) == 0


def test_seconds_until_active():
    start = datetime(2026, 6, 15, 12, 0, tzinfo=UTC)
    machine = ScreensaverMachine(last_activity=start, timeout=2)
    assert machine.seconds_until_active(start + timedelta(seconds=30)) == 90
    assert machine.seconds_until_active(start + timedelta(minutes=5)) == 0


@pytest.mark.parametrize("hour,expected", [
    (21, False), (22, True), (23, True), (0, True), (5, True), (6, False), (12, False),
])
def test_night_clock_hours(hour, expected):
    assert night_clock_active(datetime(2026, 6, 15, hour, 30, tzinfo=UTC)) is expected


def test_render_mode_precedence():
    assert resolve_render_mode(True, True) is RenderMode.NIGHT_CLOCK
    assert resolve_render_mode(True, False) is RenderMode.NIGHT_CLOCK
    assert resolve_render_mode(False, True) is RenderMode.SCREENSAVER
    assert resolve_render_mode(False, False) is RenderMode.NORMAL
