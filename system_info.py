"""OS level helpers for the settings server: hardware stats and window control.

Every stat reader returns None when the value cannot be read; nothing here
raises for a missing sensor or command.
"""
import glob
import logging
import subprocess
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CPU_TEMP_PATH = '/sys/class/thermal/thermal_zone0/temp'
FAN_INPUT_GLOB = '/sys/class/hwmon/hwmon*/fan1_input'
COOLING_STATE_GLOB = '/sys/class/thermal/cooling_device*/cur_state'
# cooling devices on the Pi fan driver step through states 0-4
COOLING_MAX_STATE = 4

BROWSER_WINDOW_CLASSES = ('chromium', 'chromium-browser', 'Chromium', 'firefox', 'Navigator')

COMMAND_TIMEOUT = 2


def _read_first_int(pattern: str) -> Optional[int]:
    for path in sorted(glob.glob(pattern)):
        try:
            with open(path, 'r') as f:
                return int(f.read().strip())
        except (OSError, ValueError):
            continue
    return None


def get_cpu_temp(path: str = CPU_TEMP_PATH) -> Optional[float]:
    """CPU temperature in degrees Celsius"""
    try:
        with open(path, 'r') as f:
            return int(f.read().strip()) / 1000
    except (OSError, ValueError):
        return None


def get_fan_speed() -> Optional[float]:
    """Fan RPM from hwmon, else the cooling device state as a percentage"""
    rpm = _read_first_int(FAN_INPUT_GLOB)
    if rpm is not None:
        return rpm
    state = _read_first_int(COOLING_STATE_GLOB)
    if state is None:
        return None
    return state / COOLING_MAX_STATE * 100


def get_disk_space() -> Optional[str]:
    """Free space on / as reported by df -h (e.g. '12G')"""
    try:
        result = subprocess.run(['df', '-h', '/'], capture_output=True, text=True, timeout=COMMAND_TIMEOUT)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("df failed: %s", e)
        return None
    if result.returncode != 0:
        return None
    lines = result.stdout.strip().split('\n')
    if len(lines) < 2:
        return None
    parts = lines[1].split()
    return parts[3] if len(parts) > 3 else None


def get_system_info() -> Dict[str, Any]:
    return {
        'cpuTemp': get_cpu_temp(),
        'fanSpeed': get_fan_speed(),
        'diskSpace': get_disk_space(),
    }


def _xdotool(*args: str) -> bool:
    try:
        result = subprocess.run(['xdotool', *args], capture_output=True, text=True, timeout=COMMAND_TIMEOUT)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("xdotool %s failed: %s", ' '.join(args), e)
        return False
    return result.returncode == 0


def minimize_window() -> Dict[str, Any]:
    """Minimize the kiosk browser window.

    Tries the active window first, then searches for known browser window
    classes. Returns ``{'ok': True}`` or ``{'ok': False, 'error': ...}``.
    """
    if _xdotool('getactivewindow', 'windowminimize'):
        return {'ok': True}
    for window_class in BROWSER_WINDOW_CLASSES:
        if _xdotool('search', '--class', window_class, 'windowminimize'):
            logger.info("Minimized window by class %s", window_class)
            return {'ok': True}
    logger.warning("Could not minimize window: no active window or browser window found")
    return {'ok': False, 'error': 'Could not minimize window'}
