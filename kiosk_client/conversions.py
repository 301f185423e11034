"""Unit conversion and display formatting helpers.

Raw values coming from the forecast API are metric: temperatures in Celsius,
speeds in metres per second and lengths in millimetres.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

TEMP_UNITS = ("f", "c")
SPEED_UNITS = ("mph", "ms")
LENGTH_UNITS = ("in", "mm")
CLOCK_TIMES = ("12", "24")

MS_TO_MPH = 2.2369362920544
MM_PER_INCH = 25.4


def convert_temp(celsius: Optional[float], unit: str) -> Optional[int]:
    """Convert a Celsius temperature to the selected unit (`f` or `c`)"""
    if unit not in TEMP_UNITS:
        raise ValueError(f"Unknown temperature unit: {unit!r}")
    if celsius is None:
        return None
    if unit == "f":
        return round(celsius * 9 / 5 + 32)
    return round(celsius)


def convert_speed(ms: Optional[float], unit: str) -> Optional[int]:
    """Convert a speed in m/s to the selected unit (`mph` or `ms`)"""
    if unit not in SPEED_UNITS:
        raise ValueError(f"Unknown speed unit: {unit!r}")
    if ms is None:
        return None
    if unit == "mph":
        return round(ms * MS_TO_MPH)
    return round(ms)


def convert_length(mm: Optional[float], unit: str) -> Optional[float]:
    """Convert a length in millimetres to the selected unit (`in` or `mm`)"""
    if unit not in LENGTH_UNITS:
        raise ValueError(f"Unknown length unit: {unit!r}")
    if mm is None:
        return None
    if unit == "in":
        return round(mm / MM_PER_INCH, 2)
    return round(mm, 1)


def speed_label(unit: str) -> str:
    return "mph" if unit == "mph" else "m/s"


def format_clock(moment: datetime, clock_time: str) -> str:
    """Format a wall-clock time for the 12h or 24h clock setting"""
    if clock_time == "12":
        return moment.strftime("%I:%M %p").lstrip("0")
    return moment.strftime("%H:%M")


def format_countdown(seconds: int) -> str:
    """Format seconds as M:SS, or H:MM:SS once an hour or more remains"""
    seconds = max(0, int(seconds))
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def format_cpu_temp(temp: Optional[float]) -> str:
    if temp is None:
        return "--"
    return f"{temp:.1f}°C"


def format_fan_speed(speed: Optional[float]) -> str:
    # Values up to 100 come from the PWM cooling state and are percentages
    if speed is None:
        return "--"
    if speed <= 100:
        return f"{round(speed)}%"
    return f"{round(speed)} RPM"
