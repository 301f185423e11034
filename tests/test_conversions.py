from datetime import datetime

import pytest

from kiosk_client.conversions import (
    convert_length,
    convert_speed,
    convert_temp,
    format_clock,
    format_countdown,
    format_cpu_temp,
    format_fan_speed,
    speed_label,
)


def test_convert_temp():
    assert convert_temp(0, "f") == 32
    assert convert_temp(100, "f") == 212
    assert convert_temp(21.6, "c") == 22
    assert convert_temp(None, "f") is None


def test_convert_speed():
    assert convert_speed(10, "mph") == 22
    assert convert_speed(3.4, "ms") == 3
    assert convert_speed(None, "mph") is None


def test_convert_length():
    assert convert_length(25.4, "in") == 1.0
    assert convert_length(3.14159, "mm") == 3.1
    assert convert_length(None, "in") is None


@pytest.mark.parametrize("fn,unit", [(convert_temp, "k"), (convert_speed, "kph"), (convert_length, "cm")])
def test_unknown_unit_raises(fn, unit):
    with pytest.raises(ValueError):
        fn(1.0, unit)


def test_speed_label():
    assert speed_label("mph") == "mph"
    assert speed_label("ms") == "m/s"


def test_format_clock():
    moment = datetime(2026, 1, 2, 15, 5)
    assert format_clock(moment, "12") == "3:05 PM"
    assert format_clock(moment, "24") == "15:05"


def test_format_countdown():
    assert format_countdown(0) == "0:00"
    assert format_countdown(65) == "1:05"
    assert format_countdown(3600) == "1:00:00"
    assert format_countdown(-5) == "0:00"


def test_format_system_values():
    assert format_cpu_temp(None) == "--"
    assert format_cpu_temp(48.5) == "48.5°C"
    assert format_fan_speed(None) == "--"
    assert format_fan_speed(50.0) == "50%"
    assert format_fan_speed(2400) == "2400 RPM"
