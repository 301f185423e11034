"""Value types shared by the fetchers, the state container and the views."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

WEATHER_KINDS = ("current", "hourly", "daily")

STATUS_LOADING = "loading"
STATUS_READY = "ready"
STATUS_ERROR = "error"


@dataclass(frozen=True)
class Coordinates:
    latitude: float
    longitude: float

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Coordinates"]:
        """Build coordinates from a ``{latitude, longitude}`` mapping, or None when incomplete"""
        if not data:
            return None
        lat = data.get("latitude")
        lon = data.get("longitude")
        if lat is None or lon is None or lat == "" or lon == "":
            return None
        return cls(float(lat), float(lon))

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass
class WeatherSnapshot:
    """Latest payload for one weather kind plus its error state.

    A failed refresh keeps the previous payload around so the panel can keep
    showing stale data, but ``status`` reports the error.
    """

    payload: Optional[Dict[str, Any]] = None
    error: bool = False
    error_message: Optional[str] = None

    @property
    def status(self) -> str:
        if self.error:
            return STATUS_ERROR
        if self.payload is not None:
            return STATUS_READY
        return STATUS_LOADING

    def copy(self) -> "WeatherSnapshot":
        return WeatherSnapshot(self.payload, self.error, self.error_message)


@dataclass(frozen=True)
class SunTimes:
    sunrise: Optional[datetime] = None
    sunset: Optional[datetime] = None

    @property
    def known(self) -> bool:
        return self.sunrise is not None and self.sunset is not None


@dataclass(frozen=True)
class RadarFrame:
    time: int
    path: str


@dataclass
class RadarData:
    host: str
    frames: List[RadarFrame] = field(default_factory=list)

    @property
    def latest(self) -> Optional[RadarFrame]:
        return self.frames[-1] if self.frames else None
