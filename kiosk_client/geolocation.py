"""Starting-location lookup through the settings server."""
from __future__ import annotations

import logging
from typing import Optional

from .models import Coordinates

LOGGER = logging.getLogger(__name__)


def get_coords_from_api(settings_client) -> Optional[Coordinates]:
    """Ask the settings server for IP based coordinates.

    Returns None when the server is unreachable or could not locate us.
    """
    data = settings_client.get_geolocation()
    if not data:
        LOGGER.warning("Geolocation lookup returned nothing")
        return None
    try:
        return Coordinates.from_dict(data)
    except (TypeError, ValueError):
        LOGGER.warning("Geolocation response has invalid coordinates: %s", data)
        return None
