"""
Client for the local settings server
Reads/writes the settings document and proxies the OS-level endpoints
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)


class SettingsAPIClient:
    """Client for talking to the local settings server"""

    def __init__(self, base_url: str, timeout: int = 10):
        """
        Initialize API client

        Args:
            base_url: Base URL of the settings server (e.g., 'http://localhost:8080')
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({'Content-Type': 'application/json'})

    def _make_request(self, method: str, endpoint: str, **kwargs) -> Optional[Dict[str, Any]]:
        """Make one HTTP request and return the decoded JSON body.

        Any transport, HTTP or decoding failure is logged and reported as
        None; callers treat that as "unavailable" and the next poll tick is
        the retry.
        """
        url = f"{self.base_url}{endpoint}"
        kwargs.setdefault('timeout', self.timeout)

        try:
            safe_kwargs = {k: v for k, v in kwargs.items() if k not in ('data', 'json')}
            logger.debug("HTTP %s %s %s", method, url, safe_kwargs)

            response = self.session.request(method, url, **kwargs)

            if response.status_code == 429:
                logger.warning("Received 429 for %s %s (Retry-After=%s)",
                               method, endpoint, response.headers.get('Retry-After'))
                return None

            response.raise_for_status()

            try:
                return response.json()
            except ValueError:
                logger.warning("Non-JSON response for %s %s: %s", method, url, (response.text or '')[:400])
                return None

        except requests.exceptions.Timeout as e:
            logger.warning("Timeout for %s %s: %s", method, endpoint, e)
            return None
        except requests.exceptions.ConnectionError as e:
            logger.warning("Connection error for %s %s: %s", method, endpoint, e)
            return None
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else 'unknown'
            logger.error("HTTP error %s for %s %s: %s", status, method, endpoint, e)
            return None
        except requests.exceptions.RequestException as e:
            logger.exception("Unexpected error for %s %s: %s", method, endpoint, e)
            return None

    def get_settings(self) -> Optional[Dict[str, Any]]:
        """
        Get the settings document (the server creates a default one if absent)

        Returns:
            Settings dict, or None on error
        """
        return self._make_request('GET', '/settings')

    def create_settings(self) -> Optional[Dict[str, Any]]:
        """Create the settings file with default values if it does not exist"""
        return self._make_request('POST', '/settings')

    def replace_settings(self, settings: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Replace the whole settings document

        Args:
            settings: dict with weatherApiKey, mapApiKey, reverseGeoApiKey, startingLat, startingLon

        Returns:
            The stored document, or None on error
        """
        logger.info("Saving settings document")
        return self._make_request('PUT', '/settings', json=settings)

    def set_setting(self, key: str, value: Any) -> Optional[Dict[str, Any]]:
        """Upsert a single settings field"""
        return self._make_request('PATCH', '/setting', json={'key': key, 'value': value})

    def delete_setting(self, key: str) -> Optional[Dict[str, Any]]:
        """Remove a single settings field"""
        return self._make_request('DELETE', '/setting', json={'key': key})

    def get_system_info(self) -> Optional[Dict[str, Any]]:
        """
        Get CPU temperature, fan speed and free disk space

        Returns:
            Dict with 'cpuTemp', 'fanSpeed', 'diskSpace' (each may be None), or None on error
        """
        return self._make_request('GET', '/system-info')

    def get_geolocation(self) -> Optional[Dict[str, Any]]:
        """IP based geolocation looked up by the server"""
        return self._make_request('GET', '/geolocation')

    def minimize_window(self) -> Optional[Dict[str, Any]]:
        """Ask the server to minimize the kiosk browser window"""
        logger.info("Requesting window minimize")
        return self._make_request('POST', '/window/minimize')

    def health_check(self) -> bool:
        """
        Check if the settings server is reachable

        Returns:
            True if server responds, False otherwise
        """
        try:
            response = self.session.get(f"{self.base_url}/health", timeout=5)
            response.raise_for_status()
            return response.status_code == 200
        except requests.exceptions.RequestException as e:
            logger.warning("Health check failed: %s", e)
            return False
