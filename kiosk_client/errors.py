"""Exceptions raised by the kiosk client."""


class KioskError(Exception):
    """Base class for kiosk client errors"""


class MissingCoordinatesError(KioskError):
    """A location dependent update was requested without coordinates"""

    def __init__(self, message: str = "No coords"):
        super().__init__(message)


class MissingApiKeyError(KioskError):
    """A required API key is not present in the settings document"""


class FetchError(KioskError):
    """A third-party or local HTTP fetch failed

    ``message`` is the human readable reason shown next to the failing panel.
    """

    def __init__(self, message: str, status_code=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GeolocationError(KioskError):
    """Starting coordinates could not be resolved from settings or geolocation"""


class SettingsSaveError(KioskError):
    """The settings server rejected or did not answer a settings write"""


class UnknownActionError(KioskError):
    """An action name passed to the dispatcher has no handler"""
