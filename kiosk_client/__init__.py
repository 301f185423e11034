"""Kiosk weather dashboard client.

Holds the shared dashboard state, keeps weather/radar data fresh on fixed
cadences, drives the dark mode / screensaver / night clock state machines and
serves the dashboard page to the kiosk browser.
"""

__version__ = "1.4.0"
