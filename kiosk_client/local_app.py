"""Kiosk client entrypoint.

Wires the shared state, the settings server client, the polling orchestrator
and the mode timers together, then serves the dashboard page for the kiosk
browser. Configuration comes from the CLI, an optional JSON config file and
environment variables.
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
from typing import Any, Dict, Optional

from .app_state import AppState
from .errors import GeolocationError, MissingApiKeyError
from .orchestrator import AmbientTimers, PollingOrchestrator
from .preferences import DEFAULT_PREFERENCES_FILE, PreferenceStore
from .scheduler import ThreadScheduler
from .settings_client import SettingsAPIClient
from .ui import create_ui_app

LOGGER = logging.getLogger("local_app")

DEFAULT_API_URL = "http://localhost:8080"
DEFAULT_UI_HOST = "127.0.0.1"
DEFAULT_UI_PORT = 5000


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Kiosk weather dashboard client")
    p.add_argument("--config", help="Path to a JSON config file to load defaults from", default=None)

    # defaults are resolved in resolve_config() so a config file can supply them
    p.add_argument("--api-url", help="Settings server base URL")
    p.add_argument("--host", help="Address the dashboard page is served on")
    p.add_argument("--port", type=int, help="Port the dashboard page is served on")
    p.add_argument("--preferences", help="Path of the local preferences JSON file")
    return p.parse_args(argv)


def load_config_file(path: Optional[str]) -> Dict[str, Any]:
    """Load the first existing config file: the given path, then config.json next to the package, then cwd"""
    candidates = []
    if path:
        candidates.append(path)
    package_dir = os.path.dirname(__file__)
    candidates.append(os.path.join(package_dir, 'config.json'))
    candidates.append(os.path.join(os.path.dirname(package_dir), 'config.json'))

    for cfg_path in candidates:
        if not cfg_path or not os.path.exists(cfg_path):
            continue
        try:
            with open(cfg_path, 'r') as cf:
                config = json.load(cf)
        except (OSError, ValueError):
            LOGGER.warning("Failed to load config from %s", cfg_path, exc_info=True)
            continue
        LOGGER.info("Loaded config from %s", cfg_path)
        return config if isinstance(config, dict) else {}
    return {}


def resolve_config(args: argparse.Namespace, config: Dict[str, Any], environ=None) -> Dict[str, Any]:
    """Final runtime values with precedence: CLI > config.json > env > default"""
    environ = os.environ if environ is None else environ
    api_url = args.api_url or config.get('api_url') or config.get('base_url') \
        or environ.get('KIOSK_API_URL', DEFAULT_API_URL)
    host = args.host or config.get('host') or environ.get('KIOSK_UI_HOST', DEFAULT_UI_HOST)
    port = args.port or config.get('port') or int(environ.get('KIOSK_UI_PORT', DEFAULT_UI_PORT))
    preferences = args.preferences or config.get('preferences_file') \
        or environ.get('KIOSK_PREFERENCES_FILE', DEFAULT_PREFERENCES_FILE)
    return {
        'api_url': api_url.rstrip('/'),
        'host': host,
        'port': int(port),
        'preferences_file': preferences,
    }


def bootstrap_state(state: AppState) -> None:
    """Load preferences, API keys and the starting location.

    Missing keys or location are logged; the dashboard still starts so the
    settings panel can be used to fix them.
    """
    state.load_stored_data()
    for lookup in (state.get_weather_api_key, state.get_map_api_key, state.get_reverse_geo_api_key):
        try:
            lookup()
        except MissingApiKeyError as e:
            LOGGER.warning("%s", e)
    try:
        state.get_browser_geo()
    except GeolocationError as e:
        LOGGER.error("%s", e)


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    args = parse_args(argv)
    cfg = resolve_config(args, load_config_file(args.config))

    LOGGER.info("Using settings server at %s", cfg['api_url'])
    settings_client = SettingsAPIClient(base_url=cfg['api_url'])
    if not settings_client.health_check():
        LOGGER.warning("Settings server is not reachable yet; continuing")

    scheduler = ThreadScheduler()
    state = AppState(settings_client, PreferenceStore(cfg['preferences_file']), scheduler=scheduler)
    orchestrator = PollingOrchestrator(state, scheduler)
    timers = AmbientTimers(state, scheduler)

    def _signal_handler(sig, frame):
        LOGGER.info("Received signal to stop (%s)", sig)
        sys.exit(0)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        bootstrap_state(state)
        orchestrator.start()
        timers.start()
        app = create_ui_app(state, settings_client)
        LOGGER.info("Serving dashboard on http://%s:%s", cfg['host'], cfg['port'])
        app.run(host=cfg['host'], port=cfg['port'], threaded=True, use_reloader=False)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user")
    except Exception:
        LOGGER.exception("Unexpected error in local_app")
        return 2
    finally:
        timers.stop()
        orchestrator.stop()

    LOGGER.info("local_app exiting")
    return 0


if __name__ == "__main__":
    sys.exit(main())
