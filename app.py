# app.py - Kiosk settings server
"""
Flask app for the kiosk settings server
Stores the settings document on disk and proxies OS level calls for the kiosk client
"""

from flask import Flask, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_limiter.errors import RateLimitExceeded
from datetime import datetime
from typing import Any, Dict, Optional
import logging
import os

import requests

import settings_store
import system_info

logger = logging.getLogger(__name__)

GEOIP_URL = "http://ip-api.com/json/?fields=status,message,lat,lon"
GEOIP_TIMEOUT = 10


def lookup_ip_location() -> Optional[Dict[str, Any]]:
    """Locate this machine by its public IP. Returns {latitude, longitude} or None."""
    try:
        response = requests.get(GEOIP_URL, timeout=GEOIP_TIMEOUT)
        response.raise_for_status()
        data = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.warning("IP geolocation request failed: %s", e)
        return None
    if data.get('status') != 'success':
        logger.warning("IP geolocation failed: %s", data.get('message', 'unknown error'))
        return None
    return {'latitude': data.get('lat'), 'longitude': data.get('lon')}


def create_app(settings_file: Optional[str] = None) -> Flask:
    """Factory function to create the Flask app instance.
    This is useful for gunicorn and other WSGI servers."""
    app = Flask(__name__)
    app.config['SETTINGS_FILE'] = settings_file or os.environ.get(
        'KIOSK_SETTINGS_FILE', settings_store.DEFAULT_SETTINGS_FILE
    )

    # Rate limiting to prevent runaway clients; the kiosk polls system info every 5 seconds
    limiter = Limiter(
        get_remote_address,
        app=app,
        default_limits=["5000 per day", "1000 per hour"],
        storage_uri="memory://",
    )

    def settings_path() -> str:
        return app.config['SETTINGS_FILE']

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit(e):
        """Return JSON for rate-limited responses instead of HTML so clients can parse errors."""
        return jsonify({'error': 'rate_limited', 'message': str(e)}), 429

    @app.route('/settings', methods=['GET'])
    @limiter.limit("600 per hour")
    def get_settings():
        """Get the settings document, creating the default one if needed"""
        try:
            return jsonify(settings_store.load_settings(settings_path()))
        except OSError as e:
            logger.error(f"Error loading settings: {e}")
            return jsonify({'error': str(e)}), 500

    @app.route('/settings', methods=['POST'])
    @limiter.limit("30 per minute")
    def create_settings():
        try:
            document, created = settings_store.create_settings_file(settings_path())
        except OSError as e:
            logger.error(f"Error creating settings file: {e}")
            return jsonify({'error': str(e)}), 500
        return jsonify(document), 201 if created else 200

    @app.route('/settings', methods=['PUT'])
    @limiter.limit("30 per minute")
    def replace_settings():
        """Replace the whole settings document"""
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return jsonify({'error': 'Request body must be a JSON object'}), 400
        try:
            document = settings_store.replace_settings(settings_path(), body)
        except OSError as e:
            logger.error(f"Error saving settings: {e}")
            return jsonify({'error': str(e)}), 500
        logger.info("Settings replaced")
        return jsonify(document)

    @app.route('/setting', methods=['PATCH'])
    @limiter.limit("30 per minute")
    def set_setting():
        body = request.get_json(silent=True) or {}
        key = body.get('key')
        if key not in settings_store.SETTINGS_KEYS:
            return jsonify({'error': f'Unknown setting: {key}'}), 400
        try:
            document = settings_store.set_setting(settings_path(), key, body.get('value'))
        except OSError as e:
            logger.error(f"Error saving setting {key}: {e}")
            return jsonify({'error': str(e)}), 500
        logger.info("Setting %s updated", key)
        return jsonify(document)

    @app.route('/setting', methods=['DELETE'])
    @limiter.limit("30 per minute")
    def delete_setting():
        body = request.get_json(silent=True) or {}
        key = body.get('key') or request.args.get('key')
        if key not in settings_store.SETTINGS_KEYS:
            return jsonify({'error': f'Unknown setting: {key}'}), 400
        try:
            document = settings_store.delete_setting(settings_path(), key)
        except OSError as e:
            logger.error(f"Error deleting setting {key}: {e}")
            return jsonify({'error': str(e)}), 500
        logger.info("Setting %s cleared", key)
        return jsonify(document)

    @app.route('/system-info')
    @limiter.limit("1000 per hour")  # ~16 per minute covers the 5 second poll
    def get_system_info():
        return jsonify(system_info.get_system_info())

    @app.route('/window/minimize', methods=['POST'])
    @limiter.limit("30 per minute")
    def minimize_window():
        result = system_info.minimize_window()
        if not result.get('ok'):
            return jsonify(result), 500
        return jsonify(result)

    @app.route('/geolocation')
    @limiter.limit("60 per hour")
    def get_geolocation():
        coords = lookup_ip_location()
        if coords is None:
            return jsonify({'error': 'Could not determine location'}), 502
        return jsonify(coords)

    @app.route('/health')
    def health_check():
        """Health check endpoint"""
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now().isoformat(),
        })

    return app


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    # For production, use a production WSGI server like gunicorn
    # gunicorn -w 1 -b 127.0.0.1:8080 'app:create_app()'
    host = os.environ.get('KIOSK_SERVER_HOST', '127.0.0.1')
    port = int(os.environ.get('KIOSK_SERVER_PORT', '8080'))
    create_app().run(host=host, port=port)
