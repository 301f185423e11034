"""Flask app serving the kiosk dashboard page.

The kiosk browser loads ``/`` once, then polls ``/state`` for the view model
and posts input events back so the screensaver and the controls act on the
shared state.
"""
from __future__ import annotations

import logging

from flask import Flask, jsonify, render_template, request

from .errors import KioskError
from .views import build_view

logger = logging.getLogger(__name__)


def create_ui_app(state, settings_client) -> Flask:
    """Factory for the dashboard UI app bound to one ``AppState``"""
    app = Flask(__name__, template_folder='templates')

    @app.route('/')
    def index():
        """Serve dashboard HTML"""
        return render_template('dashboard.html', view=build_view(state.snapshot()))

    @app.route('/state')
    def get_state():
        return jsonify(build_view(state.snapshot()))

    @app.route('/activity', methods=['POST'])
    def activity():
        body = request.get_json(silent=True) or {}
        event = body.get('event', 'mousemove')
        try:
            state.record_activity(event)
        except ValueError as e:
            return jsonify({'error': str(e)}), 400
        return jsonify({
            'screensaver_active': state.screensaver_active,
            'render_mode': state.render_mode.value,
        })

    @app.route('/actions/<action>', methods=['POST'])
    def run_action(action):
        body = request.get_json(silent=True)
        try:
            state.dispatch(action, body)
        except (KioskError, ValueError, TypeError) as e:
            logger.warning("Action %s failed: %s", action, e)
            return jsonify({'error': str(e)}), 400
        return jsonify(build_view(state.snapshot()))

    @app.route('/window/minimize', methods=['POST'])
    def minimize_window():
        result = settings_client.minimize_window()
        if not result or not result.get('ok'):
            error = (result or {}).get('error', 'Settings server unavailable')
            logger.warning("Window minimize failed: %s", error)
            return jsonify({'ok': False, 'error': error}), 502
        return jsonify(result)

    return app
