import json

from kiosk_client.local_app import bootstrap_state, load_config_file, parse_args, resolve_config
from kiosk_client.models import Coordinates


def test_cli_beats_config_and_env():
    args = parse_args(['--api-url', 'http://cli:1', '--port', '7000'])
    cfg = resolve_config(args, {'api_url': 'http://config:2', 'port': 6000},
                         environ={'KIOSK_API_URL': 'http://env:3', 'KIOSK_UI_PORT': '5500'})
    assert cfg['api_url'] == 'http://cli:1'
    assert cfg['port'] == 7000


def test_config_beats_env():
    args = parse_args([])
    cfg = resolve_config(args, {'api_url': 'http://config:2/'}, environ={'KIOSK_API_URL': 'http://env:3'})
    assert cfg['api_url'] == 'http://config:2'


def test_env_beats_defaults():
    args = parse_args([])
    cfg = resolve_config(args, {}, environ={'KIOSK_UI_PORT': '5500', 'KIOSK_PREFERENCES_FILE': '/tmp/p.json'})
    assert cfg['port'] == 5500
    assert cfg['preferences_file'] == '/tmp/p.json'
    assert cfg['api_url'] == 'http://localhost:8080'


def test_load_config_file(tmp_path):
    path = tmp_path / 'kiosk.json'
    path.write_text(json.dumps({'api_url': 'http://config:2'}))
    assert load_config_file(str(path)) == {'api_url': 'http://config:2'}


def test_load_config_file_ignores_broken_json(tmp_path):
    path = tmp_path / 'kiosk.json'
    path.write_text('{broken')
    assert load_config_file(str(path)) == {}


def test_bootstrap_state(state, settings_client, preference_store):
    preference_store.set_item('tempUnit', 'c')
    settings_client.settings['mapApiKey'] = None
    settings_client.geolocation = {'latitude': 40.0, 'longitude': -75.0}

    bootstrap_state(state)

    assert state.preferences.temp_unit == 'c'
    assert state.weather_api_key == 'weather-key'
    assert state.settings_menu_open is True  # missing map key
    assert state.map_geo == Coordinates(40.0, -75.0)


def test_bootstrap_state_without_location(state):
    bootstrap_state(state)
    assert state.map_geo is None
