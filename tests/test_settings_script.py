from unittest.mock import MagicMock, patch

import pytest
import requests

import settings_script


def _response(status=200, payload=None):
    response = MagicMock()
    response.status_code = status
    response.json.return_value = payload or {}
    return response


@patch('settings_script.requests.patch')
def test_update_setting(mock_patch):
    mock_patch.return_value = _response(payload={'weatherApiKey': 'abc'})
    assert settings_script.update_setting('weatherApiKey', 'abc') is True
    assert mock_patch.call_args[1]['json'] == {'key': 'weatherApiKey', 'value': 'abc'}


@patch('settings_script.requests.delete')
def test_delete_setting(mock_delete):
    mock_delete.return_value = _response(payload={'weatherApiKey': None})
    assert settings_script.update_setting('weatherApiKey', delete=True) is True
    assert mock_delete.call_args[1]['json'] == {'key': 'weatherApiKey'}


@patch('settings_script.requests.patch')
def test_update_setting_errors(mock_patch):
    mock_patch.return_value = _response(status=400, payload={'error': 'Unknown setting'})
    assert settings_script.update_setting('weatherApiKey', 'abc') is False

    mock_patch.side_effect = requests.exceptions.ConnectionError("refused")
    assert settings_script.update_setting('weatherApiKey', 'abc') is False


def test_main_rejects_unknown_key():
    with pytest.raises(SystemExit) as excinfo:
        settings_script.main(['bogusKey', 'value'])
    assert excinfo.value.code == 1


@patch('settings_script.update_setting', return_value=True)
def test_main_exit_code(mock_update):
    with pytest.raises(SystemExit) as excinfo:
        settings_script.main(['startingLat', '40.0'])
    assert excinfo.value.code == 0
    mock_update.assert_called_once_with('startingLat', '40.0', delete=False)
