"""Tests for settings loading."""

import pytest

from config import load_settings_conf, validate_settings, SettingsError, DEFAULTS

def write_settings(tmp_path, body: str) -> str:
    (tmp_path / 'settings.conf').write_text("[DEFAULT]\n" + body)
    return str(tmp_path)

def test_missing_file_uses_defaults(tmp_path):
    """Test a directory without settings.conf yields the defaults."""
    settings = load_settings_conf(str(tmp_path))

    assert settings['db_url'] == DEFAULTS['db_url']
    assert settings['classifier_timeout'] == 30.0
    assert settings['scan_workers'] == 2
    assert settings['scan_fail_policy'] == 'open'

def test_overrides_and_conversion(tmp_path):
    """Test file values override defaults and numbers are converted."""
    path = write_settings(tmp_path, (
        "classifier_url = http://classifier.local/scan\n"
        "classifier_timeout = 2.5\n"
        "scan_workers = 4\n"
        "scan_fail_policy = closed\n"
    ))

    settings = load_settings_conf(path)

    assert settings['classifier_url'] == "http://classifier.local/scan"
    assert settings['classifier_timeout'] == 2.5
    assert settings['scan_workers'] == 4
    assert settings['scan_fail_policy'] == 'closed'
    assert settings['manifest_marker'] == 'fxmanifest.lua'

def test_invalid_fail_policy(tmp_path):
    """Test an unknown fail policy is reported."""
    path = write_settings(tmp_path, "scan_fail_policy = maybe\n")

    with pytest.raises(SettingsError) as exc:
        load_settings_conf(path)

    assert "scan_fail_policy" in str(exc.value)

@pytest.mark.parametrize("key,value", [
    ('classifier_timeout', '0'),
    ('classifier_max_attempts', '0'),
    ('scan_workers', 'many'),
    ('api_port', 'http')
])
def test_invalid_numbers(key, value):
    """Test numeric settings are range checked."""
    with pytest.raises(SettingsError):
        validate_settings(dict(DEFAULTS, **{key: value}))

def test_missing_jwt_secret_is_random(tmp_path):
    """Test an unset jwt_secret is replaced by a fresh random secret."""
    first = load_settings_conf(str(tmp_path))['jwt_secret']
    second = validate_settings(dict(DEFAULTS))['jwt_secret']

    assert DEFAULTS['jwt_secret'] == ''
    assert len(first) >= 32
    assert first != second

def test_configured_jwt_secret_is_kept(tmp_path):
    """Test a jwt_secret from settings.conf is used as is."""
    path = write_settings(tmp_path, "jwt_secret = s3cret-from-idp\n")

    assert load_settings_conf(path)['jwt_secret'] == "s3cret-from-idp"
