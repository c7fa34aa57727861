"""
Unit tests for the Settings class and load_settings.
"""
import pytest

from credential_shim.core.config import RefreshMode, Settings, load_settings
from credential_shim.core.exceptions import ConfigurationError


def test_defaults(monkeypatch):
    """Test the default refresh settings"""
    for name in ("CREDENTIAL_SHIM_REFRESH_INTERVAL", "CREDENTIAL_SHIM_RETRY_INTERVAL",
                 "CREDENTIAL_SHIM_REFRESH_MODE", "CREDENTIAL_SHIM_HTTP_TIMEOUT",
                 "CREDENTIAL_SHIM_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings()
    assert settings.CREDENTIAL_SHIM_REFRESH_INTERVAL == 30.0
    assert settings.CREDENTIAL_SHIM_RETRY_INTERVAL == 60.0
    assert settings.CREDENTIAL_SHIM_REFRESH_MODE == RefreshMode.INTERVAL
    assert settings.CREDENTIAL_SHIM_HTTP_TIMEOUT == 10.0
    assert settings.CREDENTIAL_SHIM_LOG_LEVEL == "INFO"


def test_load_settings_reads_environment(monkeypatch):
    """Test that settings come from the current environment"""
    monkeypatch.setenv("AWS_CONTAINER_CREDENTIALS_FULL_URI", "http://169.254.170.2/v2/credentials/abc")
    monkeypatch.setenv("AWS_CONTAINER_AUTHORIZATION_TOKEN", "Bearer xyz")
    monkeypatch.setenv("CREDENTIAL_SHIM_REFRESH_MODE", "expiration")
    monkeypatch.setenv("CREDENTIAL_SHIM_LOG_LEVEL", "debug")

    settings = load_settings()

    assert settings.get_credentials_uri() == "http://169.254.170.2/v2/credentials/abc"
    assert settings.get_authorization_token() == "Bearer xyz"
    assert settings.CREDENTIAL_SHIM_REFRESH_MODE == RefreshMode.EXPIRATION
    assert settings.CREDENTIAL_SHIM_LOG_LEVEL == "DEBUG"


def test_empty_authorization_token():
    """Test that an empty token is treated as absent"""
    settings = Settings(AWS_CONTAINER_AUTHORIZATION_TOKEN="")
    assert settings.get_authorization_token() is None


def test_missing_uri(monkeypatch):
    """Test that a missing URI fails when it is needed"""
    monkeypatch.delenv("AWS_CONTAINER_CREDENTIALS_FULL_URI", raising=False)

    settings = load_settings()

    with pytest.raises(ConfigurationError) as exc_info:
        settings.get_credentials_uri()
    assert "AWS_CONTAINER_CREDENTIALS_FULL_URI" in str(exc_info.value)


@pytest.mark.parametrize("name, value", [
    ("AWS_CONTAINER_CREDENTIALS_FULL_URI", "not a url"),
    ("AWS_CONTAINER_CREDENTIALS_FULL_URI", "ftp://example.com/creds"),
    ("CREDENTIAL_SHIM_REFRESH_INTERVAL", "0"),
    ("CREDENTIAL_SHIM_RETRY_INTERVAL", "-5"),
    ("CREDENTIAL_SHIM_REFRESH_MODE", "sometimes"),
    ("CREDENTIAL_SHIM_LOG_LEVEL", "chatty"),
])
def test_invalid_settings(monkeypatch, name, value):
    """Test that invalid values raise a configuration error naming the variable"""
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigurationError) as exc_info:
        load_settings()

    assert name in str(exc_info.value)
