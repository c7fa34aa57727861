"""Test configuration and fixtures for pytest"""
import sys
import json
import pytest
from typing import Any, Callable, Dict, Generator
from pathlib import Path
from unittest.mock import MagicMock

import requests

# Add the project root to sys.path to make package imports work
sys.path.insert(0, str(Path(__file__).parent.parent))

from credential_shim.core.config import Settings


TEST_CREDENTIALS_URI = "http://127.0.0.1:55555/creds"

EXPORTED_VARIABLES = ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY", "AWS_SESSION_TOKEN")


def make_response(body: Any, status_code: int = 200) -> requests.Response:
    """Build a real requests.Response carrying the given body"""
    response = requests.Response()
    response.status_code = status_code
    if isinstance(body, bytes):
        response._content = body
    else:
        response._content = json.dumps(body).encode("utf-8")
    response.encoding = "utf-8"
    return response


@pytest.fixture(scope="function")
def credentials_payload() -> Dict[str, Any]:
    """
    Provide a complete credentials document as served by the endpoint.
    """
    return {
        "AccessKeyId": "ASIAEXAMPLEKEY",
        "SecretAccessKey": "example-secret-key",
        "Token": "example-session-token",
        "Expiration": "2030-01-01T00:00:00Z"
    }


@pytest.fixture(scope="function")
def fake_session() -> Callable[..., MagicMock]:
    """
    Create a fake HTTP session whose get() returns the given body.
    """
    def _factory(body: Any = None, status_code: int = 200, side_effect: Any = None) -> MagicMock:
        session = MagicMock(spec=requests.Session)
        if side_effect is not None:
            session.get.side_effect = side_effect
        else:
            session.get.return_value = make_response(body, status_code)
        return session
    return _factory


@pytest.fixture(scope="function")
def endpoint_env(monkeypatch) -> Generator[None, None, None]:
    """
    Point the endpoint configuration at a test URI and clear exported variables.
    """
    monkeypatch.setenv("AWS_CONTAINER_CREDENTIALS_FULL_URI", TEST_CREDENTIALS_URI)
    monkeypatch.delenv("AWS_CONTAINER_AUTHORIZATION_TOKEN", raising=False)
    for variable in EXPORTED_VARIABLES:
        # setenv first so monkeypatch removes whatever the test exports
        monkeypatch.setenv(variable, "")
        monkeypatch.delenv(variable)
    yield


@pytest.fixture(scope="function")
def credentials_uri() -> str:
    return TEST_CREDENTIALS_URI


@pytest.fixture(scope="function")
def response_factory() -> Callable[..., requests.Response]:
    return make_response


@pytest.fixture(scope="function")
def test_settings() -> Settings:
    """
    Provide settings with short intervals for supervisor tests.
    """
    return Settings(
        AWS_CONTAINER_CREDENTIALS_FULL_URI=TEST_CREDENTIALS_URI,
        CREDENTIAL_SHIM_REFRESH_INTERVAL=0.05,
        CREDENTIAL_SHIM_RETRY_INTERVAL=0.05
    )
