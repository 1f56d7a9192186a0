"""Pytest configuration and fixtures."""

from collections.abc import Callable

import pytest
from starlette.testclient import TestClient

from randgate.client import build_headers
from randgate.common.settings import AuthConfig, Settings
from randgate.service.main import create_app

HEADER_NAME = "X-Random-Psk"
HEADER_VALUE = "psk-7f3a9c"
HMAC_SECRET = "test-hmac-secret"


@pytest.fixture
def settings() -> Settings:
    """Create test settings."""
    return Settings(
        auth_header_name=HEADER_NAME,
        auth_header_value=HEADER_VALUE,
        hmac_secret=HMAC_SECRET,
    )


@pytest.fixture
def auth_config(settings: Settings) -> AuthConfig:
    """Auth configuration matching the test settings."""
    return settings.auth_config()


@pytest.fixture
def signed_headers(auth_config: AuthConfig) -> Callable[..., dict[str, str]]:
    """Build headers a legitimate caller would send."""

    def _build(byte_length: int, path: str = "/") -> dict[str, str]:
        return build_headers(auth_config, path, byte_length)

    return _build


@pytest.fixture
def client(settings: Settings):
    """Test client for the random bytes app."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client
