"""HTTP client for the random bytes service."""

from __future__ import annotations

import aiohttp

from randgate.common.hmac import build_message, sign
from randgate.common.logging import get_logger
from randgate.common.settings import AuthConfig
from randgate.service.encoder import decode_payload
from randgate.service.validator import BYTE_LENGTH_PARAM

logger = get_logger(__name__)


class RandomBytesClientError(Exception):
    """Error fetching random bytes."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def sign_request(config: AuthConfig, path: str, byte_length: int) -> str:
    """Base64 HMAC-SHA384 a caller sends for ``byte_length`` bytes at ``path``."""
    message = build_message(path, byte_length, config.header_name, config.header_value)
    return sign(config.hmac_secret, message)


def build_headers(
    config: AuthConfig,
    path: str,
    byte_length: int,
    mac_header: str = "hmac",
) -> dict[str, str]:
    """Headers authenticating a request for ``byte_length`` bytes."""
    return {
        config.header_name: config.header_value,
        mac_header: sign_request(config, path, byte_length),
    }


class RandomBytesClient:
    """
    Async client that signs requests and decodes the comma-separated body.

    Use as an async context manager or call ``close()`` when done.
    """

    def __init__(
        self,
        base_url: str,
        config: AuthConfig,
        path: str = "/",
        mac_header: str = "hmac",
        timeout: float = 10.0,
    ):
        """
        Initialize the client.

        Args:
            base_url: Service origin, e.g. ``https://random.example.com``
            config: Shared secrets
            path: Route the service serves
            mac_header: Header name carrying the MAC
            timeout: Total request timeout in seconds
        """
        self._base_url = base_url.rstrip("/")
        self._config = config
        self._path = path
        self._mac_header = mac_header
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "RandomBytesClient":
        """Enter async context."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context."""
        await self.close()

    async def close(self) -> None:
        """Close the underlying session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists."""
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _request(self, byte_length: int) -> aiohttp.ClientResponse:
        session = self._ensure_session()
        try:
            return await session.request(
                "GET",
                f"{self._base_url}{self._path}",
                params={BYTE_LENGTH_PARAM: str(byte_length)},
                headers=build_headers(self._config, self._path, byte_length, self._mac_header),
            )
        except aiohttp.ClientError as e:
            raise RandomBytesClientError(f"Request failed: {e}") from e

    async def fetch(self, byte_length: int) -> bytes:
        """
        Fetch ``byte_length`` random bytes.

        Raises:
            RandomBytesClientError: On a non-200 response or a malformed body
        """
        response = await self._request(byte_length)
        async with response:
            body = await response.text()
            if response.status != 200:
                # The service answers every failure identically; the body
                # carries no diagnostic value.
                raise RandomBytesClientError("Request rejected", status_code=response.status)

        try:
            payload = decode_payload(body)
        except ValueError as e:
            raise RandomBytesClientError(f"Malformed response body: {e}", status_code=200) from e

        if len(payload) != byte_length:
            raise RandomBytesClientError(
                f"Expected {byte_length} bytes, got {len(payload)}",
                status_code=200,
            )

        logger.debug("Fetched random bytes", byte_length=byte_length)
        return payload
