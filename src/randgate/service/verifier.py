"""HMAC verification of validated requests."""

from __future__ import annotations

from randgate.common.compare import constant_time_equals
from randgate.common.errors import RequestRejected
from randgate.common.hmac import build_message, decode_mac, verify
from randgate.common.settings import AuthConfig
from randgate.service.validator import ValidatedRequest


class HmacVerifier:
    """Checks the pre-shared header and the request MAC."""

    def __init__(self, config: AuthConfig):
        """
        Initialize verifier.

        Args:
            config: Shared secrets loaded at startup
        """
        self._config = config

    def canonical_message(self, request: ValidatedRequest) -> bytes:
        """Canonical message for a request, always using the configured header value."""
        return build_message(
            request.path,
            request.byte_length,
            self._config.header_name,
            self._config.header_value,
        )

    def verify(self, message: bytes, mac_b64: str) -> bool:
        """
        Verify a base64 HMAC-SHA384 over the message.

        Malformed base64 counts as a failed verification.
        """
        try:
            mac = decode_mac(mac_b64)
        except ValueError:
            return False
        return verify(self._config.hmac_secret, message, mac)

    def authenticate(self, request: ValidatedRequest) -> None:
        """
        Run both checks and reject unless both pass.

        Both checks always run so their combined cost does not depend on
        which one fails.

        Raises:
            RequestRejected: If the header value or the MAC does not match
        """
        header_ok = constant_time_equals(request.header_value, self._config.header_value)
        mac_ok = self.verify(self.canonical_message(request), request.mac_b64)
        if not (header_ok and mac_ok):
            raise RequestRejected("authentication")
