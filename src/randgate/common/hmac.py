"""HMAC-SHA384 helpers over the canonical request message."""

from __future__ import annotations

import base64
import binascii

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives import hmac as crypto_hmac


def build_message(path: str, byte_length: int, header_name: str, header_value: str) -> bytes:
    """
    Build the canonical message a request MAC is computed over.

    Format: ``<path>~byteLength=<n>~<headerName>=<headerValue>``. Callers
    must reproduce it byte for byte; ``n`` is always plain decimal.
    """
    return f"{path}~byteLength={int(byte_length)}~{header_name}={header_value}".encode("utf-8")


def _new_mac(secret: str) -> crypto_hmac.HMAC:
    return crypto_hmac.HMAC(secret.encode("utf-8"), hashes.SHA384())


def sign(secret: str, message: bytes) -> str:
    """Create a base64-encoded HMAC-SHA384 of the message."""
    mac = _new_mac(secret)
    mac.update(message)
    return base64.b64encode(mac.finalize()).decode("ascii")


def decode_mac(mac_b64: str) -> bytes:
    """
    Strictly decode a base64 MAC.

    Raises:
        ValueError: If the value is not valid base64
    """
    try:
        return base64.b64decode(mac_b64.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("MAC is not valid base64") from e


def verify(secret: str, message: bytes, mac: bytes) -> bool:
    """Verify raw MAC bytes using the primitive's constant-time check."""
    expected = _new_mac(secret)
    expected.update(message)
    try:
        expected.verify(mac)
    except InvalidSignature:
        return False
    return True
