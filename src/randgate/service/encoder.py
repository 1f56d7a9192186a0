"""Wire encoding of responses."""

from __future__ import annotations

from starlette.responses import PlainTextResponse

DELIMITER = ","


def encode_payload(payload: bytes) -> str:
    """Render bytes as comma-separated decimal values (``12,255,0``)."""
    return DELIMITER.join(str(b) for b in payload)


def decode_payload(body: str) -> bytes:
    """
    Parse a comma-separated decimal body back into bytes.

    Raises:
        ValueError: If a value is not an integer in 0..255
    """
    if not body:
        return b""
    return bytes(int(part) for part in body.split(DELIMITER))


def success_response(payload: bytes) -> PlainTextResponse:
    """200 response carrying the encoded payload."""
    return PlainTextResponse(encode_payload(payload), status_code=200)
