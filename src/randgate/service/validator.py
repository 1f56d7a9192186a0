"""Request shape and bounds validation."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

from starlette.datastructures import Headers
from starlette.requests import Request

from randgate.common.errors import RequestRejected
from randgate.common.settings import AuthConfig, Settings

ALLOWED_METHOD = "GET"
BYTE_LENGTH_PARAM = "byteLength"

_DECIMAL = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class IncomingRequest:
    """The parts of an HTTP request the service looks at."""

    method: str
    path: str
    query: Mapping[str, str]
    headers: Headers

    @classmethod
    def from_starlette(cls, request: Request) -> IncomingRequest:
        """Snapshot a Starlette request, keeping the first value of each query key."""
        query: dict[str, str] = {}
        for key, value in request.query_params.multi_items():
            query.setdefault(key, value)
        return cls(
            method=request.method,
            path=request.url.path,
            query=query,
            headers=request.headers,
        )


@dataclass(frozen=True)
class ValidatedRequest:
    """A request whose shape and bounds have been checked."""

    path: str
    byte_length: int
    header_value: str
    mac_b64: str


def parse_byte_length(raw: str | None, maximum: int) -> int:
    """
    Parse and bound-check the requested byte length.

    Only plain decimal integers are accepted.

    Raises:
        RequestRejected: If the value is missing, malformed or out of range
    """
    if raw is None or not _DECIMAL.fullmatch(raw):
        raise RequestRejected()

    value = int(raw)
    if value <= 0 or value > maximum:
        raise RequestRejected()
    return value


def validate_request(
    request: IncomingRequest,
    config: AuthConfig,
    settings: Settings,
) -> ValidatedRequest:
    """
    Check method, path, required headers and byteLength bounds.

    Raises:
        RequestRejected: On any failed check, without saying which
    """
    if request.method != ALLOWED_METHOD or request.path != settings.route_path:
        raise RequestRejected()

    header_value = request.headers.get(config.header_name)
    mac_b64 = request.headers.get(settings.mac_header)
    if header_value is None or not mac_b64:
        raise RequestRejected()

    byte_length = parse_byte_length(
        request.query.get(BYTE_LENGTH_PARAM),
        settings.max_byte_length,
    )

    return ValidatedRequest(
        path=request.path,
        byte_length=byte_length,
        header_value=header_value,
        mac_b64=mac_b64,
    )
