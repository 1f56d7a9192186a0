"""Error types and the uniform rejection response."""

from __future__ import annotations

from pydantic import ValidationError
from starlette.responses import PlainTextResponse


class RequestRejected(Exception):
    """A request failed validation or authentication.

    Carries the internal stage for logging only; it never reaches the caller.
    """

    def __init__(self, stage: str = "validation") -> None:
        super().__init__(stage)
        self.stage = stage


class ConfigurationError(Exception):
    """Configuration cannot be used to start the service."""

    pass


def rejection_response(body: str, status_code: int = 500) -> PlainTextResponse:
    """Build the fixed response returned for every rejected request."""
    return PlainTextResponse(body, status_code=status_code)


def invalid_fields(exc: ValidationError) -> list[str]:
    """Environment variable names behind a settings validation error."""
    return [
        "RANDGATE_" + str(err["loc"][0]).upper()
        for err in exc.errors()
        if err.get("loc")
    ]
