"""Random bytes service - authenticated CSPRNG over HTTP."""

from __future__ import annotations

from contextlib import asynccontextmanager

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.endpoints import HTTPEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route
import uvicorn

from randgate.common.errors import (
    ConfigurationError,
    RequestRejected,
    invalid_fields,
    rejection_response,
)
from randgate.common.logging import get_logger, setup_logging
from randgate.common.metrics import (
    MetricsMiddleware,
    record_rejected,
    record_served,
    start_metrics_server,
)
from randgate.common.settings import AuthConfig, Settings, get_settings
from randgate.service.disclosure import load_disclosure
from randgate.service.encoder import success_response
from randgate.service.generator import generate
from randgate.service.validator import IncomingRequest, validate_request
from randgate.service.verifier import HmacVerifier

logger = get_logger(__name__)


class RandomBytesServer:
    """Request handler holding the startup-time configuration."""

    def __init__(self, settings: Settings, config: AuthConfig, disclosure: str):
        """
        Initialize server.

        Args:
            settings: Application settings
            config: Shared secrets, immutable for the process lifetime
            disclosure: Fixed body of every failure response
        """
        self._settings = settings
        self._config = config
        self._disclosure = disclosure
        self._verifier = HmacVerifier(config)

    async def startup(self) -> None:
        """Log startup without revealing any secret."""
        logger.info(
            "Starting random bytes service",
            route=self._settings.route_path,
            max_byte_length=self._settings.max_byte_length,
        )

    def reject(self) -> Response:
        """The single response for every failure."""
        return rejection_response(self._disclosure, self._settings.reject_status_code)

    async def handle(self, request: Request) -> Response:
        """Validate, authenticate, then draw and encode random bytes."""
        try:
            incoming = IncomingRequest.from_starlette(request)
            validated = validate_request(incoming, self._config, self._settings)
            self._verifier.authenticate(validated)
            payload = generate(validated.byte_length)
        except RequestRejected as exc:
            logger.info("Request rejected", stage=exc.stage)
            record_rejected(exc.stage)
            return self.reject()
        except Exception as exc:
            logger.warning("Request rejected", stage="internal", error_type=type(exc).__name__)
            record_rejected("internal")
            return self.reject()

        record_served(validated.byte_length)
        logger.debug("Request served", byte_length=validated.byte_length)
        return success_response(payload)

    async def handle_error(self, request: Request, exc: Exception) -> Response:
        """Last-resort handler so nothing escapes with a different body."""
        logger.error("Unhandled error", error_type=type(exc).__name__)
        return self.reject()


class RandomBytesEndpoint(HTTPEndpoint):
    """Sends every HTTP method to the server's single handler."""

    async def dispatch(self) -> None:
        request = Request(self.scope, receive=self.receive)
        server: RandomBytesServer = request.app.state.server
        response = await server.handle(request)
        await response(self.scope, self.receive, self.send)


def create_app(settings: Settings | None = None) -> Starlette:
    """
    Create the Starlette application.

    Every method and every path reaches the same handler, so anything other
    than an authenticated GET on the configured route gets the uniform
    failure response.

    Raises:
        ConfigurationError: If the configuration cannot serve requests
    """
    settings = settings or get_settings()
    config = settings.auth_config()
    if not config.header_name.strip() or not settings.mac_header.strip():
        raise ConfigurationError("Header names must not be blank")

    server = RandomBytesServer(settings, config, load_disclosure(settings.disclosure_path))

    @asynccontextmanager
    async def lifespan(app: Starlette):
        await server.startup()
        yield

    routes = [
        Route("/{path:path}", RandomBytesEndpoint),
    ]

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={Exception: server.handle_error},
    )
    app.state.server = server
    app.add_middleware(MetricsMiddleware)

    return app


def main(host: str | None = None, port: int | None = None) -> None:
    """
    Entry point for the random bytes service.

    Exits with status 1 when the configuration cannot start the service.

    Args:
        host: Bind host overriding the configured one
        port: Bind port overriding the configured one
    """
    try:
        settings = get_settings()
    except ValidationError as exc:
        setup_logging()
        logger.error("Invalid configuration", fields=invalid_fields(exc))
        raise SystemExit(1) from exc

    setup_logging(settings.log_level, settings.log_json)
    try:
        app = create_app(settings)
    except ConfigurationError as exc:
        logger.error("Invalid configuration", error=str(exc))
        raise SystemExit(1) from exc

    if settings.metrics_port is not None:
        start_metrics_server(settings.metrics_port)

    uvicorn.run(
        app,
        host=host or settings.host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
