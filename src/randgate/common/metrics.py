"""Prometheus metrics for randgate."""

import time

from prometheus_client import Counter, Histogram, start_http_server
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from randgate.common.logging import get_logger

logger = get_logger(__name__)

# === Counters ===

REQUESTS_TOTAL = Counter(
    "randgate_requests_total",
    "Total requests handled",
    ["outcome"],  # outcome: served, rejected
)

REJECTIONS_TOTAL = Counter(
    "randgate_rejections_total",
    "Rejected requests by internal stage",
    ["stage"],  # stage: validation, authentication, internal
)

HTTP_RESPONSES_TOTAL = Counter(
    "randgate_http_responses_total",
    "HTTP responses by status code",
    ["status"],
)

# === Histograms ===

BYTES_SERVED = Histogram(
    "randgate_bytes_served",
    "Bytes returned per successful request",
    buckets=[8, 16, 32, 64, 128, 256, 512, 1024],
)

REQUEST_LATENCY = Histogram(
    "randgate_request_latency_seconds",
    "Request handling latency in seconds",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
)


# === Helper Functions ===


def record_served(byte_length: int) -> None:
    """Record a successful draw."""
    REQUESTS_TOTAL.labels(outcome="served").inc()
    BYTES_SERVED.observe(byte_length)


def record_rejected(stage: str) -> None:
    """Record a rejected request."""
    REQUESTS_TOTAL.labels(outcome="rejected").inc()
    REJECTIONS_TOTAL.labels(stage=stage).inc()


def start_metrics_server(port: int) -> None:
    """Expose metrics on a separate listener so the public app keeps one route."""
    start_http_server(port)
    logger.info("Metrics listener started", port=port)


class MetricsMiddleware(BaseHTTPMiddleware):
    """HTTP response metrics middleware."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            REQUEST_LATENCY.observe(time.perf_counter() - start)
            HTTP_RESPONSES_TOTAL.labels(status="500").inc()
            raise

        REQUEST_LATENCY.observe(time.perf_counter() - start)
        HTTP_RESPONSES_TOTAL.labels(status=str(response.status_code)).inc()
        return response
