"""Prometheus metrics configuration and middleware."""

import re
import time
from collections.abc import Callable

from fastapi import Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware

from homecare_metrics.core.config import settings
from homecare_metrics.core.logging import get_logger

logger = get_logger(__name__)

# HTTP metrics
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "endpoint", "status_code", "status_class"]
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_class"]
)

ACTIVE_CONNECTIONS = Gauge(
    "http_active_connections",
    "Number of active HTTP connections"
)

# Report metrics
REPORT_DURATION = Histogram(
    "metrics_report_duration_seconds",
    "Time spent building a report",
    ["report"]
)

REPORT_FAILURES = Counter(
    "metrics_report_failures_total",
    "Reports that failed because a fetch failed",
    ["report"]
)

ANALYTICS_BRANCH_FAILURES = Counter(
    "analytics_branch_failures_total",
    "Analytics sections replaced by an empty result",
    ["branch"]
)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Middleware to collect Prometheus HTTP metrics."""

    def __init__(self, app, app_name: str = "homecare_metrics"):
        super().__init__(app)
        self.app_name = app_name

    def _get_endpoint_label(self, path: str) -> str:
        """Normalize endpoint path for metrics labels."""
        path = re.sub(r'/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}', '/{id}', path)
        path = re.sub(r'/\d+', '/{id}', path)
        return path

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and record count and duration."""
        if not settings.prometheus_enabled:
            return await call_next(request)

        ACTIVE_CONNECTIONS.inc()

        method = request.method
        endpoint = self._get_endpoint_label(request.url.path)
        start_time = time.time()
        status_code = "500"

        try:
            response = await call_next(request)
            status_code = str(response.status_code)
            return response
        except Exception as e:
            logger.error(
                "HTTP request failed",
                method=method,
                endpoint=endpoint,
                error=str(e),
                error_type=type(e).__name__,
                request_id=getattr(request.state, 'request_id', 'unknown')
            )
            raise
        finally:
            duration = time.time() - start_time
            status_class = f"{status_code[0]}xx"

            REQUEST_COUNT.labels(
                method=method,
                endpoint=endpoint,
                status_code=status_code,
                status_class=status_class
            ).inc()

            REQUEST_DURATION.labels(
                method=method,
                endpoint=endpoint,
                status_class=status_class
            ).observe(duration)

            ACTIVE_CONNECTIONS.dec()


def get_metrics() -> bytes:
    """Get Prometheus metrics in text format."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
