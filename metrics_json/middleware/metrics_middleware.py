"""FastAPI middleware for instrumenting the API itself.

Times every /api/** request into a Timer and tracks in-flight requests with
a Counter, both in the default registry, so the service reports on itself.
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from metrics_json.core.logging_config import get_logger
from metrics_json.services.metrics.instance import get_default_registry
from metrics_json.services.metrics.instruments import MetricName

logger = get_logger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware that records latency and concurrency for /api/** routes.

    Static content and other routes pass through untouched.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        """Process request and record it for API routes.

        Args:
            request: Incoming HTTP request
            call_next: Next middleware/handler in the chain

        Returns:
            HTTP response from downstream handlers
        """
        # Skip instrumentation for non-API routes
        if not request.url.path.startswith("/api/"):
            return await call_next(request)

        registry = get_default_registry()
        active = registry.counter(MetricName.for_class(MetricsMiddleware, "active-requests"))
        timer = registry.timer(
            MetricName.for_class(MetricsMiddleware, "requests", scope=request.method.lower())
        )

        active.inc()
        try:
            with timer.time():
                response = await call_next(request)
        finally:
            active.dec()

        logger.debug(f"{request.method} {request.url.path} -> {response.status_code}")
        return response
