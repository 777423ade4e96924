"""
Observability middleware for FastAPI.
Provides request tracing, logging, and metrics collection.
"""
import time
from typing import Callable, List, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from corebank.obs.logging import get_logger, log_request, log_error, extract_trace_id
from corebank.obs.metrics import record_http_request

logger = get_logger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Middleware for request observability (trace ids, logging, metrics)."""

    def __init__(self, app, exclude_paths: Optional[List[str]] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or ['/health', '/metrics', '/docs', '/openapi.json']

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with observability."""
        start_time = time.time()

        # Extract or generate trace ID before the exclusion check so handlers can always read it
        trace_id = extract_trace_id(request)
        request.state.trace_id = trace_id

        if any(request.url.path.startswith(path) for path in self.exclude_paths):
            return await call_next(request)

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000

            record_http_request(
                route=request.url.path,
                method=request.method,
                status_code=500,
                duration_ms=duration_ms
            )

            log_error(
                logger=logger,
                error=e,
                trace_id=trace_id,
                route=request.url.path,
                method=request.method,
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        # Add trace ID to response headers
        response.headers["X-Request-Id"] = trace_id

        record_http_request(
            route=request.url.path,
            method=request.method,
            status_code=response.status_code,
            duration_ms=duration_ms
        )

        log_request(
            logger=logger,
            request=request,
            status_code=response.status_code,
            latency_ms=duration_ms,
            trace_id=trace_id,
        )

        return response
