"""Request tracing middleware."""

import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from flowhub.logging import bind_context, clear_context, get_logger
from flowhub.metrics import record_request

logger = get_logger(__name__)


def _short_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the logging context and time each request.

    The correlation id is taken from the ``X-Correlation-ID`` header when the
    caller supplies one. Both ids are echoed back as response headers.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _short_id()
        correlation_id = request.headers.get("X-Correlation-ID") or _short_id()

        clear_context()
        bind_context(
            request_id=request_id,
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )
        request.state.request_id = request_id
        request.state.correlation_id = correlation_id

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                error=str(e),
                error_type=type(e).__name__,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise
        else:
            duration = time.perf_counter() - start
            logger.info(
                "request_completed",
                status_code=response.status_code,
                duration_ms=round(duration * 1000, 2),
            )
            # Scrapes of /metrics would otherwise count themselves
            if not request.url.path.startswith("/metrics"):
                record_request(request.method, request.url.path, response.status_code, duration)

            response.headers["X-Request-ID"] = request_id
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            clear_context()
