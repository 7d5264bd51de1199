"""
Request tracing middleware

Tags every request with a trace id (taken from ``X-Trace-ID`` when the
gateway sent one) and logs one line per request with the caller id, so a
bid or close can be followed from the HTTP edge into the service logs.
"""
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from freight_auction.core.logging_config import generate_trace_id, set_trace_id

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-ID"

# Probe endpoints are polled constantly; keep them out of the request log
QUIET_PATHS = {"/health", "/metrics"}


class TracingMiddleware(BaseHTTPMiddleware):
    """Middleware to add trace ID to all requests"""

    async def dispatch(self, request: Request, call_next):
        trace_id = request.headers.get(TRACE_HEADER) or generate_trace_id()
        set_trace_id(trace_id)

        path = request.url.path
        context = {
            "method": request.method,
            "path": path,
            "user_id": request.headers.get("X-User-Id"),
        }
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                f"❌ {request.method} {path} failed",
                extra={**context, "duration_ms": round((time.perf_counter() - started) * 1000, 2)},
                exc_info=True,
            )
            raise

        if path not in QUIET_PATHS:
            level = logging.WARNING if response.status_code >= 500 else logging.INFO
            logger.log(
                level,
                f"{request.method} {path} -> {response.status_code}",
                extra={
                    **context,
                    "status_code": response.status_code,
                    "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                },
            )

        response.headers[TRACE_HEADER] = trace_id
        return response
