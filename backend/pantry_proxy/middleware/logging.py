"""
Pantry Proxy Backend — Request Logging Middleware
==================================================

What:  One access-log line per request: method, path, status, duration,
       response size, request ID and client IP.
How:   Level follows the status class (5xx ERROR, 4xx WARNING, else INFO).
       Paths in `quiet_paths` (health probes) are not logged.

Streaming note:
    A streamed body (/pantryChat) has no Content-Length, so its size is
    logged as "stream" and the duration covers the time until headers are
    ready. relay_stream logs the byte count when the stream completes.

What we don't log: request bodies, uploaded bytes, Authorization headers.
"""

import logging
import time
from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from pantry_proxy.middleware.request_id import request_id_var

logger = logging.getLogger("pantry_proxy.access")


def level_for_status(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log for the API, the static front end and error responses."""

    def __init__(self, app: ASGIApp, quiet_paths: Iterable[str] = ("/health",)):
        super().__init__(app)
        self.quiet_paths = frozenset(quiet_paths)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.quiet_paths:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        rid = request_id_var.get("")
        client_ip = request.client.host if request.client else "unknown"
        size = response.headers.get("content-length", "stream")

        logger.log(
            level_for_status(response.status_code),
            "%s %s %d %.1fms %s [%s] from %s",
            request.method,
            path,
            response.status_code,
            duration_ms,
            size,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "response_size": size,
                "client_ip": client_ip,
            },
        )
        return response
