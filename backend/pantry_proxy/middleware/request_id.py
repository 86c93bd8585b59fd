"""
Pantry Proxy Backend — Request ID Middleware
=============================================

What:  Assigns a correlation ID to each request and echoes it in the response.
How:   Accepts the client's X-Request-ID when it is a short token of safe
       characters, otherwise generates one; stores it in a ContextVar read by
       the logging middleware and the exception handlers (error bodies carry
       `request_id`).
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Client IDs end up in response headers and log lines
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def resolve_request_id(supplied: Optional[str]) -> str:
    """
    The client's ID if it is usable, else a fresh 8-character hex token.

    Examples:
        resolve_request_id("front-42")      → "front-42"
        resolve_request_id("bad id\\r\\n")   → e.g. "3f9a01c2"
        resolve_request_id(None)            → e.g. "b71e4d90"
    """
    if supplied and _CLIENT_ID_PATTERN.match(supplied):
        return supplied
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Resolves the request ID before any other middleware or route runs."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        token = request_id_var.set(rid)
        request.state.request_id = rid

        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        return response
