"""
Pantry Proxy Backend — Upstream Response Relay
===============================================

What:  Turns a successful httpx response from the document service into the
       Starlette response sent to the front end.
How:   Status code, body bytes and content type are copied as-is. Hop-by-hop
       and encoding headers are not, since httpx has already decoded the body.
"""

import httpx
from starlette.responses import Response


def relay_response(upstream: httpx.Response) -> Response:
    """Relay status and body verbatim."""
    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type", "application/json"),
    )
