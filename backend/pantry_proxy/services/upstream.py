"""
Pantry Proxy Backend — Upstream HTTP Helpers
=============================================

What:  Small helpers shared by every outbound client.
How:   build_timeout() turns Settings into an httpx.Timeout so no outbound
       call can hang forever; upstream_message() pulls the upstream's own
       error text out of a failed response for logging.
"""

import httpx

from pantry_proxy.config import Settings

# Upstream bodies are logged, never returned; keep log lines bounded
_MAX_LOGGED_BODY = 300


def build_timeout(settings: Settings) -> httpx.Timeout:
    """
    Bounded timeout for every outbound call.

    `read` applies to each chunk of a streamed body, so a long stream that
    keeps producing bytes is not cut off, while a stalled one is.
    """
    return httpx.Timeout(
        settings.upstream_timeout_seconds,
        connect=settings.upstream_connect_timeout_seconds,
    )


def upstream_message(response: httpx.Response) -> str:
    """
    The upstream's reported error message, or "status <code>" if it gave none.

    Looks at the `error` then `message` keys of a JSON body; falls back to a
    truncated plain-text body, then to the status code.
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value
            if isinstance(value, dict) and isinstance(value.get("message"), str):
                return value["message"]

    text = response.text.strip() if body is None else ""
    if text:
        return text[:_MAX_LOGGED_BODY]
    return f"status {response.status_code}"
