"""
Pantry Proxy Backend — Custom Exception Hierarchy
==================================================

What:  Application-specific exceptions for the proxy's failure modes.
How:   Each exception carries a client-safe `message` and a `context` dict.
       Global handlers (registered in main.py) turn them into JSON responses
       with the right status code; `context` is only ever logged.
Who:   Raised by services and routes; caught by the global handlers.

Exception Hierarchy:
    PantryProxyError (base)
    ├── ConfigurationError   → refuses to start (never an HTTP response)
    ├── ValidationError      → 400 Bad Request (client can fix)
    ├── UpstreamError        → 500 Internal Server Error (document/AI service failed)
    └── ParseError           → 500 Internal Server Error (AI output unusable)

Leak policy:
    Upstream error text never reaches the caller. UpstreamError and ParseError
    carry a generic message; the upstream status, body excerpt or raw model
    output lives in `context` and is written to the log.
"""

from typing import Any, Dict, List, Optional


class PantryProxyError(Exception):
    """
    Base exception for all Pantry Proxy errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(PantryProxyError):
    """
    Raised by the startup validation step when required settings are missing.

    What:    The document-service credentials are incomplete.
    When:    Settings.validate_required(), called from create_app() and run().
    Effect:  The process refuses to start. This is never mapped to an HTTP
             status because no request is being served yet.
    """

    def __init__(self, missing: List[str], context: Optional[Dict[str, Any]] = None):
        message = "Configuration validation failed:\n" + "\n".join(
            f"  - {name} is not set" for name in missing
        )
        ctx = context or {}
        ctx["missing"] = list(missing)
        super().__init__(message=message, context=ctx)
        self.missing = list(missing)


class ValidationError(PantryProxyError):
    """
    Raised when client input is missing or malformed.

    When:    No file in an upload, no image for analysis, missing items/message
             for pantry chat, a create body that holds no records.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "No file uploaded",
            "details": {"field": "file"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UpstreamError(PantryProxyError):
    """
    Raised when the document service or the AI microservice fails.

    What:    Transport failure, timeout, or a non-2xx status from upstream.
    HTTP:    500 Internal Server Error

    Context keys (logged only):
        service:          "document" or "ai"
        status_code:      upstream HTTP status, when a response arrived
        upstream_message: the upstream's own error text, or "status <code>"
    """

    def __init__(
        self,
        message: str = "An upstream service request failed",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if status_code is not None:
            ctx["status_code"] = status_code
        super().__init__(message=message, context=ctx)
        self.status_code = status_code


class ParseError(PantryProxyError):
    """
    Raised when AI output cannot be turned into an AnalysisResult.

    When:    The text field is missing, is not valid JSON after fence removal,
             or the JSON lacks a required field.
    HTTP:    500 Internal Server Error
    Context: `raw_text` holds the model output for diagnosis (logged only).
    """

    def __init__(
        self,
        message: str = "Failed to parse AI service output",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
