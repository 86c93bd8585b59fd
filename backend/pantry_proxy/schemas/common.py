"""
Pantry Proxy Backend — Shared Response Schemas
===============================================

What:  Error and health payloads shared by every route module.
Who:   Referenced in route `responses=` declarations (OpenAPI docs) and
       returned by the health endpoint.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standard error body produced by the global exception handlers.

    Example:
        {
            "error": "upstream_error",
            "message": "The document service request failed.",
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable description, safe to display")
    details: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Field-level details (validation errors only)",
    )
    request_id: str = Field(default="", description="Correlation ID for support")


class HealthResponse(BaseModel):
    """
    What:  Result of GET /health.

    Status levels:
        - healthy:   document service reachable
        - degraded:  document service unreachable (AI is optional and not probed)
    """
    status: str = Field(description="healthy or degraded")
    version: str = Field(description="Application version")
    document_service: str = Field(description="reachable or unreachable")
    uptime_seconds: float = Field(description="Seconds since the process started")
