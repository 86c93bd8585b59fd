"""
Pantry Proxy Backend — Health Check Route
==========================================

What:  Liveness/readiness probe for Docker and load balancers.
How:   Pings the document service (GET on the document root). The AI
       microservice is optional and is not probed.

Status levels:
    - healthy:   document service reachable (HTTP 200)
    - degraded:  document service unreachable (HTTP 200, flag for monitoring)
"""

import logging
import time

from fastapi import APIRouter, Depends

from pantry_proxy import __version__
from pantry_proxy.dependencies import get_document_client
from pantry_proxy.schemas.common import HealthResponse
from pantry_proxy.services.document_client import DocumentClient

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    document: DocumentClient = Depends(get_document_client),
) -> HealthResponse:
    reachable = await document.ping()
    if not reachable:
        logger.warning("Health check: document service unreachable")

    return HealthResponse(
        status="healthy" if reachable else "degraded",
        version=__version__,
        document_service="reachable" if reachable else "unreachable",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
