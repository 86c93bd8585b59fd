"""
Pantry Proxy Backend — Document Service Client
===============================================

What:  Authenticated transport to the Grist document API.
How:   Wraps one shared httpx.AsyncClient (bearer token + bounded timeout)
       and resolves paths relative to {base}/api/docs/{docId}.
Who:   Used by RecordService and AttachmentService; the health route pings it.

Error translation:
    httpx transport error / timeout   → UpstreamError (no status_code)
    non-2xx upstream status           → UpstreamError (status_code set)
    Neither is retried.
"""

import logging
import time
from typing import Any, Optional

import httpx

from pantry_proxy.config import Settings
from pantry_proxy.exceptions import UpstreamError
from pantry_proxy.services.upstream import build_timeout, upstream_message

logger = logging.getLogger(__name__)

DOCUMENT_FAILURE_MESSAGE = "The document service request failed. Please try again later."


class DocumentClient:
    """
    Thin request layer over the document API.

    Every public method of the Record and Attachment proxies goes through
    request(), which is the single place where upstream failures become
    UpstreamError.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient):
        self.doc_url = settings.grist_doc_url
        self._client = client

    @staticmethod
    def build_http_client(
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> httpx.AsyncClient:
        """
        Creates the shared connection pool for the document service.

        Args:
            transport: Replaces the network transport (tests pass an
                       httpx.MockTransport).
        """
        return httpx.AsyncClient(
            headers={"Authorization": f"Bearer {settings.grist_api_key}"},
            timeout=build_timeout(settings),
            transport=transport,
        )

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """
        Send one request to `{doc_url}{path}` and return the successful response.

        Args:
            method: HTTP method.
            path:   Path below the document root, e.g. "/tables/Food/records".
            kwargs: Passed to httpx (json=, files=, params=).

        Raises:
            UpstreamError: transport failure, timeout, or non-2xx status.
        """
        url = f"{self.doc_url}{path}"
        start_time = time.perf_counter()

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Document service %s %s failed: %s", method, path, str(e))
            raise UpstreamError(
                message=DOCUMENT_FAILURE_MESSAGE,
                context={
                    "service": "document",
                    "path": path,
                    "upstream_message": str(e) or type(e).__name__,
                },
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000

        if not response.is_success:
            detail = upstream_message(response)
            logger.error(
                "Document service %s %s returned %d after %.0fms: %s",
                method,
                path,
                response.status_code,
                duration_ms,
                detail,
            )
            raise UpstreamError(
                message=DOCUMENT_FAILURE_MESSAGE,
                status_code=response.status_code,
                context={"service": "document", "path": path, "upstream_message": detail},
            )

        logger.debug(
            "Document service %s %s -> %d in %.0fms",
            method,
            path,
            response.status_code,
            duration_ms,
        )
        return response

    async def ping(self) -> bool:
        """
        Check that the document is reachable with our credentials.

        Returns: True on a 2xx for GET {doc_url}, False otherwise.
        """
        try:
            await self.request("GET", "")
            return True
        except UpstreamError:
            return False
