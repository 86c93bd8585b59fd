"""
Pantry Proxy Backend — Attachment Proxy
========================================

What:  Lists document attachments, relays binary uploads, and sweeps
       attachments no longer referenced by any record.
How:   Builds the document API's multipart/JSON calls through DocumentClient.
Who:   Routes in routes/attachments.py; RecordService.delete() for the sweep.

Upload validation (before anything is forwarded):
    - empty file            → ValidationError
    - larger than max bytes → ValidationError
    The "exactly one file" rule is enforced by the route, which owns the form.
"""

import logging
from typing import Optional

import httpx

from pantry_proxy.exceptions import ValidationError
from pantry_proxy.services.document_client import DocumentClient

logger = logging.getLogger(__name__)

# What: Multipart field name the document API reads the binary from
UPLOAD_FIELD = "upload"


class AttachmentService:
    """Attachment endpoints of one document."""

    def __init__(self, document: DocumentClient, max_upload_bytes: int):
        self.document = document
        self.max_upload_bytes = max_upload_bytes

    async def list(self) -> httpx.Response:
        """GET /attachments, returned verbatim."""
        return await self.document.request("GET", "/attachments")

    def validate_upload(self, content: bytes, filename: str) -> None:
        """
        Reject empty or oversized uploads.

        Raises:
            ValidationError with field="file".
        """
        if not content:
            raise ValidationError(
                message=f"Uploaded file '{filename}' is empty.",
                field="file",
            )
        if len(content) > self.max_upload_bytes:
            max_mb = self.max_upload_bytes / (1024 * 1024)
            raise ValidationError(
                message=(
                    f"File size ({len(content) / (1024 * 1024):.1f}MB) exceeds "
                    f"maximum of {max_mb:.0f}MB."
                ),
                field="file",
                context={"actual_size": len(content), "max_size": self.max_upload_bytes},
            )

    async def upload(
        self,
        content: bytes,
        filename: str,
        content_type: Optional[str] = None,
    ) -> httpx.Response:
        """
        Forward one file to POST /attachments as multipart.

        Args:
            content:      Raw file bytes.
            filename:     Original filename, preserved in the multipart part.
            content_type: Original content type (defaults to octet-stream).

        Returns:
            The upstream response; its body is the list of new attachment ids.
        """
        self.validate_upload(content, filename)

        logger.info("Uploading attachment %s (%d bytes)", filename, len(content))
        files = {
            UPLOAD_FIELD: (filename, content, content_type or "application/octet-stream"),
        }
        return await self.document.request("POST", "/attachments", files=files)

    async def remove_unused(self) -> httpx.Response:
        """
        POST /attachments/removeUnused.

        Not routed. Only RecordService.delete() calls this, as phase 2.
        """
        return await self.document.request("POST", "/attachments/removeUnused")
