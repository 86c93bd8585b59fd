"""
Pantry Proxy Backend — Attachment Route Handlers
=================================================

What:  GET /attachments (list) and POST /attachments (upload one file).
How:   The upload handler requires exactly one file in the `file` field and
       rejects the request before anything is forwarded otherwise.
"""

import logging

from fastapi import APIRouter, Depends, Request
from starlette.responses import Response

from pantry_proxy.dependencies import get_attachment_service
from pantry_proxy.responses import relay_response
from pantry_proxy.routes.uploads import read_single_upload
from pantry_proxy.schemas.common import ErrorResponse
from pantry_proxy.services.attachment_service import AttachmentService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Attachments"])


@router.get(
    "/attachments",
    responses={500: {"description": "Document service failed", "model": ErrorResponse}},
    summary="List attachment metadata",
)
async def list_attachments(
    service: AttachmentService = Depends(get_attachment_service),
) -> Response:
    return relay_response(await service.list())


@router.post(
    "/attachments",
    responses={
        400: {"description": "No file, several files, or invalid size", "model": ErrorResponse},
        500: {"description": "Document service failed", "model": ErrorResponse},
    },
    summary="Upload one attachment",
    description="multipart/form-data with a single `file` part. Returns the new attachment id(s).",
)
async def upload_attachment(
    request: Request,
    service: AttachmentService = Depends(get_attachment_service),
) -> Response:
    upload = await read_single_upload(request, "file", missing_message="No file uploaded")

    logger.info(
        "Received attachment upload: filename=%s, size=%d bytes",
        upload.filename,
        len(upload.content),
    )
    return relay_response(
        await service.upload(upload.content, upload.filename, upload.content_type)
    )
