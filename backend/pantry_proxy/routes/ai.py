"""
Pantry Proxy Backend — AI Route Handlers
=========================================

What:  POST /analyzeImage (buffered JSON) and POST /pantryChat (byte stream).
How:   Both delegate to AIRelayService; the two handlers share
       nothing beyond the service, because their failure behaviour differs:

    /analyzeImage  every failure becomes a JSON error (headers not yet sent)
    /pantryChat    failures before the first byte become a JSON error;
                   failures after it abort the connection (see relay_stream)
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from pantry_proxy.dependencies import get_ai_relay
from pantry_proxy.routes.uploads import read_single_upload
from pantry_proxy.schemas.ai import AnalysisResult, PantryChatRequest
from pantry_proxy.schemas.common import ErrorResponse
from pantry_proxy.services.ai_relay import AIRelayService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["AI"])


@router.post(
    "/analyzeImage",
    response_model=AnalysisResult,
    responses={
        400: {"description": "No image uploaded", "model": ErrorResponse},
        500: {"description": "Analysis failed", "model": ErrorResponse},
    },
    summary="Identify a food item from a photo",
    description=(
        "multipart/form-data with a single `image` part. Returns "
        "{item, expiration_days, notes} parsed from the AI microservice's reply."
    ),
)
async def analyze_image(
    request: Request,
    relay: AIRelayService = Depends(get_ai_relay),
) -> AnalysisResult:
    upload = await read_single_upload(
        request,
        "image",
        missing_message="No image uploaded",
        default_filename="image.jpg",
    )

    logger.info(
        "Received image analysis request: filename=%s, size=%d bytes",
        upload.filename,
        len(upload.content),
    )
    return await relay.analyze_image(upload.content, upload.filename, upload.content_type)


@router.post(
    "/pantryChat",
    response_class=StreamingResponse,
    responses={
        200: {"description": "Chunked answer, relayed byte for byte"},
        400: {"description": "Missing items or message", "model": ErrorResponse},
        500: {"description": "AI service failed before streaming began", "model": ErrorResponse},
    },
    summary="Ask a question about the pantry (streamed)",
)
async def pantry_chat(
    body: PantryChatRequest,
    relay: AIRelayService = Depends(get_ai_relay),
) -> StreamingResponse:
    upstream = await relay.open_pantry_chat(body.items, body.message)

    headers = {
        "Cache-Control": "no-cache",
        "X-Accel-Buffering": "no",
    }
    if "content-encoding" in upstream.headers:
        headers["Content-Encoding"] = upstream.headers["content-encoding"]

    # relay_stream closes the upstream when iterated; the background task
    # covers a client that disconnects before the first chunk
    return StreamingResponse(
        relay.relay_stream(upstream),
        status_code=upstream.status_code,
        media_type=upstream.headers.get("content-type", "text/plain; charset=utf-8"),
        headers=headers,
        background=BackgroundTask(upstream.aclose),
    )
