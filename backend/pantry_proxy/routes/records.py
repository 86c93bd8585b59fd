"""
Pantry Proxy Backend — Record Route Handlers
=============================================

What:  Locations and Food collections, relayed to the document service.
How:   Each handler calls one RecordService method and relays the upstream
       status and body verbatim (relay_response). Delete is the exception: it
       returns the DeleteResult built by the service.

Request bodies for create are accepted in any of three shapes (field map,
array of field maps, {records: [...]}) and normalized by the service.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Path
from starlette.responses import Response

from pantry_proxy.dependencies import get_food_service, get_locations_service
from pantry_proxy.responses import relay_response
from pantry_proxy.schemas.common import ErrorResponse
from pantry_proxy.schemas.records import DeleteResult
from pantry_proxy.services.record_service import RecordService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Records"])

_ERROR_RESPONSES = {
    400: {"description": "Invalid request body", "model": ErrorResponse},
    500: {"description": "Document service failed", "model": ErrorResponse},
}

_CREATE_DESCRIPTION = "A field map, an array of field maps, or {records: [{fields: ...}]}"


# ── Locations ─────────────────────────────────────────────────────────────

@router.get(
    "/locations",
    responses=_ERROR_RESPONSES,
    summary="List storage locations",
)
async def list_locations(
    service: RecordService = Depends(get_locations_service),
) -> Response:
    return relay_response(await service.list())


@router.post(
    "/locations",
    responses=_ERROR_RESPONSES,
    summary="Create one or more storage locations",
)
async def create_locations(
    payload: Any = Body(..., description=_CREATE_DESCRIPTION),
    service: RecordService = Depends(get_locations_service),
) -> Response:
    return relay_response(await service.create(payload))


# ── Food ──────────────────────────────────────────────────────────────────

@router.get(
    "/food",
    responses=_ERROR_RESPONSES,
    summary="List food items",
)
async def list_food(
    service: RecordService = Depends(get_food_service),
) -> Response:
    return relay_response(await service.list())


@router.post(
    "/food",
    responses=_ERROR_RESPONSES,
    summary="Create one or more food items",
)
async def create_food(
    payload: Any = Body(..., description=_CREATE_DESCRIPTION),
    service: RecordService = Depends(get_food_service),
) -> Response:
    return relay_response(await service.create(payload))


@router.patch(
    "/food/{record_id}",
    responses=_ERROR_RESPONSES,
    summary="Update fields of one food item",
)
async def update_food(
    record_id: int = Path(..., description="Row id of the food item"),
    fields: Any = Body(..., description="Partial field map", examples=[{"Quantity": 2}]),
    service: RecordService = Depends(get_food_service),
) -> Response:
    return relay_response(await service.update(record_id, fields))


@router.delete(
    "/food/{record_id}",
    response_model=DeleteResult,
    responses=_ERROR_RESPONSES,
    summary="Delete a food item and sweep unused attachments",
    description=(
        "Deletes the row, then asks the document service to remove attachments "
        "no longer referenced. A failed sweep is reported as "
        "attachmentsCleaned=false, not as an error."
    ),
)
async def delete_food(
    record_id: int = Path(..., description="Row id of the food item"),
    service: RecordService = Depends(get_food_service),
) -> DeleteResult:
    return await service.delete(record_id)
