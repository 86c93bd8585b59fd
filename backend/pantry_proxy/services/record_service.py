"""
Pantry Proxy Backend — Record Proxy
====================================

What:  CRUD for one document table (Locations or Food), expressed in the
       document API's record-array wire format.
How:   Every write is normalized to {"records": [...]} before forwarding;
       responses are handed back untouched for the route to relay.
Who:   Routes in routes/records.py, one RecordService per table.

Wire mapping:
    list()            GET   /tables/{table}/records
    create(body)      POST  /tables/{table}/records        {"records": [{"fields": ...}, ...]}
    update(id, body)  PATCH /tables/{table}/records        {"records": [{"id": id, "fields": ...}]}
    delete(id)        POST  /tables/{table}/data/delete    [id]
                      POST  /attachments/removeUnused      (phase 2)

Delete semantics:
    Phase 1 failing raises UpstreamError and phase 2 never runs.
    Phase 2 failing is logged and reported as attachmentsCleaned=False; the
    record is already gone, so the request still succeeds.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from pantry_proxy.exceptions import UpstreamError, ValidationError
from pantry_proxy.schemas.records import DeleteResult
from pantry_proxy.services.attachment_service import AttachmentService
from pantry_proxy.services.document_client import DocumentClient

logger = logging.getLogger(__name__)


def _to_record(entry: Any, position: int) -> Dict[str, Any]:
    """One logical input record → {"fields": {...}} (keeping "id" if given)."""
    if not isinstance(entry, dict):
        raise ValidationError(
            message=f"Record at position {position} must be an object of field values.",
            field="records",
            context={"position": position, "type": type(entry).__name__},
        )

    if "fields" in entry:
        fields = entry["fields"]
        if not isinstance(fields, dict):
            raise ValidationError(
                message=f"Record at position {position} has non-object 'fields'.",
                field="records",
                context={"position": position},
            )
        record: Dict[str, Any] = {"fields": fields}
        if entry.get("id") is not None:
            record["id"] = entry["id"]
        return record

    return {"fields": entry}


def normalize_records(payload: Any) -> Dict[str, List[Dict[str, Any]]]:
    """
    Normalize any accepted create body to {"records": [{"fields": ...}, ...]}.

    Accepted shapes:
        {"Name": "Milk"}                               bare field map
        [{"Name": "Milk"}, {"Name": "Eggs"}]           array of field maps
        {"records": [{"fields": {"Name": "Milk"}}]}    pre-wrapped

    A dict is treated as pre-wrapped only when its "records" value is a list.
    Entries that already look like {"fields": {...}} are kept as records.

    Raises:
        ValidationError: nothing to create, or an entry is not an object.
    """
    if isinstance(payload, dict) and isinstance(payload.get("records"), list):
        entries = payload["records"]
    elif isinstance(payload, list):
        entries = payload
    elif isinstance(payload, dict):
        entries = [payload]
    else:
        raise ValidationError(
            message="Request body must be a field map, an array of field maps, or {records: [...]}.",
            field="body",
        )

    if not entries:
        raise ValidationError(message="No records supplied.", field="records")

    return {"records": [_to_record(entry, i) for i, entry in enumerate(entries)]}


class RecordService:
    """
    Record Proxy for a single table.

    Stateless apart from its collaborators; one instance per table is created
    by the app factory and shared by all requests.
    """

    def __init__(
        self,
        document: DocumentClient,
        table: str,
        attachments: Optional[AttachmentService] = None,
    ):
        self.document = document
        self.table = table
        self.attachments = attachments
        self._records_path = f"/tables/{table}/records"

    async def list(self) -> httpx.Response:
        """Fetch every record of the table."""
        return await self.document.request("GET", self._records_path)

    async def create(self, payload: Any) -> httpx.Response:
        """
        Create one or more records.

        Returns:
            The upstream response, including the server-assigned ids.
        """
        body = normalize_records(payload)
        logger.info("Creating %d record(s) in %s", len(body["records"]), self.table)
        return await self.document.request("POST", self._records_path, json=body)

    async def update(self, record_id: int, fields: Any) -> httpx.Response:
        """
        Patch one record as a one-element bulk update.

        Args:
            record_id: Row id from the URL.
            fields:    Partial field map; {"fields": {...}} is unwrapped.
        """
        if isinstance(fields, dict) and isinstance(fields.get("fields"), dict):
            fields = fields["fields"]

        if not isinstance(fields, dict) or not fields:
            raise ValidationError(
                message="Request body must be a non-empty object of field values.",
                field="fields",
            )

        body = {"records": [{"id": record_id, "fields": fields}]}
        logger.info("Updating record %d in %s", record_id, self.table)
        return await self.document.request("PATCH", self._records_path, json=body)

    async def delete(self, record_id: int) -> DeleteResult:
        """
        Two-phase delete: remove the row, then sweep unused attachments.

        Raises:
            UpstreamError: phase 1 failed (phase 2 is not attempted).
        """
        await self.document.request(
            "POST",
            f"/tables/{self.table}/data/delete",
            json=[record_id],
        )
        logger.info("Deleted record %d from %s", record_id, self.table)

        return DeleteResult(
            success=True,
            deleted_id=record_id,
            attachments_cleaned=await self._sweep_attachments(record_id),
        )

    async def _sweep_attachments(self, record_id: int) -> bool:
        """Phase 2 of delete. Reports the outcome instead of raising."""
        if self.attachments is None:
            return False

        try:
            await self.attachments.remove_unused()
        except UpstreamError as e:
            logger.warning(
                "Record %d deleted from %s but attachment cleanup failed: %s | Context: %s",
                record_id,
                self.table,
                e.message,
                e.context,
            )
            return False
        return True
