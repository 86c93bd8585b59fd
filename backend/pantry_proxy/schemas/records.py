"""
Pantry Proxy Backend — Record Proxy Schemas
============================================

What:  Outcome of the two-phase Food delete.
Why alias: The front end expects camelCase keys (deletedId, attachmentsCleaned).
"""

from pydantic import BaseModel, ConfigDict, Field


class DeleteResult(BaseModel):
    """
    What:  Returned by DELETE /food/{id}.

    `success` covers phase 1 only (the record delete). A failed attachment
    sweep is reported through `attachmentsCleaned: false`, never as an error.
    """
    success: bool = Field(description="The record delete succeeded")
    deleted_id: int = Field(alias="deletedId", description="Identifier of the deleted record")
    attachments_cleaned: bool = Field(
        alias="attachmentsCleaned",
        description="The unused-attachment sweep succeeded",
    )

    model_config = ConfigDict(populate_by_name=True)
