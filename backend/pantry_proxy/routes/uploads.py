"""
Pantry Proxy Backend — Multipart Upload Helper
===============================================

What:  Reads exactly one file from a named multipart field.
Who:   POST /attachments ("file") and POST /analyzeImage ("image").
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from starlette.datastructures import UploadFile

from pantry_proxy.exceptions import ValidationError


@dataclass
class Upload:
    content: bytes
    filename: str
    content_type: Optional[str]


async def read_single_upload(
    request: Request,
    field: str,
    missing_message: str,
    default_filename: str = "upload",
) -> Upload:
    """
    Return the one file sent under `field`.

    Raises:
        ValidationError: the request is not multipart, the field is absent,
                         holds a plain value, or holds more than one file.
    """
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith("multipart/form-data"):
        raise ValidationError(message=missing_message, field=field)

    form = await request.form()
    values = form.getlist(field)
    files = [value for value in values if isinstance(value, UploadFile)]

    if not files or len(files) != len(values):
        raise ValidationError(message=missing_message, field=field)
    if len(files) > 1:
        raise ValidationError(
            message=f"Exactly one file is allowed in '{field}', got {len(files)}.",
            field=field,
        )

    upload = files[0]
    try:
        content = await upload.read()
    finally:
        await form.close()

    return Upload(
        content=content,
        filename=upload.filename or default_filename,
        content_type=upload.content_type,
    )
