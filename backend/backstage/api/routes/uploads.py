"""Upload Routes — multipart ingestion into the media host and file removal.

Invariants:
    - 201 for a newly stored file, 200 when an identical file already existed
    - A file still referenced by content is never removed (400 FILE_IN_USE with its references)
"""

import logging

from fastapi import APIRouter, Depends, File, Form, Response, UploadFile, status
from pymongo.asynchronous.database import AsyncDatabase

from backstage.api.dependencies import require_admin
from backstage.config import Settings, get_settings
from backstage.core.normalize import normalize_upload_file
from backstage.infrastructure.database import get_db
from backstage.infrastructure.media_host import get_media_host
from backstage.schemas.common import MessageResponse
from backstage.services import uploads
from backstage.services.uploads import MediaHost

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/upload", tags=["upload"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def upload_file(
    response: Response,
    file: UploadFile = File(...),
    folder: str | None = Form(None, max_length=200),
    db: AsyncDatabase = Depends(get_db),
    host: MediaHost = Depends(get_media_host),
    settings: Settings = Depends(get_settings),
    _: dict = Depends(require_admin),
):
    data = await file.read()
    doc, created = await uploads.ingest_upload(
        db, host, file.filename or "upload", file.content_type, data,
        folder.strip() if folder and folder.strip() else None,
        settings.upload_max_bytes,
    )
    if not created:
        response.status_code = status.HTTP_200_OK
    return normalize_upload_file(doc)


@router.delete("/{file_id}", response_model=MessageResponse)
async def delete_file(
    file_id: str,
    db: AsyncDatabase = Depends(get_db),
    host: MediaHost = Depends(get_media_host),
    _: dict = Depends(require_admin),
):
    await uploads.remove_upload(db, host, file_id)
    return MessageResponse(message="File removed")
