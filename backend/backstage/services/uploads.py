"""Upload Service — ingesting files into the media host and the upload_files library.

Invariants:
    - Only allowed MIME types up to the configured size reach the media host
    - Identical bytes (md5) are stored once; a repeat upload returns the existing record
    - A soft-deleted duplicate is restored instead of uploaded again
    - A file with related entries is never removed (FileInUseError carries them)
    - A failed host deletion is logged and the record is still removed

Design Decisions:
    - The media host is injected so routes and tests choose the implementation
    - One `upload_files` collection serves uploads, references and the media library
"""

import hashlib
import logging
from datetime import datetime
from typing import Any, Protocol

from pymongo.asynchronous.database import AsyncDatabase

from backstage.core.domain_types import Collection
from backstage.core.errors import FileInUseError, MediaHostError
from backstage.core.file_refs import restore_update
from backstage.core.media_library import (
    build_upload_record, check_upload, resource_type_for, summarize_usage,
)
from backstage.core.normalize import normalize_document, normalize_upload_file
from backstage.core.pagination import build_page
from backstage.services.documents import collection, get_or_404, paginate, utcnow

logger = logging.getLogger(__name__)


class MediaHost(Protocol):
    async def upload(
        self, data: bytes, folder: str | None = None, resource_type: str = "image",
    ) -> dict[str, Any]: ...

    async def destroy(self, public_id: str, resource_type: str = "image") -> str | None: ...

    async def usage(self) -> dict[str, Any]: ...


async def ingest_upload(
    db: AsyncDatabase,
    host: MediaHost,
    filename: str,
    content_type: str | None,
    data: bytes,
    folder: str | None,
    max_bytes: int,
    now: datetime | None = None,
) -> tuple[dict, bool]:
    """Store a file; returns (upload record, created)."""
    check_upload(content_type, len(data), max_bytes)
    digest = hashlib.md5(data).hexdigest()
    uploads = collection(db, Collection.UPLOAD_FILES)

    existing = await uploads.find_one({"hash": digest})
    if existing is not None:
        if existing.get("deleted"):
            restore = restore_update()
            restore["$set"]["updatedAt"] = now or utcnow()
            await uploads.update_one({"_id": existing["_id"]}, restore)
            existing = await uploads.find_one({"_id": existing["_id"]})
            logger.info(
                f"Restored soft-deleted upload {existing['_id']}",
                extra={"file_id": str(existing["_id"])},
            )
        return existing, False

    result = await host.upload(data, folder, resource_type_for(content_type))
    doc = build_upload_record(result, filename, content_type, digest, len(data), now or utcnow())
    inserted = await uploads.insert_one(doc)
    doc["_id"] = inserted.inserted_id
    logger.info(
        f"Uploaded {filename} ({doc['size']:.1f} KB)", extra={"file_id": str(doc["_id"])},
    )
    return doc, True


async def remove_upload(db: AsyncDatabase, host: MediaHost, file_id: Any) -> None:
    doc = await get_or_404(db, Collection.UPLOAD_FILES, file_id, "Upload file")
    related = doc.get("related") or []
    if related:
        raise FileInUseError(str(doc["_id"]), normalize_document(related))

    metadata = doc.get("provider_metadata") or {}
    public_id = metadata.get("public_id")
    if public_id:
        try:
            await host.destroy(public_id, metadata.get("resource_type") or "image")
        except MediaHostError as e:
            logger.error(
                f"Failed to remove hosted file {public_id}: {e.message}",
                extra={"file_id": str(doc["_id"])},
            )

    await collection(db, Collection.UPLOAD_FILES).delete_one({"_id": doc["_id"]})
    logger.info(f"Removed upload {doc['_id']}", extra={"file_id": str(doc["_id"])})


async def list_media(
    db: AsyncDatabase,
    query: dict,
    sort: list[tuple[str, int]],
    page: int,
    page_size: int,
) -> dict:
    docs, total = await paginate(db, Collection.UPLOAD_FILES, query, sort, page, page_size)
    return build_page([normalize_upload_file(doc) for doc in docs], total, page, page_size)


async def media_usage(host: MediaHost) -> dict:
    return summarize_usage(await host.usage())
