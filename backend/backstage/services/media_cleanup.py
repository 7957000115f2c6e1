"""Media Cleanup — purging soft-deleted uploads from the media host after review.

Invariants:
    - Only unreferenced files marked deleted before the cutoff are purgeable
    - Each file is re-checked right before the host call; a file referenced
      since it was listed is skipped
    - A record is removed only after the host confirms ("ok" or "not found")
    - A file without a public id is counted as failed and left in place
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from pymongo.asynchronous.database import AsyncDatabase

from backstage.core.domain_types import Collection
from backstage.core.errors import MediaHostError
from backstage.core.file_refs import ORPHAN_FILTER
from backstage.services.documents import collection, find_many, utcnow
from backstage.services.uploads import MediaHost

logger = logging.getLogger(__name__)

PURGED_RESULTS = {"ok", "not found"}


async def find_purgeable(
    db: AsyncDatabase, min_age_days: int, now: datetime | None = None,
) -> list[dict]:
    cutoff = (now or utcnow()) - timedelta(days=min_age_days)
    return await find_many(
        db, Collection.UPLOAD_FILES,
        {"deleted": True, "deletedAt": {"$lt": cutoff}, **ORPHAN_FILTER},
        sort=[("deletedAt", 1)],
    )


async def purge_file(db: AsyncDatabase, host: MediaHost, file: Mapping) -> bool:
    uploads = collection(db, Collection.UPLOAD_FILES)
    metadata = file.get("provider_metadata") or {}
    public_id = metadata.get("public_id")
    if not public_id:
        logger.warning(
            f"Skipping {file['_id']}: no public id", extra={"file_id": str(file["_id"])},
        )
        return False
    if await uploads.find_one({"_id": file["_id"], "deleted": True, **ORPHAN_FILTER}) is None:
        logger.warning(
            f"Skipping {public_id}: referenced again or restored",
            extra={"file_id": str(file["_id"])},
        )
        return False
    try:
        result = await host.destroy(public_id, metadata.get("resource_type") or "image")
    except MediaHostError as e:
        logger.error(
            f"Failed to purge {public_id}: {e.message}", extra={"file_id": str(file["_id"])},
        )
        return False
    if result not in PURGED_RESULTS:
        logger.error(
            f"Media host refused to purge {public_id}: {result}",
            extra={"file_id": str(file["_id"])},
        )
        return False
    await uploads.delete_one({"_id": file["_id"], **ORPHAN_FILTER})
    logger.info(f"Purged {public_id}", extra={"file_id": str(file["_id"])})
    return True


async def purge(
    db: AsyncDatabase, host: MediaHost, files: Iterable[Mapping],
) -> tuple[int, int]:
    """Purge each file; returns (succeeded, failed)."""
    ok = failed = 0
    for file in files:
        if await purge_file(db, host, file):
            ok += 1
        else:
            failed += 1
    return ok, failed
