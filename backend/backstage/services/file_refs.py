"""File Reference Counting — attach, detach and orphan clean-up for uploads.

Invariants:
    - attach/detach are no-ops for empty file ids
    - attach clears a pending soft delete, so a re-selected file is live again
    - A file with any `related` entry is never soft-deleted or removed
    - Already soft-deleted files are left untouched (deletedAt keeps its first value)
    - Soft delete only marks the record; hosted bytes are purged by commands/cleanup_media

Design Decisions:
    - $addToSet / $pull keep the related list duplicate-free without read-modify-write
    - replace_file is the single entry point for swapping an owner's file, so every
      cover/audio change follows attach-new → detach-old → orphan-check-old
"""

import logging
from typing import Any

from bson import ObjectId
from pymongo.asynchronous.database import AsyncDatabase

from backstage.core.domain_types import Collection
from backstage.core.file_refs import (
    DeletionReason, RelatedRef, default_related_label, is_orphan, restore_update,
)
from backstage.core.normalize import is_object_id, resolve_reference_id
from backstage.services.documents import collection, utcnow

logger = logging.getLogger(__name__)


def _file_oid(file_id: Any) -> ObjectId | None:
    resolved = resolve_reference_id(file_id)
    if not is_object_id(resolved):
        return None
    return ObjectId(resolved)


async def attach_file(
    db: AsyncDatabase, file_id: Any, ref_id: ObjectId, kind: str, field: str,
) -> None:
    oid = _file_oid(file_id)
    if oid is None:
        return
    entry: RelatedRef = {"ref": ref_id, "kind": kind, "field": field}
    update = restore_update()
    update["$addToSet"] = {"related": entry}
    await collection(db, Collection.UPLOAD_FILES).update_one({"_id": oid}, update)


async def detach_file(db: AsyncDatabase, file_id: Any, ref_id: ObjectId) -> None:
    oid = _file_oid(file_id)
    if oid is None:
        return
    await collection(db, Collection.UPLOAD_FILES).update_one(
        {"_id": oid}, {"$pull": {"related": {"ref": ref_id}}},
    )


async def soft_delete_file(
    db: AsyncDatabase,
    file_id: Any,
    reason: DeletionReason,
    admin_id: ObjectId | None = None,
    related_to: str | None = None,
) -> bool:
    """Mark an upload for manual purge. Returns False when it does not exist."""
    oid = _file_oid(file_id)
    if oid is None:
        return False
    result = await collection(db, Collection.UPLOAD_FILES).update_one(
        {"_id": oid},
        {"$set": {
            "deleted": True,
            "deletedAt": utcnow(),
            "deletedBy": admin_id,
            "deletionReason": DeletionReason(reason).value,
            "relatedTo": related_to,
        }},
    )
    if result.matched_count == 0:
        logger.warning(
            f"Soft delete target not found: {oid}", extra={"file_id": str(oid)},
        )
        return False
    logger.info(
        f"Soft deleted upload {oid}",
        extra={"file_id": str(oid), "reason": DeletionReason(reason).value},
    )
    return True


async def soft_delete_files(
    db: AsyncDatabase,
    file_ids: list[Any],
    reason: DeletionReason,
    admin_id: ObjectId | None = None,
    related_to: str | None = None,
) -> int:
    count = 0
    for file_id in file_ids:
        if await soft_delete_file(db, file_id, reason, admin_id, related_to):
            count += 1
    logger.info(f"Soft delete complete: {count}/{len(file_ids)} uploads marked")
    return count


async def delete_file_if_orphan(
    db: AsyncDatabase,
    file_id: Any,
    reason: DeletionReason = DeletionReason.MANUAL,
    related_to: str | None = None,
    admin_id: ObjectId | None = None,
) -> bool:
    """Soft-delete the upload when nothing references it any more."""
    oid = _file_oid(file_id)
    if oid is None:
        return False
    file_doc = await collection(db, Collection.UPLOAD_FILES).find_one({"_id": oid})
    if file_doc is None or not is_orphan(file_doc):
        return False
    if file_doc.get("deleted"):
        logger.info(
            f"Upload already marked for deletion: {oid}", extra={"file_id": str(oid)},
        )
        return False
    return await soft_delete_file(
        db, oid, reason, admin_id, related_to or default_related_label(oid),
    )


async def release_file(
    db: AsyncDatabase,
    file_id: Any,
    ref_id: ObjectId,
    reason: DeletionReason,
    related_to: str | None = None,
    admin_id: ObjectId | None = None,
) -> None:
    """Detach an owner from a file, then soft-delete the file if orphaned."""
    if not file_id:
        return
    await detach_file(db, file_id, ref_id)
    await delete_file_if_orphan(db, file_id, reason, related_to, admin_id)


async def replace_file(
    db: AsyncDatabase,
    previous: Any,
    new: Any,
    ref_id: ObjectId,
    kind: str,
    field: str,
    reason: DeletionReason = DeletionReason.COVER_REPLACED,
    admin_id: ObjectId | None = None,
) -> None:
    """Swap the file an owner points at; unchanged ids are a no-op."""
    previous_id = resolve_reference_id(previous)
    new_id = resolve_reference_id(new)
    if previous_id == new_id:
        return
    if new_id:
        await attach_file(db, new_id, ref_id, kind, field)
    if previous_id:
        await release_file(db, previous_id, ref_id, reason, admin_id=admin_id)
