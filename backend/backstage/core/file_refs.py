"""File References — pure rules of upload reference counting.

Invariants:
    - An upload's `related` list holds one {ref, kind, field} entry per owning field
    - A file is orphaned only when `related` is empty
    - Gaining an owner clears any pending soft delete
    - diff_file_ids preserves input order and ignores duplicates

Design Decisions:
    - Soft delete reasons as str Enum: stored verbatim in `deletionReason`
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Any, TypedDict

from bson import ObjectId


class RelatedRef(TypedDict):
    ref: ObjectId
    kind: str
    field: str


class DeletionReason(str, Enum):
    COVER_REPLACED = "cover_replaced"
    TRACK_DELETED = "track_deleted"
    CD_DELETED = "cd_deleted"
    DVD_DELETED = "dvd_deleted"
    MANUAL = "manual"


def _unique_strings(values: Iterable[Any] | None) -> list[str]:
    seen: dict[str, None] = {}
    for value in values or []:
        if value:
            seen[str(value)] = None
    return list(seen)


def diff_file_ids(previous: Iterable[Any] | None, new: Iterable[Any] | None) -> tuple[list[str], list[str]]:
    """(to_attach, to_detach) between two lists of file ids."""
    before = _unique_strings(previous)
    after = _unique_strings(new)
    to_attach = [i for i in after if i not in before]
    to_detach = [i for i in before if i not in after]
    return to_attach, to_detach


def is_orphan(file_doc: Mapping) -> bool:
    return not file_doc.get("related")


def default_related_label(file_id: Any) -> str:
    """`relatedTo` recorded when a soft delete has no explicit owner."""
    return f"UploadFile:{file_id}"


# Matches uploads with no owner: `related` missing, null or empty.
ORPHAN_FILTER = {
    "$or": [
        {"related": {"$exists": False}},
        {"related": None},
        {"related": {"$size": 0}},
    ],
}

SOFT_DELETE_FIELDS = ("deletedAt", "deletedBy", "deletionReason", "relatedTo")


def restore_update() -> dict:
    """Update clauses that clear a soft delete."""
    return {
        "$set": {"deleted": False},
        "$unset": {name: "" for name in SOFT_DELETE_FIELDS},
    }
