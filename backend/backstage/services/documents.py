"""Document Helpers — shared MongoDB reads and write stamps for every resource.

Invariants:
    - Malformed ids raise InvalidIdentifierError (400) before any query runs
    - Missing documents raise ResourceNotFoundError (404)
    - Writes carry createdAt/updatedAt (UTC) and created_by/updated_by when an admin acts
    - Slugs are unique per collection: base, base-1, base-2, ...

Design Decisions:
    - Cursor options (sort/skip/limit) passed as find() kwargs and drained with
      to_list(): the same call shape works on every async driver we target
    - Upload maps exclude soft-deleted files so responses never show purged media
"""

from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from bson import ObjectId
from pymongo.asynchronous.database import AsyncDatabase

from backstage.core.domain_types import Collection
from backstage.core.errors import InvalidIdentifierError, ResourceNotFoundError
from backstage.core.normalize import (
    build_regex_filter, is_object_id, normalize_upload_file, resolve_reference_id,
)
from backstage.core.pagination import page_window
from backstage.core.slugs import generate_slug, slug_candidates


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes returned by the driver."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def collection(db: AsyncDatabase, name: Collection):
    return db[name.value]


def parse_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if not is_object_id(value):
        raise InvalidIdentifierError(str(value))
    return ObjectId(value)


def optional_object_id(value: Any) -> ObjectId | None:
    """ObjectId for a present id, None for an empty one."""
    if not value:
        return None
    return parse_object_id(resolve_reference_id(value))


def object_id_list(values: Iterable[Any] | None) -> list[ObjectId]:
    return [parse_object_id(resolve_reference_id(v)) for v in values or [] if v]


async def get_or_404(
    db: AsyncDatabase, name: Collection, doc_id: Any, resource: str,
) -> dict:
    oid = parse_object_id(doc_id)
    doc = await collection(db, name).find_one({"_id": oid})
    if doc is None:
        raise ResourceNotFoundError(resource, str(oid))
    return doc


async def find_by_id_or_slug(
    db: AsyncDatabase, name: Collection, identifier: str, resource: str,
) -> dict:
    query = {"_id": ObjectId(identifier)} if is_object_id(identifier) else {"slug": identifier}
    doc = await collection(db, name).find_one(query)
    if doc is None:
        raise ResourceNotFoundError(resource, identifier)
    return doc


async def assign_unique_slug(
    db: AsyncDatabase, name: Collection, source: str, exclude_id: ObjectId | None = None,
) -> str:
    coll = collection(db, name)
    candidates = slug_candidates(generate_slug(source))
    while True:
        candidate = next(candidates)
        query: dict[str, Any] = {"slug": candidate}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if await coll.find_one(query, {"_id": 1}) is None:
            return candidate


def stamp_created(doc: dict, admin_id: ObjectId | None, now: datetime) -> dict:
    doc["createdAt"] = now
    doc["updatedAt"] = now
    if admin_id is not None:
        doc["created_by"] = admin_id
        doc["updated_by"] = admin_id
    return doc


def stamp_updated(changes: dict, admin_id: ObjectId | None, now: datetime) -> dict:
    changes["updatedAt"] = now
    if admin_id is not None:
        changes["updated_by"] = admin_id
    return changes


async def paginate(
    db: AsyncDatabase,
    name: Collection,
    query: Mapping,
    sort: list[tuple[str, int]],
    page: int,
    page_size: int,
) -> tuple[list[dict], int]:
    coll = collection(db, name)
    skip, limit = page_window(page, page_size)
    total = await coll.count_documents(query)
    cursor = coll.find(query, sort=sort, skip=skip, limit=limit)
    return await cursor.to_list(length=None), total


async def find_many(
    db: AsyncDatabase, name: Collection, query: Mapping, **options: Any,
) -> list[dict]:
    return await collection(db, name).find(query, **options).to_list(length=None)


async def load_upload_map(db: AsyncDatabase, ids: Iterable[Any]) -> dict[str, dict]:
    """Normalized, non-deleted upload records keyed by string id."""
    unique: dict[str, None] = {}
    for value in ids:
        file_id = resolve_reference_id(value)
        if is_object_id(file_id):
            unique[file_id] = None
    if not unique:
        return {}
    docs = await find_many(
        db, Collection.UPLOAD_FILES,
        {"_id": {"$in": [ObjectId(i) for i in unique]}, "deleted": {"$ne": True}},
    )
    return {str(doc["_id"]): normalize_upload_file(doc) for doc in docs}


async def populate_file(db: AsyncDatabase, value: Any) -> dict | None:
    """Single normalized upload record for a stored reference, or None."""
    file_id = resolve_reference_id(value)
    if not file_id:
        return None
    return (await load_upload_map(db, [file_id])).get(file_id)


def and_filter(filters: Iterable[Mapping | None]) -> dict:
    """Combine optional clauses with $and; no clauses matches everything."""
    clauses = [dict(f) for f in filters if f]
    if not clauses:
        return {}
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


def search_filter(search: str | None, fields: Iterable[str]) -> dict | None:
    if not search:
        return None
    regex = build_regex_filter(search)
    return {"$or": [{field: regex} for field in fields]}
