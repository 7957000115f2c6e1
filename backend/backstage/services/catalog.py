"""Catalog Service — create/update/delete/publish for every catalog resource.

Invariants:
    - File ids in request data are stored as ObjectIds and attached on create
    - Changed single files follow replace_file; list fields follow diff_file_ids;
      an explicit null detaches
    - Delete detaches every referenced file, then soft-deletes the orphans
    - Status-aware collections reconcile status/publishedAt/published_at on every write
    - Responses go through core/normalize: string ids, ISO dates, https URLs, `published`

Design Decisions:
    - One CatalogSpec per resource instead of one service class each: the rules
      above are identical, only collection, owner kind and file fields differ
    - Upload records for a whole page are loaded with a single $in query
"""

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from bson import ObjectId
from pymongo.asynchronous.database import AsyncDatabase

from backstage.core.domain_types import Collection, OwnerKind
from backstage.core.file_refs import DeletionReason, diff_file_ids
from backstage.core.normalize import normalize_document, normalize_lyric, resolve_reference_id
from backstage.core.photos import format_photo
from backstage.core.pagination import build_page
from backstage.core.publication import (
    STATUS_FIELDS, is_published, sync_status_fields, toggle_publication,
)
from backstage.services.documents import (
    assign_unique_slug, collection, get_or_404, load_upload_map,
    object_id_list, optional_object_id, paginate, stamp_created,
    stamp_updated, utcnow,
)
from backstage.services.file_refs import attach_file, release_file, replace_file

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSpec:
    """How one resource stores its files, slug and publication state."""
    collection: Collection
    kind: OwnerKind | None
    label: str
    file_fields: tuple[str, ...] = ()
    file_list_fields: tuple[str, ...] = ()
    legacy_file_fields: tuple[str, ...] = ()
    status_aware: bool = False
    slug_source: str | None = "title"
    delete_reason: DeletionReason = DeletionReason.MANUAL
    formatter: Callable[[Mapping, Mapping], dict] | None = None


BOOKS = CatalogSpec(Collection.BOOKS, OwnerKind.BOOK, "Book", file_fields=("cover",))
CDS = CatalogSpec(
    Collection.CDS, OwnerKind.CD, "CD", file_fields=("cover",),
    status_aware=True, delete_reason=DeletionReason.CD_DELETED,
)
DVDS = CatalogSpec(
    Collection.DVDS, OwnerKind.DVD, "DVD", file_fields=("cover",),
    status_aware=True, delete_reason=DeletionReason.DVD_DELETED,
)
LYRICS = CatalogSpec(
    Collection.LYRICS, None, "Lyric", formatter=lambda doc, _: normalize_lyric(doc),
)
PHOTOS = CatalogSpec(
    Collection.PHOTOS, OwnerKind.PHOTO, "Photo gallery",
    file_list_fields=("images",), legacy_file_fields=("url", "image"),
    status_aware=True, formatter=format_photo,
)
SHOWS = CatalogSpec(Collection.SHOWS, OwnerKind.SHOW, "Show", file_fields=("cover",))
TEXTS = CatalogSpec(Collection.TEXTS, OwnerKind.TEXT, "Text", file_fields=("cover",))
CLIPS = CatalogSpec(Collection.CLIPS, OwnerKind.CLIP, "Clip", file_list_fields=("cover",))
MESSAGES = CatalogSpec(
    Collection.MESSAGES, None, "Message",
    status_aware=True, slug_source=None,
)


def _coerce_file_ids(spec: CatalogSpec, data: Mapping[str, Any]) -> dict:
    doc = dict(data)
    for field in spec.file_fields:
        if field in doc:
            doc[field] = optional_object_id(doc[field])
    for field in spec.file_list_fields:
        if field in doc:
            doc[field] = object_id_list(doc[field])
    return doc


def referenced_file_ids(spec: CatalogSpec, doc: Mapping) -> list[tuple[str, str]]:
    """(field, file id) pairs for every upload the document points at."""
    refs = []
    for field in spec.file_fields:
        file_id = resolve_reference_id(doc.get(field))
        if file_id:
            refs.append((field, file_id))
    for field in spec.file_list_fields + spec.legacy_file_fields:
        value = doc.get(field)
        entries = value if isinstance(value, list) else [value]
        for entry in entries:
            file_id = resolve_reference_id(entry)
            if file_id and (field, file_id) not in refs:
                refs.append((field, file_id))
    return refs


def _list_field_ids(spec: CatalogSpec, doc: Mapping, field: str) -> list[str]:
    """Ids a list field currently holds, legacy fields included."""
    fields = (field,) + spec.legacy_file_fields
    return [file_id for f, file_id in referenced_file_ids(spec, doc) if f in fields]


async def create_document(
    db: AsyncDatabase,
    spec: CatalogSpec,
    data: Mapping[str, Any],
    admin_id: ObjectId | None,
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    doc = _coerce_file_ids(spec, data)
    if spec.status_aware:
        doc = sync_status_fields(doc, now)
    if spec.slug_source and doc.get(spec.slug_source):
        doc["slug"] = await assign_unique_slug(db, spec.collection, doc[spec.slug_source])
    stamp_created(doc, admin_id, now)

    result = await collection(db, spec.collection).insert_one(doc)
    doc["_id"] = result.inserted_id

    for field, file_id in referenced_file_ids(spec, doc):
        await attach_file(db, file_id, doc["_id"], spec.kind.value, field)

    logger.info(
        f"{spec.label} created",
        extra={"resource": spec.collection.value, "resource_id": str(doc["_id"])},
    )
    return doc


async def update_document(
    db: AsyncDatabase,
    spec: CatalogSpec,
    doc: Mapping,
    changes: Mapping[str, Any],
    admin_id: ObjectId | None,
    now: datetime | None = None,
) -> dict:
    """Apply a partial update; returns the re-read document."""
    now = now or utcnow()
    changes = _coerce_file_ids(spec, changes)
    updates = dict(changes)

    if spec.status_aware and set(changes) & set(STATUS_FIELDS):
        merged = sync_status_fields(doc, now, changes=changes)
        updates.update({field: merged[field] for field in STATUS_FIELDS})

    source = spec.slug_source
    if source and changes.get(source) and changes[source] != doc.get(source):
        updates["slug"] = await assign_unique_slug(
            db, spec.collection, changes[source], exclude_id=doc["_id"],
        )
    if set(changes) & set(spec.file_list_fields):
        for field in spec.legacy_file_fields:
            if field in doc:
                updates[field] = None
    stamp_updated(updates, admin_id, now)

    await collection(db, spec.collection).update_one({"_id": doc["_id"]}, {"$set": updates})

    for field in spec.file_fields:
        if field in changes:
            await replace_file(
                db, doc.get(field), changes[field], doc["_id"], spec.kind.value, field,
                DeletionReason.COVER_REPLACED, admin_id,
            )
    for field in spec.file_list_fields:
        if field in changes:
            to_attach, to_detach = diff_file_ids(
                _list_field_ids(spec, doc, field), changes[field],
            )
            for file_id in to_attach:
                await attach_file(db, file_id, doc["_id"], spec.kind.value, field)
            for file_id in to_detach:
                await release_file(
                    db, file_id, doc["_id"], DeletionReason.COVER_REPLACED, admin_id=admin_id,
                )

    return await get_or_404(db, spec.collection, doc["_id"], spec.label)


async def delete_document(
    db: AsyncDatabase, spec: CatalogSpec, doc: Mapping, admin_id: ObjectId | None = None,
) -> None:
    await collection(db, spec.collection).delete_one({"_id": doc["_id"]})
    owner = spec.kind.value if spec.kind else spec.label
    related_to = f"{owner}:{doc['_id']}"
    for _, file_id in referenced_file_ids(spec, doc):
        await release_file(db, file_id, doc["_id"], spec.delete_reason, related_to, admin_id)
    logger.info(
        f"{spec.label} deleted",
        extra={"resource": spec.collection.value, "resource_id": str(doc["_id"])},
    )


async def toggle_publish(
    db: AsyncDatabase,
    spec: CatalogSpec,
    doc: Mapping,
    admin_id: ObjectId | None,
    now: datetime | None = None,
) -> dict:
    now = now or utcnow()
    updates = stamp_updated(toggle_publication(doc, now, spec.status_aware), admin_id, now)
    await collection(db, spec.collection).update_one({"_id": doc["_id"]}, {"$set": updates})
    return await get_or_404(db, spec.collection, doc["_id"], spec.label)


def published_flag(spec: CatalogSpec, doc: Mapping) -> bool:
    if spec.status_aware:
        return is_published(doc)
    return bool(doc.get("published_at"))


def format_document(
    spec: CatalogSpec, doc: Mapping, upload_map: Mapping[str, Mapping] | None = None,
) -> dict:
    """Normalized response with populated file fields and the `published` flag."""
    upload_map = upload_map or {}
    if spec.formatter is not None:
        result = spec.formatter(doc, upload_map)
        result["published"] = published_flag(spec, doc)
        return result
    file_keys = spec.file_fields + spec.file_list_fields
    result = normalize_document({k: v for k, v in doc.items() if k not in file_keys})
    for field in spec.file_fields:
        result[field] = upload_map.get(resolve_reference_id(doc.get(field)) or "")
    for field in spec.file_list_fields:
        value = doc.get(field) if isinstance(doc.get(field), list) else []
        ids = (resolve_reference_id(entry) for entry in value)
        result[field] = [upload_map[i] for i in ids if i in upload_map]
    result["published"] = published_flag(spec, doc)
    return result


async def format_documents(
    db: AsyncDatabase, spec: CatalogSpec, docs: Iterable[Mapping],
) -> list[dict]:
    docs = list(docs)
    file_ids = [file_id for doc in docs for _, file_id in referenced_file_ids(spec, doc)]
    upload_map = await load_upload_map(db, file_ids)
    return [format_document(spec, doc, upload_map) for doc in docs]


async def format_one(db: AsyncDatabase, spec: CatalogSpec, doc: Mapping) -> dict:
    return (await format_documents(db, spec, [doc]))[0]


async def list_documents(
    db: AsyncDatabase,
    spec: CatalogSpec,
    query: Mapping,
    sort: list[tuple[str, int]],
    page: int,
    page_size: int,
) -> dict:
    docs, total = await paginate(db, spec.collection, query, sort, page, page_size)
    return build_page(await format_documents(db, spec, docs), total, page, page_size)
