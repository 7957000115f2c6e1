"""Track Service — CD/DVD track documents and the release track lists that order them.

Invariants:
    - A release stores its tracks as `track: [{ref: ObjectId, kind}]`, in play order
    - A track's audio upload is attached with kind CdTrack/DvdTrack, field `track`
    - Removing a track detaches its audio and soft-deletes it when orphaned (track_deleted)
    - sync_tracks: ids that exist are updated, entries without an id are created,
      stored tracks missing from the request are deleted; unknown ids are skipped
    - Populated track lists keep the stored order and drop references to missing tracks

Design Decisions:
    - Track documents live in their own collections (cd_tracks, dvd_tracks) so the
      track pickers can search them across releases
    - Populating a page of releases costs three $in queries (tracks, audio, lyrics)
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from bson import ObjectId
from pymongo.asynchronous.database import AsyncDatabase

from backstage.core.domain_types import Collection, OwnerKind, TrackEntryKind
from backstage.core.file_refs import DeletionReason
from backstage.core.normalize import (
    collect_lyric_ids, is_object_id, normalize_track_list, track_reference_ids,
)
from backstage.core.pagination import build_page
from backstage.services.catalog import CDS, DVDS, CatalogSpec, format_documents
from backstage.services.documents import (
    collection, find_many, get_or_404, load_upload_map, optional_object_id,
    paginate, stamp_created, stamp_updated, utcnow,
)
from backstage.services.file_refs import attach_file, release_file, replace_file

logger = logging.getLogger(__name__)

AUDIO_FIELD = "track"


@dataclass(frozen=True)
class TrackSpec:
    collection: Collection
    kind: OwnerKind
    entry_kind: TrackEntryKind
    label: str
    fields: tuple[str, ...]
    release: CatalogSpec


CD_TRACKS = TrackSpec(
    Collection.CD_TRACKS, OwnerKind.CD_TRACK, TrackEntryKind.CD, "CD track",
    ("name", "publishing_company", "composers", "time", "lyric", "data_sheet"),
    CDS,
)
DVD_TRACKS = TrackSpec(
    Collection.DVD_TRACKS, OwnerKind.DVD_TRACK, TrackEntryKind.DVD, "DVD track",
    ("name", "composers", "label", "time", "lyric"),
    DVDS,
)


def _track_fields(spec: TrackSpec, data: Mapping[str, Any], partial: bool) -> dict:
    fields = {
        name: data.get(name) for name in spec.fields
        if not partial or name in data
    }
    if "lyric" in fields:
        fields["lyric"] = optional_object_id(fields["lyric"])
    if not partial or AUDIO_FIELD in data:
        fields[AUDIO_FIELD] = optional_object_id(data.get(AUDIO_FIELD))
    return fields


def track_entries(spec: TrackSpec, track_ids: Iterable[Any]) -> list[dict]:
    return [
        {"ref": ObjectId(str(track_id)), "kind": spec.entry_kind.value}
        for track_id in track_ids
    ]


def reorder_entries(entries: Sequence[Mapping], order: Sequence[str]) -> list[dict]:
    """Entries rearranged to `order`; ids not in the stored list are ignored."""
    by_id = {}
    for entry in entries:
        ref = track_reference_ids([entry])
        if ref:
            by_id[ref[0]] = dict(entry)
    return [by_id[track_id] for track_id in order if track_id in by_id]


async def create_track(
    db: AsyncDatabase,
    spec: TrackSpec,
    data: Mapping[str, Any],
    admin_id: ObjectId | None = None,
    now: datetime | None = None,
) -> dict:
    doc = stamp_created(_track_fields(spec, data, partial=False), admin_id, now or utcnow())
    result = await collection(db, spec.collection).insert_one(doc)
    doc["_id"] = result.inserted_id
    await attach_file(db, doc[AUDIO_FIELD], doc["_id"], spec.kind.value, AUDIO_FIELD)
    return doc


async def update_track(
    db: AsyncDatabase,
    spec: TrackSpec,
    doc: Mapping,
    changes: Mapping[str, Any],
    admin_id: ObjectId | None = None,
    partial: bool = True,
    now: datetime | None = None,
) -> dict:
    """Update a track; with partial=False absent fields are cleared."""
    updates = _track_fields(spec, changes, partial)
    stamp_updated(updates, admin_id, now or utcnow())
    await collection(db, spec.collection).update_one({"_id": doc["_id"]}, {"$set": updates})
    if AUDIO_FIELD in updates:
        await replace_file(
            db, doc.get(AUDIO_FIELD), updates[AUDIO_FIELD], doc["_id"],
            spec.kind.value, AUDIO_FIELD, DeletionReason.TRACK_DELETED, admin_id,
        )
    return await get_or_404(db, spec.collection, doc["_id"], spec.label)


async def delete_track(
    db: AsyncDatabase, spec: TrackSpec, doc: Mapping, admin_id: ObjectId | None = None,
) -> None:
    await collection(db, spec.collection).delete_one({"_id": doc["_id"]})
    await release_file(
        db, doc.get(AUDIO_FIELD), doc["_id"], DeletionReason.TRACK_DELETED,
        f"{spec.kind.value}:{doc['_id']}", admin_id,
    )


async def delete_tracks(
    db: AsyncDatabase, spec: TrackSpec, track_ids: Iterable[Any], admin_id: ObjectId | None = None,
) -> int:
    oids = [ObjectId(i) for i in {str(t) for t in track_ids} if is_object_id(i)]
    if not oids:
        return 0
    docs = await find_many(db, spec.collection, {"_id": {"$in": oids}})
    for doc in docs:
        await delete_track(db, spec, doc, admin_id)
    logger.info(
        f"Deleted {len(docs)} {spec.label}(s)", extra={"resource": spec.collection.value},
    )
    return len(docs)


async def sync_tracks(
    db: AsyncDatabase,
    spec: TrackSpec,
    owner_doc: Mapping | None,
    incoming: Iterable[Mapping[str, Any]],
    admin_id: ObjectId | None = None,
) -> list[dict]:
    """Reconcile a release's tracks with the submitted list; returns the new entries."""
    kept: list[str] = []
    for entry in incoming:
        track_id = entry.get("_id")
        if track_id:
            existing = None
            if is_object_id(track_id):
                existing = await collection(db, spec.collection).find_one({"_id": ObjectId(track_id)})
            if existing is None:
                logger.warning(
                    f"Skipping unknown {spec.label} {track_id}",
                    extra={"resource": spec.collection.value, "resource_id": str(track_id)},
                )
                continue
            await update_track(db, spec, existing, entry, admin_id, partial=False)
            kept.append(str(existing["_id"]))
        else:
            created = await create_track(db, spec, entry, admin_id)
            kept.append(str(created["_id"]))

    previous = track_reference_ids((owner_doc or {}).get("track"))
    dropped = [track_id for track_id in previous if track_id not in kept]
    await delete_tracks(db, spec, dropped, admin_id)
    return track_entries(spec, kept)


async def append_track(
    db: AsyncDatabase,
    spec: TrackSpec,
    release: Mapping,
    data: Mapping[str, Any],
    admin_id: ObjectId | None = None,
) -> dict:
    track = await create_track(db, spec, data, admin_id)
    entries = list(release.get("track") or []) + track_entries(spec, [track["_id"]])
    await collection(db, spec.release.collection).update_one(
        {"_id": release["_id"]},
        {"$set": stamp_updated({"track": entries}, admin_id, utcnow())},
    )
    return track


async def remove_track(
    db: AsyncDatabase,
    spec: TrackSpec,
    release: Mapping,
    track_id: ObjectId,
    admin_id: ObjectId | None = None,
) -> None:
    entries = [
        entry for entry in release.get("track") or []
        if track_reference_ids([entry]) != [str(track_id)]
    ]
    await collection(db, spec.release.collection).update_one(
        {"_id": release["_id"]},
        {"$set": stamp_updated({"track": entries}, admin_id, utcnow())},
    )
    await delete_tracks(db, spec, [track_id], admin_id)


async def reorder_tracks(
    db: AsyncDatabase,
    spec: TrackSpec,
    release: Mapping,
    order: Sequence[str],
    admin_id: ObjectId | None = None,
) -> None:
    entries = reorder_entries(release.get("track") or [], order)
    await collection(db, spec.release.collection).update_one(
        {"_id": release["_id"]},
        {"$set": stamp_updated({"track": entries}, admin_id, utcnow())},
    )


async def build_lyric_map(db: AsyncDatabase, tracks: Iterable[Any]) -> dict[str, dict]:
    ids = [ObjectId(i) for i in collect_lyric_ids(tracks) if is_object_id(i)]
    if not ids:
        return {}
    docs = await find_many(db, Collection.LYRICS, {"_id": {"$in": ids}})
    return {str(doc["_id"]): doc for doc in docs}


async def populate_tracks(
    db: AsyncDatabase, spec: TrackSpec, entry_lists: Sequence[Any],
) -> list[list[dict]]:
    """Hydrated, normalized track lists for each stored entry list, in order."""
    id_lists = [
        track_reference_ids(entries if isinstance(entries, list) else [])
        for entries in entry_lists
    ]
    all_ids = {track_id for ids in id_lists for track_id in ids if is_object_id(track_id)}
    if not all_ids:
        return [[] for _ in id_lists]

    docs = await find_many(db, spec.collection, {"_id": {"$in": [ObjectId(i) for i in all_ids]}})
    upload_map = await load_upload_map(db, (doc.get(AUDIO_FIELD) for doc in docs))
    lyric_map = await build_lyric_map(db, docs)

    by_id = {}
    for doc in docs:
        audio = upload_map.get(str(doc.get(AUDIO_FIELD)))
        by_id[str(doc["_id"])] = {**doc, AUDIO_FIELD: audio}
    return [
        normalize_track_list([by_id[i] for i in ids if i in by_id], lyric_map)
        for ids in id_lists
    ]


async def format_releases(
    db: AsyncDatabase, spec: TrackSpec, docs: Sequence[Mapping],
) -> list[dict]:
    """Release responses with cover and track lists populated."""
    formatted = await format_documents(db, spec.release, docs)
    track_lists = await populate_tracks(db, spec, [doc.get("track") for doc in docs])
    for result, tracks in zip(formatted, track_lists):
        result["track"] = tracks
    return formatted


async def format_release(db: AsyncDatabase, spec: TrackSpec, doc: Mapping) -> dict:
    return (await format_releases(db, spec, [doc]))[0]


async def list_releases(
    db: AsyncDatabase,
    spec: TrackSpec,
    query: Mapping,
    sort: list[tuple[str, int]],
    page: int,
    page_size: int,
) -> dict:
    docs, total = await paginate(db, spec.release.collection, query, sort, page, page_size)
    return build_page(await format_releases(db, spec, docs), total, page, page_size)
