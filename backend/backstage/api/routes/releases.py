"""Release Routes — CD and DVD endpoints, including their embedded track lists.

Invariants:
    - Release lookups accept an ObjectId or a slug; writes require an ObjectId
    - Creating or updating with `tracks` reconciles the release's track documents
    - Deleting a release deletes its tracks and releases their audio and cover files
    - Track order changes touch only the release's entry list

Design Decisions:
    - CDs and DVDs differ only in collections and body schemas, so one router
      factory builds both; each router is still registered explicitly in main.py
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel
from pymongo.asynchronous.database import AsyncDatabase

from backstage.api.dependencies import (
    ListParams, get_optional_admin, list_params, require_admin, resolve_list_status,
)
from backstage.core.normalize import build_regex_filter, normalize_document, track_reference_ids
from backstage.core.publication import ListStatus, status_filter
from backstage.infrastructure.database import get_db
from backstage.schemas.common import MessageResponse
from backstage.schemas.releases import (
    CdCreate, CdTrackInput, CdUpdate, DvdCreate, DvdTrackInput, DvdUpdate, TrackOrder,
)
from backstage.services import catalog, tracks
from backstage.services.documents import (
    and_filter, find_by_id_or_slug, get_or_404, parse_object_id, search_filter,
)
from backstage.services.tracks import CD_TRACKS, DVD_TRACKS, TrackSpec

logger = logging.getLogger(__name__)

SORT_FIELDS = ("createdAt", "updatedAt", "title", "release_date", "company", "published_at")


def _dump(body: BaseModel) -> dict[str, Any]:
    return body.model_dump(exclude_unset=True, by_alias=True)


def build_release_router(
    spec: TrackSpec,
    prefix: str,
    tag: str,
    create_model: type[BaseModel],
    update_model: type[BaseModel],
    track_model: type[BaseModel],
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])
    release = spec.release

    @router.get("")
    async def list_releases(
        params: ListParams = Depends(list_params),
        status_: ListStatus | None = Query(None, alias="status"),
        company: str | None = Query(None, max_length=200),
        year: str | None = Query(None, max_length=10),
        db: AsyncDatabase = Depends(get_db),
        admin: dict | None = Depends(get_optional_admin),
    ):
        query = and_filter([
            status_filter(resolve_list_status(status_, admin)),
            search_filter(params.search, ("title", "company", "info")),
            {"company": build_regex_filter(company)} if company else None,
            {"release_date": build_regex_filter(year, starts_with=True)} if year else None,
        ])
        return await tracks.list_releases(
            db, spec, query, params.sort_spec(SORT_FIELDS), params.page, params.page_size,
        )

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_release(
        body: create_model = Body(...),  # type: ignore[valid-type]
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        data = _dump(body)
        incoming = data.pop("tracks", None) or []
        data["track"] = await tracks.sync_tracks(db, spec, None, incoming, admin["_id"])
        doc = await catalog.create_document(db, release, data, admin["_id"])
        return await tracks.format_release(db, spec, doc)

    @router.get("/{identifier}")
    async def get_release(identifier: str, db: AsyncDatabase = Depends(get_db)):
        doc = await find_by_id_or_slug(db, release.collection, identifier, release.label)
        return await tracks.format_release(db, spec, doc)

    @router.put("/{release_id}")
    async def update_release(
        release_id: str,
        body: update_model = Body(...),  # type: ignore[valid-type]
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await get_or_404(db, release.collection, release_id, release.label)
        changes = _dump(body)
        if "tracks" in changes:
            incoming = changes.pop("tracks") or []
            changes["track"] = await tracks.sync_tracks(db, spec, doc, incoming, admin["_id"])
        updated = await catalog.update_document(db, release, doc, changes, admin["_id"])
        return await tracks.format_release(db, spec, updated)

    @router.delete("/{release_id}", response_model=MessageResponse)
    async def delete_release(
        release_id: str,
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await get_or_404(db, release.collection, release_id, release.label)
        await tracks.delete_tracks(db, spec, track_reference_ids(doc.get("track")), admin["_id"])
        await catalog.delete_document(db, release, doc, admin["_id"])
        return MessageResponse(message=f"{release.label} removed")

    @router.patch("/{release_id}/publish")
    async def toggle_release_publication(
        release_id: str,
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await get_or_404(db, release.collection, release_id, release.label)
        updated = await catalog.toggle_publish(db, release, doc, admin["_id"])
        return await tracks.format_release(db, spec, updated)

    @router.post("/{release_id}/tracks", status_code=status.HTTP_201_CREATED)
    async def add_track(
        release_id: str,
        body: track_model = Body(...),  # type: ignore[valid-type]
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await get_or_404(db, release.collection, release_id, release.label)
        data = _dump(body)
        data.pop("_id", None)
        track = await tracks.append_track(db, spec, doc, data, admin["_id"])
        return {"track": normalize_document(track)}

    @router.delete("/{release_id}/tracks/{track_id}", response_model=MessageResponse)
    async def remove_track(
        release_id: str,
        track_id: str,
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        track_oid = parse_object_id(track_id)
        doc = await get_or_404(db, release.collection, release_id, release.label)
        await tracks.remove_track(db, spec, doc, track_oid, admin["_id"])
        return MessageResponse(message="Track removed")

    @router.put("/{release_id}/tracks/reorder", response_model=MessageResponse)
    async def reorder_tracks(
        release_id: str,
        body: TrackOrder,
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await get_or_404(db, release.collection, release_id, release.label)
        await tracks.reorder_tracks(db, spec, doc, body.order, admin["_id"])
        return MessageResponse(message="Track order updated")

    return router


cds_router = build_release_router(
    CD_TRACKS, "/api/v1/cds", "cds", CdCreate, CdUpdate, CdTrackInput,
)
dvds_router = build_release_router(
    DVD_TRACKS, "/api/v1/dvds", "dvds", DvdCreate, DvdUpdate, DvdTrackInput,
)
