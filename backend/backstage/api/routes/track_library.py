"""Track Library Routes — admin search and CRUD over CD and DVD track documents."""

import logging

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel
from pymongo.asynchronous.database import AsyncDatabase

from backstage.api.dependencies import require_admin
from backstage.core.normalize import normalize_document
from backstage.core.pagination import build_page
from backstage.infrastructure.database import get_db
from backstage.schemas.common import MessageResponse
from backstage.schemas.releases import CdTrackInput, CdTrackUpdate, DvdTrackInput, DvdTrackUpdate
from backstage.services import tracks
from backstage.services.documents import collection, get_or_404, search_filter
from backstage.services.tracks import CD_TRACKS, DVD_TRACKS, TrackSpec

logger = logging.getLogger(__name__)


def build_track_router(
    spec: TrackSpec,
    prefix: str,
    tag: str,
    create_model: type[BaseModel],
    update_model: type[BaseModel],
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("")
    async def list_tracks(
        search: str | None = Query(None, max_length=200),
        limit: int = Query(50, ge=1, le=200),
        db: AsyncDatabase = Depends(get_db),
        _: dict = Depends(require_admin),
    ):
        """Track picker: name/composer search, sorted by name."""
        query = search_filter(search.strip() if search else None, ("name", "composers")) or {}
        coll = collection(db, spec.collection)
        total = await coll.count_documents(query)
        docs = await coll.find(query, sort=[("name", 1)], limit=limit).to_list(length=None)
        return build_page([normalize_document(doc) for doc in docs], total, 1, limit)

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_track(
        body: create_model = Body(...),  # type: ignore[valid-type]
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        data = body.model_dump(exclude_unset=True)
        data.pop("id", None)
        track = await tracks.create_track(db, spec, data, admin["_id"])
        return normalize_document(track)

    @router.get("/{track_id}")
    async def get_track(
        track_id: str,
        db: AsyncDatabase = Depends(get_db),
        _: dict = Depends(require_admin),
    ):
        return normalize_document(await get_or_404(db, spec.collection, track_id, spec.label))

    @router.put("/{track_id}")
    async def update_track(
        track_id: str,
        body: update_model = Body(...),  # type: ignore[valid-type]
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await get_or_404(db, spec.collection, track_id, spec.label)
        changes = body.model_dump(exclude_unset=True)
        changes.pop("id", None)
        updated = await tracks.update_track(db, spec, doc, changes, admin["_id"])
        return normalize_document(updated)

    @router.delete("/{track_id}", response_model=MessageResponse)
    async def delete_track(
        track_id: str,
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await get_or_404(db, spec.collection, track_id, spec.label)
        await tracks.delete_track(db, spec, doc, admin["_id"])
        return MessageResponse(message="Track removed")

    return router


cd_tracks_router = build_track_router(
    CD_TRACKS, "/api/v1/cd-tracks", "cd-tracks", CdTrackInput, CdTrackUpdate,
)
dvd_tracks_router = build_track_router(
    DVD_TRACKS, "/api/v1/dvd-tracks", "dvd-tracks", DvdTrackInput, DvdTrackUpdate,
)
