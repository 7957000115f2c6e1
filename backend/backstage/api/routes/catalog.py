"""Catalog Routes — list/create/read/update/delete/publish for the simple catalog resources.

Invariants:
    - Public lists default to published content; draft/all require an admin token
    - Admin-only lists default to all content
    - Detail routes that accept slugs fall back to slug lookup for non-ObjectId identifiers
    - Writes always require an admin and record who made them

Design Decisions:
    - Books, lyrics, photo galleries, texts and clips share one router factory:
      they differ only in schemas, filters and which routes are public
    - Resource filters are declared as query-param → field pairs and applied as
      escaped case-insensitive regexes
"""

import logging
from dataclasses import dataclass, field

from fastapi import APIRouter, Body, Depends, Query, Request, status
from pydantic import BaseModel
from pymongo.asynchronous.database import AsyncDatabase

from backstage.api.dependencies import (
    ListParams, get_optional_admin, list_params, require_admin, resolve_list_status,
)
from backstage.core.errors import AuthenticationError
from backstage.core.normalize import build_regex_filter
from backstage.core.publication import ListStatus, status_filter
from backstage.infrastructure.database import get_db
from backstage.schemas.catalog import (
    BookCreate, BookUpdate, ClipCreate, ClipUpdate, LyricCreate, LyricUpdate,
    PhotoCreate, PhotoUpdate, TextCreate, TextUpdate,
)
from backstage.schemas.common import MessageResponse
from backstage.services import catalog
from backstage.services.catalog import BOOKS, CLIPS, LYRICS, PHOTOS, TEXTS, CatalogSpec
from backstage.services.documents import (
    and_filter, find_by_id_or_slug, get_or_404, search_filter,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogRoutes:
    spec: CatalogSpec
    prefix: str
    create_model: type[BaseModel]
    update_model: type[BaseModel]
    search_fields: tuple[str, ...]
    sort_fields: tuple[str, ...] = ("createdAt", "updatedAt", "title", "published_at")
    filters: dict[str, str] = field(default_factory=dict)
    prefix_filters: dict[str, str] = field(default_factory=dict)
    public_list: bool = True
    public_detail: bool = False
    detail_by_slug: bool = False


def _resource_filters(routes: CatalogRoutes, request: Request) -> list[dict]:
    clauses = []
    for param, target in routes.filters.items():
        value = request.query_params.get(param)
        if value and value.strip():
            clauses.append({target: build_regex_filter(value)})
    for param, target in routes.prefix_filters.items():
        value = request.query_params.get(param)
        if value and value.strip():
            clauses.append({target: build_regex_filter(value, starts_with=True)})
    return clauses


def build_catalog_router(routes: CatalogRoutes) -> APIRouter:
    spec = routes.spec
    router = APIRouter(prefix=routes.prefix, tags=[spec.collection.value])
    default_status = ListStatus.PUBLISHED if routes.public_list else ListStatus.ALL
    status_field = "published_at"
    create_model = routes.create_model
    update_model = routes.update_model

    @router.get("")
    async def list_documents(
        request: Request,
        params: ListParams = Depends(list_params),
        status_: ListStatus | None = Query(None, alias="status"),
        db: AsyncDatabase = Depends(get_db),
        admin: dict | None = Depends(get_optional_admin),
    ):
        if not routes.public_list and admin is None:
            raise AuthenticationError()
        query = and_filter([
            status_filter(resolve_list_status(status_, admin, default_status), status_field),
            search_filter(params.search, routes.search_fields),
            *_resource_filters(routes, request),
        ])
        return await catalog.list_documents(
            db, spec, query, params.sort_spec(routes.sort_fields), params.page, params.page_size,
        )

    @router.post("", status_code=status.HTTP_201_CREATED)
    async def create_document(
        body: create_model = Body(...),  # type: ignore[valid-type]
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await catalog.create_document(
            db, spec, body.model_dump(exclude_unset=True), admin["_id"],
        )
        return await catalog.format_one(db, spec, doc)

    @router.get("/{identifier}")
    async def get_document(
        identifier: str,
        db: AsyncDatabase = Depends(get_db),
        admin: dict | None = Depends(get_optional_admin),
    ):
        if not routes.public_detail and admin is None:
            raise AuthenticationError()
        if routes.detail_by_slug:
            doc = await find_by_id_or_slug(db, spec.collection, identifier, spec.label)
        else:
            doc = await get_or_404(db, spec.collection, identifier, spec.label)
        return await catalog.format_one(db, spec, doc)

    @router.put("/{doc_id}")
    async def update_document(
        doc_id: str,
        body: update_model = Body(...),  # type: ignore[valid-type]
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await get_or_404(db, spec.collection, doc_id, spec.label)
        updated = await catalog.update_document(
            db, spec, doc, body.model_dump(exclude_unset=True), admin["_id"],
        )
        return await catalog.format_one(db, spec, updated)

    @router.delete("/{doc_id}", response_model=MessageResponse)
    async def delete_document(
        doc_id: str,
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await get_or_404(db, spec.collection, doc_id, spec.label)
        await catalog.delete_document(db, spec, doc, admin["_id"])
        return MessageResponse(message=f"{spec.label} removed")

    @router.patch("/{doc_id}/publish")
    async def toggle_publication(
        doc_id: str,
        db: AsyncDatabase = Depends(get_db),
        admin: dict = Depends(require_admin),
    ):
        doc = await get_or_404(db, spec.collection, doc_id, spec.label)
        updated = await catalog.toggle_publish(db, spec, doc, admin["_id"])
        return await catalog.format_one(db, spec, updated)

    return router


books_router = build_catalog_router(CatalogRoutes(
    BOOKS, "/api/v1/books", BookCreate, BookUpdate,
    search_fields=("title", "author", "ISBN"),
    sort_fields=("createdAt", "updatedAt", "title", "release_date", "published_at"),
    filters={"publisher": "publishing_company"},
    prefix_filters={"year": "release_date"},
))
lyrics_router = build_catalog_router(CatalogRoutes(
    LYRICS, "/api/v1/lyrics", LyricCreate, LyricUpdate,
    search_fields=("title", "lyric", "composers", "album"),
    sort_fields=("createdAt", "updatedAt", "title", "album", "year", "published_at"),
    filters={"album": "album"},
    public_list=False,
))
photos_router = build_catalog_router(CatalogRoutes(
    PHOTOS, "/api/v1/photos", PhotoCreate, PhotoUpdate,
    search_fields=("title", "description", "location", "album"),
    sort_fields=("createdAt", "updatedAt", "title", "date", "published_at"),
    filters={"album": "album", "location": "location"},
    public_detail=True, detail_by_slug=True,
))
texts_router = build_catalog_router(CatalogRoutes(
    TEXTS, "/api/v1/texts", TextCreate, TextUpdate,
    search_fields=("title", "content", "excerpt", "author"),
    filters={"category": "category", "author": "author"},
    public_detail=True, detail_by_slug=True,
))
clips_router = build_catalog_router(CatalogRoutes(
    CLIPS, "/api/v1/clips", ClipCreate, ClipUpdate,
    search_fields=("title", "info"),
))
