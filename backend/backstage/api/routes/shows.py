"""Show Routes — admin agenda of concerts with past/upcoming filtering.

Invariants:
    - Every show route requires an admin
    - Lists sort by `date` ascending unless another allowed field is asked for
    - `is_past` is computed at response time against the current UTC clock
"""

import logging
from datetime import datetime
from enum import Enum

from fastapi import APIRouter, Depends, Query, status
from pymongo.asynchronous.database import AsyncDatabase

from backstage.api.dependencies import ListParams, list_params, require_admin
from backstage.core.normalize import build_regex_filter
from backstage.core.pagination import build_page
from backstage.core.publication import ListStatus, status_filter
from backstage.infrastructure.database import get_db
from backstage.schemas.catalog import ShowCreate, ShowUpdate
from backstage.schemas.common import MessageResponse
from backstage.services import catalog
from backstage.services.catalog import SHOWS
from backstage.services.documents import (
    and_filter, as_utc, get_or_404, paginate, search_filter, utcnow,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/shows", tags=["shows"])

SORT_FIELDS = ("date", "createdAt", "updatedAt", "title", "city")
SEARCH_FIELDS = ("title", "venue", "city", "country")


class ShowWhen(str, Enum):
    PAST = "past"
    UPCOMING = "upcoming"


def with_past_flag(item: dict, doc: dict, now: datetime) -> dict:
    date = as_utc(doc.get("date"))
    item["is_past"] = bool(date and date < now)
    return item


async def format_show(db: AsyncDatabase, doc: dict) -> dict:
    return with_past_flag(await catalog.format_one(db, SHOWS, doc), doc, utcnow())


@router.get("")
async def list_shows(
    params: ListParams = Depends(list_params),
    status_: ListStatus = Query(ListStatus.ALL, alias="status"),
    city: str | None = Query(None, max_length=120),
    state: str | None = Query(None, max_length=120),
    when: ShowWhen | None = Query(None),
    db: AsyncDatabase = Depends(get_db),
    _: dict = Depends(require_admin),
):
    now = utcnow()
    date_clause = None
    if when is ShowWhen.PAST:
        date_clause = {"date": {"$lt": now}}
    elif when is ShowWhen.UPCOMING:
        date_clause = {"date": {"$gte": now}}

    query = and_filter([
        status_filter(status_),
        search_filter(params.search, SEARCH_FIELDS),
        {"city": build_regex_filter(city)} if city else None,
        {"state": build_regex_filter(state)} if state else None,
        date_clause,
    ])
    docs, total = await paginate(
        db, SHOWS.collection, query, params.sort_spec(SORT_FIELDS, "date", "asc"),
        params.page, params.page_size,
    )
    items = await catalog.format_documents(db, SHOWS, docs)
    data = [with_past_flag(item, doc, now) for item, doc in zip(items, docs)]
    return build_page(data, total, params.page, params.page_size)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_show(
    body: ShowCreate,
    db: AsyncDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    doc = await catalog.create_document(db, SHOWS, body.model_dump(exclude_unset=True), admin["_id"])
    return await format_show(db, doc)


@router.get("/{show_id}")
async def get_show(
    show_id: str,
    db: AsyncDatabase = Depends(get_db),
    _: dict = Depends(require_admin),
):
    return await format_show(db, await get_or_404(db, SHOWS.collection, show_id, SHOWS.label))


@router.put("/{show_id}")
async def update_show(
    show_id: str,
    body: ShowUpdate,
    db: AsyncDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    doc = await get_or_404(db, SHOWS.collection, show_id, SHOWS.label)
    updated = await catalog.update_document(
        db, SHOWS, doc, body.model_dump(exclude_unset=True), admin["_id"],
    )
    return await format_show(db, updated)


@router.delete("/{show_id}", response_model=MessageResponse)
async def delete_show(
    show_id: str,
    db: AsyncDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    doc = await get_or_404(db, SHOWS.collection, show_id, SHOWS.label)
    await catalog.delete_document(db, SHOWS, doc, admin["_id"])
    return MessageResponse(message="Show removed")


@router.patch("/{show_id}/publish")
async def toggle_show_publication(
    show_id: str,
    db: AsyncDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    doc = await get_or_404(db, SHOWS.collection, show_id, SHOWS.label)
    return await format_show(db, await catalog.toggle_publish(db, SHOWS, doc, admin["_id"]))
