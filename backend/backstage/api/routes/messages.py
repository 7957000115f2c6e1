"""Fan Message Routes — public wall of published messages, admin replies and moderation.

Invariants:
    - Only the admin `response` can change after a message is created
    - publish toggles; unpublish always leaves the message unpublished
    - `publicada` mirrors the publication state for legacy readers
    - Responses always carry `response` as a string ("" when unanswered)
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from pymongo.asynchronous.database import AsyncDatabase

from backstage.api.dependencies import (
    ListParams, get_optional_admin, list_params, require_admin, resolve_list_status,
)
from backstage.core.normalize import build_regex_filter
from backstage.core.publication import ListStatus, PublishStatus, is_published, status_filter
from backstage.infrastructure.database import get_db
from backstage.schemas.catalog import MessageCreate, MessageReply
from backstage.schemas.common import MessageResponse
from backstage.services import catalog
from backstage.services.catalog import MESSAGES
from backstage.services.documents import (
    and_filter, collection, get_or_404, search_filter, stamp_updated, utcnow,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/messages", tags=["messages"])

SORT_FIELDS = ("createdAt", "updatedAt", "name", "city", "published_at")
SEARCH_FIELDS = ("name", "email", "city", "state", "message", "response")


def _reply_fields(item: dict) -> dict:
    if not isinstance(item.get("response"), str):
        item["response"] = ""
    item["publicada"] = item["published"]
    return item


def format_message(doc: dict) -> dict:
    return _reply_fields(catalog.format_document(MESSAGES, doc))


@router.get("")
async def list_messages(
    params: ListParams = Depends(list_params),
    status_: ListStatus | None = Query(None, alias="status"),
    city: str | None = Query(None, max_length=120),
    db: AsyncDatabase = Depends(get_db),
    admin: dict | None = Depends(get_optional_admin),
):
    query = and_filter([
        status_filter(resolve_list_status(status_, admin)),
        search_filter(params.search, SEARCH_FIELDS),
        {"city": build_regex_filter(city)} if city else None,
    ])
    page = await catalog.list_documents(
        db, MESSAGES, query, params.sort_spec(SORT_FIELDS), params.page, params.page_size,
    )
    page["data"] = [_reply_fields(item) for item in page["data"]]
    return page


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_message(
    body: MessageCreate,
    db: AsyncDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    data = body.model_dump(exclude_unset=True)
    published = bool(data.pop("publicada", False))
    data["publicada"] = published
    if published:
        data["status"] = PublishStatus.PUBLISHED.value
    doc = await catalog.create_document(db, MESSAGES, data, admin["_id"])
    return format_message(doc)


@router.get("/{message_id}")
async def get_message(message_id: str, db: AsyncDatabase = Depends(get_db)):
    doc = await get_or_404(db, MESSAGES.collection, message_id, MESSAGES.label)
    return format_message(doc)


@router.put("/{message_id}")
async def reply_to_message(
    message_id: str,
    body: MessageReply,
    db: AsyncDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    doc = await get_or_404(db, MESSAGES.collection, message_id, MESSAGES.label)
    if "response" in body.model_fields_set:
        doc = await catalog.update_document(
            db, MESSAGES, doc, {"response": (body.response or "").strip()}, admin["_id"],
        )
    return format_message(doc)


@router.delete("/{message_id}", response_model=MessageResponse)
async def delete_message(
    message_id: str,
    db: AsyncDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    doc = await get_or_404(db, MESSAGES.collection, message_id, MESSAGES.label)
    await catalog.delete_document(db, MESSAGES, doc, admin["_id"])
    return MessageResponse(message="Message removed")


@router.patch("/{message_id}/publish")
async def toggle_message_publication(
    message_id: str,
    db: AsyncDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    doc = await get_or_404(db, MESSAGES.collection, message_id, MESSAGES.label)
    updated = await catalog.toggle_publish(db, MESSAGES, doc, admin["_id"])
    await collection(db, MESSAGES.collection).update_one(
        {"_id": updated["_id"]}, {"$set": {"publicada": is_published(updated)}},
    )
    updated["publicada"] = is_published(updated)
    return format_message(updated)


@router.patch("/{message_id}/unpublish")
async def unpublish_message(
    message_id: str,
    db: AsyncDatabase = Depends(get_db),
    admin: dict = Depends(require_admin),
):
    doc = await get_or_404(db, MESSAGES.collection, message_id, MESSAGES.label)
    updates = stamp_updated({
        "published_at": None,
        "publishedAt": None,
        "status": PublishStatus.DRAFT.value,
        "publicada": False,
    }, admin["_id"], utcnow())
    await collection(db, MESSAGES.collection).update_one({"_id": doc["_id"]}, {"$set": updates})
    return format_message({**doc, **updates})
