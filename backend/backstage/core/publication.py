"""Publication Status — draft/published state and its two legacy date fields.

Invariants:
    - Status-aware documents keep `status`, `publishedAt` and `published_at` consistent
    - A publication date in either field is mirrored into both
    - `published` with no date is stamped with `now`; `draft` keeps its date as history
    - Every other collection tracks publication through `published_at` alone

Design Decisions:
    - Functions return new dicts/payloads; callers decide how to persist them
    - `now` is injected so the rules stay deterministic under test
"""

from collections.abc import Mapping
from datetime import datetime
from enum import Enum
from typing import Any


class PublishStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"


class ListStatus(str, Enum):
    """Status filter accepted by list endpoints."""
    PUBLISHED = "published"
    DRAFT = "draft"
    ALL = "all"


STATUS_FIELDS = ("status", "publishedAt", "published_at")


def _status_value(value: Any) -> str | None:
    if isinstance(value, PublishStatus):
        return value.value
    return value or None


def sync_status_fields(
    doc: Mapping, now: datetime, changes: Mapping | None = None,
) -> dict:
    """Return doc merged with changes and its three status fields reconciled.

    When `changes` sets only one of the date fields, that value overrides the
    stored pair instead of losing to the older mirror.
    """
    merged = dict(doc)
    if changes:
        merged.update(changes)
        if "published_at" in changes and "publishedAt" not in changes:
            merged["publishedAt"] = changes["published_at"]
        elif "publishedAt" in changes and "published_at" not in changes:
            merged["published_at"] = changes["publishedAt"]

    published_at = merged.get("publishedAt") or merged.get("published_at")
    status = _status_value(merged.get("status"))
    if status is None:
        status = PublishStatus.PUBLISHED.value if published_at else PublishStatus.DRAFT.value
    if status == PublishStatus.PUBLISHED.value and not published_at:
        published_at = now

    merged["status"] = status
    merged["publishedAt"] = published_at
    merged["published_at"] = published_at
    return merged


def is_published(doc: Mapping) -> bool:
    return bool(doc.get("published_at") or doc.get("publishedAt"))


def toggle_publication(doc: Mapping, now: datetime, status_aware: bool = False) -> dict:
    """`$set` payload that flips the document between published and draft."""
    published = is_published(doc) if status_aware else bool(doc.get("published_at"))
    value = None if published else now
    update: dict[str, Any] = {"published_at": value}
    if status_aware:
        update["publishedAt"] = value
        update["status"] = (
            PublishStatus.DRAFT.value if published else PublishStatus.PUBLISHED.value
        )
    return update


def status_filter(status: ListStatus | str, field: str = "published_at") -> dict | None:
    """Mongo filter for a list status; None means no filter."""
    status = ListStatus(status)
    if status is ListStatus.ALL:
        return None
    if status is ListStatus.DRAFT:
        return {field: None}
    return {field: {"$ne": None}}
