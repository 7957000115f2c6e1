"""Media Library — pure rules for uploads, library filters and host usage.

Invariants:
    - Only png/jpeg/webp images and mpeg/mp3/wav/ogg audio are accepted
    - Upload `size` is stored in KB (bytes / 1024); size buckets compare in KB
    - Audio goes to the host as `raw`, video as `video`, everything else as `image`
    - Explicit dateFrom/dateTo win over a relative date range

Design Decisions:
    - Filters are built as a list of clauses joined with $and: each clause stays
      readable and testable on its own
    - Usage metrics default to usage=0 / limit=None so the dashboard never
      receives missing keys
"""

import os
import re
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from backstage.core.errors import UnsupportedFileError
from backstage.core.normalize import build_regex_filter

ALLOWED_MIME_TYPES = frozenset({
    "image/png",
    "image/jpeg",
    "image/webp",
    "audio/mpeg",
    "audio/mp3",
    "audio/wav",
    "audio/ogg",
})

FORMAT_NAMES = ("thumbnail", "small", "medium")

KB = 1024


class MediaType(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    RAW = "raw"
    OTHER = "other"
    ALL = "all"


class DateRange(str, Enum):
    LAST_DAY = "24h"
    LAST_WEEK = "7d"
    LAST_MONTH = "30d"
    LAST_QUARTER = "90d"
    LAST_YEAR = "365d"
    ALL = "all"


class SizeBucket(str, Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"
    ALL = "all"


_DATE_RANGE_DELTAS = {
    DateRange.LAST_DAY: timedelta(hours=24),
    DateRange.LAST_WEEK: timedelta(days=7),
    DateRange.LAST_MONTH: timedelta(days=30),
    DateRange.LAST_QUARTER: timedelta(days=90),
    DateRange.LAST_YEAR: timedelta(days=365),
}

# Bounds in KB
_SIZE_BOUNDS = {
    SizeBucket.SMALL: {"$lt": 1 * KB},
    SizeBucket.MEDIUM: {"$gte": 1 * KB, "$lt": 5 * KB},
    SizeBucket.LARGE: {"$gte": 5 * KB},
}


def check_upload(content_type: str | None, size_bytes: int, max_bytes: int) -> None:
    """Raise UnsupportedFileError for disallowed types or oversized payloads."""
    if content_type not in ALLOWED_MIME_TYPES:
        raise UnsupportedFileError(f"Unsupported file type: {content_type or 'unknown'}")
    if size_bytes > max_bytes:
        raise UnsupportedFileError(
            f"File too large: {size_bytes} bytes (max {max_bytes})",
        )


def resource_type_for(mime: str) -> str:
    if mime.startswith("audio/"):
        return "raw"
    if mime.startswith("video/"):
        return "video"
    return "image"


def media_type_for(mime: str | None) -> str:
    """Library `type` of an upload, derived from its MIME type."""
    mime = (mime or "").lower()
    for prefix in ("image", "video", "audio"):
        if mime.startswith(f"{prefix}/"):
            return prefix
    if mime.startswith(("application/", "text/")):
        return MediaType.RAW.value
    return MediaType.OTHER.value


def formats_from_eager(eager: Sequence[Mapping] | None) -> dict[str, dict]:
    """Map host eager derivatives (in request order) to thumbnail/small/medium."""
    formats = {}
    for name, item in zip(FORMAT_NAMES, eager or []):
        size = item.get("bytes")
        formats[name] = {
            "url": item.get("secure_url"),
            "width": item.get("width"),
            "height": item.get("height"),
            "size": size / KB if size else None,
            "provider_metadata": {
                "public_id": item.get("public_id"),
                "resource_type": item.get("resource_type"),
            },
        }
    return formats


def build_upload_record(
    result: Mapping[str, Any],
    filename: str,
    mime: str,
    digest: str,
    size_bytes: int,
    now: datetime,
) -> dict:
    """`upload_files` document for a freshly hosted file."""
    resource_type = result.get("resource_type") or resource_type_for(mime)
    host_format = result.get("format")
    ext = f".{host_format}" if host_format else os.path.splitext(filename)[1].lower()
    host_bytes = result.get("bytes")
    return {
        "name": filename,
        "alternativeText": "",
        "caption": "",
        "hash": digest,
        "ext": ext,
        "mime": mime,
        "type": media_type_for(mime),
        "size": (host_bytes or size_bytes) / KB,
        "width": result.get("width"),
        "height": result.get("height"),
        "url": result.get("secure_url"),
        "provider": "cloudinary",
        "provider_metadata": {
            "public_id": result.get("public_id"),
            "resource_type": resource_type,
        },
        "formats": formats_from_eager(result.get("eager")) if resource_type == "image" else {},
        "related": [],
        "deleted": False,
        "createdAt": now,
        "updatedAt": now,
    }


def _type_clause(media_type: MediaType) -> dict:
    if media_type is MediaType.OTHER:
        return {"$and": [
            {"type": {"$nin": ["image", "video", "audio", "raw"]}},
            {"mime": {"$not": re.compile(r"^(image|video|audio)/", re.IGNORECASE)}},
        ]}
    if media_type is MediaType.RAW:
        return {"$or": [
            {"type": "raw"},
            {"mime": {"$regex": r"^application/", "$options": "i"}},
            {"mime": {"$regex": r"^text/", "$options": "i"}},
        ]}
    return {"$or": [
        {"type": media_type.value},
        {"mime": {"$regex": f"^{media_type.value}/", "$options": "i"}},
    ]}


def media_filter(
    now: datetime,
    search: str | None = None,
    media_type: MediaType | str | None = None,
    date_range: DateRange | str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    size: SizeBucket | str | None = None,
    include_deleted: bool = False,
) -> dict:
    """Mongo filter for the media library listing."""
    clauses: list[dict] = []

    if not include_deleted:
        clauses.append({"deleted": {"$ne": True}})

    if search and search.strip():
        clauses.append({"name": build_regex_filter(search)})

    if media_type and MediaType(media_type) is not MediaType.ALL:
        clauses.append(_type_clause(MediaType(media_type)))

    created: dict[str, datetime] = {}
    if date_from:
        created["$gte"] = date_from
    if date_to:
        created["$lte"] = date_to
    if created:
        clauses.append({"createdAt": created})
    elif date_range and DateRange(date_range) is not DateRange.ALL:
        clauses.append({"createdAt": {"$gte": now - _DATE_RANGE_DELTAS[DateRange(date_range)]}})

    if size and SizeBucket(size) is not SizeBucket.ALL:
        clauses.append({"size": dict(_SIZE_BOUNDS[SizeBucket(size)])})

    return {"$and": clauses} if clauses else {}


def _metric(raw: Any) -> dict:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return {"usage": raw, "limit": None, "used_percent": None}
    raw = raw if isinstance(raw, Mapping) else {}
    return {
        "usage": raw.get("usage") or 0,
        "limit": raw.get("limit"),
        "used_percent": raw.get("used_percent"),
    }


def summarize_usage(raw: Mapping[str, Any] | None) -> dict:
    """Dashboard summary of the host usage report."""
    raw = dict(raw or {})
    return {
        "storage": _metric(raw.get("storage")),
        "bandwidth": _metric(raw.get("bandwidth")),
        "resources": _metric(raw.get("resources")),
        "last_updated": raw.get("last_updated"),
        "raw": raw,
    }
