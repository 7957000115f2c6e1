"""Photo Galleries — pure shaping of gallery documents across storage generations.

Invariants:
    - `images` is always a list of hydrated upload records, in stored order
    - Legacy galleries (`url` list or scalar, single `image`) produce the same shape
    - `image` is the first hydrated image, or None for an empty gallery

Design Decisions:
    - Upload lookups happen in services/; this module receives a prebuilt upload_map
    - Unknown ids become `{_id, id}` stubs rather than disappearing, so a gallery
      keeps its positions when an upload record is missing
"""

from collections.abc import Mapping
from typing import Any

from backstage.core.normalize import (
    is_object_id, normalize_document, normalize_upload_file,
    resolve_reference_id, with_published_flag,
)

_LEGACY_FIELDS = ("images", "url", "image")


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    if value is None:
        return []
    return [value]


def normalize_file_id_list(value: Any) -> list[str]:
    """Valid ObjectId strings from a list of ids, ObjectIds or mappings."""
    if not isinstance(value, (list, tuple)):
        return []
    ids = (resolve_reference_id(entry) for entry in value)
    return [i for i in ids if is_object_id(i)]


def _gallery_entries(doc: Mapping) -> list:
    images = _as_list(doc.get("images"))
    if images:
        return images
    return _as_list(doc.get("url"))


def collect_photo_upload_ids(doc: Mapping | None) -> list[str]:
    """Upload ids referenced by `images`, legacy `url` and legacy `image`, deduplicated."""
    if not doc:
        return []
    ids: dict[str, None] = {}
    candidates = _as_list(doc.get("images")) + _as_list(doc.get("url"))
    candidates.append(doc.get("image"))
    for entry in candidates:
        file_id = resolve_reference_id(entry)
        if is_object_id(file_id):
            ids[file_id] = None
    return list(ids)


def _hydrate(entry: Any, upload_map: Mapping[str, Mapping]) -> dict | None:
    file_id = resolve_reference_id(entry)
    if file_id and file_id in upload_map:
        return {**upload_map[file_id], "_id": file_id, "id": file_id}
    if isinstance(entry, Mapping):
        record = normalize_upload_file(entry)
        if isinstance(record, dict) and record:
            return record
    if file_id:
        return {"_id": file_id, "id": file_id}
    return None


def format_photo(doc: Mapping | None, upload_map: Mapping[str, Mapping] | None = None) -> dict | None:
    """Gallery response: hydrated `images`, cover `image`, normalized ids, `published`."""
    if doc is None:
        return None
    upload_map = upload_map or {}

    images = [
        record for record in (_hydrate(e, upload_map) for e in _gallery_entries(doc))
        if record
    ]
    legacy_image = _hydrate(doc.get("image"), upload_map)
    if not images and legacy_image:
        images.append(legacy_image)

    rest = {k: v for k, v in doc.items() if k not in _LEGACY_FIELDS}
    result = normalize_document(rest)
    result["images"] = images
    result["image"] = images[0] if images else legacy_image
    return with_published_flag(result)
