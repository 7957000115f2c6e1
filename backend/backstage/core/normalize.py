"""Document Normalization — maps heterogeneous legacy records into one response contract.

Invariants:
    - Pure and stateless: no IO, inputs are never mutated
    - ObjectId → str, datetime → ISO-8601 string, recursively through lists and mappings
    - Every mapping with a string `_id` or `id` carries both keys (`_id` wins)
    - A missing optional field yields its default; normalization never raises on shape

Design Decisions:
    - Plain functions over a serializer class: routes compose the pieces they need
      (upload file, lyric, track list) instead of subclassing
    - Track lists accept both `{ref, kind}` wrappers and bare documents because
      stored CDs/DVDs contain both shapes
"""

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from bson import ObjectId

_OBJECT_ID_RE = re.compile(r"^[a-fA-F0-9]{24}$")


def is_object_id(value: Any) -> bool:
    """True for a 24-hex-char string."""
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def _convert(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Mapping):
        result = {key: _convert(nested) for key, nested in value.items()}
        id_value = result.get("_id")
        if not isinstance(id_value, str):
            id_value = result.get("id")
        if isinstance(id_value, str) and id_value:
            result["_id"] = id_value
            result["id"] = id_value
        return result
    if isinstance(value, (list, tuple)):
        return [_convert(item) for item in value]
    return value


def normalize_document(doc: Any) -> Any:
    """Normalize any stored value into JSON-ready primitives. None stays None."""
    if doc is None:
        return None
    return _convert(doc)


def ensure_https_url(value: Any) -> Any:
    """Force https on protocol-relative and http URLs; leave blob:/data: alone."""
    if not isinstance(value, str):
        return value
    if value.startswith(("blob:", "data:")):
        return value
    if value.startswith("//"):
        return f"https:{value}"
    if value.startswith("http://"):
        return "https://" + value[len("http://"):]
    return value


def normalize_upload_file(file: Any) -> Any:
    """Normalize an upload record: https URLs, formats reduced to mapping entries."""
    normalized = normalize_document(file)
    if not isinstance(normalized, dict):
        return normalized

    for key in ("url", "previewUrl"):
        if isinstance(normalized.get(key), str):
            normalized[key] = ensure_https_url(normalized[key])

    formats = normalized.get("formats")
    if isinstance(formats, dict):
        cleaned = {}
        for name, entry in formats.items():
            if not isinstance(entry, dict):
                continue
            entry = dict(entry)
            if isinstance(entry.get("url"), str):
                entry["url"] = ensure_https_url(entry["url"])
            cleaned[name] = entry
        normalized["formats"] = cleaned

    return normalized


def normalize_upload_file_list(value: Any) -> list[dict]:
    if not isinstance(value, (list, tuple)):
        return []
    files = (normalize_upload_file(entry) for entry in value)
    return [f for f in files if isinstance(f, dict)]


def normalize_lyric(lyric: Any) -> Any:
    """Normalize a lyric, exposing legacy `composers` as `composer` when unset."""
    normalized = normalize_document(lyric)
    if isinstance(normalized, dict):
        if not normalized.get("composer") and normalized.get("composers"):
            normalized["composer"] = normalized["composers"]
    return normalized


def extract_track_document(entry: Any) -> Mapping | None:
    """Unwrap a `{ref: {...}}` track entry; bare documents pass through."""
    if not entry:
        return None
    ref = entry.get("ref") if isinstance(entry, Mapping) else None
    if isinstance(ref, Mapping):
        return ref
    return entry


def resolve_reference_id(value: Any) -> str | None:
    """String id from a str, ObjectId, or mapping with `_id` / `id` / `ref`."""
    if not value:
        return None
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        for key in ("_id", "id", "ref"):
            resolved = resolve_reference_id(value.get(key))
            if resolved:
                return resolved
    return None


def normalize_track_list(
    entries: Iterable[Any] | None,
    lyric_map: Mapping[str, Mapping] | None = None,
) -> list[dict]:
    """Normalize a (possibly populated) track list, attaching `lyrics` from lyric_map."""
    tracks = []
    for entry in entries or []:
        if not isinstance(entry, Mapping):
            continue
        track_doc = extract_track_document(entry)
        if not isinstance(track_doc, Mapping):
            continue
        normalized = normalize_document(track_doc)
        if isinstance(normalized.get("track"), dict):
            normalized["track"] = normalize_upload_file(normalized["track"])
        lyric_id = resolve_reference_id(track_doc.get("lyric"))
        if lyric_id and lyric_map:
            lyric = lyric_map.get(lyric_id)
            if lyric:
                normalized["lyrics"] = normalize_lyric(lyric)
        tracks.append(normalized)
    return tracks


def collect_lyric_ids(tracks: Iterable[Any] | None) -> set[str]:
    """Lyric ids referenced by a track list (bare or `ref`-wrapped entries)."""
    ids = set()
    for entry in tracks or []:
        track_doc = extract_track_document(entry)
        if not isinstance(track_doc, Mapping):
            continue
        lyric_id = resolve_reference_id(track_doc.get("lyric"))
        if lyric_id:
            ids.add(lyric_id)
    return ids


def track_reference_ids(entries: Iterable[Any] | None) -> list[str]:
    """Ordered track ids from `{ref, kind}` entries, bare ids or populated docs."""
    ids = []
    for entry in entries or []:
        resolved = resolve_reference_id(entry)
        if resolved:
            ids.append(resolved)
    return ids


def with_published_flag(doc: Mapping | None, field: str = "published_at") -> dict | None:
    """Copy of doc with `published` derived from the publication date field."""
    if doc is None:
        return None
    return {**doc, "published": bool(doc.get(field))}


def build_regex_filter(value: str, starts_with: bool = False) -> dict:
    """Escaped, trimmed, case-insensitive `$regex` filter."""
    escaped = re.escape(value.strip())
    pattern = f"^{escaped}" if starts_with else escaped
    return {"$regex": pattern, "$options": "i"}
