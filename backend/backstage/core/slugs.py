"""Slugs — URL-safe identifiers derived from titles.

Invariants:
    - Output matches ^[a-z0-9]+(-[a-z0-9]+)*$ or is a 6-char random token
    - Accents are folded (ção → cao) before filtering
    - Candidate order is base, base-1, base-2, ... (uniqueness checked in services/)
"""

import re
import secrets
import string
import unicodedata
from collections.abc import Iterator

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")
_TOKEN_ALPHABET = string.ascii_lowercase + string.digits


def generate_slug(value: str) -> str:
    folded = unicodedata.normalize("NFKD", value or "")
    ascii_only = "".join(c for c in folded if not unicodedata.combining(c))
    slug = _NON_SLUG_RE.sub("-", ascii_only.lower()).strip("-")
    if slug:
        return slug
    return "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(6))


def slug_candidates(base: str) -> Iterator[str]:
    yield base
    suffix = 1
    while True:
        yield f"{base}-{suffix}"
        suffix += 1
