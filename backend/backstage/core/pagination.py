"""Pagination — page envelope and sort resolution shared by every list endpoint.

Invariants:
    - total_pages >= 1, even for an empty result
    - Sort fields outside the allow-list fall back to the resource default
"""

import math
from collections.abc import Collection, Sequence
from typing import Any

ASCENDING = 1
DESCENDING = -1


def page_window(page: int, page_size: int) -> tuple[int, int]:
    """(skip, limit) for a 1-based page."""
    return (page - 1) * page_size, page_size


def build_page(items: Sequence[Any], total: int, page: int, page_size: int) -> dict:
    return {
        "data": list(items),
        "pagination": {
            "page": page,
            "page_size": page_size,
            "total": total,
            "total_pages": max(1, math.ceil(total / page_size)) if page_size else 1,
        },
    }


def resolve_sort(
    sort: str | None,
    order: str | None,
    allowed: Collection[str],
    default_field: str = "createdAt",
    default_order: str = "desc",
) -> list[tuple[str, int]]:
    """pymongo sort spec from user-supplied field/order."""
    field = sort if sort in allowed else default_field
    direction = order or default_order
    return [(field, ASCENDING if direction == "asc" else DESCENDING)]
