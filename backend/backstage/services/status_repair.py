"""Status Repair — reconcile `status` with the publication dates on legacy documents."""

import logging

from pymongo.asynchronous.database import AsyncDatabase

from backstage.core.domain_types import Collection
from backstage.core.publication import PublishStatus
from backstage.services.documents import collection, find_many

logger = logging.getLogger(__name__)

NEEDS_REPAIR = {
    "$and": [
        {"$or": [{"published_at": {"$ne": None}}, {"publishedAt": {"$ne": None}}]},
        {"$or": [
            {"status": {"$exists": False}},
            {"status": {"$ne": PublishStatus.PUBLISHED.value}},
        ]},
    ],
}


async def find_unrepaired(db: AsyncDatabase, name: Collection) -> list[dict]:
    return await find_many(
        db, name, NEEDS_REPAIR,
        projection={"title": 1, "status": 1, "published_at": 1, "publishedAt": 1},
    )


async def repair_publication_status(db: AsyncDatabase, name: Collection) -> int:
    """Mark documents that carry a publication date as published; returns modified count."""
    coll = collection(db, name)
    modified = 0
    for doc in await find_unrepaired(db, name):
        published_at = doc.get("published_at") or doc.get("publishedAt")
        result = await coll.update_one(
            {"_id": doc["_id"]},
            {"$set": {
                "status": PublishStatus.PUBLISHED.value,
                "publishedAt": published_at,
                "published_at": published_at,
            }},
        )
        modified += result.modified_count
    logger.info(
        f"Repaired publication status on {modified} document(s)",
        extra={"resource": name.value},
    )
    return modified
