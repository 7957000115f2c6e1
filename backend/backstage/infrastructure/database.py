"""Database Manager — async MongoDB client lifecycle, indexes and health checks.

Invariants:
    - One AsyncMongoClient per process, created in the FastAPI lifespan
    - get_db() yields the configured AsyncDatabase; routes never build clients
    - Datetimes are returned timezone-aware (tz_aware=True)

Design Decisions:
    - Module-level db_manager is set by the lifespan (API) or by each CLI command
    - Driver errors are not wrapped per call: api/error_handlers.py maps
      DuplicateKeyError → 409 and any other PyMongoError → 503
    - Slug uniqueness uses partial indexes so legacy documents without a slug coexist
"""

import logging
from typing import AsyncGenerator

from pymongo import ASCENDING, AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from backstage.core.domain_types import Collection, SLUGGED_COLLECTIONS

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the MongoDB client and exposes the application database."""

    def __init__(self, uri: str, db_name: str):
        self.client = AsyncMongoClient(uri, tz_aware=True)
        self.db: AsyncDatabase = self.client[db_name]

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            await self.db.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.close()


# Singleton (initialized on startup)
db_manager: DatabaseManager | None = None


def init_db(uri: str, db_name: str) -> DatabaseManager:
    global db_manager
    db_manager = DatabaseManager(uri, db_name)
    return db_manager


async def close_db() -> None:
    global db_manager
    if db_manager:
        await db_manager.close()
        db_manager = None


async def get_db() -> AsyncGenerator[AsyncDatabase, None]:
    """FastAPI dependency for the application database."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    yield db_manager.db


async def ensure_indexes(db: AsyncDatabase) -> None:
    """Create unique, TTL and lookup indexes. Idempotent."""
    for name in SLUGGED_COLLECTIONS:
        await db[name.value].create_index(
            [("slug", ASCENDING)], unique=True,
            partialFilterExpression={"slug": {"$type": "string"}},
        )
    await db[Collection.ADMINS.value].create_index("email", unique=True)
    await db[Collection.PASSWORD_RESET_TOKENS.value].create_index("token", unique=True)
    await db[Collection.PASSWORD_RESET_TOKENS.value].create_index(
        "expires_at", expireAfterSeconds=0,
    )
    await db[Collection.UPLOAD_FILES.value].create_index("hash")
    await db[Collection.UPLOAD_FILES.value].create_index(
        [("deleted", ASCENDING), ("deletedAt", ASCENDING)],
    )
    logger.info("Database indexes ensured")
