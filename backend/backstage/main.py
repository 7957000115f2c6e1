"""Backstage API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map BackstageError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - MongoDB client opened, indexed and closed by the lifespan context manager

Design Decisions:
    - Indexes are ensured on every start; ensure_indexes is idempotent
    - Error handlers live in api/error_handlers.py so tests build the same app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backstage.api.error_handlers import register_error_handlers
from backstage.api.routes import (
    admins, auth, catalog, health, media, messages, releases, shows,
    track_library, uploads,
)
from backstage.config import get_settings
from backstage.infrastructure.database import close_db, ensure_indexes, init_db
from backstage.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(settings.mongodb_uri, settings.mongodb_db_name)
    await ensure_indexes(manager.db)
    logger.info("Backstage API started")
    yield
    await close_db()
    logger.info("Backstage API shutting down")


app = FastAPI(title="Backstage API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(admins.router)
app.include_router(catalog.books_router)
app.include_router(releases.cds_router)
app.include_router(track_library.cd_tracks_router)
app.include_router(releases.dvds_router)
app.include_router(track_library.dvd_tracks_router)
app.include_router(catalog.lyrics_router)
app.include_router(catalog.photos_router)
app.include_router(shows.router)
app.include_router(catalog.texts_router)
app.include_router(catalog.clips_router)
app.include_router(messages.router)
app.include_router(uploads.router)
app.include_router(media.router)

register_error_handlers(app)
