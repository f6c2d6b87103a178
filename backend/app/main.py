"""Bookmark Sync API: FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map BookmarkSyncError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and change feed initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Stream router registered before the bookmarks router: /stream must win over /{id}
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.error_handlers import register_error_handlers
from app.api.routes import auth, bookmark_stream, bookmarks, health
from app.config import get_settings
from app.infrastructure import database as db_module
from app.infrastructure.change_feed import init_change_feed
from app.infrastructure.database import init_db
from app.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    init_change_feed()
    logger.info("Bookmark Sync API started")
    yield
    logger.info("Bookmark Sync API shutting down")
    if db_module.db_manager:
        await db_module.db_manager.dispose()


app = FastAPI(
    title="Bookmark Sync API", version="1.0.0", lifespan=lifespan,
)

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
app.include_router(bookmark_stream.router)
app.include_router(bookmarks.router)

register_error_handlers(app)
