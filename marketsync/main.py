"""Marketsync API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map MarketSyncError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, ledger client and sync coordinator initialized in the lifespan;
      the periodic sync task is stopped before the ledger client is closed

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - sync_interval_seconds <= 0 disables the periodic job (POST /sync only)
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from marketsync import __version__
from marketsync.api.dependencies import init_services, shutdown_services
from marketsync.api.error_handlers import register_error_handlers
from marketsync.api.routes import (
    assets, contracts, health, listings, redemptions, sync,
)
from marketsync.config import get_settings
from marketsync.infrastructure.database import init_db
from marketsync.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    sessions = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    coordinator = init_services(settings, sessions)
    sync_task = None
    if settings.sync_interval_seconds > 0:
        sync_task = asyncio.create_task(
            coordinator.run_forever(settings.sync_interval_seconds),
        )
    logger.info("Marketsync API started")
    yield
    logger.info("Marketsync API shutting down")
    coordinator.stop()
    if sync_task:
        await sync_task
    await shutdown_services()
    await sessions.dispose()


app = FastAPI(
    title="Marketsync API", version=__version__, lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(assets.router)
app.include_router(listings.router)
app.include_router(redemptions.router)
app.include_router(sync.router)
app.include_router(contracts.router)

register_error_handlers(app)
