# ABOUTME: FastAPI application factory with database and rate limiter lifespan.
# ABOUTME: Main entry point for the public bulletin API.

import asyncio
import contextlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from ward_bulletin.config import Settings, get_settings
from ward_bulletin.db.session import Database
from ward_bulletin.ratelimit import build_rate_limiters, run_sweeper
from ward_bulletin.services.records import RemoteRecordService
from ward_bulletin.web.routes import api, public

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create tables, run the rate limit sweeper, and release the engine on shutdown."""
    logger.info("app_startup")
    database: Database | None = app.state.database
    if database is not None:
        await database.init()
    sweeper = asyncio.create_task(
        run_sweeper(app.state.limiters, app.state.settings.rate_limit_sweep_interval_seconds)
    )
    yield
    logger.info("app_shutdown")
    sweeper.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweeper
    if database is not None:
        await database.close()


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    The app owns its rate limiters and database. Without a configured
    database the public lookup answers 500.
    """
    settings = settings or get_settings()
    if database is None and settings.database_configured:
        database = Database.from_settings(settings)

    app = FastAPI(
        title="Ward Bulletin",
        description="Weekly sacrament meeting bulletins",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.limiters = build_rate_limiters(settings)
    app.state.database = database
    app.state.records = RemoteRecordService(database, settings) if database else None

    app.include_router(public.router)
    app.include_router(api.router)

    return app


# Application instance for uvicorn
app = create_app()
