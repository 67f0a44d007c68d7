"""
FastAPI application initialization
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import async_sessionmaker

from api.middleware import RequestContextMiddleware
from api.routes import etl, health, updates
from core.config import Settings, settings
from core.database import async_session_maker
from core.logging import setup_logging
from ingestion.base import ListingSource
from ingestion.extractors.reso_extractor import RESOExtractor
from ingestion.notifier import ChangeNotifier
from ingestion.refresher import ListingRefresher
from ingestion.scheduler import PropertyEtlJob, PropertySyncScheduler
from ingestion.status_publisher import StatusPublisher
import logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the cron scheduler with the app; stop it (not the in-flight run) on shutdown"""
    app_settings: Settings = app.state.settings
    logger.info("Starting property ETL service")
    logger.info(f"Environment: {app_settings.ENVIRONMENT}")
    logger.info(f"Database: {app_settings.DATABASE_URL.split('@')[1] if '@' in app_settings.DATABASE_URL else 'configured'}")

    if app_settings.SCHEDULER_ENABLED:
        app.state.scheduler.start()

    yield

    logger.info("Shutting down property ETL service")
    app.state.scheduler.stop()


def create_app(
    app_settings: Settings = settings,
    session_maker: Optional[async_sessionmaker] = None,
    job: Optional[PropertyEtlJob] = None,
    extractor: Optional[ListingSource] = None
) -> FastAPI:
    """
    Build the application and wire its components explicitly.

    Every component is constructed here and kept on ``app.state``; routes
    reach them through api.dependencies.
    """
    session_maker = session_maker or async_session_maker
    extractor = extractor or RESOExtractor.from_settings(app_settings)
    notifier = ChangeNotifier()

    app = FastAPI(
        title="Property ETL Service",
        description="Keeps a local listing store in sync with a RESO Web API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    app.state.settings = app_settings
    app.state.session_maker = session_maker
    app.state.notifier = notifier
    app.state.scheduler = PropertySyncScheduler(
        job=job or PropertyEtlJob(session_maker, app_settings, notifier=notifier, extractor=extractor),
        schedule=app_settings.ETL_JOB_SCHEDULE
    )
    app.state.refresher = ListingRefresher(session_maker, extractor, notifier=notifier)
    app.state.status_publisher = StatusPublisher(
        session_maker,
        notifier,
        recent_limit=app_settings.RECENT_PROPERTIES_LIMIT,
        timeout=app_settings.LONG_POLL_TIMEOUT_SECONDS,
        poll_interval=app_settings.LONG_POLL_INTERVAL_SECONDS
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS,
        allow_methods=["GET", "POST"],
        allow_credentials=True
    )

    app.include_router(health.router)
    app.include_router(etl.router)
    app.include_router(updates.router)

    @app.get("/")
    async def root():
        """Root endpoint"""
        return {
            "message": "Property ETL Service",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
            "endpoints": {
                "trigger": "POST /api/etl/job/trigger",
                "status": "/api/etl/job/status",
                "properties": "/api/etl/properties",
                "property": "/api/etl/properties/{mls_number}",
                "refresh": "POST /api/etl/properties/{mls_number}/refresh",
                "recent": "/api/etl/properties/recent",
                "updates": "/api/admin/updates?since=<epoch-ms>"
            }
        }

    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
