"""
Health check endpoint with database and scheduler status
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import text
from api.dependencies import get_db, get_scheduler
from ingestion.scheduler import PropertySyncScheduler
from models.property_store import PropertyStore
from schemas.api import HealthCheckResponse
from core.clock import utcnow
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    scheduler: PropertySyncScheduler = Depends(get_scheduler)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status and listing count
    - Whether the cron scheduler is running
    """
    db_connected = False
    total_properties = None

    try:
        await db.execute(text("SELECT 1"))
        db_connected = True
        total_properties = await PropertyStore(db).count()
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {str(e)}")

    return HealthCheckResponse(
        timestamp=utcnow(),
        database_connected=db_connected,
        scheduler_running=scheduler.is_started,
        total_properties=total_properties
    )
