"""
ETL job management endpoints: manual trigger, status, listing queries and refresh
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from api.dependencies import get_refresher, get_scheduler, get_store
from core.exceptions import PersistenceError, TransformError
from ingestion.refresher import ListingRefresher
from ingestion.scheduler import PropertySyncScheduler
from models.property_store import PropertyStore
from schemas.api import (
    JobStatusResponse,
    PropertyListResponse,
    RecentPropertiesResponse,
    RunStats,
    TriggerJobResponse,
)
from schemas.property import PropertyResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/etl", tags=["ETL"])


@router.post("/job/trigger", response_model=TriggerJobResponse)
async def trigger_job(
    request: Request,
    scheduler: PropertySyncScheduler = Depends(get_scheduler)
):
    """
    Run the property ETL job now, or join the run already in progress.

    A run that ends with errors still reports the counts it reached.
    """
    request_id = getattr(request.state, "request_id", "-")
    logger.info(f"[{request_id}] Manual ETL job triggered via API")

    result = await scheduler.trigger()

    if result.success:
        message = "ETL job completed"
    else:
        message = f"ETL job completed with {result.errors} error(s)"

    return TriggerJobResponse(
        success=result.success,
        message=message,
        processed_count=result.processed,
        data=RunStats(processed=result.processed, saved=result.saved, errors=result.errors)
    )


@router.get("/job/status", response_model=JobStatusResponse)
async def get_status(
    store: PropertyStore = Depends(get_store),
    scheduler: PropertySyncScheduler = Depends(get_scheduler)
):
    """Store freshness (last update, total listings) and scheduler state"""
    try:
        last_update_date = await store.last_updated()
        total = await store.count()
    except SQLAlchemyError as e:
        logger.error(f"Error fetching ETL status: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to get ETL status")

    last_result = scheduler.last_result
    return JobStatusResponse(
        last_update_date=last_update_date,
        total_properties=total,
        last_run=scheduler.last_run_at,
        last_success=scheduler.last_success_at,
        last_result=RunStats(
            processed=last_result.processed, saved=last_result.saved, errors=last_result.errors
        ) if last_result else None,
        next_scheduled_run=scheduler.next_run_time,
        is_running=scheduler.is_running
    )


@router.get("/properties/recent", response_model=RecentPropertiesResponse)
async def get_recent_properties(
    request: Request,
    limit: Optional[int] = Query(None, ge=1, le=100, description="Number of listings to return"),
    store: PropertyStore = Depends(get_store)
):
    """Most recently updated listings, newest first"""
    limit = limit or request.app.state.settings.RECENT_PROPERTIES_LIMIT

    try:
        properties = await store.recent(limit)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching recent properties: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to get recent properties")

    return RecentPropertiesResponse(
        properties=[PropertyResponse.model_validate(p) for p in properties],
        count=len(properties)
    )


@router.get("/properties", response_model=PropertyListResponse)
async def list_properties(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    order_by: str = Query("lastUpdated", alias="orderBy"),
    order_dir: Literal["asc", "desc"] = Query("desc", alias="orderDir"),
    city: Optional[str] = Query(None, description="Case-insensitive substring match"),
    state: Optional[str] = None,
    property_type: Optional[str] = Query(None, alias="propertyType"),
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    min_bedrooms: Optional[int] = Query(None, alias="minBedrooms", ge=0),
    status: Optional[str] = None,
    store: PropertyStore = Depends(get_store)
):
    """Filtered, paginated listing search"""
    try:
        properties, total = await store.search(
            limit=limit,
            offset=offset,
            order_by=order_by,
            order_dir=order_dir,
            city=city,
            state=state,
            property_type=property_type,
            min_price=min_price,
            max_price=max_price,
            min_bedrooms=min_bedrooms,
            status=status
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SQLAlchemyError as e:
        logger.error(f"Error searching properties: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to get properties")

    return PropertyListResponse(
        properties=[PropertyResponse.model_validate(p) for p in properties],
        total=total,
        limit=limit,
        offset=offset
    )


@router.get("/properties/{mls_number}", response_model=PropertyResponse)
async def get_property(
    mls_number: str,
    store: PropertyStore = Depends(get_store)
):
    """One stored listing by MLS number"""
    try:
        listing = await store.get_by_mls_number(mls_number)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching property {mls_number}: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to get property")

    if listing is None:
        raise HTTPException(status_code=404, detail=f"Property {mls_number} not found")
    return PropertyResponse.model_validate(listing)


@router.post("/properties/{mls_number}/refresh", response_model=PropertyResponse)
async def refresh_property(
    request: Request,
    mls_number: str,
    refresher: ListingRefresher = Depends(get_refresher)
):
    """Re-fetch one listing from the MLS feed and upsert it now"""
    request_id = getattr(request.state, "request_id", "-")
    logger.info(f"[{request_id}] Refresh requested for listing {mls_number}")

    try:
        listing = await refresher.refresh(mls_number)
    except TransformError as e:
        logger.warning(f"[{request_id}] Listing {mls_number} could not be transformed: {e.message}")
        raise HTTPException(status_code=422, detail=e.message)
    except PersistenceError as e:
        raise HTTPException(status_code=500, detail=e.message)

    if listing is None:
        raise HTTPException(status_code=404, detail=f"Listing {mls_number} not found in MLS feed")
    return PropertyResponse.model_validate(listing)
