"""
Dashboard long-poll endpoint
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import SQLAlchemyError

from api.dependencies import get_status_publisher
from ingestion.status_publisher import StatusPublisher
from schemas.api import UpdatesResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["Updates"])


@router.get("/updates", response_model=UpdatesResponse)
async def get_updates(
    request: Request,
    since: int = Query(0, description="Last server timestamp seen by the client (epoch ms)"),
    publisher: StatusPublisher = Depends(get_status_publisher)
):
    """
    Hold the request until listings change after ``since`` or the long-poll
    timeout elapses (then ``data`` is null). The wait ends as soon as the
    client disconnects.
    """
    try:
        result = await publisher.await_update(
            since,
            is_disconnected=request.is_disconnected
        )
    except SQLAlchemyError as e:
        logger.error(f"Error in long polling: {str(e)}")
        raise HTTPException(status_code=500, detail="Failed to fetch updates")

    return UpdatesResponse(timestamp=result.timestamp, data=result.data)
