"""
FastAPI dependencies resolved from application state
"""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from ingestion.refresher import ListingRefresher
from ingestion.scheduler import PropertySyncScheduler
from ingestion.status_publisher import StatusPublisher
from models.property_store import PropertyStore


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Request-scoped session from the app's session factory"""
    async with request.app.state.session_maker() as session:
        yield session


async def get_store(request: Request) -> AsyncIterator[PropertyStore]:
    async with request.app.state.session_maker() as session:
        yield PropertyStore(session)


def get_scheduler(request: Request) -> PropertySyncScheduler:
    return request.app.state.scheduler


def get_status_publisher(request: Request) -> StatusPublisher:
    return request.app.state.status_publisher


def get_refresher(request: Request) -> ListingRefresher:
    return request.app.state.refresher
