"""
Database session management with SQLAlchemy async
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_engine(database_url: str = settings.DATABASE_URL) -> AsyncEngine:
    """Create an async engine for the given URL"""
    return create_async_engine(
        database_url,
        echo=False,
        poolclass=NullPool,  # Sessions are short lived; one per run or request
        future=True
    )


def build_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    """Session factory shared by the API, the scheduler and the long-poll waiters"""
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


engine = build_engine()
async_session_maker = build_session_maker(engine)

