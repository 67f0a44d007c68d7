"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from datetime import datetime
from typing import AsyncGenerator, Dict, Any, List, Optional
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy import select
from sqlalchemy.pool import NullPool
from models.base import Base
from models.property import Property
from ingestion.base import BatchResult, ListingSource

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """File-backed SQLite engine; each test gets a fresh database"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'properties.db'}",
        echo=False,
        poolclass=NullPool,  # Disable connection pooling for tests
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


def make_listing(listing_id: str, **overrides) -> Dict[str, Any]:
    """A complete upstream RESO record; keyword overrides replace fields"""
    record = {
        "ListingId": listing_id,
        "ListingKey": f"key-{listing_id}",
        "ListPrice": 450000,
        "StandardStatus": "Active",
        "MlsStatus": "Active",
        "City": "Springfield",
        "StateOrProvince": "IL",
        "PostalCode": "62701",
        "UnparsedAddress": f"{listing_id} Main St",
        "BedroomsTotal": 3,
        "BathroomsTotalInteger": 2,
        "LivingArea": 1800,
        "LotSizeArea": 0.25,
        "YearBuilt": 1998,
        "PropertyType": "Residential",
        "PropertySubType": "Single Family Residence",
        "PublicRemarks": "Charming home near the park",
        "Media": [{"MediaURL": f"http://example.com/{listing_id}/1.jpg"}],
        "ListingContractDate": "2024-05-01T00:00:00Z",
        "ModificationTimestamp": "2024-05-30T08:15:00Z",
    }
    record.update(overrides)
    return record


@pytest.fixture
def mock_reso_record():
    """The literal mapping scenario record"""
    return {
        "ListingId": "123",
        "ListPrice": 500000,
        "StandardStatus": "Active",
        "City": "Test City",
        "StateOrProvince": "CA",
        "PostalCode": "12345",
        "UnparsedAddress": "123 Test St",
        "BedroomsTotal": 3,
        "BathroomsTotalInteger": 2,
        "LivingArea": 2000,
        "YearBuilt": 2020,
        "Media": [{"MediaURL": "http://example.com/image1.jpg"}],
    }


class FakeExtractor(ListingSource):
    """
    Scripted listing source.

    ``batches`` is consumed in order, one per fetch_batch call; once it is
    exhausted every call returns an empty page. Calls are recorded as
    (limit, offset, watermark) tuples. ``listings`` backs single-listing
    lookups by MLS number.
    """

    def __init__(
        self,
        batches: Optional[List[BatchResult]] = None,
        listings: Optional[Dict[str, Dict[str, Any]]] = None
    ):
        self.batches = list(batches or [])
        self.listings = dict(listings or {})
        self.calls = []

    async def fetch_batch(self, limit, offset, watermark=None) -> BatchResult:
        self.calls.append((limit, offset, watermark))
        if not self.batches:
            return BatchResult(success=True, count=0, records=[])
        return self.batches.pop(0)

    async def fetch_by_mls_number(self, mls_number) -> Optional[Dict[str, Any]]:
        return self.listings.get(mls_number)


def page(records: List[Dict[str, Any]], has_next: bool = True) -> BatchResult:
    return BatchResult(
        success=True,
        count=len(records),
        records=records,
        next_cursor="next" if has_next else None
    )


@pytest.fixture
def listing_factory():
    return make_listing


@pytest.fixture
def page_factory():
    return page


@pytest.fixture
def extractor_factory():
    return FakeExtractor


@pytest.fixture
def stored_mls_numbers():
    """Every stored MLS number in sort order"""
    async def query(session: AsyncSession) -> List[str]:
        result = await session.execute(select(Property.mls_number).order_by(Property.mls_number))
        return list(result.scalars().all())
    return query
