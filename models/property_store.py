"""
Read queries against the properties table.

Shared by the job runner (watermark), the listing and status endpoints and
the long-poll publisher. Writes go through ingestion.loaders.property_loader.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from models.property import Property

# API sort keys -> columns
ORDERABLE_COLUMNS = {
    "lastUpdated": Property.last_updated,
    "listPrice": Property.list_price,
    "listingDate": Property.listing_date,
    "createdAt": Property.created_at,
    "bedrooms": Property.bedrooms,
    "squareFeet": Property.square_feet,
    "city": Property.city,
    "mlsNumber": Property.mls_number,
}


class PropertyStore:
    """Ordered range queries and counts over stored listings"""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def last_updated(self) -> Optional[datetime]:
        """Most recent last_updated in the store, or None when empty"""
        result = await self.db.execute(select(func.max(Property.last_updated)))
        return result.scalar()

    async def count(self) -> int:
        result = await self.db.execute(select(func.count()).select_from(Property))
        return result.scalar() or 0

    async def recent(self, limit: int = 10) -> List[Property]:
        """The ``limit`` most recently updated listings, newest first"""
        result = await self.db.execute(
            select(Property)
            .order_by(Property.last_updated.desc(), Property.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_by_mls_number(self, mls_number: str) -> Optional[Property]:
        result = await self.db.execute(
            select(Property).where(Property.mls_number == mls_number)
        )
        return result.scalar_one_or_none()

    async def search(
        self,
        limit: int = 10,
        offset: int = 0,
        order_by: str = "lastUpdated",
        order_dir: str = "desc",
        city: Optional[str] = None,
        state: Optional[str] = None,
        property_type: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        min_bedrooms: Optional[int] = None,
        status: Optional[str] = None
    ) -> Tuple[List[Property], int]:
        """
        Filtered, ordered page of listings plus the total matching count.

        city matches case-insensitively anywhere in the name; the other
        filters are exact or inclusive bounds. Unknown order_by raises
        ValueError.
        """
        if order_by not in ORDERABLE_COLUMNS:
            raise ValueError(f"Cannot order listings by '{order_by}'")

        conditions = []
        if city:
            conditions.append(Property.city.icontains(city, autoescape=True))
        if state:
            conditions.append(Property.state == state)
        if property_type:
            conditions.append(Property.property_type == property_type)
        if min_price is not None:
            conditions.append(Property.list_price >= min_price)
        if max_price is not None:
            conditions.append(Property.list_price <= max_price)
        if min_bedrooms is not None:
            conditions.append(Property.bedrooms >= min_bedrooms)
        if status:
            conditions.append(Property.status == status)

        column = ORDERABLE_COLUMNS[order_by]
        if order_dir == "asc":
            ordering = (column.asc(), Property.id.asc())
        else:
            ordering = (column.desc(), Property.id.desc())

        total = await self.db.execute(
            select(func.count()).select_from(Property).where(*conditions)
        )
        rows = await self.db.execute(
            select(Property)
            .where(*conditions)
            .order_by(*ordering)
            .offset(offset)
            .limit(limit)
        )
        return list(rows.scalars().all()), total.scalar() or 0
