"""
Load canonical listings with upsert logic (idempotency) keyed by mls_number
"""

from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import and_, case, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from models.property import Property
from schemas.property import PropertyCreate
from ingestion.notifier import ChangeNotifier
from core.clock import Clock, utcnow
from core.exceptions import PersistenceError
import logging

logger = logging.getLogger(__name__)

# Columns overwritten on conflict. listing_date and listing_date_estimated are
# handled separately; mls_number / created_at are never touched after insert.
MUTABLE_COLUMNS = (
    "listing_key", "street_address", "city", "state", "zip_code",
    "property_type", "property_sub_type", "list_price", "bedrooms",
    "bathrooms", "square_feet", "lot_size", "year_built", "description",
    "photos", "status", "standard_status", "mls_status", "tax_id",
    "virtual_tour_url", "latitude", "longitude", "modification_timestamp",
    "days_on_market", "last_updated",
)

DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class PropertyLoader:
    """
    Upsert listings into the properties table.

    Ensures:
    - At most one row per mls_number on repeated runs
    - last_updated is set to "now" on every write
    - listing_date keeps its first contract date; a first-seen estimate is
      replaced once upstream sends a real one
    - Each record commits on its own; no multi-record transaction
    """

    def __init__(
        self,
        db_session: AsyncSession,
        notifier: Optional[ChangeNotifier] = None,
        clock: Clock = utcnow
    ):
        self.db = db_session
        self.notifier = notifier
        self.clock = clock

    def _insert(self):
        dialect = self.db.bind.dialect.name
        try:
            return DIALECT_INSERTS[dialect]
        except KeyError:
            raise PersistenceError(
                f"Upsert is not supported on the '{dialect}' dialect",
                context={"operation": "UPSERT", "dialect": dialect}
            )

    def _build_upsert(self, record: PropertyCreate):
        now = self.clock()
        values = record.model_dump()
        values["last_updated"] = now
        values["created_at"] = now
        # First-seen instant stands in for a missing contract date
        values["listing_date_estimated"] = values.get("listing_date") is None
        if values["listing_date_estimated"]:
            values["listing_date"] = now

        stmt = self._insert()(Property).values(**values)
        excluded = stmt.excluded
        set_ = {name: excluded[name] for name in MUTABLE_COLUMNS}

        # A stored contract date never changes; an estimated one yields to the first real one
        replace_estimate = and_(
            Property.listing_date_estimated.is_(True),
            excluded.listing_date_estimated.is_(False)
        )
        set_["listing_date"] = case(
            (replace_estimate, excluded.listing_date),
            else_=func.coalesce(Property.listing_date, excluded.listing_date)
        )
        set_["listing_date_estimated"] = and_(
            Property.listing_date_estimated.is_(True),
            excluded.listing_date_estimated.is_(True)
        )

        return stmt.on_conflict_do_update(index_elements=["mls_number"], set_=set_)

    async def upsert(self, record: PropertyCreate) -> Property:
        """
        Insert or update one listing and commit.

        Returns:
            The stored Property row

        Raises:
            PersistenceError: the write failed (session rolled back)
        """
        try:
            await self.db.execute(self._build_upsert(record))
            await self.db.commit()
            result = await self.db.execute(
                select(Property)
                .where(Property.mls_number == record.mls_number)
                .execution_options(populate_existing=True)
            )
            stored = result.scalar_one()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error saving listing {record.mls_number}: {str(e)}")
            raise PersistenceError(
                f"Failed to save listing {record.mls_number}",
                context={"mls_number": record.mls_number, "operation": "UPSERT", "table_name": "properties"},
                original_exception=e
            )

        if self.notifier is not None:
            self.notifier.notify()
        return stored

    async def upsert_batch(self, records: List[PropertyCreate]) -> int:
        """
        Upsert records sequentially, stopping at the first failure.

        Returns:
            Number of records saved

        Raises:
            PersistenceError: from the first failing record; earlier records
                in the batch stay committed
        """
        saved_count = 0

        for record in records:
            await self.upsert(record)
            saved_count += 1

        logger.info(f"Upserted {saved_count} listings into properties")
        return saved_count
