"""
On-demand refresh of a single listing, outside the batch run
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.clock import Clock, utcnow
from ingestion.base import ListingSource
from ingestion.loaders.property_loader import PropertyLoader
from ingestion.notifier import ChangeNotifier
from ingestion.transformers.property_transformer import PropertyTransformer
from models.property import Property

logger = logging.getLogger(__name__)


class ListingRefresher:
    """
    Pull one listing by MLS number and upsert it.

    Uses the same transformer and loader as the batch pipeline, so a
    refreshed row is indistinguishable from one written by a run.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker,
        extractor: ListingSource,
        notifier: Optional[ChangeNotifier] = None,
        clock: Clock = utcnow
    ):
        self.session_maker = session_maker
        self.extractor = extractor
        self.notifier = notifier
        self.clock = clock
        self.transformer = PropertyTransformer(clock=clock)

    async def refresh(self, mls_number: str) -> Optional[Property]:
        """
        Returns:
            The stored row, or None when the listing service has no such listing

        Raises:
            TransformError: the upstream record is missing required fields
            PersistenceError: the upsert failed
        """
        raw = await self.extractor.fetch_by_mls_number(mls_number)
        if raw is None:
            logger.info(f"Listing {mls_number} not found upstream")
            return None

        record = self.transformer.transform(raw)
        async with self.session_maker() as session:
            stored = await PropertyLoader(session, notifier=self.notifier, clock=self.clock).upsert(record)

        logger.info(f"Refreshed listing {record.mls_number}")
        return stored
