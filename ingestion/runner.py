# ============================================================================
# File: ingestion/runner.py
# Description: Batch-cursored property ETL orchestrator
# ============================================================================
"""
Property job runner - orchestrates repeated Extract, Transform, Load cycles.

This module provides:
- Watermark-based incremental extraction, one page per cycle
- Per-batch continuation (a bad batch is counted and skipped, not retried)
- Strictly sequential batches in increasing offset order
- Accurate run statistics, including partial progress on failure
"""

from typing import Optional
import logging

from ingestion.base import BatchCursor, ListingSource, RunResult, RunState
from ingestion.transformers.property_transformer import PropertyTransformer
from ingestion.loaders.property_loader import PropertyLoader
from models.property_store import PropertyStore
from core.exceptions import TransformError, PersistenceError

logger = logging.getLogger(__name__)


class PropertyJobRunner:
    """
    One full pipeline execution.

    States: IDLE -> RUNNING -> COMPLETED | ABORTED

    Responsibilities:
    - Read the watermark (max last_updated) at run start
    - Loop fetch -> transform -> upsert per batch
    - Abort on an extraction failure, continue past transform/load failures
    - Aggregate processed / saved / errors
    """

    def __init__(
        self,
        extractor: ListingSource,
        transformer: PropertyTransformer,
        loader: PropertyLoader,
        store: PropertyStore,
        batch_size: int = 100
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self.extractor = extractor
        self.transformer = transformer
        self.loader = loader
        self.store = store
        self.batch_size = batch_size
        self.state = RunState.IDLE
        self.cursor: Optional[BatchCursor] = None

    async def run(self) -> RunResult:
        """
        Run the pipeline to completion.

        Returns:
            RunResult; success is True iff no batch- or record-level error
            occurred. Unexpected faults end the run ABORTED with one extra
            error instead of hiding the counts reached so far.
        """
        processed = 0
        saved = 0
        errors = 0

        self.state = RunState.RUNNING
        logger.info("Starting property ETL job")

        try:
            watermark = await self.store.last_updated()
            logger.info(f"Last update date: {watermark.isoformat() if watermark else 'None - will fetch all properties'}")
            self.cursor = BatchCursor(offset=0, watermark=watermark)

            while True:
                # --------------------------------------------------
                # EXTRACT
                # --------------------------------------------------
                batch = await self.extractor.fetch_batch(
                    self.batch_size, self.cursor.offset, self.cursor.watermark
                )

                if not batch.success:
                    logger.error(f"Failed to fetch properties at offset {self.cursor.offset}: {batch.error}")
                    errors += 1
                    self.state = RunState.ABORTED
                    break

                if batch.count == 0:
                    logger.info("No more properties to process")
                    self.state = RunState.COMPLETED
                    break

                processed += batch.count
                logger.info(f"Processing batch of {batch.count} properties (offset: {self.cursor.offset})")

                # --------------------------------------------------
                # TRANSFORM + LOAD
                # --------------------------------------------------
                try:
                    canonical = self.transformer.transform_batch(batch.records)
                    batch_saved = await self.loader.upsert_batch(canonical)
                    saved += batch_saved
                    logger.info(f"Saved {batch_saved} properties to database")

                except TransformError as e:
                    errors += 1
                    logger.error(
                        f"Transform failed for batch at offset {self.cursor.offset}; skipping batch: {e.message}",
                        extra={"error_context": e.to_dict()}
                    )

                except PersistenceError as e:
                    errors += 1
                    logger.error(
                        f"Load failed for batch at offset {self.cursor.offset}; skipping rest of batch: {e.message}",
                        extra={"error_context": e.to_dict()}
                    )

                # A failed batch still advances so the run cannot wedge on one offset
                self.cursor = self.cursor.advance(batch.count)

                # A short page ends the data even if a next link is present
                if not (batch.has_next and batch.count == self.batch_size):
                    self.state = RunState.COMPLETED
                    break

        except Exception:
            logger.exception("ETL job failed with an unexpected error")
            errors += 1
            self.state = RunState.ABORTED

        result = RunResult(processed=processed, saved=saved, errors=errors)
        logger.info(
            f"ETL job {self.state.value}: processed {processed} properties, "
            f"saved {saved}, errors {errors}"
        )
        return result
