"""
ETL pipeline components for listing synchronization.

Modules:
    base: BatchCursor, BatchResult, RunResult, RunState and the ListingSource ABC
    runner: PropertyJobRunner, one batch-cursored pipeline execution
    scheduler: PropertySyncScheduler (APScheduler cron + single-flight manual trigger)
    notifier: ChangeNotifier signalled by the loader after each committed write
    status_publisher: StatusPublisher, bounded long-poll over the store

Subpackages:
    extractors: RESO Web API extractor
    transformers: RESO record -> canonical PropertyCreate mapping
    loaders: Idempotent upsert keyed by mls_number

Architecture:
    Scheduler (cron or manual) -> PropertyJobRunner ->
        loop { fetch_batch -> transform_batch -> upsert_batch } -> RunResult

    1. Extract - one page per cycle, filtered by the store watermark
    2. Transform - all-or-nothing per batch
    3. Load - per-record commit, fail-fast within a batch

    An extraction failure ends the run; a transform or load failure costs
    one batch and the run continues at the next offset.

Usage:
    from ingestion.extractors.reso_extractor import RESOExtractor
    from ingestion.transformers.property_transformer import PropertyTransformer
    from ingestion.loaders.property_loader import PropertyLoader
    from ingestion.runner import PropertyJobRunner

Example:
    runner = PropertyJobRunner(
        extractor=RESOExtractor(api_url="https://api.mlsservice.com/v1", api_key=key),
        transformer=PropertyTransformer(),
        loader=PropertyLoader(session),
        store=PropertyStore(session),
        batch_size=100,
    )
    result = await runner.run()
    print(f"Saved {result.saved} of {result.processed} listings")
"""

__all__ = [
    "BatchCursor",
    "BatchResult",
    "RunResult",
    "RunState",
    "ListingSource",
    "PropertyJobRunner",
    "PropertySyncScheduler",
    "PropertyEtlJob",
    "ChangeNotifier",
    "StatusPublisher",
    "RESOExtractor",
    "PropertyTransformer",
    "PropertyLoader",
]
