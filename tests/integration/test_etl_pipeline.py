"""
Integration tests for the complete property ETL pipeline
"""

import httpx
import pytest
from ingestion.base import BatchResult, RunState
from ingestion.extractors.reso_extractor import RESOExtractor
from ingestion.loaders.property_loader import PropertyLoader
from ingestion.refresher import ListingRefresher
from ingestion.runner import PropertyJobRunner
from ingestion.transformers.property_transformer import PropertyTransformer
from models.property_store import PropertyStore


def build_runner(db_session, extractor, batch_size=2):
    return PropertyJobRunner(
        extractor=extractor,
        transformer=PropertyTransformer(),
        loader=PropertyLoader(db_session),
        store=PropertyStore(db_session),
        batch_size=batch_size
    )


@pytest.mark.asyncio
async def test_full_etl_pipeline_integration(db_session, stored_mls_numbers, extractor_factory, page_factory, listing_factory):
    """
    Integration test: Extract → Transform → Load → Verify
    """
    extractor = extractor_factory([
        page_factory([listing_factory("P1"), listing_factory("P2")]),
        page_factory([listing_factory("P3")], has_next=False),
    ])
    runner = build_runner(db_session, extractor)

    result = await runner.run()

    assert result.success is True
    assert result.processed == 3
    assert result.saved == 3
    assert result.errors == 0
    assert runner.state == RunState.COMPLETED
    assert [offset for _, offset, _ in extractor.calls] == [0, 2]
    assert await stored_mls_numbers(db_session) == ["P1", "P2", "P3"]


@pytest.mark.asyncio
async def test_empty_first_batch_terminates(db_session, extractor_factory):
    extractor = extractor_factory([])
    runner = build_runner(db_session, extractor)

    result = await runner.run()

    assert result.to_dict() == {"success": True, "processed": 0, "saved": 0, "errors": 0}
    assert runner.state == RunState.COMPLETED
    assert len(extractor.calls) == 1


@pytest.mark.asyncio
async def test_full_page_with_next_link_keeps_paging(db_session, extractor_factory, page_factory, listing_factory):
    extractor = extractor_factory([
        page_factory([listing_factory("P1"), listing_factory("P2")]),
        page_factory([listing_factory("P3"), listing_factory("P4")]),
    ])

    result = await build_runner(db_session, extractor).run()

    # Third call gets the exhausted script: an empty page
    assert [offset for _, offset, _ in extractor.calls] == [0, 2, 4]
    assert result.processed == 4


@pytest.mark.asyncio
async def test_partial_batch_continuation(db_session, stored_mls_numbers, extractor_factory, page_factory, listing_factory):
    """Batch 2 of 3 fails transform; batches 1 and 3 are stored"""
    extractor = extractor_factory([
        page_factory([listing_factory("B1-1"), listing_factory("B1-2")]),
        page_factory([listing_factory("B2-1"), listing_factory("B2-2", StandardStatus=None)]),
        page_factory([listing_factory("B3-1")], has_next=False),
    ])
    runner = build_runner(db_session, extractor)

    result = await runner.run()

    assert result.errors >= 1
    assert result.success is False
    assert result.processed == 5
    assert result.saved == 3
    assert await stored_mls_numbers(db_session) == ["B1-1", "B1-2", "B3-1"]
    assert runner.state == RunState.COMPLETED


@pytest.mark.asyncio
async def test_extractor_failure_aborts_run(db_session, extractor_factory, page_factory, listing_factory):
    extractor = extractor_factory([
        page_factory([listing_factory("P1"), listing_factory("P2")]),
        BatchResult.failed("TransportError: Listing service error after 3 attempts"),
        page_factory([listing_factory("P3")], has_next=False),
    ])
    runner = build_runner(db_session, extractor)

    result = await runner.run()

    assert result.processed == 2
    assert result.saved == 2
    assert result.errors == 1
    assert runner.state == RunState.ABORTED
    assert len(extractor.calls) == 2


@pytest.mark.asyncio
async def test_unexpected_error_reports_partial_progress(db_session, extractor_factory, page_factory, listing_factory):
    class ExplodingExtractor(extractor_factory):
        async def fetch_batch(self, limit, offset, watermark=None):
            if offset > 0:
                raise RuntimeError("unexpected")
            return await super().fetch_batch(limit, offset, watermark)

    extractor = ExplodingExtractor([page_factory([listing_factory("P1"), listing_factory("P2")])])
    runner = build_runner(db_session, extractor)

    result = await runner.run()

    assert result.processed == 2
    assert result.saved == 2
    assert result.errors == 1
    assert runner.state == RunState.ABORTED


@pytest.mark.asyncio
async def test_second_run_uses_watermark(db_session, extractor_factory, page_factory, listing_factory):
    first = extractor_factory([page_factory([listing_factory("P1")], has_next=False)])
    await build_runner(db_session, first).run()
    assert first.calls[0][2] is None

    watermark = await PropertyStore(db_session).last_updated()
    second = extractor_factory([])
    await build_runner(db_session, second).run()

    assert second.calls == [(2, 0, watermark)]


@pytest.mark.asyncio
async def test_rerun_produces_no_duplicates(db_session, extractor_factory, page_factory, listing_factory):
    def script():
        return extractor_factory([
            page_factory([listing_factory("P1"), listing_factory("P2")], has_next=False)
        ])

    await build_runner(db_session, script()).run()
    result = await build_runner(db_session, script()).run()

    assert result.saved == 2
    store = PropertyStore(db_session)
    assert await store.count() == 2


@pytest.mark.asyncio
async def test_batch_size_must_be_positive(db_session, extractor_factory):
    with pytest.raises(ValueError):
        build_runner(db_session, extractor_factory(), batch_size=0)


@pytest.mark.asyncio
async def test_pipeline_against_reso_endpoint(db_session, stored_mls_numbers, listing_factory):
    """Runner driving the HTTP extractor over a mocked RESO endpoint"""
    listings = [listing_factory(f"H{i}") for i in range(3)]

    def handler(request: httpx.Request) -> httpx.Response:
        top = int(request.url.params["$top"])
        skip = int(request.url.params["$skip"])
        body = {"value": listings[skip:skip + top]}
        if skip + top < len(listings):
            body["@odata.nextLink"] = f"https://api.example.com/Property?$skip={skip + top}"
        return httpx.Response(200, json=body)

    extractor = RESOExtractor(
        api_url="https://api.example.com",
        retry_delay=0,
        transport=httpx.MockTransport(handler)
    )

    result = await build_runner(db_session, extractor).run()

    assert result.to_dict() == {"success": True, "processed": 3, "saved": 3, "errors": 0}
    assert await stored_mls_numbers(db_session) == ["H0", "H1", "H2"]


@pytest.mark.asyncio
async def test_out_of_range_coordinates_do_not_drop_batch(db_session, stored_mls_numbers, extractor_factory, page_factory, listing_factory):
    extractor = extractor_factory([
        page_factory([
            listing_factory("A"),
            listing_factory("B", Latitude=123.0, Longitude=-87.6),
            listing_factory("C"),
        ], has_next=False)
    ])

    result = await build_runner(db_session, extractor, batch_size=3).run()

    assert result.to_dict() == {"success": True, "processed": 3, "saved": 3, "errors": 0}
    assert await stored_mls_numbers(db_session) == ["A", "B", "C"]
    stored = await PropertyStore(db_session).get_by_mls_number("B")
    assert stored.latitude is None
    assert stored.longitude == -87.6


@pytest.mark.asyncio
async def test_refresh_single_listing_from_reso_endpoint(session_maker, listing_factory):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.params["$filter"])
        if request.url.params["$filter"] == "ListingId eq 'R1'":
            return httpx.Response(200, json={"value": [listing_factory("R1", ListPrice=399000)]})
        return httpx.Response(200, json={"value": []})

    extractor = RESOExtractor(
        api_url="https://api.example.com",
        retry_delay=0,
        transport=httpx.MockTransport(handler)
    )
    refresher = ListingRefresher(session_maker, extractor)

    stored = await refresher.refresh("R1")
    missing = await refresher.refresh("R2")

    assert stored.mls_number == "R1"
    assert stored.list_price == 399000
    assert missing is None
    assert seen == ["ListingId eq 'R1'", "ListingId eq 'R2'"]
    async with session_maker() as session:
        assert await PropertyStore(session).count() == 1
