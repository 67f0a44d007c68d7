import asyncio
import pytest
from ingestion.loaders.property_loader import PropertyLoader
from ingestion.notifier import ChangeNotifier
from ingestion.status_publisher import StatusPublisher
from ingestion.transformers.property_transformer import PropertyTransformer
from core.clock import to_epoch_ms, utcnow


async def seed(session_maker, notifier, listing_factory, *listing_ids):
    transformer = PropertyTransformer()
    async with session_maker() as session:
        loader = PropertyLoader(session, notifier=notifier)
        await loader.upsert_batch([transformer.transform(listing_factory(i)) for i in listing_ids])


# ---------------------------------------------------------------------------
# ChangeNotifier
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_notifier_wait_times_out():
    notifier = ChangeNotifier()
    assert await notifier.wait(notifier.version, timeout=0.05) is False


@pytest.mark.asyncio
async def test_notifier_returns_immediately_when_version_moved():
    notifier = ChangeNotifier()
    seen = notifier.version
    notifier.notify()

    assert await notifier.wait(seen, timeout=0) is True


@pytest.mark.asyncio
async def test_notifier_wakes_all_waiters():
    notifier = ChangeNotifier()
    seen = notifier.version

    waiters = [asyncio.create_task(notifier.wait(seen, timeout=5)) for _ in range(3)]
    await asyncio.sleep(0.01)
    notifier.notify()

    assert await asyncio.gather(*waiters) == [True, True, True]
    assert notifier.version == seen + 1


# ---------------------------------------------------------------------------
# StatusPublisher
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_initial_request_returns_snapshot(session_maker, listing_factory):
    notifier = ChangeNotifier()
    await seed(session_maker, notifier, listing_factory, "S1", "S2")
    publisher = StatusPublisher(session_maker, notifier, recent_limit=1)

    result = await publisher.await_update(0, timeout=1)

    assert result.data is not None
    assert result.data.status == "active"
    assert result.data.total_properties == 2
    assert len(result.data.properties) == 1
    assert result.data.properties[0].mls_number == "S2"
    assert result.timestamp > 0


@pytest.mark.asyncio
async def test_times_out_without_change(session_maker, listing_factory):
    notifier = ChangeNotifier()
    await seed(session_maker, notifier, listing_factory, "S1")
    publisher = StatusPublisher(session_maker, notifier)
    since = to_epoch_ms(utcnow()) + 1

    loop = asyncio.get_running_loop()
    started = loop.time()
    result = await publisher.await_update(since, timeout=0.3, poll_interval=0.05)
    elapsed = loop.time() - started

    assert result.data is None
    assert elapsed >= 0.29
    assert result.timestamp >= since - 1


@pytest.mark.asyncio
async def test_empty_store_times_out(session_maker):
    publisher = StatusPublisher(session_maker, ChangeNotifier())
    since = to_epoch_ms(utcnow()) - 60_000

    result = await publisher.await_update(since, timeout=0.1, poll_interval=0.05)
    assert result.data is None


@pytest.mark.asyncio
async def test_wakes_on_new_write(session_maker, listing_factory):
    notifier = ChangeNotifier()
    await seed(session_maker, notifier, listing_factory, "S1")
    publisher = StatusPublisher(session_maker, notifier)
    since = to_epoch_ms(utcnow()) + 1

    async def write_later():
        await asyncio.sleep(0.1)
        await seed(session_maker, notifier, listing_factory, "S2")

    loop = asyncio.get_running_loop()
    started = loop.time()
    writer = asyncio.create_task(write_later())
    result = await publisher.await_update(since, timeout=5, poll_interval=5)
    await writer

    assert result.data is not None
    assert result.data.total_properties == 2
    assert result.data.properties[0].mls_number == "S2"
    assert loop.time() - started < 4


@pytest.mark.asyncio
async def test_sees_writes_from_elsewhere_on_poll(session_maker, listing_factory):
    notifier = ChangeNotifier()
    publisher = StatusPublisher(session_maker, notifier)
    since = to_epoch_ms(utcnow()) + 1

    async def write_later():
        await asyncio.sleep(0.1)
        # A loader without this process's notifier
        await seed(session_maker, None, listing_factory, "S9")

    writer = asyncio.create_task(write_later())
    result = await publisher.await_update(since, timeout=3, poll_interval=0.05)
    await writer

    assert result.data is not None
    assert result.data.total_properties == 1


@pytest.mark.asyncio
async def test_disconnect_ends_wait_early(session_maker):
    publisher = StatusPublisher(session_maker, ChangeNotifier())
    since = to_epoch_ms(utcnow()) + 1

    async def disconnected():
        return True

    loop = asyncio.get_running_loop()
    started = loop.time()
    result = await publisher.await_update(since, timeout=5, is_disconnected=disconnected)

    assert result.data is None
    assert loop.time() - started < 1


@pytest.mark.asyncio
async def test_future_since_never_reads_store(session_maker, listing_factory):
    notifier = ChangeNotifier()
    await seed(session_maker, notifier, listing_factory, "S1")
    publisher = StatusPublisher(session_maker, notifier)

    result = await publisher.await_update(to_epoch_ms(utcnow()) + 60_000, timeout=0.1, poll_interval=0.05)
    assert result.data is None
